# main.py
"""
Main entry point for the particle belief tracker.

This script orchestrates the application lifecycle:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Loads the world and connects Board, Observer and Memory.
4. Runs the interactive loop.
5. Handles clean shutdown.
"""
import logging
from utils import setup_logging, load_config, load_world


def build(config: dict):
    """
    Creates the connected board, observer and memory described by `config`.
    """
    from board import Board
    from memory import Memory
    from observer import Observer

    world_params = config.get('world', {})
    encoded = load_world(world_params.get('path', 'worlds.json'), world_params.get('name', 'world_0'))
    height, width = encoded.shape

    board = Board(height, width, seed=world_params.get('seed'))
    observer = Observer(height, width)
    board.connect_observer(observer)
    board.initialize(encoded)
    return Memory(board, observer)


def main():
    """
    The main function to run the belief tracker.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config('config.json')
    except Exception as e:
        print(f"FATAL: Could not load config.json. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Particle Belief Tracker Starting ---")

    run_params = config.get('run_control', {})
    memory = build(config)

    from visualization import Visualizer
    visualizer = Visualizer(memory.board.height, memory.board.width, params=config.get('world', {}))

    log_throttle = run_params.get('log_throttle_steps', 300)
    frame = 0
    running = True
    while running:
        if not visualizer.draw(memory):
            running = False

        frame += 1
        if frame % log_throttle == 0:
            observer = memory.observer
            logging.debug(
                f"Frame {frame} | {len(observer)} universes | "
                f"total weight {observer.total_weight():.6f}"
            )

    visualizer.close()
    logging.info("--- Particle Belief Tracker Shutting Down ---")


if __name__ == "__main__":
    main()
