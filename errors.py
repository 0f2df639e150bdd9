# errors.py
"""
Exceptions raised by the belief engine.

Every exception here signals a broken invariant. Floating-point drift is
never raised; it is absorbed locally by Distribution.normalize().
"""


class BeliefError(RuntimeError):
    """Base class for internal-consistency faults of the belief engine."""


class InfeasibleObservationError(BeliefError):
    """A field certain to occupy a cell was excluded from the observed set."""


class SingularRescaleError(BeliefError):
    """A field was asked to give up all of its probability mass."""


class EmptyEnsembleError(BeliefError):
    """An event left the ensemble without any hypothesis."""
