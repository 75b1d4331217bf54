"""Exception and warning types raised by the recommendation engine."""

from __future__ import annotations


class BanditError(Exception):
    """Base class for engine failures."""


class InvalidActionKind(BanditError, ValueError):
    """Reward action outside the fixed action set."""

    def __init__(self, action: object) -> None:
        super().__init__(f"Unknown reward action: {action!r}")
        self.action = action


class DimensionMismatch(BanditError, ValueError):
    """Operand shapes do not line up."""

    def __init__(self, message: str, expected: object = None, actual: object = None) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ModelStoreUnavailable(BanditError):
    """The model store could not be read or written."""


class ModelVersionConflict(ModelStoreUnavailable):
    """A conditional write found a different stored version than expected."""

    def __init__(self, user_id: str, expected: int | None, actual: int | None) -> None:
        super().__init__(
            f"Model for {user_id} is at version {actual}, expected {expected}"
        )
        self.user_id = user_id
        self.expected = expected
        self.actual = actual


class ArmNotFound(BanditError, KeyError):
    """No metadata could be resolved for the rewarded arm."""

    def __init__(self, arm_id: str) -> None:
        super().__init__(arm_id)
        self.arm_id = arm_id

    def __str__(self) -> str:
        return f"Arm {self.arm_id} not found"


class NumericalInstability(RuntimeWarning):
    """Matrix inversion skipped a near-zero pivot."""
