"""Domain errors raised by the engine.

Every error is recoverable at the call site; the service layer turns them
into structured refusals.
"""
from __future__ import annotations


class GridRivalError(Exception):
    """Base class for refusals raised by the engine."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.code, "message": self.message}


class ValidationError(GridRivalError):
    """Input outside its allowed range (bid price, quantity, config)."""

    code = "validation"


class PhaseError(GridRivalError):
    """Action attempted outside the phase it is valid in."""

    code = "phase"


class NotFoundError(GridRivalError):
    """Unknown game, team, asset, round or event id."""

    code = "not_found"


class DispatchFault(GridRivalError):
    """Unexpected failure inside the round clearing pass."""

    code = "dispatch_fault"


class NotAuthorizedError(GridRivalError):
    """Caller's session may not perform the action (e.g. a team issuing host commands)."""

    code = "not_authorized"
