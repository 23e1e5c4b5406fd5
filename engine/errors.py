"""Error taxonomy raised by the combat engine.

Every error subclasses ValueError so engine callers can keep treating
rejections the way the rest of the engine does, while the HTTP layer maps
each class to its status code.
"""


class CombatError(ValueError):
    """Base class for all rejected combat calls."""
    status_code = 400


class ValidationError(CombatError):
    """Malformed input: bad target shape, tile outside the grid, etc."""
    status_code = 400


class AuthorizationError(CombatError):
    """Caller may not act for this combatant or campaign."""
    status_code = 403


class NotFound(CombatError):
    """Unknown session, combatant, skill, item, or campaign."""
    status_code = 404


class StateConflict(CombatError):
    """Retryable conflict with current state (turn, cooldown, budget, ...)."""
    status_code = 409
