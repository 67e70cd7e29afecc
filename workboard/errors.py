"""Engine error taxonomy.

Services raise these; the app-level error handler rolls back the session
and turns them into ``{"error": kind, "message": message}`` JSON responses.
"""


class EngineError(Exception):
    """Base class for every error the engine reports to its callers."""

    kind = "error"
    status_code = 400

    def __init__(self, message=None):
        self.message = message or self.__class__.__doc__.strip()
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.kind, "message": self.message}


class NotFound(EngineError):
    """Resource not found."""

    kind = "not_found"
    status_code = 404


class InvalidPlan(EngineError):
    """Task plan is invalid."""

    kind = "invalid_plan"
    status_code = 422


class InvalidOperation(EngineError):
    """Operation not allowed."""

    kind = "invalid_operation"
    status_code = 400


class InvalidState(EngineError):
    """Transition not allowed from the current state."""

    kind = "invalid_state"
    status_code = 409


class Conflict(EngineError):
    """Concurrent structural change detected."""

    kind = "conflict"
    status_code = 409


class InvalidInput(EngineError):
    """Invalid input."""

    kind = "invalid_input"
    status_code = 400


class Forbidden(EngineError):
    """Insufficient project role."""

    kind = "forbidden"
    status_code = 403
