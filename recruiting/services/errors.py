"""
Domain errors raised by the recruiting services.

Each error carries the HTTP status class the route layer maps it to.
They subclass ValueError so callers that only care about "business rule
violated" can keep catching ValueError.
"""


class RecruitingError(ValueError):
    """Base class for business-rule violations surfaced to the caller."""

    status_code = 400


class NotFoundError(RecruitingError):
    """Referenced profile, organization, scouting or application is absent or not owned by the caller."""

    status_code = 404


class PreconditionFailedError(RecruitingError):
    """A business precondition does not hold (inactive scouting, capacity, affiliation, ...)."""

    status_code = 400


class IllegalTransitionError(PreconditionFailedError):
    """An application status transition was requested from a state that does not allow it."""

    def __init__(self, message: str, from_status: str, to_status: str):
        super().__init__(message)
        self.from_status = from_status
        self.to_status = to_status

    def __str__(self) -> str:
        return self.args[0]

    def __repr__(self) -> str:
        return f"IllegalTransitionError({self.from_status} -> {self.to_status}: {self.args[0]!r})"
