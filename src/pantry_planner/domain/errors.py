"""Error types raised by the meal planner."""


class PlannerError(Exception):
    """Base error for the meal planner."""


class ExternalServiceError(PlannerError):
    """A collaborator call timed out, failed or returned an unusable payload."""


class DataIntegrityError(PlannerError):
    """Stored data could not be reconciled, e.g. no pantry match for an ingredient."""


class ExhaustionError(PlannerError):
    """Every strategy and attempt failed and fallback was not allowed."""
