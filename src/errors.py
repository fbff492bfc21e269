"""Error types raised by instance validation and by strict result access."""


class ValidationError(ValueError):
    """Raised when SKU or location input is malformed. The search never starts."""


class NoFeasibleAssignmentError(Exception):
    """Raised when no assignment satisfies the location capacities."""


class SearchBudgetExceededError(Exception):
    """Raised when the node or time budget ran out before any feasible assignment was found.

    This means "unknown", not "proven impossible".
    """


# Mapping of error classes to HTTP status codes
ERROR_STATUS_CODES = {
    ValidationError: 400,
    NoFeasibleAssignmentError: 422,
    SearchBudgetExceededError: 504,
}
