"""Engine error taxonomy.

Hard input errors are raised at the function boundary. Business outcomes
(ineligible insurance, advisory warnings) are returned as data.
"""


class InputValidationError(ValueError):
    """Caller-supplied input violates a hard rule (e.g. down payment below 5%)."""


class NonConvergenceWarning(UserWarning):
    """An iterative solver hit its iteration cap; the estimate is approximate."""
