"""
Domain Errors
Every failure surfaced by the budget core is a BudgetError subclass.
None of them is fatal; callers report the message and let the user retry.
"""


class BudgetError(Exception):
    """Base class for recoverable budget errors"""


class ValidationError(BudgetError, ValueError):
    """Input rejected before any persistence attempt"""


class AuthenticationRequiredError(BudgetError):
    """A write was attempted without a signed-in identity"""

    def __init__(self, message: str = "Please sign in to modify your budget."):
        super().__init__(message)


class ReadOnlyProfileError(BudgetError):
    """A write was attempted against the combined (merged) profile"""

    def __init__(self, what: str = "Changes"):
        super().__init__(
            f"{what} cannot be made in combined view. "
            "Please switch to an individual profile."
        )


class TransientBackendError(BudgetError):
    """The data backend failed in a way that may succeed on retry"""


class NotFoundError(BudgetError):
    """A referenced record does not exist in the selected profile/period"""
