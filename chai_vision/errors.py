"""
Exception and warning types raised by the sales engine
"""


class ChaiVisionError(Exception):
    """Base class for all engine errors"""


class ValidationError(ChaiVisionError):
    """A raw sales row could not be turned into a SalesRecord"""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class InvalidPeriodError(ChaiVisionError):
    """A period selection (kind, year, quarter, month) is not valid"""


class EmptyResultWarning(UserWarning):
    """An aggregation matched no records. Not an error."""
