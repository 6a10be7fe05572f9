"""Error types raised by promvec."""
from typing import List, Optional


class MetricsError(Exception):
    """Base class for all promvec errors."""


class ValidationError(MetricsError, ValueError):
    """Malformed name, help string, option or label."""


class InvalidLabelError(ValidationError):
    """Label key or value rejected."""


class NegativeValueError(MetricsError, ValueError):
    """Negative delta passed to a counter."""


class NegativeObservationError(MetricsError, ValueError):
    """Negative value passed to a histogram."""


class NotFoundError(MetricsError, KeyError):
    """Lookup of a label combination that was never created."""

    def __str__(self) -> str:
        # KeyError quotes its argument
        return str(self.args[0]) if self.args else ""


class TypeConflictError(MetricsError, TypeError):
    """A name is already bound to a collector of another kind."""


class AlreadyRegisteredError(MetricsError):
    """A collector with the same name is already registered."""


class UnsupportedFormatError(MetricsError, ValueError):
    """Unknown serialization format requested."""


class CollectionError(MetricsError):
    """
    Several triggers or renders failed during one collect() call.

    Carries every underlying error and the text produced by the collectors
    that rendered successfully.
    """

    def __init__(self, errors: List[BaseException], text: Optional[str] = ""):
        self.errors = list(errors)
        self.text = text
        summary = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} error(s) during collection: {summary}")
