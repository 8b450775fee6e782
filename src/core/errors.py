"""Typed errors for the reconciliation pipeline.

Run-level errors (configuration, source, store) abort a script with a
non-zero exit. EventParseError never leaves the parser; it is turned into
a failed ParseResult there.
"""

from dataclasses import dataclass, field


@dataclass
class ReconciliationError(Exception):
    """Base error for the reconciliation pipeline.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Exception | None = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class ConfigurationError(ReconciliationError):
    """Missing or invalid configuration.

    Attributes:
        setting_name: Name of the problematic setting
    """

    setting_name: str = ""


@dataclass
class SourceUnavailableError(ReconciliationError):
    """The external record source could not be paged at all.

    Attributes:
        source: Which source failed ("calendar" or "mailbox")
    """

    source: str = ""


@dataclass
class StoreUnavailableError(ReconciliationError):
    """The booking store could not be opened.

    Attributes:
        db_path: Path of the database that failed to open
    """

    db_path: str = ""


@dataclass
class EventParseError(ReconciliationError):
    """A calendar event could not be turned into a booking.

    Attributes:
        event_id: Source id of the offending event
    """

    event_id: str = ""
