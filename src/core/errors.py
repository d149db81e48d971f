"""Error taxonomy shared by the core and the adapters.

Adapters translate library exceptions into these so the pipeline and the
reconciler can decide per error kind whether to abort a run or an item.
"""

from __future__ import annotations

from typing import Optional


class GoldwatchError(Exception):
    """Base class for all goldwatch domain errors."""


class ConfigUnavailable(GoldwatchError):
    """The config store has no usable row or could not be read."""


class SourceFetchError(GoldwatchError):
    """The price source could not be reached or answered with an error."""


class SourceDataInvalid(GoldwatchError):
    """The price source answered with an empty or malformed payload."""


class StoreError(GoldwatchError):
    """A read or write against the dedup/audit store failed."""


class DeliveryError(GoldwatchError):
    """Sending a message to one recipient failed."""

    def __init__(self, message: str, recipient: Optional[str] = None) -> None:
        super().__init__(message)
        self.recipient = recipient


class ScheduleParseError(GoldwatchError):
    """A single trigger time entry could not be parsed."""

    def __init__(self, message: str, entry: str) -> None:
        super().__init__(message)
        self.entry = entry
