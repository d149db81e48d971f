"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

DEDUP_SCOPES = ("per_recipient", "global")


@dataclass(frozen=True)
class DedupConfig:
    """Deduplication settings for the notification pipeline."""

    scope: str = "per_recipient"

    def __post_init__(self) -> None:
        if self.scope not in DEDUP_SCOPES:
            raise ValueError(f"Unsupported dedup scope: {self.scope}")

