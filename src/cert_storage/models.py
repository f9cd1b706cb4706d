"""Value objects returned by the record store."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class KeyInfo:
    """Metadata about a stored record, as returned by ``stat``.

    Attributes:
        key:         The record key.
        modified:    When the record was last written.
        size:        Length of the stored value in bytes.
        is_terminal: Always ``True``; keys are flat and never directories.
    """

    key: str
    modified: datetime
    size: int
    is_terminal: bool = True


class Presence(enum.Enum):
    """Three-state result of an existence probe."""

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"
