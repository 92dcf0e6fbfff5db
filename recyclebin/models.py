from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class CollisionPolicy(Enum):
    REJECT = "reject"
    RENAME = "rename"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown collision policy: {value!r}") from None


@dataclass(frozen=True)
class TrashedItem:
    name: str
    stored_path: Path
    original_source: Optional[str]
    trashed_at: datetime
    size: Optional[int] = None
