# dupesweep/core/models.py
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class FileRecord:
    path: str # absolute
    size: int # in bytes, always > 0
    hash_sha256: Optional[str] = None
    modified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def extension(self) -> Optional[str]:
        _, ext = os.path.splitext(self.name)
        return ext.lower() if ext else None

    def __hash__(self):
        # Records are identified by their token, two scans of the same path are different records
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, FileRecord):
            return NotImplemented
        return self.id == other.id


@dataclass(frozen=True)
class DuplicateGroup:
    hash_sha256: str
    files: List[FileRecord]
    size: int # size of each member

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_size(self) -> int:
        return self.size * len(self.files)

    @property
    def wasted_size(self) -> int:
        """Bytes reclaimed if every member but one is removed."""
        return self.size * max(0, len(self.files) - 1)

    @property
    def first_name(self) -> str:
        return self.files[0].name if self.files else ""

    def __contains__(self, record: FileRecord) -> bool:
        return any(f.id == record.id for f in self.files)


class SortKey(str, Enum):
    SIZE = "size"
    NAME = "name"
    COUNT = "count"


def sort_groups(groups: Iterable[DuplicateGroup], key: SortKey = SortKey.SIZE) -> List[DuplicateGroup]:
    """
    Returns the groups ordered for display.

    size:  wasted size descending, then first member name ascending
    name:  first member name ascending, then wasted size descending
    count: member count descending, then wasted size descending
    """
    key = SortKey(key)
    if key is SortKey.NAME:
        return sorted(groups, key=lambda g: (g.first_name, -g.wasted_size))
    if key is SortKey.COUNT:
        return sorted(groups, key=lambda g: (-g.total_files, -g.wasted_size))
    return sorted(groups, key=lambda g: (-g.wasted_size, g.first_name))


def total_wasted_size(groups: Iterable[DuplicateGroup]) -> int:
    return sum(g.wasted_size for g in groups)


def format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("bytes", "KB", "MB", "GB"):
        if abs(size) < 1000 or unit == "GB":
            break
        size /= 1000
    if unit == "bytes":
        return f"{int(size)} bytes"
    return f"{size:.1f} {unit}"
