# dupesweep/core/selection.py
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

import structlog

from .errors import WouldEmptyGroup
from .models import DuplicateGroup, FileRecord, SortKey, sort_groups

logger = structlog.get_logger(__name__)


class KeepPolicy(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"


class ViewMode(str, Enum):
    ALL = "all"
    SELECTED = "selected"


def order_for_keeping(group: DuplicateGroup, policy: KeepPolicy) -> List[FileRecord]:
    """
    Orders group members so the keeper comes first.

    Files without a modification time sort as the oldest possible file when
    keeping the newest and as the newest possible file when keeping the
    oldest, so they are the ones marked for removal. Equal times fall back to
    path, ascending for NEWEST and descending for OLDEST.
    """
    policy = KeepPolicy(policy)
    if policy is KeepPolicy.NEWEST:
        by_path = sorted(group.files, key=lambda f: f.path)
        return sorted(by_path, key=lambda f: f.modified_at or datetime.min, reverse=True)
    by_path = sorted(group.files, key=lambda f: f.path, reverse=True)
    return sorted(by_path, key=lambda f: f.modified_at or datetime.max)


def auto_select(groups: Iterable[DuplicateGroup], policy: KeepPolicy) -> Set[str]:
    """Returns the ids of every member except the keeper of each group."""
    selected: Set[str] = set()
    for group in groups:
        if group.total_files < 2:
            continue
        for record in order_for_keeping(group, policy)[1:]:
            selected.add(record.id)
    return selected


class SelectionSet:
    """
    The files marked for removal, scoped to one scan's duplicate groups.

    Manual selection refuses to mark the last unselected member of a group,
    so every group always keeps at least one copy.
    """

    def __init__(self, groups: Iterable[DuplicateGroup] = ()):
        self.groups: List[DuplicateGroup] = list(groups)
        self._group_by_record: Dict[str, DuplicateGroup] = {
            record.id: group for group in self.groups for record in group.files
        }
        self._selected: Set[str] = set()

    def __contains__(self, record: FileRecord) -> bool:
        return record.id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    @property
    def ids(self) -> Set[str]:
        return set(self._selected)

    def group_of(self, record: FileRecord) -> DuplicateGroup:
        try:
            return self._group_by_record[record.id]
        except KeyError:
            raise ValueError(f"{record.path} is not part of the current duplicate groups") from None

    def selected_in(self, group: DuplicateGroup) -> int:
        return sum(1 for f in group.files if f.id in self._selected)

    def select(self, record: FileRecord, group: Optional[DuplicateGroup] = None) -> None:
        owner = self.group_of(record)
        if group is not None and record not in group:
            raise ValueError(f"{record.path} is not a member of the given group")
        group = owner
        if record.id in self._selected:
            return
        if self.selected_in(group) >= group.total_files - 1:
            logger.info("selection_rejected", path=record.path, group=group.hash_sha256)
            raise WouldEmptyGroup(record, group)
        self._selected.add(record.id)

    def deselect(self, record: FileRecord) -> None:
        self._selected.discard(record.id)

    def toggle(self, record: FileRecord, group: Optional[DuplicateGroup] = None) -> bool:
        """Flips the mark on `record`. Returns True if it is now selected."""
        if record.id in self._selected:
            self.deselect(record)
            return False
        self.select(record, group)
        return True

    def deselect_all(self) -> None:
        self._selected.clear()

    def apply_policy(self, policy: KeepPolicy) -> None:
        self._selected = auto_select(self.groups, policy)
        logger.info("selection_auto_applied", policy=KeepPolicy(policy).value, selected=len(self._selected))

    def selected_records(self) -> List[FileRecord]:
        return [f for group in self.groups for f in group.files if f.id in self._selected]

    @property
    def selected_count(self) -> int:
        return len(self._selected)

    @property
    def selected_size(self) -> int:
        return sum(f.size for f in self.selected_records())

    def visible_groups(self, mode: ViewMode = ViewMode.ALL, sort_key: SortKey = SortKey.SIZE) -> List[DuplicateGroup]:
        groups = self.groups
        if ViewMode(mode) is ViewMode.SELECTED:
            groups = [g for g in groups if self.selected_in(g) > 0]
        return sort_groups(groups, sort_key)

    def visible_members(self, group: DuplicateGroup, mode: ViewMode = ViewMode.ALL) -> List[FileRecord]:
        if ViewMode(mode) is ViewMode.SELECTED:
            return [f for f in group.files if f.id in self._selected]
        return list(group.files)
