# dupesweep/core/disposal.py
"""
Moves selected duplicates to the platform trash.

Nothing is ever unlinked: send2trash puts each file in the recycle bin /
Trash / freedesktop trash so the user can restore it. Every file is handled
independently and the report lists each attempted file exactly once.
"""
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
from send2trash import send2trash
from tqdm import tqdm

from .models import DuplicateGroup, FileRecord
from .scanner import _calculate_sha256

logger = structlog.get_logger(__name__)


class DisposalOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"
    EMPTY = "empty"


@dataclass
class DisposalReport:
    moved: List[FileRecord] = field(default_factory=list)
    failures: List[Tuple[FileRecord, str]] = field(default_factory=list) # (file, reason)

    @property
    def moved_count(self) -> int:
        return len(self.moved)

    @property
    def moved_bytes(self) -> int:
        return sum(f.size for f in self.moved)

    @property
    def attempted(self) -> int:
        return len(self.moved) + len(self.failures)

    @property
    def outcome(self) -> DisposalOutcome:
        if not self.attempted:
            return DisposalOutcome.EMPTY
        if not self.failures:
            return DisposalOutcome.SUCCESS
        if not self.moved:
            return DisposalOutcome.FAILURE
        return DisposalOutcome.PARTIAL


def _check_still_duplicate(record: FileRecord) -> Optional[str]:
    """Returns a reason to refuse the move, or None when the file is unchanged since the scan."""
    if not os.path.exists(record.path):
        return "File no longer exists"
    if record.hash_sha256 is None:
        return None
    try:
        current_hash = _calculate_sha256(record.path)
    except OSError as e:
        return f"Cannot read file for hash check: {e}"
    if current_hash != record.hash_sha256:
        return "Content changed since scan"
    return None


def _find_unkept_groups(records: Sequence[FileRecord], groups: Iterable[DuplicateGroup]) -> Dict[str, str]:
    """
    Maps the id of every record that must not be moved to the reason.

    A group whose unselected members have all vanished or changed has no
    copy left to keep, so none of its selected members may be moved.
    """
    selected_ids = {r.id for r in records}
    group_by_record = {f.id: group for group in groups for f in group.files}
    blocked: Dict[str, str] = {}
    keeper_ok: Dict[str, bool] = {}
    for record in records:
        group = group_by_record.get(record.id)
        if group is None:
            blocked[record.id] = "Not part of a duplicate group"
            continue
        if group.hash_sha256 not in keeper_ok:
            keepers = [f for f in group.files if f.id not in selected_ids]
            keeper_ok[group.hash_sha256] = any(_check_still_duplicate(k) is None for k in keepers)
        if not keeper_ok[group.hash_sha256]:
            blocked[record.id] = "Keeper file no longer exists"
    return blocked


def _trash_one(record: FileRecord, verify: bool) -> Optional[str]:
    """Moves one file to the trash. Returns None on success, the failure reason otherwise."""
    if verify:
        reason = _check_still_duplicate(record)
        if reason:
            return reason
    try:
        send2trash(record.path)
    except PermissionError as e:
        return f"Permission denied: {e}"
    except OSError as e:
        return str(e)
    except Exception as e:
        # send2trash backends raise their own error types on some platforms
        return f"Could not move to trash: {e}"
    return None


def dispose(
    records: Sequence[FileRecord],
    verify: bool = True,
    max_workers: int = 1,
    show_progress: bool = False,
    groups: Optional[Iterable[DuplicateGroup]] = None,
) -> DisposalReport:
    """
    Moves every record to the trash and reports per-file outcomes.

    Args:
        records: Files selected for removal.
        verify: Re-hash each file first and refuse to move it if it vanished
            or its content no longer matches the scan.
        max_workers: Files handled concurrently; 1 keeps it sequential.
        show_progress: Display a tqdm bar on stderr.
        groups: The duplicate groups the records were selected from. When
            given, nothing is moved out of a group unless one of its
            unselected members still exists with the scanned content.

    Returns:
        DisposalReport. It is returned even when every file failed.
    """
    report = DisposalReport()
    logger.info("disposal_started", files=len(records))
    blocked = _find_unkept_groups(records, groups) if groups is not None else {}

    def attempt(record: FileRecord) -> Optional[str]:
        return blocked.get(record.id) or _trash_one(record, verify)

    def handle(record: FileRecord, reason: Optional[str]) -> None:
        if reason is None:
            report.moved.append(record)
            logger.info("disposal_file_moved", path=record.path, size_bytes=record.size)
        else:
            report.failures.append((record, reason))
            logger.warning("disposal_file_failed", path=record.path, reason=reason)

    with tqdm(total=len(records), desc="Moving to trash", unit="file", disable=not show_progress) as pbar:
        if max_workers <= 1:
            for record in records:
                handle(record, attempt(record))
                pbar.update(1)
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                reasons = executor.map(attempt, records)
                for record, reason in zip(records, reasons):
                    handle(record, reason)
                    pbar.update(1)

    logger.info(
        "disposal_completed",
        moved=report.moved_count,
        failed=len(report.failures),
        moved_bytes=report.moved_bytes,
        outcome=report.outcome.value,
    )
    return report
