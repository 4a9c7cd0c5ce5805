# dupesweep/core/duplicate_detector.py
import os
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from .config import ScanConfig
from .errors import ScanCancelled
from .models import DuplicateGroup, FileRecord, SortKey, sort_groups
from .progress import CancellationToken, ProgressCallback, ProgressReporter
from .scanner import _calculate_partial_hash, _calculate_sha256, collect_size_buckets

logger = structlog.get_logger(__name__)


def _file_times(file_path: str) -> Tuple[Optional[datetime], Optional[datetime]]:
    try:
        st = os.stat(file_path)
    except OSError:
        return None, None
    modified = datetime.fromtimestamp(st.st_mtime)
    birth = getattr(st, 'st_birthtime', None)
    created = datetime.fromtimestamp(birth) if birth is not None else None
    return modified, created


def find_duplicates(
    hash_buckets: Dict[str, List[str]],
    sizes: Dict[str, int],
    cancel_requested_func: Optional[Callable[[], bool]] = None,
) -> List[DuplicateGroup]:
    """
    Turns full-hash buckets into DuplicateGroups, largest waste first.

    Buckets with a single path are dropped, which is where a partial-hash
    false positive finally disappears.
    """
    duplicate_groups: List[DuplicateGroup] = []

    for file_hash, paths in hash_buckets.items():
        if cancel_requested_func and cancel_requested_func():
            raise ScanCancelled()
        if len(paths) < 2:
            continue
        files = []
        for path in paths:
            modified, created = _file_times(path)
            files.append(FileRecord(
                path=path,
                size=sizes[path],
                hash_sha256=file_hash,
                modified_at=modified,
                created_at=created,
            ))
        duplicate_groups.append(DuplicateGroup(hash_sha256=file_hash, files=files, size=files[0].size))

    return sort_groups(duplicate_groups, SortKey.SIZE)


class DuplicateScanner:
    """
    Runs the four-stage duplicate search over a set of root directories.

    A: enumerate and bucket by size
    B: narrow each bucket with a partial-content fingerprint
    C: confirm with a full SHA-256
    D: assemble DuplicateGroups

    Each stage consumes the complete output of the previous one. Unreadable
    files are recorded in `errors` and skipped; cancellation makes scan()
    return an empty list.
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.config = config or ScanConfig()
        self.progress = ProgressReporter(progress_callback, self.config.progress_interval)
        self.cancel_token = cancel_token or CancellationToken()
        self.errors: Dict[str, str] = {} # path: error_message

    def _cancel_requested(self) -> bool:
        return self.cancel_token.cancelled

    def _checkpoint(self) -> None:
        if self.cancel_token.cancelled:
            raise ScanCancelled()

    def scan(self, roots: Iterable[str]) -> List[DuplicateGroup]:
        self.errors = {}
        roots = [str(r) for r in roots]
        start_time = time.monotonic()
        logger.info("scan_started", roots=roots, workers=self.config.max_workers)

        try:
            groups = self._run(roots)
            # A cancel that lands after the last stage still discards the result
            self._checkpoint()
        except ScanCancelled:
            logger.info("scan_cancelled", elapsed_seconds=round(time.monotonic() - start_time, 2))
            return []

        logger.info(
            "scan_completed",
            duplicate_groups=len(groups),
            skipped=len(self.errors),
            elapsed_seconds=round(time.monotonic() - start_time, 2),
        )
        return groups

    def _run(self, roots: List[str]) -> List[DuplicateGroup]:
        # Stage A
        self.progress.report("Scanning directory structure...", force=True)
        size_buckets = collect_size_buckets(
            roots,
            self.config,
            self.errors,
            self._cancel_requested,
            lambda count: self.progress.report(f"Found {count} files..."),
        )
        sizes = {path: size for size, paths in size_buckets.items() for path in paths}
        logger.debug("scan_size_buckets", buckets=len(size_buckets), candidates=len(sizes))

        # Stage B
        self.progress.report("Pre-scanning candidates...", force=True)
        candidates = self._prefilter(size_buckets, sizes)

        # Stage C
        self.progress.report("Verifying content...", force=True)
        hash_buckets = self._confirm(candidates)

        # Stage D
        self._checkpoint()
        self.progress.report("Finalizing results...", force=True)
        return find_duplicates(hash_buckets, sizes, self._cancel_requested)

    def _prefilter(self, size_buckets: Dict[int, List[str]], sizes: Dict[str, int]) -> List[List[str]]:
        paths = [path for bucket in size_buckets.values() for path in bucket]
        window = self.config.window_size
        fingerprints = self._hash_files(
            paths,
            lambda path: _calculate_partial_hash(path, sizes[path], window),
            "Pre-scanning",
        )

        potential_duplicates: List[List[str]] = []
        for bucket in size_buckets.values():
            self._checkpoint()
            by_fingerprint: Dict[str, List[str]] = defaultdict(list)
            for path in bucket:
                if path in fingerprints:
                    by_fingerprint[fingerprints[path]].append(path)
            potential_duplicates.extend(group for group in by_fingerprint.values() if len(group) > 1)

        logger.debug(
            "scan_prefilter_done",
            hashed=len(fingerprints),
            candidate_groups=len(potential_duplicates),
        )
        return potential_duplicates

    def _confirm(self, candidates: List[List[str]]) -> Dict[str, List[str]]:
        paths = [path for group in candidates for path in group]
        chunk_size = self.config.chunk_size
        full_hashes = self._hash_files(
            paths,
            lambda path: _calculate_sha256(path, chunk_size),
            "Verifying content",
            show_name=True,
        )

        files_by_hash: Dict[str, List[str]] = defaultdict(list)
        for group in candidates:
            self._checkpoint()
            for path in group:
                if path in full_hashes:
                    files_by_hash[full_hashes[path]].append(path)
        return files_by_hash

    def _hash_files(
        self,
        paths: Sequence[str],
        hash_func: Callable[[str], str],
        label: str,
        show_name: bool = False,
    ) -> Dict[str, str]:
        """
        Applies hash_func to every path and returns path -> digest.

        Files whose read fails are recorded in self.errors and left out. The
        result dict is only written from this thread.
        """
        results: Dict[str, str] = {}
        total = len(paths)
        if not total:
            return results

        def record(index: int, path: str, digest: Optional[str], error: Optional[OSError]) -> None:
            if error is not None:
                self.errors[path] = str(error)
                logger.debug("scan_file_skipped", path=path, error=str(error))
            else:
                results[path] = digest
            detail = os.path.basename(path) if show_name else ""
            self.progress.report_percent(label, index, total, detail)

        if self.config.max_workers <= 1:
            for index, path in enumerate(paths, start=1):
                self._checkpoint()
                try:
                    record(index, path, hash_func(path), None)
                except OSError as e:
                    record(index, path, None, e)
            return results

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {executor.submit(hash_func, path): path for path in paths}
            try:
                for index, future in enumerate(as_completed(futures), start=1):
                    self._checkpoint()
                    path = futures[future]
                    try:
                        record(index, path, future.result(), None)
                    except OSError as e:
                        record(index, path, None, e)
            except ScanCancelled:
                for future in futures:
                    future.cancel()
                raise
        return results


def scan(
    roots: Iterable[str],
    on_progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancellationToken] = None,
    config: Optional[ScanConfig] = None,
) -> List[DuplicateGroup]:
    """Finds groups of byte-identical files under `roots`. Returns [] if cancelled."""
    return DuplicateScanner(config, on_progress, cancel).scan(roots)
