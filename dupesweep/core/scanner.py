# dupesweep/core/scanner.py
import hashlib
import os
import stat
from collections import defaultdict
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import structlog

from .config import ScanConfig
from .errors import ScanCancelled

logger = structlog.get_logger(__name__)

PARTIAL_DIGEST_SIZE = 16


def _calculate_sha256(file_path: str, block_size: int = 65536) -> str:
    """Streams the whole file through SHA-256. Raises OSError if the read fails."""
    sha256 = hashlib.sha256()
    with open(file_path, 'rb') as f:
        for block in iter(lambda: f.read(block_size), b''):
            sha256.update(block)
    return sha256.hexdigest()


def _calculate_partial_hash(file_path: str, file_size: int, window_size: int = 4096) -> str:
    """
    Fingerprints a file from at most three fixed windows.

    The head window is always read. A middle window starting at size // 2 is
    added when the file is larger than two windows, and the tail window when
    it is larger than three. All windows feed one BLAKE2b digest in
    head/middle/tail order.
    """
    digest = hashlib.blake2b(digest_size=PARTIAL_DIGEST_SIZE)
    with open(file_path, 'rb') as f:
        digest.update(f.read(window_size))
        if file_size > window_size * 2:
            f.seek(file_size // 2)
            digest.update(f.read(window_size))
        if file_size > window_size * 3:
            f.seek(max(0, file_size - window_size))
            digest.update(f.read(window_size))
    return digest.hexdigest()


def _is_hidden(name: str) -> bool:
    return name.startswith('.')


def _should_prune_directory(name: str, config: ScanConfig) -> bool:
    if name in config.ignored_directories:
        return True
    if config.skip_hidden and _is_hidden(name):
        return True
    _, ext = os.path.splitext(name)
    return bool(ext) and ext.lower() in config.bundle_suffixes


def iter_regular_files(
    root_dir: str,
    config: ScanConfig,
    errors: Dict[str, str],
) -> Iterator[str]:
    """
    Yields candidate file paths under root_dir.

    Denylisted, hidden and bundle directories are pruned before os.walk
    descends into them. Directory listing errors are recorded in `errors`.
    """
    def on_walk_error(err: OSError) -> None:
        path = err.filename or root_dir
        errors[path] = str(err)
        logger.debug("scan_directory_skipped", path=path, error=str(err))

    for dirpath, dirnames, filenames in os.walk(root_dir, onerror=on_walk_error):
        dirnames[:] = [d for d in dirnames if not _should_prune_directory(d, config)]
        for filename in filenames:
            if config.skip_hidden and _is_hidden(filename):
                continue
            yield os.path.join(dirpath, filename)


def collect_size_buckets(
    roots: Iterable[str],
    config: ScanConfig,
    errors: Dict[str, str],
    cancel_requested_func: Callable[[], bool],
    progress_func: Optional[Callable[[int], None]] = None,
) -> Dict[int, List[str]]:
    """
    Enumerates every root and buckets regular, non-empty files by size.

    Buckets holding a single path are dropped: a file with a unique size has
    nothing to be a duplicate of. Raises ScanCancelled as soon as
    cancel_requested_func() returns True.
    """
    files_by_size: Dict[int, List[str]] = defaultdict(list)
    seen_files = set() # (st_dev, st_ino)
    scanned_count = 0

    for root in roots:
        if cancel_requested_func():
            raise ScanCancelled()
        root_dir = os.path.abspath(os.path.expanduser(str(root)))
        if not os.path.isdir(root_dir):
            errors[root_dir] = "Not a directory or not readable"
            logger.warning("scan_root_skipped", root=root_dir)
            continue

        for file_path in iter_regular_files(root_dir, config, errors):
            if cancel_requested_func():
                raise ScanCancelled()
            scanned_count += 1
            if os.path.islink(file_path):
                continue
            try:
                st = os.stat(file_path)
            except OSError as e:
                errors[file_path] = str(e)
                logger.debug("scan_file_skipped", path=file_path, error=str(e))
                continue
            if not stat.S_ISREG(st.st_mode) or st.st_size == 0:
                continue
            # Overlapping or aliased roots must not make a file its own duplicate
            file_key = (st.st_dev, st.st_ino)
            if file_key in seen_files:
                logger.debug("scan_alias_skipped", path=file_path)
                continue
            seen_files.add(file_key)
            files_by_size[st.st_size].append(file_path)

        if progress_func:
            progress_func(scanned_count)

    return {size: paths for size, paths in files_by_size.items() if len(paths) > 1}
