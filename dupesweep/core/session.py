# dupesweep/core/session.py
"""
Session object owned by whatever drives a scan (the CLI, a GUI, tests).

It holds the folders, the scan results, the selection and the last disposal
report, and moves through a fixed set of states. The scan itself runs on a
background thread; progress text and the final result are handed back
through the session and an optional listener callback.
"""
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

import structlog

from .config import ScanConfig
from .disposal import DisposalReport, dispose
from .duplicate_detector import DuplicateScanner
from .errors import InvalidTransition
from .models import DuplicateGroup, FileRecord, SortKey, total_wasted_size
from .progress import CancellationToken
from .selection import KeepPolicy, SelectionSet, ViewMode

logger = structlog.get_logger(__name__)

INITIAL_PROGRESS_TEXT = "Preparing scan..."


class ScanState(str, Enum):
    IDLE = "idle"
    FOLDERS_CHOSEN = "folders_chosen"
    SCANNING = "scanning"
    NO_RESULTS = "no_results"
    RESULTS_READY = "results_ready"
    REVIEWING = "reviewing"
    CLEANED = "cleaned"


_SCAN_SOURCES = {
    ScanState.FOLDERS_CHOSEN,
    ScanState.NO_RESULTS,
    ScanState.RESULTS_READY,
    ScanState.REVIEWING,
    ScanState.CLEANED,
}

TRANSITIONS: Dict[ScanState, Set[ScanState]] = {
    ScanState.IDLE: {ScanState.FOLDERS_CHOSEN},
    ScanState.FOLDERS_CHOSEN: {ScanState.IDLE, ScanState.SCANNING},
    ScanState.SCANNING: {ScanState.IDLE, ScanState.FOLDERS_CHOSEN, ScanState.NO_RESULTS, ScanState.RESULTS_READY},
    ScanState.NO_RESULTS: {ScanState.SCANNING},
    ScanState.RESULTS_READY: {ScanState.REVIEWING, ScanState.SCANNING},
    ScanState.REVIEWING: {ScanState.CLEANED, ScanState.SCANNING},
    ScanState.CLEANED: {ScanState.SCANNING},
}

SessionListener = Callable[["ScanSession"], None]


class ScanSession:
    def __init__(self, config: Optional[ScanConfig] = None, listener: Optional[SessionListener] = None):
        self.config = config or ScanConfig()
        self.listener = listener
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._cancel_token: Optional[CancellationToken] = None
        self._clear()

    def _clear(self) -> None:
        self.state = ScanState.IDLE
        self.folders: List[Path] = []
        self.groups: List[DuplicateGroup] = []
        self.selection = SelectionSet()
        self.scanned_folder_count = 0
        self.total_duplicate_size = 0
        self.cleaned_size = 0
        self.progress_text = INITIAL_PROGRESS_TEXT
        self.scan_errors: Dict[str, str] = {}
        self.last_report: Optional[DisposalReport] = None

    # State machine

    def _transition(self, target: ScanState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        logger.debug("session_transition", source=self.state.value, target=target.value)
        self.state = target

    def _notify(self) -> None:
        if self.listener:
            self.listener(self)

    @property
    def is_scanning(self) -> bool:
        return self.state is ScanState.SCANNING

    # Folders

    def add_folders(self, folders: Iterable[Path]) -> None:
        new = [Path(f) for f in folders]
        if not new:
            return
        if self.state is ScanState.IDLE:
            self._transition(ScanState.FOLDERS_CHOSEN)
        elif self.state is not ScanState.FOLDERS_CHOSEN:
            raise InvalidTransition(self.state, ScanState.FOLDERS_CHOSEN)
        for folder in new:
            if folder not in self.folders:
                self.folders.append(folder)
        self._notify()

    def remove_folder(self, folder: Path) -> None:
        folder = Path(folder)
        if folder in self.folders:
            self.folders.remove(folder)
        if not self.folders and self.state is ScanState.FOLDERS_CHOSEN:
            self._transition(ScanState.IDLE)
        self._notify()

    # Scanning

    def start_scan(self) -> None:
        if self.state not in _SCAN_SOURCES or not self.folders:
            raise InvalidTransition(self.state, ScanState.SCANNING)
        self._transition(ScanState.SCANNING)
        # A new scan discards everything the previous one produced
        self.groups = []
        self.selection = SelectionSet()
        self.total_duplicate_size = 0
        self.cleaned_size = 0
        self.last_report = None
        self.scan_errors = {}
        self.scanned_folder_count = len(self.folders)
        self.progress_text = INITIAL_PROGRESS_TEXT

        token = CancellationToken()
        self._cancel_token = token
        roots = [str(f) for f in self.folders]
        self._thread = threading.Thread(target=self._run_scan, args=(roots, token), name="dupesweep-scan", daemon=True)
        self._thread.start()
        self._notify()

    def _on_progress(self, token: CancellationToken, message: str) -> None:
        with self._lock:
            if token is not self._cancel_token or token.cancelled:
                return
            self.progress_text = message
        self._notify()

    def _run_scan(self, roots: List[str], token: CancellationToken) -> None:
        scanner = DuplicateScanner(self.config, lambda message: self._on_progress(token, message), token)
        try:
            groups = scanner.scan(roots)
        except Exception:
            # Surfaces to the user as "no duplicates found"
            logger.exception("session_scan_failed", roots=roots)
            groups = []
        with self._lock:
            # A stopped or superseded scan never delivers results
            if token.cancelled or token is not self._cancel_token:
                return
            self.groups = groups
            self.selection = SelectionSet(groups)
            self.total_duplicate_size = total_wasted_size(groups)
            self.scan_errors = dict(scanner.errors)
            self._transition(ScanState.RESULTS_READY if groups else ScanState.NO_RESULTS)
        self._notify()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Blocks until the scan thread ends. Returns False if it is still running."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def stop_scan(self) -> None:
        with self._lock:
            if self._cancel_token is not None:
                self._cancel_token.cancel()
            if self.state is ScanState.SCANNING:
                self._transition(ScanState.FOLDERS_CHOSEN if self.folders else ScanState.IDLE)
                self.progress_text = INITIAL_PROGRESS_TEXT
        logger.info("session_scan_stopped")
        self._notify()

    def reset(self) -> None:
        with self._lock:
            if self._cancel_token is not None:
                self._cancel_token.cancel()
            self._cancel_token = None
            self._clear()
        self._notify()

    # Selection

    def _begin_review(self) -> None:
        if self.state is ScanState.RESULTS_READY:
            self._transition(ScanState.REVIEWING)
        elif self.state is not ScanState.REVIEWING:
            raise InvalidTransition(self.state, ScanState.REVIEWING)

    def auto_select(self, policy: KeepPolicy) -> None:
        self._begin_review()
        self.selection.apply_policy(policy)
        self._notify()

    def toggle(self, record: FileRecord, group: Optional[DuplicateGroup] = None) -> bool:
        self._begin_review()
        try:
            return self.selection.toggle(record, group)
        finally:
            self._notify()

    def deselect_all(self) -> None:
        self._begin_review()
        self.selection.deselect_all()
        self._notify()

    @property
    def total_selected_size(self) -> int:
        return self.selection.selected_size

    def visible_groups(self, mode: ViewMode = ViewMode.ALL, sort_key: SortKey = SortKey.SIZE) -> List[DuplicateGroup]:
        return self.selection.visible_groups(mode, sort_key)

    # Disposal

    def remove_selected(self, verify: bool = True, max_workers: int = 1, show_progress: bool = False) -> DisposalReport:
        """
        Moves the selected files to the trash.

        The selection is cleared afterwards. The session only reaches CLEANED
        when at least one file was moved; if every move failed the results
        stay up for review.
        """
        self._begin_review()
        records = self.selection.selected_records()
        report = dispose(records, verify=verify, max_workers=max_workers, show_progress=show_progress, groups=self.groups)
        self.last_report = report
        self.selection.deselect_all()
        if report.moved_count:
            self.cleaned_size = report.moved_bytes
            self._transition(ScanState.CLEANED)
        self._notify()
        return report
