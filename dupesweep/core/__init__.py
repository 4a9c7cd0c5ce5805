# dupesweep/core/__init__.py
from .models import FileRecord, DuplicateGroup, SortKey, sort_groups, format_size
from .config import ScanConfig, load_config
from .errors import DupeSweepError, ConfigError, WouldEmptyGroup, InvalidTransition
from .progress import CancellationToken
from .duplicate_detector import DuplicateScanner, scan, find_duplicates
from .selection import KeepPolicy, ViewMode, SelectionSet, auto_select
from .disposal import DisposalReport, DisposalOutcome, dispose
from .file_classifier import classify_path, classify_group
from .session import ScanSession, ScanState
