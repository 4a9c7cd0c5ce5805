import argparse
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from dupesweep import __version__
from dupesweep.core import (
    ConfigError,
    KeepPolicy,
    ScanConfig,
    ScanSession,
    ScanState,
    SortKey,
    classify_group,
    format_size,
    load_config,
)
from dupesweep.core.disposal import DisposalOutcome
from dupesweep.core.logging_config import configure_logging
from dupesweep.ui import generate_html_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dupesweep",
        description="DupeSweep: find files with identical content and move the extra copies to the trash.",
    )
    parser.add_argument("roots", metavar="DIRECTORY", nargs="+", help="Directories to scan.")
    parser.add_argument("--keep", choices=[p.value for p in KeepPolicy], default=KeepPolicy.NEWEST.value,
                        help="Which copy of each group to keep (by modification time).")
    parser.add_argument("--sort", choices=[k.value for k in SortKey], default=SortKey.SIZE.value,
                        help="Order of the printed groups.")
    parser.add_argument("-o", "--report", type=str, default=None, help="Write an HTML report to this path.")
    parser.add_argument("--trash", action="store_true", help="Move the files selected for removal to the trash.")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation before --trash.")
    parser.add_argument("--config", type=Path, default=None, help="YAML file with scan settings.")
    parser.add_argument("--workers", type=int, default=None, help="Hashing threads (overrides config).")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run_scan(session: ScanSession) -> bool:
    """Runs the scan with a status line. Returns False if the user cancelled with Ctrl+C."""
    cancelled = False

    def signal_handler(signum, frame):
        nonlocal cancelled
        if not cancelled:
            print("\nCtrl+C detected. Cancelling scan...", file=sys.stderr)
        cancelled = True
        session.stop_scan()

    previous_handler = signal.signal(signal.SIGINT, signal_handler)
    try:
        session.start_scan()
        with tqdm(total=0, bar_format="{desc}", leave=False) as status:
            while not session.wait(0.1):
                status.set_description_str(session.progress_text)
    finally:
        signal.signal(signal.SIGINT, previous_handler)
    return not cancelled


def print_groups(session: ScanSession, sort_key: SortKey) -> None:
    for i, group in enumerate(session.visible_groups(sort_key=sort_key), start=1):
        print(f"\n[{i}] {group.first_name} ({classify_group(group)}) - "
              f"{group.total_files} copies of {format_size(group.size)}, "
              f"{format_size(group.wasted_size)} reclaimable")
        for record in group.files:
            mark = "remove" if record in session.selection else "keep  "
            print(f"    {mark} {record.path}")


def confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json_format=args.log_json)

    try:
        config = load_config(args.config) if args.config else ScanConfig()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    if args.workers is not None:
        config = config.model_copy(update={"max_workers": max(1, args.workers)})

    roots = [Path(r) for r in args.roots]
    missing = [str(r) for r in roots if not r.is_dir()]
    for root in missing:
        print(f"Warning: '{root}' is not a directory, skipping.", file=sys.stderr)
    roots = [r for r in roots if r.is_dir()]
    if not roots:
        print("Error: no readable directory to scan.", file=sys.stderr)
        return 1

    session = ScanSession(config)
    session.add_folders(roots)

    print(f"DupeSweep started at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    if not run_scan(session):
        print("Scan cancelled. Nothing was changed.")
        return 130

    if session.scan_errors:
        print(f"Skipped {len(session.scan_errors)} unreadable files or folders.")
    if session.state is ScanState.NO_RESULTS:
        print("No duplicate files found.")
        return 0

    print(f"Found {len(session.groups)} duplicate groups in {session.scanned_folder_count} folders, "
          f"{format_size(session.total_duplicate_size)} reclaimable.")

    session.auto_select(KeepPolicy(args.keep))
    print_groups(session, SortKey(args.sort))
    print(f"\n{session.selection.selected_count} files selected for removal ({format_size(session.total_selected_size)}).")

    if args.report:
        try:
            generate_html_report(session.visible_groups(sort_key=SortKey(args.sort)), args.report, session.selection)
            print(f"Report written to {args.report}")
        except OSError as e:
            print(f"Error writing HTML report to {args.report}: {e}", file=sys.stderr)

    if not args.trash:
        return 0
    if not args.yes and not confirm(f"Move {len(session.selection)} files to the trash?"):
        print("Nothing was moved.")
        return 0

    report = session.remove_selected(max_workers=config.max_workers, show_progress=True)
    print(f"Moved {report.moved_count} files to the trash, freed {format_size(report.moved_bytes)}.")
    for record, reason in report.failures:
        print(f"  Failed: {record.path}: {reason}", file=sys.stderr)
    if report.outcome is DisposalOutcome.FAILURE:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
