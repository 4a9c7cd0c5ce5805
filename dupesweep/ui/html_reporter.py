# dupesweep/ui/html_reporter.py
from html import escape
from typing import List, Optional

import structlog

from dupesweep.core.file_classifier import classify_group
from dupesweep.core.models import DuplicateGroup, format_size
from dupesweep.core.selection import SelectionSet

logger = structlog.get_logger(__name__)

HTML_STYLE = """
    <style>
        body { font-family: sans-serif; margin: 20px; background-color: #f4f4f4; color: #333; }
        h1 { border-bottom: 2px solid #337ab7; padding-bottom: 10px; }
        h2 { color: #337ab7; margin-top: 30px; border-bottom: 1px solid #ccc; padding-bottom: 5px; }
        ul { list-style-type: none; padding-left: 0; }
        li { background-color: #fff; border: 1px solid #ddd; margin-bottom: 8px; padding: 10px; border-radius: 4px; }
        li.selected { background-color: #fdecea; border-color: #e0a39c; }
        .file-path { font-weight: bold; }
        .file-details { font-size: 0.9em; color: #555; }
        .badge { font-size: 0.8em; padding: 2px 6px; border-radius: 3px; color: white; margin-left: 8px; }
        .badge-remove { background-color: #d9534f; }
        .badge-keep { background-color: #5cb85c; }
        .summary { background-color: #e7f3fe; border-left: 6px solid #2196F3; padding: 15px; margin-bottom: 20px; }
    </style>
"""


def render_html_report(duplicate_groups: List[DuplicateGroup], selection: Optional[SelectionSet] = None) -> str:
    """
    Renders the duplicate groups as a standalone HTML page.

    When a selection is given, files marked for removal are flagged and the
    summary shows how much space removing them would free.
    """
    total_files = sum(group.total_files for group in duplicate_groups)
    wasted = sum(group.wasted_size for group in duplicate_groups)

    selection_summary = ""
    if selection is not None:
        selection_summary = (
            f"<p>Selected for removal: {len(selection)} files "
            f"({format_size(selection.selected_size)})</p>"
        )

    parts = [f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>DupeSweep Report</title>
    {HTML_STYLE}
</head>
<body>
    <h1>DupeSweep - Duplicate File Report</h1>
    <div class="summary">
        <p>Duplicate groups: {len(duplicate_groups)}</p>
        <p>Files involved: {total_files}</p>
        <p>Reclaimable space: {format_size(wasted)}</p>
        {selection_summary}
    </div>
"""]

    for i, group in enumerate(duplicate_groups):
        parts.append(f"""
    <h2>Group {i + 1}: {escape(group.first_name)}</h2>
    <p class="file-details">
        Kind: {classify_group(group)} |
        Copies: {group.total_files} |
        Size each: {format_size(group.size)} |
        Reclaimable: {format_size(group.wasted_size)} |
        SHA256: {group.hash_sha256}
    </p>
    <ul>
""")
        for record in group.files:
            selected = selection is not None and record in selection
            badge = ""
            if selection is not None:
                badge = ('<span class="badge badge-remove">remove</span>' if selected
                         else '<span class="badge badge-keep">keep</span>')
            modified = record.modified_at.strftime('%Y-%m-%d %H:%M:%S') if record.modified_at else "unknown"
            parts.append(f"""
        <li class="{'selected' if selected else ''}">
            <span class="file-path">{escape(record.path)}</span>{badge}
            <br>
            <span class="file-details">Modified: {modified}</span>
        </li>
""")
        parts.append("    </ul>\n")

    parts.append("</body>\n</html>\n")
    return "".join(parts)


def generate_html_report(
    duplicate_groups: List[DuplicateGroup],
    output_html_path: str,
    selection: Optional[SelectionSet] = None,
) -> None:
    """Writes the report to output_html_path. Raises OSError if the file cannot be written."""
    html_content = render_html_report(duplicate_groups, selection)
    with open(output_html_path, 'w', encoding='utf-8') as f:
        f.write(html_content)
    logger.info("report_written", path=output_html_path, groups=len(duplicate_groups))
