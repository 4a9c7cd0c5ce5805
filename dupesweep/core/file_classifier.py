# dupesweep/core/file_classifier.py
from typing import Dict, Optional

import magic
import structlog

from .models import DuplicateGroup

logger = structlog.get_logger(__name__)

_KINDS = {
    'image': ('.jpg', '.jpeg', '.png', '.gif', '.bmp', '.tif', '.tiff', '.webp', '.heic', '.heif', '.raw', '.svg'),
    'video': ('.mp4', '.m4v', '.avi', '.mkv', '.mov', '.wmv', '.flv', '.webm'),
    'audio': ('.mp3', '.wav', '.aac', '.flac', '.ogg', '.m4a', '.aiff'),
    'document': ('.pdf', '.doc', '.docx', '.txt', '.rtf', '.odt', '.md', '.pages',
                 '.xls', '.xlsx', '.numbers', '.ppt', '.pptx', '.key'),
    'archive': ('.zip', '.rar', '.tar', '.gz', '.bz2', '.xz', '.7z', '.dmg', '.iso'),
    'code': ('.py', '.js', '.ts', '.java', '.c', '.h', '.cpp', '.cs', '.go', '.rs',
             '.swift', '.kt', '.rb', '.php', '.sh', '.html', '.css'),
    'data': ('.json', '.xml', '.csv', '.yaml', '.yml', '.sqlite', '.db'),
}

EXTENSION_TO_KIND: Dict[str, str] = {ext: kind for kind, exts in _KINDS.items() for ext in exts}


def _kind_from_mime(mime_type: Optional[str]) -> str:
    if not mime_type:
        return 'other'
    primary = mime_type.split('/')[0]
    if primary in ('image', 'video', 'audio'):
        return primary
    if primary == 'text':
        return 'document'
    if 'zip' in mime_type or 'compressed' in mime_type or 'archive' in mime_type:
        return 'archive'
    if 'json' in mime_type or 'xml' in mime_type:
        return 'data'
    if mime_type == 'application/pdf':
        return 'document'
    return 'other'


def classify_path(path: str, extension: Optional[str] = None) -> str:
    """
    Returns a coarse kind for a file: image, video, audio, document, archive,
    code, data or other.

    The extension decides when it is known; otherwise libmagic sniffs the
    first bytes of the file.
    """
    if extension and extension.lower() in EXTENSION_TO_KIND:
        return EXTENSION_TO_KIND[extension.lower()]
    try:
        return _kind_from_mime(magic.from_file(path, mime=True))
    except (magic.MagicException, OSError) as e:
        logger.debug("classify_failed", path=path, error=str(e))
        return 'other'


def classify_group(group: DuplicateGroup) -> str:
    """All members share their content, so the first one speaks for the group."""
    if not group.files:
        return 'other'
    first = group.files[0]
    return classify_path(first.path, first.extension)
