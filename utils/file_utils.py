"""
File Utilities Module

Reading and writing HTML templates, plus filename helpers.
"""

import os
import re
import logging
from pathlib import Path
from typing import Tuple, Union

logger = logging.getLogger(__name__)

# Tried in order; cp1252 never fails so it must stay last
HTML_ENCODINGS = ('utf-8', 'utf-8-sig', 'cp1252')

_RESERVED_NAMES = frozenset(
    ['CON', 'PRN', 'AUX', 'NUL']
    + [f'COM{i}' for i in range(1, 10)]
    + [f'LPT{i}' for i in range(1, 10)]
)


def sanitize_filename(filename: str, max_length: int = 200, replacement: str = '_') -> str:
    """
    Sanitize a filename by replacing characters no platform accepts.

    Args:
        filename: Original filename
        max_length: Maximum length for the filename
        replacement: Character to replace invalid chars with

    Returns:
        Sanitized filename ("unnamed" when nothing usable is left)
    """
    if not filename:
        return "unnamed"

    sanitized = re.sub(r'[<>:"/\\|?*\x00-\x1f]', replacement, filename)
    sanitized = re.sub(f'{re.escape(replacement)}+', replacement, sanitized)
    sanitized = sanitized.strip(f'. {replacement}')

    # Limit length while preserving extension
    if len(sanitized) > max_length:
        name, ext = os.path.splitext(sanitized)
        sanitized = name[:max_length - len(ext)] + ext

    if not sanitized:
        return "unnamed"

    if os.path.splitext(sanitized)[0].upper() in _RESERVED_NAMES:
        sanitized = f"_{sanitized}"

    return sanitized


def default_output_name(campaign: str = "") -> str:
    """Suggested file name for a formatted template, based on the campaign."""
    campaign = (campaign or "").strip()
    if not campaign:
        return "email_formatted.html"
    return f"{sanitize_filename(campaign.replace(' ', '_'))}.html"


def ensure_dir(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_unique_filepath(filepath: Union[str, Path]) -> Path:
    """
    Get a unique filepath by appending a number if the file exists.

    Returns:
        Unique filepath that doesn't exist
    """
    filepath = Path(filepath)
    if not filepath.exists():
        return filepath

    counter = 1
    while True:
        new_path = filepath.parent / f"{filepath.stem}_{counter}{filepath.suffix}"
        if not new_path.exists():
            return new_path
        counter += 1


def suggest_output_path(directory: Union[str, Path], campaign: str = "") -> Path:
    """
    Suggest a save location that does not overwrite an earlier export.

    Args:
        directory: Folder the template is saved into
        campaign: Campaign name the file is named after

    Returns:
        Path inside directory, numbered when the name is taken
    """
    return get_unique_filepath(Path(directory) / default_output_name(campaign))


def read_html_with_encoding(filepath: Union[str, Path]) -> Tuple[str, str]:
    """
    Read an HTML file, trying UTF-8 first and falling back to cp1252.

    Returns:
        (text, encoding used)

    Raises:
        OSError: If the file cannot be read
    """
    data = Path(filepath).read_bytes()
    for encoding in HTML_ENCODINGS:
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError:
            continue
        if encoding == 'utf-8' and text.startswith('\ufeff'):
            continue
        if encoding != 'utf-8':
            logger.debug(f"Read {filepath} as {encoding}")
        return text, encoding

    # cp1252 leaves a few bytes undefined
    logger.warning(f"Could not decode {filepath} cleanly, replacing invalid bytes")
    return data.decode('utf-8', errors='replace'), 'utf-8'


def read_html_file(filepath: Union[str, Path]) -> str:
    """Read an HTML template as text."""
    return read_html_with_encoding(filepath)[0]


def write_html_file(filepath: Union[str, Path], html: str) -> Path:
    """
    Write HTML as UTF-8, creating parent directories.

    Returns:
        Path of the written file
    """
    filepath = Path(filepath)
    ensure_dir(filepath.parent)
    filepath.write_text(html, encoding='utf-8', newline='')
    logger.info(f"Saved {len(html)} chars to {filepath}")
    return filepath
