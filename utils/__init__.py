"""
Utilities Package
"""

from .file_utils import (
    sanitize_filename,
    default_output_name,
    ensure_dir,
    get_unique_filepath,
    suggest_output_path,
    read_html_file,
    write_html_file,
)
from .text_utils import html_escape, join_url

__all__ = [
    'sanitize_filename',
    'default_output_name',
    'ensure_dir',
    'get_unique_filepath',
    'suggest_output_path',
    'read_html_file',
    'write_html_file',
    'html_escape',
    'join_url',
]
