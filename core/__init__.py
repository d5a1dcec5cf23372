"""
Email Template Formatter Core Package
"""

from .formatter_pipeline import (
    EmailFormatter,
    FormatProgress,
    FormatResult,
    FormatStage,
    InvalidInputError,
    SUPPORTED_WIDTHS,
    TransformConfig,
    format_html,
)
from .content_report import ContentReport, analyze_html

# Individual stages
from .table_normalizer import normalize_tables, strip_table_heights
from .hidden_text import inject_balance_text, inject_preheader
from .image_enhancer import AltTextRegistry, enhance_images
from .cell_cleanup import collapse_image_only_cells, remove_noop_colspans
from .column_wrapper import wrap_multi_column_rows
from .link_tagger import tag_links
from .whitespace import tidy_whitespace
from .outlook_background import propagate_background_colors
from .document_wrapper import wrap_document

__all__ = [
    'EmailFormatter',
    'FormatProgress',
    'FormatResult',
    'FormatStage',
    'InvalidInputError',
    'SUPPORTED_WIDTHS',
    'TransformConfig',
    'format_html',
    'ContentReport',
    'analyze_html',
    # Individual stages
    'normalize_tables',
    'strip_table_heights',
    'inject_balance_text',
    'inject_preheader',
    'AltTextRegistry',
    'enhance_images',
    'collapse_image_only_cells',
    'remove_noop_colspans',
    'wrap_multi_column_rows',
    'tag_links',
    'tidy_whitespace',
    'propagate_background_colors',
    'wrap_document',
]
