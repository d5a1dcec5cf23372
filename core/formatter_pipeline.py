"""
Formatter Pipeline Module

Orchestrates the complete email formatting process.

Raw exported HTML goes through a fixed sequence of rewriting stages;
each stage takes the previous stage's output and returns new HTML.
The order matters (tables must be normalized before the hidden rows go
in, images before their cells are collapsed, and so on).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .attributes import AttributeList
from .cell_cleanup import collapse_image_only_cells, remove_noop_colspans
from .column_wrapper import wrap_multi_column_rows
from .content_report import ContentReport, analyze_html
from .document_wrapper import wrap_document
from .hidden_text import has_hidden_block, inject_balance_text, inject_preheader
from .image_enhancer import enhance_images, is_relative_src
from .link_tagger import tag_links
from .outlook_background import propagate_background_colors
from .table_normalizer import normalize_tables, strip_table_heights
from .tag_scanner import find_tag, scan_tags
from .whitespace import tidy_whitespace

logger = logging.getLogger(__name__)

SUPPORTED_WIDTHS = (600, 650)


class InvalidInputError(ValueError):
    """Raised for source HTML or settings the formatter cannot work with."""


class FormatStage(Enum):
    """Stages of the formatting pipeline"""
    STRIP_HEIGHTS = "strip_heights"
    NORMALIZE_TABLES = "normalize_tables"
    INJECT_PREHEADER = "inject_preheader"
    INJECT_BALANCE_TEXT = "inject_balance_text"
    ENHANCE_IMAGES = "enhance_images"
    COLLAPSE_IMAGE_CELLS = "collapse_image_cells"
    WRAP_COLUMNS = "wrap_columns"
    CLEAN_COLSPANS = "clean_colspans"
    TAG_LINKS = "tag_links"
    TIDY_WHITESPACE = "tidy_whitespace"
    PROPAGATE_BACKGROUNDS = "propagate_backgrounds"
    WRAP_DOCUMENT = "wrap_document"
    COMPLETE = "complete"


@dataclass
class FormatProgress:
    """Progress information for the pipeline"""
    stage: FormatStage
    current: int
    total: int
    percentage: float
    message: str


@dataclass(frozen=True)
class TransformConfig:
    """Settings for one formatting run"""
    # Content
    image_base_url: str = ""
    preheader_text: str = ""
    balance_text: str = ""

    # Link tracking
    utm_medium: str = ""
    utm_campaign: str = ""

    # Layout
    responsive: bool = False
    target_width: int = 650  # 600 or 650
    wrap_columns: bool = False  # Nest multi-column rows in their own tables

    def __post_init__(self):
        if self.target_width not in SUPPORTED_WIDTHS:
            raise InvalidInputError(
                f"Unsupported width {self.target_width!r}; expected one of {SUPPORTED_WIDTHS}"
            )
        for name in ('image_base_url', 'preheader_text', 'balance_text', 'utm_medium', 'utm_campaign'):
            value = getattr(self, name)
            object.__setattr__(self, name, (value or "").strip())

    @classmethod
    def from_settings(cls, values: Dict[str, Any]) -> 'TransformConfig':
        """
        Build a config from a loose settings mapping (GUI form + settings).

        Unknown keys are ignored; a width given as text is converted.

        Raises:
            InvalidInputError: If the width is not a supported number
        """
        known = {name: values[name] for name in cls.__dataclass_fields__ if name in values}
        if 'target_width' in known:
            try:
                known['target_width'] = int(known['target_width'])
            except (TypeError, ValueError):
                raise InvalidInputError(f"Width must be a number, got {known['target_width']!r}")
        return cls(**known)


@dataclass
class FormatResult:
    """Result of the formatting pipeline"""
    success: bool
    html: str = ""
    stages_completed: List[FormatStage] = field(default_factory=list)

    # Findings
    warnings: List[str] = field(default_factory=list)
    report: Optional[ContentReport] = None

    # Timing
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0


def validate_source(source_html) -> str:
    """
    Check that the source is usable HTML text.

    Raises:
        InvalidInputError: For non-string or blank input
    """
    if not isinstance(source_html, str):
        raise InvalidInputError(f"Source HTML must be a string, got {type(source_html).__name__}")
    if not source_html.strip():
        raise InvalidInputError("Source HTML is empty")
    return source_html


class EmailFormatter:
    """
    Main orchestrator for email HTML formatting.

    Handles the complete workflow:
    1. Strip table heights and normalize table tags
    2. Inject the preheader and balance-text rows
    3. Enhance images and collapse image-only cells
    4. Optionally wrap multi-column rows
    5. Clean colspans, tag links, tidy whitespace
    6. Propagate backgrounds and wrap into a full document
    """

    def __init__(
        self,
        config: Optional[TransformConfig] = None,
        progress_callback: Optional[Callable[[FormatProgress], None]] = None
    ):
        """
        Initialize the formatter.

        Args:
            config: Formatting settings (defaults when omitted)
            progress_callback: Optional callback for progress updates
        """
        self.config = config or TransformConfig()
        self.progress_callback = progress_callback

    def stages(self) -> List[Tuple[FormatStage, Callable[[str], str]]]:
        """The ordered stage list for this configuration."""
        config = self.config
        stages = [
            (FormatStage.STRIP_HEIGHTS, strip_table_heights),
            (FormatStage.NORMALIZE_TABLES, lambda html: normalize_tables(html, config)),
            (FormatStage.INJECT_PREHEADER, lambda html: inject_preheader(html, config.preheader_text)),
            (FormatStage.INJECT_BALANCE_TEXT, lambda html: inject_balance_text(html, config.balance_text)),
            (FormatStage.ENHANCE_IMAGES, lambda html: enhance_images(html, config)),
            (FormatStage.COLLAPSE_IMAGE_CELLS, collapse_image_only_cells),
        ]
        if config.wrap_columns:
            stages.append((FormatStage.WRAP_COLUMNS, lambda html: wrap_multi_column_rows(html, config)))
        stages.extend([
            (FormatStage.CLEAN_COLSPANS, remove_noop_colspans),
            (FormatStage.TAG_LINKS, lambda html: tag_links(html, config.utm_medium, config.utm_campaign)),
            (FormatStage.TIDY_WHITESPACE, tidy_whitespace),
            (FormatStage.PROPAGATE_BACKGROUNDS, propagate_background_colors),
            (FormatStage.WRAP_DOCUMENT, wrap_document),
        ])
        return stages

    def _report_progress(self, stage: FormatStage, current: int, total: int, message: str):
        """Report progress to callback."""
        if not self.progress_callback:
            return

        percentage = (current / total * 100) if total > 0 else 100.0
        self.progress_callback(FormatProgress(
            stage=stage,
            current=current,
            total=total,
            percentage=percentage,
            message=message
        ))

    def _source_warnings(self, source_html: str) -> List[str]:
        """Warnings about the source that do not stop formatting."""
        warnings = []
        config = self.config

        if find_tag(source_html, 'table') is None and (config.preheader_text or config.balance_text):
            warnings.append("No <table> found - preheader and balance text were not injected")

        if config.preheader_text and has_hidden_block(source_html):
            warnings.append("Source already contains a hidden preview block - the preheader was added anyway")

        relative = [
            token for token in scan_tags(source_html, ['img'])
            if not token.closing and is_relative_src(AttributeList.parse(token.attrs).get('src'))
        ]
        if relative and not config.image_base_url:
            warnings.append(f"No image base URL set - {len(relative)} relative image path(s) left as they are")

        return warnings

    def format(self, source_html: str) -> FormatResult:
        """
        Run the complete formatting pipeline.

        Args:
            source_html: Raw exported HTML (fragment or full document)

        Returns:
            FormatResult with the final HTML and all details

        Raises:
            InvalidInputError: For non-string or blank input
        """
        validate_source(source_html)

        result = FormatResult(success=False, start_time=datetime.now())
        result.warnings.extend(self._source_warnings(source_html))

        stages = self.stages()
        html = source_html

        for i, (stage, transform) in enumerate(stages):
            self._report_progress(stage, i, len(stages), f"Running {stage.value.replace('_', ' ')}...")
            try:
                html = transform(html)
                result.stages_completed.append(stage)
            except Exception as e:
                message = f"Stage {stage.value} failed and was skipped: {e}"
                logger.warning(message)
                result.warnings.append(message)

        result.html = html
        result.success = True

        try:
            result.report = analyze_html(html)
            result.warnings.extend(result.report.findings())
        except Exception as e:
            logger.warning(f"Content report failed: {e}")

        result.end_time = datetime.now()
        self._report_progress(FormatStage.COMPLETE, len(stages), len(stages), "Formatting complete")

        logger.info(
            f"Formatted {len(source_html)} -> {len(html)} chars in "
            f"{result.duration_seconds:.3f}s ({len(result.stages_completed)}/{len(stages)} stages, "
            f"{len(result.warnings)} warning(s))"
        )
        return result


def format_html(source_html: str, config: Optional[TransformConfig] = None) -> str:
    """
    Format raw exported HTML into an email-safe document.

    Args:
        source_html: Raw HTML
        config: Formatting settings (defaults when omitted)

    Returns:
        The complete output document

    Raises:
        InvalidInputError: For non-string or blank input
    """
    return EmailFormatter(config).format(source_html).html
