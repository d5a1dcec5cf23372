"""
Column Wrapper Module

Moves multi-column rows into their own nested table so each column
group gets an independent layout in clients that stretch cells across
rows (Outlook especially).

A row is wrapped when it has two or more direct cells, none of which
declares any colspan, and its table holds more than one row. The sole
row of a table is never wrapped, which keeps the stage idempotent.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .attributes import AttributeList
from .table_normalizer import build_table_tag
from .tag_scanner import scan_tags
from utils.text_utils import splice_insertions

logger = logging.getLogger(__name__)

WRAPPER_CELL_STYLE = "padding:0;"


@dataclass
class _TableFrame:
    rows: int = 0


@dataclass
class _RowFrame:
    table: _TableFrame
    start: int
    end: Optional[int] = None
    cells: int = 0
    has_colspan: bool = False


@dataclass
class _CellFrame:
    pass


def _find(stack: list, kind: type, stop_at: Optional[type] = None) -> Optional[int]:
    """Index of the nearest frame of a kind, not looking past stop_at."""
    for i in range(len(stack) - 1, -1, -1):
        if isinstance(stack[i], kind):
            return i
        if stop_at is not None and isinstance(stack[i], stop_at):
            return None
    return None


def collect_rows(html: str) -> List[_RowFrame]:
    """
    Walk table structure and record every row with its direct cell count.

    Unclosed rows and cells are closed implicitly by the next sibling;
    rows closed that way keep end=None.
    """
    rows: List[_RowFrame] = []
    stack: list = []

    for token in scan_tags(html, ['table', 'tr', 'td', 'th']):
        if token.name == 'table':
            if not token.closing:
                stack.append(_TableFrame())
            else:
                index = _find(stack, _TableFrame)
                if index is not None:
                    del stack[index:]
            continue

        table_index = _find(stack, _TableFrame)
        if table_index is None:
            continue

        if token.name == 'tr':
            if token.closing:
                index = _find(stack, _RowFrame, stop_at=_TableFrame)
                if index is not None:
                    stack[index].end = token.end
                    del stack[index:]
            else:
                del stack[table_index + 1:]
                table = stack[table_index]
                table.rows += 1
                row = _RowFrame(table=table, start=token.start)
                rows.append(row)
                stack.append(row)
            continue

        # td / th
        if token.closing:
            index = _find(stack, _CellFrame, stop_at=_TableFrame)
            if index is not None:
                del stack[index:]
            continue

        row_index = _find(stack, _RowFrame, stop_at=_TableFrame)
        if row_index is not None:
            del stack[row_index + 1:]
            row = stack[row_index]
            row.cells += 1
            if AttributeList.parse(token.attrs).has('colspan'):
                row.has_colspan = True
        stack.append(_CellFrame())

    return rows


def wrap_multi_column_rows(html: str, config) -> str:
    """
    Wrap qualifying multi-column rows in nested normalized tables.

    Args:
        html: Document text
        config: TransformConfig (the nested table uses its width settings)

    Returns:
        Document with wrapped rows
    """
    prefix = f'<tr><td style="{WRAPPER_CELL_STYLE}">{build_table_tag(config)}'
    suffix = '</table></td></tr>'

    insertions = []
    skipped_colspan = 0
    for row in collect_rows(html):
        if row.end is None or row.cells < 2 or row.table.rows < 2:
            continue
        if row.has_colspan:
            skipped_colspan += 1
            continue
        insertions.append((row.start, 1, prefix))
        insertions.append((row.end, 0, suffix))

    if skipped_colspan:
        logger.debug(f"Skipped {skipped_colspan} multi-column row(s) declaring colspan")
    if not insertions:
        return html

    logger.debug(f"Wrapped {len(insertions) // 2} multi-column row(s)")
    return splice_insertions(html, insertions)
