"""Row segmentation for guild-battle spreadsheet grids.

Finds the contiguous block of player rows below the fixed header rows.
The block ends at the first blank row, a row without a first cell, or a
summary row ("DAMAGE REQ", "DAMAGE GOAL", "Min Tickets").
"""

import logging
from typing import Any, Sequence

from .models import SheetLayout

logger = logging.getLogger(__name__)

Row = Sequence[Any]

DEFAULT_LAYOUT = SheetLayout()


def cell_text(row: Row, index: int) -> str:
    """Text of a cell, or "" when the cell is missing or empty."""
    if index < 0 or index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    return str(value).strip()


def is_blank_row(row: Row) -> bool:
    return not row or all(not str(c).strip() for c in row if c is not None)


def is_summary_row(row: Row, markers: Sequence[str]) -> bool:
    """Check whether the first cell carries one of the summary markers."""
    first = cell_text(row, 0).upper()
    return any(marker.upper() in first for marker in markers)


def segment_rows(grid: Sequence[Row], layout: SheetLayout = DEFAULT_LAYOUT) -> list[Row]:
    """Return the player rows of a grid.

    Rows shorter than ``layout.min_columns`` are skipped individually and
    do not end the block.

    Args:
        grid: Spreadsheet rows, origin-addressed, headers included.
        layout: Sheet conventions (header count, markers, minimum width).

    Returns:
        The player rows, in grid order. Empty when no player rows exist.
    """
    players: list[Row] = []
    skipped = 0
    stop_reason = "end of grid"

    for index in range(layout.header_rows, len(grid)):
        row = grid[index]
        if is_blank_row(row):
            stop_reason = f"blank row {index}"
            break
        if not cell_text(row, 0):
            stop_reason = f"row {index} has no first cell"
            break
        if is_summary_row(row, layout.summary_markers):
            stop_reason = f"summary row {index}"
            break
        if len(row) < layout.min_columns:
            logger.debug("Skipping short row %d (%d columns)", index, len(row))
            skipped += 1
            continue
        players.append(row)

    logger.info(
        "Segmented %d player rows (%d short rows skipped, stopped at %s)",
        len(players), skipped, stop_reason,
    )
    return players
