from math import ceil
from typing import Any, List, Literal, Optional, Sequence

ALIGN_MARKERS = {"l": ":---", "c": ":---:", "r": "---:"}


def generate_markdown_table(
    headers: Optional[Sequence[Any]],
    rows: Sequence[Sequence[Any]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Render rows as a Markdown table.

    Args:
        headers: column headers, or None to promote the first row.
        rows: table body; cells are passed through str().
        aligns: 'l', 'c' or 'r' per column, center by default.

    Returns:
        str: the table, or "" when there is nothing to show.
    """
    if not rows and not headers:
        return ""
    if not headers:
        headers, rows = rows[0], rows[1:]

    header_cells = [str(h) for h in headers]
    if aligns is None:
        aligns = ["c"] * len(header_cells)
    elif len(aligns) != len(header_cells):
        raise ValueError("Length of aligns must match number of headers.")

    def md_row(cells: Sequence[Any]) -> str:
        # pipes inside a cell would split it into two columns
        return "| " + " | ".join(str(c).replace("|", "\\|") for c in cells) + " |"

    lines = [
        md_row(header_cells),
        "| " + " | ".join(ALIGN_MARKERS[a] for a in aligns) + " |",
    ]
    lines.extend(md_row(r) for r in rows)
    return "\n".join(lines)


def page_count(total: int, page_size: int) -> int:
    """Number of pages for `total` rows; an empty result still has one page."""
    return max(ceil(total / page_size), 1) if page_size > 0 else 1


def stock_label(stock: int, low_threshold: int) -> str:
    if stock <= 0:
        return "Out of Stock"
    if stock <= low_threshold:
        return "Low Stock"
    return "In Stock"
