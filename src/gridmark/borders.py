"""
Border conflict detection.

Two cells that share a physical border (or whose borders are nearly aligned)
should agree on whether that border is visible. Where they disagree, the
overlapping stretch of the border is reported as a conflict segment.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .models import Bounds, Cell, Edge

# Shared segments shorter than this are corner contacts, not borders.
EXACT_TOLERANCE = 0.1
# Edge coordinates closer than this count as the same border.
ALIGNMENT_TOLERANCE = 5.0

# (edge of cell 1, edge of cell 2) pairs compared for each cell pair.
EDGE_PAIRS: Tuple[Tuple[Edge, Edge], ...] = (
    (Edge.TOP, Edge.BOTTOM),
    (Edge.BOTTOM, Edge.TOP),
    (Edge.TOP, Edge.TOP),
    (Edge.BOTTOM, Edge.BOTTOM),
    (Edge.LEFT, Edge.RIGHT),
    (Edge.RIGHT, Edge.LEFT),
    (Edge.LEFT, Edge.LEFT),
    (Edge.RIGHT, Edge.RIGHT),
)


@dataclass(frozen=True)
class BorderConflict:
    """A border segment whose visibility differs between two cells."""

    x1: float
    y1: float
    x2: float
    y2: float
    cell1_id: str
    cell2_id: str
    edge1: Edge
    edge2: Edge


def _span(bounds: Bounds, edge: Edge) -> Tuple[float, float]:
    """Interval an edge covers along its own axis."""
    if edge.is_vertical:
        return bounds.min_y, bounds.max_y
    return bounds.min_x, bounds.max_x


def _interval_overlap(
    first: Tuple[float, float], second: Tuple[float, float]
) -> Optional[Tuple[float, float]]:
    low = max(first[0], second[0])
    high = min(first[1], second[1])
    if high - low > EXACT_TOLERANCE:
        return low, high
    return None


def find_conflicting_shared_borders(
    cell1: Cell,
    cell2: Cell,
    alignment_tolerance: float = ALIGNMENT_TOLERANCE,
) -> List[BorderConflict]:
    """
    Compare every aligned edge pair of two cells.

    Args:
        cell1: First cell.
        cell2: Second cell.
        alignment_tolerance: Maximum (exclusive) distance between two edge
            coordinates for them to count as the same border.

    Returns:
        Conflict segments, placed at the average of the two edge coordinates.
    """
    bounds1 = cell1.get_bounds()
    bounds2 = cell2.get_bounds()
    conflicts: List[BorderConflict] = []

    for edge1, edge2 in EDGE_PAIRS:
        position1 = cell1.edge_position(edge1)
        position2 = cell2.edge_position(edge2)
        if abs(position1 - position2) >= alignment_tolerance:
            continue
        if cell1.lines.get(edge1) == cell2.lines.get(edge2):
            continue
        overlap = _interval_overlap(_span(bounds1, edge1), _span(bounds2, edge2))
        if overlap is None:
            continue

        average = (position1 + position2) / 2
        if edge1.is_vertical:
            x1, y1, x2, y2 = average, overlap[0], average, overlap[1]
        else:
            x1, y1, x2, y2 = overlap[0], average, overlap[1], average
        conflicts.append(
            BorderConflict(x1, y1, x2, y2, cell1.id, cell2.id, edge1, edge2)
        )

    return conflicts


def find_all_conflicting_borders(
    cells: Sequence[Cell],
    alignment_tolerance: float = ALIGNMENT_TOLERANCE,
) -> List[BorderConflict]:
    """Find border conflicts over every unordered pair of cells."""
    conflicts: List[BorderConflict] = []
    processed = set()

    for i, cell1 in enumerate(cells):
        for cell2 in cells[i + 1 :]:
            pair_key = frozenset((cell1.id, cell2.id))
            if pair_key in processed:
                continue
            processed.add(pair_key)
            conflicts.extend(
                find_conflicting_shared_borders(cell1, cell2, alignment_tolerance)
            )

    return conflicts
