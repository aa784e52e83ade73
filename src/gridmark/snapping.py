"""
Snapping engine for cell move and resize.

When a cell is moved or resized, its edges and corners are pulled onto nearby
cells that lie within a pixel threshold, so an annotator does not need pixel
precision to build an aligned grid.

Snapping is gated on distance only: a candidate inside the threshold snaps
regardless of the direction the pointer is moving. Every function here is a
pure function of its arguments, so the same call serves the live preview on
each pointer move and the final commit.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .models import Cell, Corner, Edge, Point

DEFAULT_SNAP_THRESHOLD = 5.0


@dataclass(frozen=True)
class SnapResult:
    """
    Corrected delta for a cell move.

    Attributes:
        snapped: Whether either axis snapped.
        delta_x: Corrected horizontal delta (the proposed one if no x snap).
        delta_y: Corrected vertical delta (the proposed one if no y snap).
        matched_cell_id: Cell of the closer of the two axis matches.
        matched_cell_ids: All contributing cells, horizontal match first.
    """

    snapped: bool
    delta_x: float
    delta_y: float
    matched_cell_id: Optional[str] = None
    matched_cell_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CornerSnapResult:
    """Snapped position for a single dragged corner."""

    snapped: bool
    snapped_x: float
    snapped_y: float
    matched_cell_id: Optional[str] = None


@dataclass(frozen=True)
class EdgeSnapResult:
    """Snapped corner position from aligning the edges that corner controls."""

    snapped: bool
    snapped_x: float
    snapped_y: float
    matched_cell_id: Optional[str] = None
    matched_cell_ids: Tuple[str, ...] = ()


class _AxisMatch:
    """Best candidate seen so far on one axis."""

    def __init__(self, value: float):
        self.value = value
        self.distance = math.inf
        self.cell_id: Optional[str] = None

    def offer(self, distance: float, value: float, cell_id: str, threshold: float):
        if distance < threshold and distance < self.distance:
            self.distance = distance
            self.value = value
            self.cell_id = cell_id

    @property
    def matched(self) -> bool:
        return self.cell_id is not None


def _combine_matches(
    horizontal: _AxisMatch, vertical: _AxisMatch
) -> Tuple[Optional[str], Tuple[str, ...]]:
    """Pick the closer match for highlighting and list every contributor."""
    matched_ids: List[str] = []
    for match in (horizontal, vertical):
        if match.matched and match.cell_id not in matched_ids:
            matched_ids.append(match.cell_id)

    if not matched_ids:
        return None, ()
    if horizontal.matched and (
        not vertical.matched or horizontal.distance <= vertical.distance
    ):
        return horizontal.cell_id, tuple(matched_ids)
    return vertical.cell_id, tuple(matched_ids)


def detect_nearest_edge(cell: Cell, point: Point) -> Edge:
    """
    Find the edge of ``cell`` closest to ``point``.

    Ties resolve in the order left, right, top, bottom.
    """
    bounds = cell.get_bounds()
    distances = [
        (abs(point.x - bounds.min_x), Edge.LEFT),
        (abs(point.x - bounds.max_x), Edge.RIGHT),
        (abs(point.y - bounds.min_y), Edge.TOP),
        (abs(point.y - bounds.max_y), Edge.BOTTOM),
    ]
    best_distance = min(distance for distance, _ in distances)
    for distance, edge in distances:
        if distance == best_distance:
            return edge
    return Edge.BOTTOM


def calculate_snap(
    dragged_cell: Cell,
    other_cells: Iterable[Cell],
    delta_x: float,
    delta_y: float,
    snap_threshold: float = DEFAULT_SNAP_THRESHOLD,
    target_edge: Optional[Edge] = None,
) -> SnapResult:
    """
    Snap a proposed move of ``dragged_cell`` to the edges of other cells.

    For each other cell, four cross-edge distances are checked: dragged right
    to other left, dragged left to other right, dragged bottom to other top,
    and dragged top to other bottom. The best horizontal and the best vertical
    candidate are kept independently and each is applied when it lies strictly
    inside the threshold.

    Args:
        dragged_cell: The cell in its position before the move.
        other_cells: Cells to snap against; the dragged cell is skipped.
        delta_x: Proposed horizontal delta.
        delta_y: Proposed vertical delta.
        snap_threshold: Maximum distance (exclusive) for a snap.
        target_edge: If given, only this edge of the dragged cell may snap.

    Returns:
        SnapResult with the corrected deltas.
    """
    bounds = dragged_cell.get_bounds()
    new_left = bounds.min_x + delta_x
    new_right = bounds.max_x + delta_x
    new_top = bounds.min_y + delta_y
    new_bottom = bounds.max_y + delta_y

    horizontal = _AxisMatch(delta_x)
    vertical = _AxisMatch(delta_y)

    def allowed(edge: Edge) -> bool:
        return target_edge is None or target_edge == edge

    for other in other_cells:
        if other.id == dragged_cell.id:
            continue
        other_bounds = other.get_bounds()

        if allowed(Edge.RIGHT):
            horizontal.offer(
                abs(new_right - other_bounds.min_x),
                other_bounds.min_x - bounds.max_x,
                other.id,
                snap_threshold,
            )
        if allowed(Edge.LEFT):
            horizontal.offer(
                abs(new_left - other_bounds.max_x),
                other_bounds.max_x - bounds.min_x,
                other.id,
                snap_threshold,
            )
        if allowed(Edge.BOTTOM):
            vertical.offer(
                abs(new_bottom - other_bounds.min_y),
                other_bounds.min_y - bounds.max_y,
                other.id,
                snap_threshold,
            )
        if allowed(Edge.TOP):
            vertical.offer(
                abs(new_top - other_bounds.max_y),
                other_bounds.max_y - bounds.min_y,
                other.id,
                snap_threshold,
            )

    matched_cell_id, matched_cell_ids = _combine_matches(horizontal, vertical)
    return SnapResult(
        snapped=horizontal.matched or vertical.matched,
        delta_x=horizontal.value,
        delta_y=vertical.value,
        matched_cell_id=matched_cell_id,
        matched_cell_ids=matched_cell_ids,
    )


def calculate_corner_snap(
    dragged_corner: Point,
    dragged_cell_id: str,
    other_cells: Iterable[Cell],
    snap_threshold: float = DEFAULT_SNAP_THRESHOLD,
) -> CornerSnapResult:
    """
    Snap a dragged corner onto the nearest corner of another cell.

    Distance is Euclidean; the nearest corner strictly inside the threshold
    wins and the dragged corner takes its exact position.
    """
    best_x = dragged_corner.x
    best_y = dragged_corner.y
    best_distance = math.inf
    matched_cell_id: Optional[str] = None

    for other in other_cells:
        if other.id == dragged_cell_id:
            continue
        for corner in other.points:
            distance = math.hypot(dragged_corner.x - corner.x, dragged_corner.y - corner.y)
            if distance < snap_threshold and distance < best_distance:
                best_distance = distance
                best_x = corner.x
                best_y = corner.y
                matched_cell_id = other.id

    return CornerSnapResult(
        snapped=matched_cell_id is not None,
        snapped_x=best_x,
        snapped_y=best_y,
        matched_cell_id=matched_cell_id,
    )


def calculate_resize_edge_snap(
    corner: int,
    proposed_corner: Point,
    dragged_cell_id: str,
    other_cells: Iterable[Cell],
    snap_threshold: float = DEFAULT_SNAP_THRESHOLD,
) -> EdgeSnapResult:
    """
    Snap the two edges a dragged corner controls onto other cells' edges.

    The corner's vertical edge (left for corners 0 and 3, right for 1 and 2)
    is compared against every other cell's left and right edges, and its
    horizontal edge (top for 0 and 1, bottom for 2 and 3) against every other
    cell's top and bottom edges. Each axis picks its own best candidate.

    Args:
        corner: Index of the dragged corner (see Corner).
        proposed_corner: Position of the corner after the raw drag.
        dragged_cell_id: Id of the cell being resized; skipped.
        other_cells: Cells to align against.
        snap_threshold: Maximum distance (exclusive) for a snap.

    Returns:
        EdgeSnapResult with the corrected corner position.

    Raises:
        ValueError: If corner is not a valid corner index.
    """
    Corner(corner)
    horizontal = _AxisMatch(proposed_corner.x)
    vertical = _AxisMatch(proposed_corner.y)

    for other in other_cells:
        if other.id == dragged_cell_id:
            continue
        other_bounds = other.get_bounds()
        for edge_x in (other_bounds.min_x, other_bounds.max_x):
            horizontal.offer(
                abs(proposed_corner.x - edge_x), edge_x, other.id, snap_threshold
            )
        for edge_y in (other_bounds.min_y, other_bounds.max_y):
            vertical.offer(
                abs(proposed_corner.y - edge_y), edge_y, other.id, snap_threshold
            )

    matched_cell_id, matched_cell_ids = _combine_matches(horizontal, vertical)
    return EdgeSnapResult(
        snapped=horizontal.matched or vertical.matched,
        snapped_x=horizontal.value,
        snapped_y=vertical.value,
        matched_cell_id=matched_cell_id,
        matched_cell_ids=matched_cell_ids,
    )
