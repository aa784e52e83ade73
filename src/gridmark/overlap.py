"""
Overlap detection and overlap-group cycling.

Uses networkx for:
- The "overlaps with" graph over all cells
- Connected components (transitive overlap groups)

Overlaps are advisory: they are used to highlight suspicious annotations and
to let the annotator cycle through stacked cells, never to correct data.
"""

from dataclasses import dataclass
from typing import Hashable, List, Optional, Sequence, Tuple

import networkx as nx

from .geometry import bounding_boxes_overlap, polygon_intersection
from .models import Cell, Point


@dataclass(frozen=True)
class CellOverlap:
    """Two cells whose polygons share a non-degenerate area."""

    cell1_id: str
    cell2_id: str
    intersection: Tuple[Point, ...]


@dataclass(frozen=True)
class OverlapGroup:
    """
    A transitive overlap group, ordered for cycling.

    Attributes:
        source_cell_id: The selected cell the group was computed from.
        cell_ids: Group members sorted by id.
    """

    source_cell_id: str
    cell_ids: Tuple[str, ...]


def find_overlapping_cells(cells: Sequence[Cell]) -> List[CellOverlap]:
    """
    Find every pair of overlapping cells.

    Each unordered pair is tested once. A bounding-box check rejects distant
    pairs before the exact intersection is computed; a pair is reported when
    its intersection polygon has at least three vertices.

    Args:
        cells: Cells in iteration order.

    Returns:
        List of CellOverlap, in pair order.
    """
    overlaps: List[CellOverlap] = []

    for i, cell1 in enumerate(cells):
        for cell2 in cells[i + 1 :]:
            if not bounding_boxes_overlap(cell1.points, cell2.points):
                continue
            intersection = polygon_intersection(cell1.points, cell2.points)
            if intersection and len(intersection) >= 3:
                overlaps.append(
                    CellOverlap(cell1.id, cell2.id, tuple(intersection))
                )

    return overlaps


def build_overlap_graph(cells: Sequence[Cell]) -> nx.Graph:
    """Undirected graph with a node per cell and an edge per overlapping pair."""
    graph = nx.Graph()
    graph.add_nodes_from(cell.id for cell in cells)
    graph.add_edges_from(
        (overlap.cell1_id, overlap.cell2_id)
        for overlap in find_overlapping_cells(cells)
    )
    return graph


def find_overlap_group(cells: Sequence[Cell], seed_cell_id: str) -> Optional[OverlapGroup]:
    """
    Compute the transitive overlap closure containing ``seed_cell_id``.

    Returns:
        The OverlapGroup (the seed alone if it overlaps nothing), or None if
        the seed is not among the cells.
    """
    graph = build_overlap_graph(cells)
    if seed_cell_id not in graph:
        return None
    members = nx.node_connected_component(graph, seed_cell_id)
    return OverlapGroup(seed_cell_id, tuple(sorted(members)))


class OverlapCycler:
    """
    Cyclic selection through an overlap group.

    The cached group is keyed on ``(current member, geometry version)``. A
    cycle step moves the key to the member it selects, so repeated cycling
    reuses the group, while a selection made any other way, or any geometry
    change, misses the cache and recomputes on the next request.
    """

    def __init__(self):
        self._key: Optional[Tuple[str, Hashable]] = None
        self._group: Optional[OverlapGroup] = None

    @property
    def group(self) -> Optional[OverlapGroup]:
        return self._group

    def group_for(
        self, cells: Sequence[Cell], selected_cell_id: str, version: Hashable
    ) -> Optional[OverlapGroup]:
        """Return the cached group for this key, recomputing on a miss."""
        key = (selected_cell_id, version)
        if key != self._key:
            self._group = find_overlap_group(cells, selected_cell_id)
            self._key = key
        return self._group

    def step(
        self,
        cells: Sequence[Cell],
        selected_cell_id: Optional[str],
        version: Hashable,
        direction: int = 1,
    ) -> Optional[str]:
        """
        Advance (direction > 0) or retreat (direction < 0) with wraparound.

        Returns:
            The id to select next, the current id if the group has a single
            member, or None if nothing is selected.
        """
        if selected_cell_id is None:
            return None
        group = self.group_for(cells, selected_cell_id, version)
        if group is None or len(group.cell_ids) <= 1:
            return selected_cell_id

        ids = group.cell_ids
        offset = 1 if direction >= 0 else -1
        next_id = ids[(ids.index(selected_cell_id) + offset) % len(ids)]
        self._key = (next_id, version)
        return next_id
