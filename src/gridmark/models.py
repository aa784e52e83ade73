"""
Data models for table-cell annotation.

This module contains the immutable value types that the editing engine works
with. Every mutation of a Cell or an Annotation returns a new instance, so a
snapshot handed to the undo history or to a detector can never be observed in
a half-updated state.

Classes:
    Point: A position in document-image pixel space.
    Bounds: Axis-aligned bounding box derived from a set of points.
    Edge: One of the four sides of a cell.
    Corner: Index of a corner in the canonical winding order.
    CellLines: Per-edge border visibility flags.
    CellSpan: Row/column range a cell occupies in the logical table grid.
    Cell: One rectangular table cell.
    TableCoords: Outer table boundary polygon.
    Annotation: A document's full set of cells.
    ImageSize: Raster dimensions of the document image.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from PIL import Image

log = logging.getLogger(__name__)

# Smallest width/height (in document pixels) a cell may be committed with.
MIN_CELL_SIZE = 5


class AnnotationError(ValueError):
    """Raised when an input document cannot be turned into an Annotation."""

    pass


@dataclass(frozen=True)
class Point:
    """A position in document-image pixel space."""

    x: float
    y: float

    def to_data(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Bounds:
    """
    Axis-aligned bounding box.

    Attributes:
        min_x: Left edge x-coordinate.
        min_y: Top edge y-coordinate.
        max_x: Right edge x-coordinate.
        max_y: Bottom edge y-coordinate.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def shifted(self, delta_x: float, delta_y: float) -> "Bounds":
        """Return the bounds translated by (delta_x, delta_y)."""
        return Bounds(
            self.min_x + delta_x,
            self.min_y + delta_y,
            self.max_x + delta_x,
            self.max_y + delta_y,
        )

    def is_at_least(self, size: float) -> bool:
        """Check that both dimensions are at least ``size``."""
        return self.width >= size and self.height >= size

    def to_points(self) -> Tuple[Point, Point, Point, Point]:
        """Corner points in canonical winding order (TL, TR, BR, BL)."""
        return (
            Point(self.min_x, self.min_y),
            Point(self.max_x, self.min_y),
            Point(self.max_x, self.max_y),
            Point(self.min_x, self.max_y),
        )

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> "Bounds":
        points = list(points)
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        return cls(min(xs), min(ys), max(xs), max(ys))

    @classmethod
    def spanning(cls, a: Point, b: Point) -> "Bounds":
        """Bounds of the rectangle with ``a`` and ``b`` as opposite corners."""
        return cls(min(a.x, b.x), min(a.y, b.y), max(a.x, b.x), max(a.y, b.y))


class Edge(Enum):
    """Which side of a cell."""

    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"

    @property
    def is_vertical(self) -> bool:
        """Left and right edges are vertical lines."""
        return self in (Edge.LEFT, Edge.RIGHT)


class Corner(IntEnum):
    """Corner index in the canonical winding order."""

    TOP_LEFT = 0
    TOP_RIGHT = 1
    BOTTOM_RIGHT = 2
    BOTTOM_LEFT = 3

    @property
    def vertical_edge(self) -> Edge:
        """The vertical edge this corner controls when dragged."""
        if self in (Corner.TOP_LEFT, Corner.BOTTOM_LEFT):
            return Edge.LEFT
        return Edge.RIGHT

    @property
    def horizontal_edge(self) -> Edge:
        """The horizontal edge this corner controls when dragged."""
        if self in (Corner.TOP_LEFT, Corner.TOP_RIGHT):
            return Edge.TOP
        return Edge.BOTTOM

    @property
    def x_neighbor(self) -> "Corner":
        """Adjacent corner sharing this corner's x-coordinate."""
        return Corner(3 - self)

    @property
    def y_neighbor(self) -> "Corner":
        """Adjacent corner sharing this corner's y-coordinate."""
        return Corner(self ^ 1)

    @classmethod
    def toward(cls, anchor: Point, pointer: Point) -> "Corner":
        """Corner of the anchor/pointer rectangle that the pointer occupies."""
        right = pointer.x >= anchor.x
        below = pointer.y >= anchor.y
        if below:
            return cls.BOTTOM_RIGHT if right else cls.BOTTOM_LEFT
        return cls.TOP_RIGHT if right else cls.TOP_LEFT


# Point indices (canonical winding) that define each edge.
EDGE_POINT_INDICES: Dict[Edge, Tuple[int, int]] = {
    Edge.LEFT: (0, 3),
    Edge.RIGHT: (1, 2),
    Edge.TOP: (0, 1),
    Edge.BOTTOM: (2, 3),
}


@dataclass(frozen=True)
class CellLines:
    """Visibility of each border of a cell."""

    top: bool = False
    bottom: bool = False
    left: bool = False
    right: bool = False

    def get(self, edge: Edge) -> bool:
        return getattr(self, edge.value)

    def merged(self, partial: Mapping[str, Any]) -> "CellLines":
        """
        Return a copy with some flags overridden.

        Args:
            partial: Mapping of edge name ("top", "bottom", "left", "right")
                     to a truthy/falsy value. Unknown keys are ignored.
        """
        changes = {
            name: bool(value)
            for name, value in partial.items()
            if name in ("top", "bottom", "left", "right")
        }
        return replace(self, **changes)

    def to_data(self) -> Dict[str, int]:
        return {
            "top": int(self.top),
            "bottom": int(self.bottom),
            "left": int(self.left),
            "right": int(self.right),
        }

    @classmethod
    def from_data(cls, data: Optional[Mapping[str, Any]]) -> "CellLines":
        if not data:
            return cls()
        return cls().merged(data)


@dataclass(frozen=True)
class CellSpan:
    """Row/column range a cell covers in the logical table grid."""

    start_row: int = 0
    end_row: int = 0
    start_col: int = 0
    end_col: int = 0


def is_axis_aligned_rectangle(points: Sequence[Point]) -> bool:
    """
    Check that four points are exactly the corners of their bounding box.

    Args:
        points: Candidate corner points, in any order.

    Returns:
        True if the points form an axis-aligned rectangle.
    """
    if len(points) != 4:
        return False
    bounds = Bounds.from_points(points)
    return set(points) == set(bounds.to_points())


@dataclass(frozen=True)
class Cell:
    """
    One rectangular table-cell annotation.

    Points are always stored in canonical winding order
    ``[top-left, top-right, bottom-right, bottom-left]`` and always form an
    axis-aligned rectangle. Bounds are derived from the points on demand.

    Attributes:
        id: Stable identifier, never reused within a session.
        points: The four corner points.
        lines: Border visibility flags.
        span: Logical row/column span.
        color: Optional presentation color.
        opacity: Optional presentation opacity.
    """

    id: str
    points: Tuple[Point, Point, Point, Point]
    lines: CellLines = field(default_factory=CellLines)
    span: CellSpan = field(default_factory=CellSpan)
    color: Optional[str] = None
    opacity: Optional[float] = None

    def __post_init__(self):
        if not is_axis_aligned_rectangle(self.points):
            raise ValueError(f"Cell {self.id!r} points do not form a rectangle")
        canonical = Bounds.from_points(self.points).to_points()
        if tuple(self.points) != canonical:
            object.__setattr__(self, "points", canonical)

    @classmethod
    def from_bounds(cls, cell_id: str, bounds: Bounds, **kwargs) -> "Cell":
        return cls(id=cell_id, points=bounds.to_points(), **kwargs)

    def get_bounds(self) -> Bounds:
        """Bounding box read off the canonical corners."""
        top_left, _, bottom_right, _ = self.points
        return Bounds(top_left.x, top_left.y, bottom_right.x, bottom_right.y)

    def edge_position(self, edge: Edge) -> float:
        bounds = self.get_bounds()
        return {
            Edge.LEFT: bounds.min_x,
            Edge.RIGHT: bounds.max_x,
            Edge.TOP: bounds.min_y,
            Edge.BOTTOM: bounds.max_y,
        }[edge]

    def move(self, delta_x: float, delta_y: float) -> "Cell":
        """Translate all four points; lines and span are unchanged."""
        return replace(
            self, points=self.get_bounds().shifted(delta_x, delta_y).to_points()
        )

    def set_edge_position(self, edge: Edge, value: float) -> "Cell":
        """
        Move one edge to a new coordinate.

        Only the two points defining that edge change. If the edge is moved
        past the opposite edge, the points are re-ordered so the winding stays
        canonical.
        """
        points = list(self.points)
        for index in EDGE_POINT_INDICES[edge]:
            if edge.is_vertical:
                points[index] = Point(value, points[index].y)
            else:
                points[index] = Point(points[index].x, value)
        return replace(self, points=Bounds.from_points(points).to_points())

    def resize_corner(self, corner: int, x: float, y: float) -> "Cell":
        """
        Drag one corner to (x, y), keeping the shape rectangular.

        The corner sharing the dragged corner's x-coordinate takes the new x,
        and the corner sharing its y-coordinate takes the new y.

        Args:
            corner: Corner index 0-3 (see Corner).
            x: New x-coordinate of the corner.
            y: New y-coordinate of the corner.

        Raises:
            ValueError: If corner is not a valid corner index.
        """
        corner = Corner(corner)
        points = list(self.points)
        points[corner] = Point(x, y)
        x_neighbor = corner.x_neighbor
        y_neighbor = corner.y_neighbor
        points[x_neighbor] = Point(x, points[x_neighbor].y)
        points[y_neighbor] = Point(points[y_neighbor].x, y)
        return replace(self, points=Bounds.from_points(points).to_points())

    def with_points(self, points: Sequence[Point]) -> "Cell":
        return replace(self, points=tuple(points))

    def with_lines(self, partial: Mapping[str, Any]) -> "Cell":
        return replace(self, lines=self.lines.merged(partial))

    def to_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "points": [p.to_data() for p in self.points],
            "lines": self.lines.to_data(),
            "startRow": self.span.start_row,
            "endRow": self.span.end_row,
            "startCol": self.span.start_col,
            "endCol": self.span.end_col,
        }
        if self.color is not None:
            data["color"] = self.color
        if self.opacity is not None:
            data["opacity"] = self.opacity
        return data

    @classmethod
    def from_data(cls, data: Mapping[str, Any], default_id: str = "") -> "Cell":
        """
        Build a Cell from its interchange representation.

        Raises:
            AnnotationError: If the geometry is missing or malformed.
        """
        cell_id = str(data.get("id") or default_id)
        raw_points = data.get("points")
        if not raw_points:
            raise AnnotationError(f"Cell {cell_id!r} is missing points")
        points = _parse_points(raw_points, f"cell {cell_id!r}")
        if len(points) != 4:
            raise AnnotationError(
                f"Cell {cell_id!r} has {len(points)} points, expected 4"
            )

        bounds = Bounds.from_points(points)
        if not is_axis_aligned_rectangle(points):
            log.debug("Cell %s is not axis-aligned; using its bounding box", cell_id)

        opacity = data.get("opacity")
        return cls(
            id=cell_id,
            points=bounds.to_points(),
            lines=CellLines.from_data(data.get("lines")),
            span=CellSpan(
                start_row=int(data.get("startRow", 0) or 0),
                end_row=int(data.get("endRow", 0) or 0),
                start_col=int(data.get("startCol", 0) or 0),
                end_col=int(data.get("endCol", 0) or 0),
            ),
            color=data.get("color"),
            opacity=float(opacity) if opacity is not None else None,
        )


def _parse_points(raw_points: Any, owner: str) -> List[Point]:
    points: List[Point] = []
    for raw in raw_points:
        try:
            if isinstance(raw, Point):
                x, y = raw.x, raw.y
            elif isinstance(raw, Mapping):
                x, y = raw["x"], raw["y"]
            else:
                x, y = raw
            point = Point(float(x), float(y))
        except (KeyError, TypeError, ValueError) as exc:
            raise AnnotationError(f"Invalid point {raw!r} in {owner}") from exc
        if not (math.isfinite(point.x) and math.isfinite(point.y)):
            raise AnnotationError(f"Non-finite point {raw!r} in {owner}")
        points.append(point)
    return points


@dataclass(frozen=True)
class TableCoords:
    """Outer table boundary polygon."""

    points: Tuple[Point, ...] = ()

    def to_data(self) -> Dict[str, Any]:
        return {"points": [p.to_data() for p in self.points]}


@dataclass(frozen=True)
class Annotation:
    """
    All cells of one document.

    The Annotation is the unit of undo/redo snapshotting and of load/replace.
    Cell order is insertion order.

    Attributes:
        filename: Name of the annotated document image.
        table_coords: Outer table boundary.
        cells: Cells in insertion order.
    """

    filename: str = ""
    table_coords: TableCoords = field(default_factory=TableCoords)
    cells: Tuple[Cell, ...] = ()

    def get_cell_by_id(self, cell_id: str) -> Optional[Cell]:
        for cell in self.cells:
            if cell.id == cell_id:
                return cell
        return None

    def cell_ids(self) -> List[str]:
        return [cell.id for cell in self.cells]

    def with_cell(self, cell: Cell) -> "Annotation":
        """Return a copy with ``cell`` replacing the cell of the same id."""
        return replace(
            self, cells=tuple(cell if c.id == cell.id else c for c in self.cells)
        )

    def with_cells(self, cells: Iterable[Cell]) -> "Annotation":
        return replace(self, cells=tuple(cells))

    def add_cell(self, cell: Cell) -> "Annotation":
        return replace(self, cells=self.cells + (cell,))

    def remove_cell(self, cell_id: str) -> "Annotation":
        return replace(self, cells=tuple(c for c in self.cells if c.id != cell_id))

    def geometry(self) -> Tuple[Tuple[str, Tuple[Point, ...]], ...]:
        """Ids and points of every cell, used to detect geometry changes."""
        return tuple((cell.id, cell.points) for cell in self.cells)

    def clone(self) -> "Annotation":
        """Deep copy through the interchange representation."""
        return Annotation.from_data(self.to_data())

    def to_data(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "tableCoords": self.table_coords.to_data(),
            "cells": [cell.to_data() for cell in self.cells],
        }

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "Annotation":
        """
        Build an Annotation from its interchange representation.

        Loading is all-or-nothing: the first malformed cell aborts the load.

        Args:
            data: Mapping with "filename", "tableCoords" and "cells" keys.

        Returns:
            A new Annotation.

        Raises:
            AnnotationError: If required geometry is missing or malformed.
        """
        if not isinstance(data, Mapping):
            raise AnnotationError("Annotation data must be a mapping")
        if "cells" not in data or data["cells"] is None:
            raise AnnotationError("Annotation data is missing 'cells'")

        table_data = data.get("tableCoords") or {}
        table_coords = TableCoords(
            tuple(_parse_points(table_data.get("points") or [], "tableCoords"))
        )

        cells: List[Cell] = []
        seen_ids = set()
        for index, cell_data in enumerate(data["cells"]):
            if not isinstance(cell_data, Mapping):
                raise AnnotationError(f"Cell {index} is not a mapping")
            cell = Cell.from_data(cell_data, default_id=f"cell-{index}")
            if cell.get_bounds().width <= 0 or cell.get_bounds().height <= 0:
                raise AnnotationError(f"Cell {cell.id!r} has zero area")
            if cell.id in seen_ids:
                raise AnnotationError(f"Duplicate cell id {cell.id!r}")
            seen_ids.add(cell.id)
            cells.append(cell)

        return cls(
            filename=str(data.get("filename") or ""),
            table_coords=table_coords,
            cells=tuple(cells),
        )


@dataclass(frozen=True)
class ImageSize:
    """Raster dimensions of the document image, in pixels."""

    width: int
    height: int

    def contains(self, point: Point) -> bool:
        return 0 <= point.x <= self.width and 0 <= point.y <= self.height

    @classmethod
    def from_file(cls, path: str) -> "ImageSize":
        """Read the dimensions of an image file without decoding pixels."""
        with Image.open(path) as image:
            width, height = image.size
        return cls(width, height)
