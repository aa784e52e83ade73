"""
gridmark - Geometric editing engine for table-cell annotations

A Python library for editing rectangular cell annotations laid over a table
image: create, move and resize cells with edge and corner snapping, detect
overlaps, conflicting borders and uncovered grid regions, and undo/redo every
edit.

Example:
    >>> from gridmark import EditingSession
    >>> session = EditingSession()
    >>> cell = session.create_cell(
    ...     {"points": [(10, 10), (110, 10), (110, 60), (10, 60)]}
    ... )
    >>> cell.get_bounds()
    Bounds(min_x=10.0, min_y=10.0, max_x=110.0, max_y=60.0)

Pointer Gestures Example:
    >>> from gridmark import EditMode, InteractionController
    >>> controller = InteractionController(session, mode=EditMode.MOVE, debug=True)
    >>> controller.press(105, 30)
    >>> controller.move(108, 30)
    >>> controller.release(108, 30)
    >>> print(controller.get_trace().summary())
"""

from .borders import BorderConflict, find_all_conflicting_borders, find_conflicting_shared_borders
from .config import EditorSettings
from .empty_cells import EmptyRegion, detect_empty_cells
from .geometry import polygon_intersection, rectangle_intersection
from .history import History, HistoryMode
from .interaction import (
    CreateInteraction,
    DragInteraction,
    EditMode,
    InteractionController,
    ResizeInteraction,
    ViewTransform,
)
from .keyboard import ArrowKey, ArrowKeyMover
from .models import (
    MIN_CELL_SIZE,
    Annotation,
    AnnotationError,
    Bounds,
    Cell,
    CellLines,
    CellSpan,
    Corner,
    Edge,
    ImageSize,
    Point,
    TableCoords,
)
from .overlap import CellOverlap, OverlapCycler, OverlapGroup, find_overlap_group, find_overlapping_cells
from .session import EditingSession
from .snapping import (
    CornerSnapResult,
    EdgeSnapResult,
    SnapResult,
    calculate_corner_snap,
    calculate_resize_edge_snap,
    calculate_snap,
    detect_nearest_edge,
)
from .tracer import GestureRecord, GestureTrace, TraceEvent

__version__ = "0.1.0"

__all__ = [
    # Main API
    "EditingSession",
    "EditorSettings",
    # Data model
    "Annotation",
    "AnnotationError",
    "Bounds",
    "Cell",
    "CellLines",
    "CellSpan",
    "Corner",
    "Edge",
    "ImageSize",
    "MIN_CELL_SIZE",
    "Point",
    "TableCoords",
    # Geometry
    "polygon_intersection",
    "rectangle_intersection",
    # Snapping
    "SnapResult",
    "CornerSnapResult",
    "EdgeSnapResult",
    "calculate_snap",
    "calculate_corner_snap",
    "calculate_resize_edge_snap",
    "detect_nearest_edge",
    # Detectors
    "CellOverlap",
    "OverlapGroup",
    "OverlapCycler",
    "find_overlapping_cells",
    "find_overlap_group",
    "BorderConflict",
    "find_conflicting_shared_borders",
    "find_all_conflicting_borders",
    "EmptyRegion",
    "detect_empty_cells",
    # History
    "History",
    "HistoryMode",
    # Interaction
    "InteractionController",
    "EditMode",
    "ViewTransform",
    "CreateInteraction",
    "DragInteraction",
    "ResizeInteraction",
    "ArrowKey",
    "ArrowKeyMover",
    # Debug/Tracing (for development and debugging)
    "GestureTrace",
    "GestureRecord",
    "TraceEvent",
]
