"""
Pointer-driven gesture state machines.

Three machines turn a press/move/release pointer stream into session
mutations:

- CreateInteraction draws a new cell between an anchor and the pointer.
- DragInteraction moves a cell, snapping the edge nearest the press point.
- ResizeInteraction drags one corner of a cell, optionally resizing the
  other selected cells by the same width/height change.

Each machine snapshots the ViewTransform at press time and converts every
later pointer position through that snapshot, so a zoom or pan that happens
mid-gesture cannot make the cell jump. Moves during a gesture are applied to
the session live without recording history; release records one history
entry and cancel restores the last recorded state.

InteractionController keeps the machines mutually exclusive: only the
machine of the current EditMode receives events, and switching modes cancels
a gesture in progress.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .models import MIN_CELL_SIZE, Bounds, Cell, CellLines, Corner, Edge, Point
from .session import EditingSession
from .snapping import (
    SnapResult,
    calculate_corner_snap,
    calculate_resize_edge_snap,
    calculate_snap,
    detect_nearest_edge,
)
from .tracer import GestureTrace

log = logging.getLogger(__name__)

# Divergence between the commanded and actual cell position that triggers a
# resynchronization during a drag.
DRIFT_TOLERANCE = 0.1
# Incremental moves smaller than this on both axes are skipped.
MICRO_MOVE = 0.001


@dataclass(frozen=True)
class ViewTransform:
    """
    Mapping from surface (screen) coordinates to document-image coordinates.

    Attributes:
        scale: Display scale of the document image.
        offset_x: Horizontal pan offset in surface pixels.
        offset_y: Vertical pan offset in surface pixels.
    """

    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def __post_init__(self):
        if not self.scale > 0:
            raise ValueError(f"scale must be positive, got {self.scale!r}")

    def to_document(self, x: float, y: float) -> Point:
        return Point((x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale)


class EditMode(Enum):
    """Which gesture machine receives pointer events."""

    CREATE = "create"
    MOVE = "move"
    RESIZE = "resize"


class GestureState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DRAGGING_CORNER = "dragging-corner"


class _Gesture:
    """Shared press-time bookkeeping for the gesture machines."""

    mode: EditMode

    def __init__(self, session: EditingSession, trace: Optional[GestureTrace] = None):
        self.session = session
        self.trace = trace
        self.state = GestureState.IDLE
        self.view: Optional[ViewTransform] = None

    @property
    def is_active(self) -> bool:
        return self.state is not GestureState.IDLE

    def _begin(self, view: ViewTransform, state: GestureState, cell_id=None) -> None:
        self.view = view
        self.state = state
        if self.trace is not None:
            self.trace.start_gesture(self.mode.value, cell_id)

    def _to_document(self, x: float, y: float) -> Point:
        return self.view.to_document(x, y)

    def _record(self, kind: str, point: Point, **detail) -> None:
        if self.trace is not None:
            self.trace.add_event(kind, point.x, point.y, **detail)

    def _finish(self, outcome: str) -> None:
        if self.trace is not None:
            self.trace.end_gesture(outcome)
        self.state = GestureState.IDLE
        self.view = None

    def _snap_threshold(self) -> Optional[float]:
        return self.session.snap_threshold(self.view.scale)


class CreateInteraction(_Gesture):
    """
    Draw a new cell by dragging from one corner to the opposite one.

    Attributes:
        anchor: Press point in document coordinates.
        preview: Rectangle the cell would have if released now.
    """

    mode = EditMode.CREATE

    def __init__(self, session: EditingSession, trace: Optional[GestureTrace] = None):
        super().__init__(session, trace)
        self.anchor: Optional[Point] = None
        self.preview: Optional[Bounds] = None

    def press(self, x: float, y: float, view: ViewTransform) -> bool:
        """Start drawing; presses outside the document image are ignored."""
        point = view.to_document(x, y)
        image_size = self.session.image_size
        if image_size is not None and not image_size.contains(point):
            log.debug("Ignoring create press outside the image at %s", point)
            return False
        self._begin(view, GestureState.DRAGGING)
        self.anchor = point
        self.preview = None
        self._record("press", point)
        return True

    def move(self, x: float, y: float) -> Optional[Bounds]:
        """Update and return the preview rectangle."""
        if not self.is_active:
            return None
        pointer = self._to_document(x, y)
        bounds = Bounds.spanning(self.anchor, pointer)

        threshold = self._snap_threshold()
        if threshold is not None and bounds.width > MIN_CELL_SIZE and bounds.height > MIN_CELL_SIZE:
            corner = Corner.toward(self.anchor, pointer)
            snap = calculate_resize_edge_snap(
                corner, pointer, "", self.session.cells, threshold
            )
            if snap.snapped:
                pointer = Point(snap.snapped_x, snap.snapped_y)
                bounds = Bounds.spanning(self.anchor, pointer)
                self._record("snap", pointer, cell=snap.matched_cell_id)

        self.preview = bounds
        self._record("move", pointer)
        return bounds

    def release(self, x: float, y: float) -> Optional[Cell]:
        """
        Finish drawing.

        Returns:
            The created cell, or None if the rectangle was too small.
        """
        if not self.is_active:
            return None
        self.move(x, y)
        preview = self.preview
        created = None
        if (
            preview is not None
            and preview.width > MIN_CELL_SIZE
            and preview.height > MIN_CELL_SIZE
        ):
            created = self.session.create_cell(
                Cell.from_bounds("", preview, lines=CellLines(True, True, True, True))
            )
        self._record("release", self._to_document(x, y))
        self._finish("committed" if created is not None else "discarded")
        self.anchor = None
        self.preview = None
        return created

    def cancel(self) -> None:
        if not self.is_active:
            return
        self._finish("cancelled")
        self.anchor = None
        self.preview = None


class DragInteraction(_Gesture):
    """
    Move a cell with the pointer.

    Deltas are applied incrementally relative to the last commanded
    position. If the cell's actual position diverges from it (another writer
    moved the cell), the next delta is computed from the actual position.

    Only the cell edge nearest the press point is eligible for snapping.
    The snap is previewed while dragging and applied as one corrective move
    on release.

    Attributes:
        cell_id: Cell being dragged.
        nearest_edge: Edge eligible for snapping.
        snap_preview: Active snap, if any.
    """

    mode = EditMode.MOVE

    def __init__(self, session: EditingSession, trace: Optional[GestureTrace] = None):
        super().__init__(session, trace)
        self.cell_id: Optional[str] = None
        self.nearest_edge: Optional[Edge] = None
        self.snap_preview: Optional[SnapResult] = None
        self._start: Optional[Point] = None
        self._origin: Optional[Point] = None
        self._last_target: Optional[Point] = None

    def press(
        self, x: float, y: float, view: ViewTransform, cell_id: Optional[str] = None
    ) -> bool:
        """
        Start dragging ``cell_id``, or the topmost cell under the pointer.

        Returns:
            False if there is no cell to drag.
        """
        point = view.to_document(x, y)
        cell = (
            self.session.get_cell_by_id(cell_id)
            if cell_id is not None
            else _cell_at(self.session, point)
        )
        if cell is None:
            return False

        self._begin(view, GestureState.DRAGGING, cell.id)
        self.cell_id = cell.id
        self.nearest_edge = detect_nearest_edge(cell, point)
        self.snap_preview = None
        self._start = point
        self._origin = cell.points[0]
        self._last_target = cell.points[0]
        self._record("press", point, edge=self.nearest_edge.value)
        return True

    def move(self, x: float, y: float) -> Optional[SnapResult]:
        """Move the cell to follow the pointer and refresh the snap preview."""
        if not self.is_active:
            return None
        cell = self.session.get_cell_by_id(self.cell_id)
        if cell is None:
            self.cancel()
            return None

        pointer = self._to_document(x, y)
        target = Point(
            self._origin.x + pointer.x - self._start.x,
            self._origin.y + pointer.y - self._start.y,
        )
        actual = cell.points[0]
        reference = self._last_target
        if (
            abs(actual.x - reference.x) > DRIFT_TOLERANCE
            or abs(actual.y - reference.y) > DRIFT_TOLERANCE
        ):
            log.debug("Cell %s drifted from %s to %s; resyncing", cell.id, reference, actual)
            reference = actual

        delta_x = target.x - reference.x
        delta_y = target.y - reference.y
        if abs(delta_x) >= MICRO_MOVE or abs(delta_y) >= MICRO_MOVE:
            self.session.move_cell(self.cell_id, delta_x, delta_y, record=False)
        self._last_target = target
        self._record("move", pointer)

        self.snap_preview = self._preview_snap()
        return self.snap_preview

    def _preview_snap(self) -> Optional[SnapResult]:
        threshold = self._snap_threshold()
        if threshold is None:
            return None
        cell = self.session.get_cell_by_id(self.cell_id)
        result = calculate_snap(
            cell, self.session.cells, 0, 0, threshold, target_edge=self.nearest_edge
        )
        if not result.snapped:
            return None
        self._record(
            "snap",
            Point(result.delta_x, result.delta_y),
            cells=",".join(result.matched_cell_ids),
        )
        return result

    def release(self, x: float, y: float) -> Optional[Cell]:
        """
        Finish the drag, applying the previewed snap.

        Returns:
            The cell in its final position.
        """
        if not self.is_active:
            return None
        self.move(x, y)
        if not self.is_active:
            return None

        snap = self.snap_preview
        if snap is not None and (snap.delta_x or snap.delta_y):
            self.session.move_cell(self.cell_id, snap.delta_x, snap.delta_y, record=False)
        committed = self.session.checkpoint()
        cell = self.session.get_cell_by_id(self.cell_id)

        self._record("release", self._to_document(x, y))
        self._finish("committed" if committed else "discarded")
        self._clear()
        return cell

    def cancel(self) -> None:
        """Abort the drag and restore the last recorded state."""
        if not self.is_active:
            return
        self.session.discard_uncommitted()
        self._finish("cancelled")
        self._clear()

    def _clear(self) -> None:
        self.cell_id = None
        self.nearest_edge = None
        self.snap_preview = None
        self._start = None
        self._origin = None
        self._last_target = None


class ResizeInteraction(_Gesture):
    """
    Resize a cell by dragging one of its corners.

    The dragged position snaps to other cells' edges first and falls back to
    their corners. Results below the minimum cell size are rejected and the
    previous geometry is kept. With ``linked`` set, the other selected cells
    receive the same width/height change as the dragged cell.

    Attributes:
        cell_id: Cell being resized.
        corner: Index (0-3) of the dragged corner.
        linked: Whether co-selected cells follow the resize.
    """

    mode = EditMode.RESIZE

    def __init__(
        self,
        session: EditingSession,
        trace: Optional[GestureTrace] = None,
        linked: bool = False,
    ):
        super().__init__(session, trace)
        self.linked = linked
        self.cell_id: Optional[str] = None
        self.corner: Optional[Corner] = None
        self._initial: Optional[Cell] = None
        self._linked_cells: Dict[str, Cell] = {}

    def press(
        self,
        x: float,
        y: float,
        view: ViewTransform,
        cell_id: Optional[str] = None,
        corner: Optional[int] = None,
    ) -> bool:
        """
        Start resizing.

        Args:
            x, y: Pointer position in surface coordinates.
            view: View transform to use for the whole gesture.
            cell_id: Cell to resize; defaults to the topmost cell under the
                     pointer.
            corner: Corner to drag; defaults to the corner nearest the
                    pointer.

        Raises:
            ValueError: If corner is not a valid corner index.
        """
        point = view.to_document(x, y)
        cell = (
            self.session.get_cell_by_id(cell_id)
            if cell_id is not None
            else _cell_at(self.session, point)
        )
        if cell is None:
            return False
        if corner is None:
            corner = min(
                Corner,
                key=lambda c: math.hypot(
                    cell.points[c].x - point.x, cell.points[c].y - point.y
                ),
            )

        self.corner = Corner(corner)
        self._begin(view, GestureState.DRAGGING_CORNER, cell.id)
        self.cell_id = cell.id
        self._initial = cell
        self._linked_cells = {}
        if self.linked:
            for selected_id in self.session.selected_cell_ids:
                selected = self.session.get_cell_by_id(selected_id)
                if selected_id != cell.id and selected is not None:
                    self._linked_cells[selected_id] = selected
        self._record("press", point, corner=int(self.corner))
        return True

    def move(self, x: float, y: float) -> Optional[Cell]:
        """
        Drag the corner to the pointer.

        Returns:
            The resized cell, or None if the resize was rejected.
        """
        if not self.is_active:
            return None
        if self.session.get_cell_by_id(self.cell_id) is None:
            self.cancel()
            return None

        pointer = self._to_document(x, y)
        proposed = self._snapped_corner(pointer)
        resized = self._initial.resize_corner(self.corner, proposed.x, proposed.y)
        self._record("move", proposed)
        if not resized.get_bounds().is_at_least(MIN_CELL_SIZE):
            log.debug("Rejecting resize of %s below %s px", self.cell_id, MIN_CELL_SIZE)
            return None

        self.session.update_cell_points(self.cell_id, resized.points, record=False)
        if self._linked_cells:
            initial_bounds = self._initial.get_bounds()
            bounds = resized.get_bounds()
            self.session.resize_linked(
                self.cell_id,
                bounds.width - initial_bounds.width,
                bounds.height - initial_bounds.height,
                self._linked_cells,
                record=False,
            )
        return resized

    def _snapped_corner(self, pointer: Point) -> Point:
        threshold = self._snap_threshold()
        if threshold is None:
            return pointer
        others = [c for c in self.session.cells if c.id not in self._linked_cells]

        edge_snap = calculate_resize_edge_snap(
            self.corner, pointer, self.cell_id, others, threshold
        )
        if edge_snap.snapped:
            snapped = Point(edge_snap.snapped_x, edge_snap.snapped_y)
            self._record("snap", snapped, snap_kind="edge", cell=edge_snap.matched_cell_id)
            return snapped

        corner_snap = calculate_corner_snap(pointer, self.cell_id, others, threshold)
        if corner_snap.snapped:
            snapped = Point(corner_snap.snapped_x, corner_snap.snapped_y)
            self._record("snap", snapped, snap_kind="corner", cell=corner_snap.matched_cell_id)
            return snapped
        return pointer

    def release(self, x: float, y: float) -> Optional[Cell]:
        """Finish the resize and record it as one history entry."""
        if not self.is_active:
            return None
        self.move(x, y)
        if not self.is_active:
            return None
        committed = self.session.checkpoint()
        cell = self.session.get_cell_by_id(self.cell_id)
        self._record("release", self._to_document(x, y))
        self._finish("committed" if committed else "discarded")
        self._clear()
        return cell

    def cancel(self) -> None:
        """Abort the resize and restore the last recorded state."""
        if not self.is_active:
            return
        self.session.discard_uncommitted()
        self._finish("cancelled")
        self._clear()

    def _clear(self) -> None:
        self.cell_id = None
        self.corner = None
        self._initial = None
        self._linked_cells = {}


def _cell_at(session: EditingSession, point: Point) -> Optional[Cell]:
    """Topmost (last drawn) cell containing ``point``."""
    for cell in reversed(session.cells):
        bounds = cell.get_bounds()
        if bounds.min_x <= point.x <= bounds.max_x and bounds.min_y <= point.y <= bounds.max_y:
            return cell
    return None


class InteractionController:
    """
    Routes pointer events to the gesture machine of the current mode.

    The host feeds surface coordinates and keeps ``view`` up to date; each
    gesture uses the view captured at its press.

    Usage:
        >>> controller = InteractionController(session, mode=EditMode.CREATE)
        >>> controller.press(10, 10)
        >>> controller.move(110, 60)
        >>> cell = controller.release(110, 60)

    Attributes:
        session: The EditingSession being edited.
        view: Current view transform.
        debug: Whether gestures are traced.
    """

    def __init__(
        self,
        session: EditingSession,
        mode: EditMode = EditMode.MOVE,
        debug: bool = False,
        linked_resize: bool = False,
    ):
        self.session = session
        self.view = ViewTransform()
        self.debug = debug
        self._trace: Optional[GestureTrace] = GestureTrace() if debug else None
        self._mode = EditMode(mode)
        self._machines = {
            EditMode.CREATE: CreateInteraction(session, self._trace),
            EditMode.MOVE: DragInteraction(session, self._trace),
            EditMode.RESIZE: ResizeInteraction(session, self._trace, linked_resize),
        }

    @property
    def mode(self) -> EditMode:
        return self._mode

    @property
    def active(self):
        """The machine of the current mode."""
        return self._machines[self._mode]

    @property
    def is_active(self) -> bool:
        return self.active.is_active

    def set_mode(self, mode: EditMode) -> None:
        """Switch modes, cancelling any gesture in progress."""
        mode = EditMode(mode)
        if mode is self._mode:
            return
        self.cancel()
        self._mode = mode

    def set_view(self, scale: float, offset_x: float = 0.0, offset_y: float = 0.0) -> None:
        """Update the view; gestures already in progress keep their snapshot."""
        self.view = ViewTransform(scale, offset_x, offset_y)

    def press(
        self,
        x: float,
        y: float,
        cell_id: Optional[str] = None,
        corner: Optional[int] = None,
    ) -> bool:
        """
        Start a gesture in the current mode.

        Pressing on a cell in move or resize mode also selects it, unless it
        is already part of the selection.

        Returns:
            True if a gesture started.
        """
        self.cancel()
        machine = self.active
        if self._mode is EditMode.CREATE:
            return machine.press(x, y, self.view)
        if self._mode is EditMode.MOVE:
            started = machine.press(x, y, self.view, cell_id)
        else:
            started = machine.press(x, y, self.view, cell_id, corner)
        if started and machine.cell_id not in self.session.selected_cell_ids:
            self.session.select(machine.cell_id)
        return started

    def move(self, x: float, y: float):
        return self.active.move(x, y)

    def release(self, x: float, y: float):
        return self.active.release(x, y)

    def leave(self) -> None:
        """Pointer left the surface: abort without committing."""
        self.cancel()

    def cancel(self) -> None:
        self.active.cancel()

    def get_trace(self) -> Optional[GestureTrace]:
        """Trace of all gestures so far, or None unless debug is enabled."""
        return self._trace
