"""
Editing session: the host-facing API of the annotation engine.

An EditingSession exclusively owns the live Annotation of one document, its
undo/redo History, the current selection and the overlap-group cycler. Every
mutation goes through this class. Mutations replace the live Annotation with
a new value; with ``record=True`` (the default) they also commit a history
snapshot.

Gestures update the Annotation live with ``record=False`` on every pointer
move, then call ``checkpoint()`` once on release, or ``discard_uncommitted()``
when aborted, so a gesture produces one undo step and an aborted gesture
leaves no trace.

Example:
    >>> session = EditingSession()
    >>> cell = session.create_cell(
    ...     {"points": [(10, 10), (110, 10), (110, 60), (10, 60)]}
    ... )
    >>> session.move_cell(cell.id, 5, 0)
    >>> session.undo()
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .borders import BorderConflict, find_all_conflicting_borders
from .config import EditorSettings
from .empty_cells import EmptyRegion, detect_empty_cells
from .history import MAX_HISTORY_SIZE, History
from .models import (
    MIN_CELL_SIZE,
    Annotation,
    AnnotationError,
    Bounds,
    Cell,
    Edge,
    ImageSize,
    _parse_points,
    is_axis_aligned_rectangle,
)
from .overlap import CellOverlap, OverlapCycler, OverlapGroup, find_overlapping_cells

log = logging.getLogger(__name__)

CellInput = Union[Cell, Mapping[str, Any]]


class EditingSession:
    """
    In-memory editing state for one document.

    Attributes:
        settings: Current EditorSettings.
        history: Undo/redo History of Annotation snapshots.
        image_size: Raster size of the document image, if known.
    """

    def __init__(
        self,
        settings: Optional[EditorSettings] = None,
        annotation: Optional[Annotation] = None,
        max_history: int = MAX_HISTORY_SIZE,
        image_size: Optional[ImageSize] = None,
    ):
        self.settings = settings or EditorSettings()
        self.history = History(max_history)
        self.image_size = image_size
        self._annotation = annotation or Annotation()
        self._geometry_version = 0
        self._next_id = 1
        self._selected_cell_id: Optional[str] = None
        self._selected_cell_ids: List[str] = []
        self._cycler = OverlapCycler()
        self.history.reset(self._annotation)

    # ------------------------------------------------------------------
    # Query surface
    # ------------------------------------------------------------------

    @property
    def annotation(self) -> Annotation:
        return self._annotation

    @property
    def cells(self) -> Tuple[Cell, ...]:
        """Read-only ordered view of the current cells."""
        return self._annotation.cells

    @property
    def geometry_version(self) -> int:
        """Counter bumped on every change to cell geometry or membership."""
        return self._geometry_version

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    @property
    def has_uncommitted_changes(self) -> bool:
        return self._annotation != self.history.current

    def get_cell_by_id(self, cell_id: str) -> Optional[Cell]:
        return self._annotation.get_cell_by_id(cell_id)

    def to_data(self) -> Dict[str, Any]:
        """Serializable snapshot for the interchange codecs."""
        return self._annotation.to_data()

    # ------------------------------------------------------------------
    # Load / settings
    # ------------------------------------------------------------------

    def load_annotation(self, data: Union[Annotation, Mapping[str, Any]]) -> Annotation:
        """
        Replace the current Annotation and reset history and selection.

        Raises:
            AnnotationError: If ``data`` is malformed; the session is unchanged.
        """
        if isinstance(data, Annotation):
            data = data.to_data()
        try:
            annotation = Annotation.from_data(data)
        except AnnotationError as exc:
            log.warning("Rejected annotation document: %s", exc)
            raise

        self._annotation = annotation
        self.history.reset(annotation)
        self._geometry_version += 1
        self.clear_selection()
        log.debug(
            "Loaded annotation %r with %d cells", annotation.filename, len(annotation.cells)
        )
        return annotation

    def update_settings(self, settings: EditorSettings) -> None:
        self.settings = settings

    def snap_threshold(self, scale: float = 1.0) -> Optional[float]:
        """
        Snap threshold in document pixels for a given display scale.

        Returns:
            The threshold, or None if snapping is disabled.
        """
        if not self.settings.snap_enabled:
            return None
        return self.settings.snap_threshold / scale

    # ------------------------------------------------------------------
    # Commit path
    # ------------------------------------------------------------------

    def _apply(self, annotation: Annotation, record: bool) -> Annotation:
        if annotation.geometry() != self._annotation.geometry():
            self._geometry_version += 1
        self._annotation = annotation
        if record:
            self.history.commit(annotation)
        return annotation

    def _update_cell(
        self, cell_id: str, updater: Callable[[Cell], Optional[Cell]], record: bool
    ) -> Annotation:
        cell = self.get_cell_by_id(cell_id)
        if cell is None:
            log.debug("Ignoring update of unknown cell %r", cell_id)
            return self._annotation
        updated = updater(cell)
        if updated is None or updated == cell:
            return self._annotation
        return self._apply(self._annotation.with_cell(updated), record)

    def checkpoint(self) -> bool:
        """
        Commit the live Annotation if it differs from the last snapshot.

        Returns:
            True if a history entry was added.
        """
        if not self.has_uncommitted_changes:
            return False
        return self.history.commit(self._annotation)

    def discard_uncommitted(self) -> Annotation:
        """Restore the last snapshot, dropping unrecorded live changes."""
        current = self.history.current
        if current is not None and current != self._annotation:
            self._apply(current, record=False)
        return self._annotation

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def next_cell_id(self) -> str:
        """Allocate an id that no current or previously generated cell has."""
        existing = set(self._annotation.cell_ids())
        while True:
            candidate = f"cell-new-{self._next_id}"
            self._next_id += 1
            if candidate not in existing:
                return candidate

    def create_cell(self, cell_data: CellInput, record: bool = True) -> Optional[Cell]:
        """
        Add a cell.

        A missing or already-used id is replaced with a fresh one. Cells
        smaller than the minimum size are discarded.

        Args:
            cell_data: A Cell, or a mapping in the interchange format.
            record: Whether to commit a history snapshot.

        Returns:
            The created Cell, or None if it was discarded.

        Raises:
            AnnotationError: If the mapping's geometry is malformed.
        """
        if isinstance(cell_data, Cell):
            cell = cell_data
        else:
            cell = Cell.from_data(cell_data)

        if not cell.get_bounds().is_at_least(MIN_CELL_SIZE):
            log.debug("Discarding cell smaller than %s px", MIN_CELL_SIZE)
            return None
        if not cell.id or self.get_cell_by_id(cell.id) is not None:
            cell = replace(cell, id=self.next_cell_id())

        self._apply(self._annotation.add_cell(cell), record)
        return cell

    def move_cell(
        self, cell_id: str, delta_x: float, delta_y: float, record: bool = True
    ) -> Annotation:
        return self._update_cell(cell_id, lambda c: c.move(delta_x, delta_y), record)

    def move_selected(
        self, delta_x: float, delta_y: float, record: bool = True
    ) -> Annotation:
        """Move every selected cell by the same delta (keyboard nudging)."""
        selected = set(self._selected_cell_ids)
        if self._selected_cell_id is not None:
            selected.add(self._selected_cell_id)
        if not selected:
            return self._annotation
        cells = [
            c.move(delta_x, delta_y) if c.id in selected else c
            for c in self._annotation.cells
        ]
        return self._apply_if_changed(cells, record)

    def update_cell_lines(
        self, cell_id: str, lines: Mapping[str, Any], record: bool = True
    ) -> Annotation:
        """Override some of a cell's border flags, e.g. ``{"top": 0}``."""
        return self._update_cell(cell_id, lambda c: c.with_lines(lines), record)

    def update_cell_points(
        self, cell_id: str, points: Sequence[Any], record: bool = True
    ) -> Annotation:
        """
        Replace a cell's corner points.

        Unknown ids, unparseable points, and points that do not form an
        axis-aligned rectangle of at least the minimum size are rejected and
        the state is left unchanged.
        """
        if self.get_cell_by_id(cell_id) is None:
            log.debug("Ignoring point update of unknown cell %r", cell_id)
            return self._annotation
        try:
            parsed = _parse_points(points, f"cell {cell_id!r}")
        except (AnnotationError, TypeError) as exc:
            log.debug("Rejecting points for cell %r: %s", cell_id, exc)
            return self._annotation
        if not is_axis_aligned_rectangle(parsed):
            log.debug("Rejecting non-rectangular points for cell %r", cell_id)
            return self._annotation
        if not Bounds.from_points(parsed).is_at_least(MIN_CELL_SIZE):
            log.debug("Rejecting undersized points for cell %r", cell_id)
            return self._annotation
        return self._update_cell(cell_id, lambda c: c.with_points(parsed), record)

    def set_cell_edge(
        self, cell_id: str, edge: Union[Edge, str], value: float, record: bool = True
    ) -> Annotation:
        """Move one edge of a cell to a coordinate (direct coordinate editing)."""
        edge = Edge(edge)

        def updater(cell: Cell) -> Optional[Cell]:
            updated = cell.set_edge_position(edge, value)
            if not updated.get_bounds().is_at_least(MIN_CELL_SIZE):
                log.debug("Rejecting edge move that shrinks cell %r", cell_id)
                return None
            return updated

        return self._update_cell(cell_id, updater, record)

    def remove_cell(self, cell_id: str, record: bool = True) -> Annotation:
        if self.get_cell_by_id(cell_id) is None:
            log.debug("Ignoring removal of unknown cell %r", cell_id)
            return self._annotation
        if cell_id == self._selected_cell_id:
            self._selected_cell_id = None
        if cell_id in self._selected_cell_ids:
            self._selected_cell_ids.remove(cell_id)
        return self._apply(self._annotation.remove_cell(cell_id), record)

    def remove_selected(self, record: bool = True) -> Annotation:
        """Remove every selected cell as a single undo step."""
        doomed = set(self._selected_cell_ids)
        if self._selected_cell_id is not None:
            doomed.add(self._selected_cell_id)
        if not doomed:
            return self._annotation
        self.clear_selection()
        remaining = [c for c in self._annotation.cells if c.id not in doomed]
        return self._apply(self._annotation.with_cells(remaining), record)

    def update_all_cells_color(self, color: str, record: bool = True) -> Annotation:
        cells = [replace(cell, color=color) for cell in self._annotation.cells]
        return self._apply_if_changed(cells, record)

    def update_all_cells_opacity(self, opacity: float, record: bool = True) -> Annotation:
        opacity = min(1.0, max(0.0, float(opacity)))
        cells = [replace(cell, opacity=opacity) for cell in self._annotation.cells]
        return self._apply_if_changed(cells, record)

    def _apply_if_changed(self, cells: Iterable[Cell], record: bool) -> Annotation:
        updated = self._annotation.with_cells(cells)
        if updated == self._annotation:
            return self._annotation
        return self._apply(updated, record)

    def resize_linked(
        self,
        primary_id: str,
        delta_width: float,
        delta_height: float,
        initial_cells: Mapping[str, Cell],
        record: bool = False,
    ) -> Annotation:
        """
        Apply a width/height change to co-selected cells.

        Each cell in ``initial_cells`` other than the primary one is resized
        from its initial geometry by the same width and height delta, keeping
        its own top-left corner. Cells that would fall below the minimum size
        keep their current geometry.
        """
        cells = []
        for cell in self._annotation.cells:
            initial = initial_cells.get(cell.id)
            if cell.id == primary_id or initial is None:
                cells.append(cell)
                continue
            bounds = initial.get_bounds()
            resized = Bounds(
                bounds.min_x,
                bounds.min_y,
                bounds.max_x + delta_width,
                bounds.max_y + delta_height,
            )
            if resized.is_at_least(MIN_CELL_SIZE):
                cells.append(cell.with_points(resized.to_points()))
            else:
                cells.append(cell)
        return self._apply_if_changed(cells, record)

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------

    def undo(self) -> Annotation:
        """Restore the previous snapshot; a no-op at the origin."""
        if not self.history.can_undo:
            return self._annotation
        with self.history.replaying():
            self._apply(self.history.undo(), record=True)
        self._prune_selection()
        return self._annotation

    def redo(self) -> Annotation:
        """Restore the next snapshot; a no-op at the newest entry."""
        if not self.history.can_redo:
            return self._annotation
        with self.history.replaying():
            self._apply(self.history.redo(), record=True)
        self._prune_selection()
        return self._annotation

    # ------------------------------------------------------------------
    # Selection and overlap cycling
    # ------------------------------------------------------------------

    @property
    def selected_cell_id(self) -> Optional[str]:
        return self._selected_cell_id

    @property
    def selected_cell_ids(self) -> Tuple[str, ...]:
        return tuple(self._selected_cell_ids)

    def select(self, cell_id: Optional[str], additive: bool = False) -> None:
        """
        Select a cell.

        With ``additive`` the cell is toggled in the multi-selection and
        becomes the primary selection; otherwise it replaces the selection.
        """
        if cell_id is not None and self.get_cell_by_id(cell_id) is None:
            log.debug("Ignoring selection of unknown cell %r", cell_id)
            return
        if cell_id is None:
            self.clear_selection()
            return
        if not additive:
            self._selected_cell_ids = [cell_id]
            self._selected_cell_id = cell_id
        elif cell_id in self._selected_cell_ids:
            self._selected_cell_ids.remove(cell_id)
            if self._selected_cell_id == cell_id:
                self._selected_cell_id = (
                    self._selected_cell_ids[-1] if self._selected_cell_ids else None
                )
        else:
            self._selected_cell_ids.append(cell_id)
            self._selected_cell_id = cell_id

    def clear_selection(self) -> None:
        self._selected_cell_id = None
        self._selected_cell_ids = []

    def _prune_selection(self) -> None:
        existing = set(self._annotation.cell_ids())
        if self._selected_cell_id not in existing:
            self._selected_cell_id = None
        self._selected_cell_ids = [i for i in self._selected_cell_ids if i in existing]

    def overlap_group(self) -> Optional[OverlapGroup]:
        """Overlap group of the selected cell (cached, see OverlapCycler)."""
        if self._selected_cell_id is None:
            return None
        return self._cycler.group_for(
            self.cells, self._selected_cell_id, self._geometry_version
        )

    def cycle_overlap(self, direction: int = 1) -> Optional[str]:
        """
        Select the next (or previous) cell of the selected cell's overlap group.

        Returns:
            The newly selected id, or None if nothing is selected.
        """
        next_id = self._cycler.step(
            self.cells, self._selected_cell_id, self._geometry_version, direction
        )
        if next_id is not None and next_id != self._selected_cell_id:
            self._selected_cell_id = next_id
            self._selected_cell_ids = [next_id]
        return next_id

    # ------------------------------------------------------------------
    # Advisory detectors
    # ------------------------------------------------------------------

    def overlaps(self) -> List[CellOverlap]:
        return find_overlapping_cells(self.cells)

    def border_conflicts(self) -> List[BorderConflict]:
        return find_all_conflicting_borders(self.cells)

    def empty_regions(self) -> List[EmptyRegion]:
        return detect_empty_cells(self.cells)

