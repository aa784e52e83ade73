"""Integration tests for complete editing sessions.

These tests drive a session the way a host application does: load a
document, edit it through pointer gestures and keyboard nudges, inspect the
advisory detectors, undo and redo, and export the result.
"""

import pytest

from gridmark import (
    Annotation,
    ArrowKeyMover,
    Bounds,
    EditingSession,
    EditMode,
    EditorSettings,
    ImageSize,
    InteractionController,
)


@pytest.fixture
def table_document():
    """Three-column table row with one column missing in the second row."""
    def cell(cell_id, min_x, min_y, max_x, max_y, row, col):
        return {
            "id": cell_id,
            "points": [
                {"x": min_x, "y": min_y},
                {"x": max_x, "y": min_y},
                {"x": max_x, "y": max_y},
                {"x": min_x, "y": max_y},
            ],
            "lines": {"top": 1, "bottom": 1, "left": 1, "right": 1},
            "startRow": row,
            "endRow": row,
            "startCol": col,
            "endCol": col,
        }

    return {
        "filename": "invoice.png",
        "tableCoords": {"points": [{"x": 0, "y": 0}, {"x": 300, "y": 100}]},
        "cells": [
            cell("r0c0", 0, 0, 100, 50, 0, 0),
            cell("r0c1", 100, 0, 200, 50, 0, 1),
            cell("r0c2", 200, 0, 300, 50, 0, 2),
            cell("r1c0", 0, 50, 100, 100, 1, 0),
            cell("r1c1", 100, 50, 200, 100, 1, 1),
        ],
    }


@pytest.fixture
def editor(table_document):
    session = EditingSession(image_size=ImageSize(400, 200))
    session.load_annotation(table_document)
    return session


class TestFillMissingCell:
    """Find a hole in the grid and draw the missing cell."""

    def test_detect_then_create(self, editor):
        """Test the hole is found, drawn roughly, snapped, and disappears."""
        regions = editor.empty_regions()
        assert len(regions) == 1
        hole = regions[0].get_bounds()
        assert 200 <= hole.min_x <= 203 and 50 <= hole.min_y <= 53

        controller = InteractionController(editor, mode=EditMode.CREATE)
        controller.press(202, 52)
        controller.move(298, 98)
        cell = controller.release(298, 98)

        assert cell is not None
        assert cell.get_bounds().max_x == 300
        assert cell.get_bounds().max_y == 100
        assert editor.empty_regions() == []
        assert len(editor.cells) == 6

        editor.undo()
        assert len(editor.cells) == 5
        editor.redo()
        assert len(editor.cells) == 6


class TestFixMisalignedCell:
    """Drag a misplaced cell back into the grid."""

    def test_drag_snaps_back(self, editor):
        """Test a cell nudged off the grid snaps flush again when dragged."""
        editor.move_cell("r1c1", -3, 0)
        assert editor.overlaps()

        controller = InteractionController(editor, mode=EditMode.MOVE)
        controller.press(98, 75)
        controller.move(99, 75)
        controller.release(99, 75)

        assert editor.get_cell_by_id("r1c1").get_bounds() == Bounds(100, 50, 200, 100)
        assert editor.overlaps() == []


class TestBorderConflicts:
    """Hide a border on one side only and find the conflict."""

    def test_conflict_lifecycle(self, editor):
        """Test a one-sided hidden border is reported until fixed."""
        assert editor.border_conflicts() == []
        editor.update_cell_lines("r0c0", {"right": 0})
        conflicts = editor.border_conflicts()
        assert len(conflicts) == 1
        assert {conflicts[0].cell1_id, conflicts[0].cell2_id} == {"r0c0", "r0c1"}

        editor.update_cell_lines("r0c1", {"left": 0})
        assert editor.border_conflicts() == []


class TestOverlapCycling:
    """Stack cells and cycle through them."""

    def test_cycle_after_stacking(self, editor):
        """Test a duplicated cell joins the overlap group of the original."""
        duplicate = editor.create_cell(editor.get_cell_by_id("r0c0").to_data())
        editor.select("r0c0")
        group = editor.overlap_group().cell_ids
        assert group == tuple(sorted(("r0c0", duplicate.id)))
        assert editor.cycle_overlap() == duplicate.id
        assert editor.cycle_overlap() == "r0c0"


class TestKeyboardAndResize:
    """Combine keyboard nudging with linked resizing."""

    def test_nudge_and_resize_round_trip(self, editor):
        """Test edits export and reload to the same annotation."""
        editor.select("r1c0")
        mover = ArrowKeyMover(
            lambda dx, dy: editor.move_selected(dx, dy, record=False),
            EditorSettings(base_speed=1.0, max_speed=1.0, acceleration=0),
            on_finish=editor.checkpoint,
        )
        mover.press("ArrowDown")
        mover.release("ArrowDown")
        assert editor.get_cell_by_id("r1c0").get_bounds().min_y == 51

        editor.select("r1c1", additive=True)
        controller = InteractionController(editor, mode=EditMode.RESIZE, linked_resize=True)
        controller.press(100, 100, cell_id="r1c0", corner=2)
        controller.release(100, 130)
        assert editor.get_cell_by_id("r1c0").get_bounds().max_y == 130
        assert editor.get_cell_by_id("r1c1").get_bounds().max_y == 129

        exported = editor.to_data()
        assert Annotation.from_data(exported) == editor.annotation

        restored = EditingSession()
        restored.load_annotation(exported)
        assert restored.to_data() == exported


class TestHistoryBound:
    """Long editing sessions keep at most 50 snapshots."""

    def test_origin_lost_after_many_edits(self, editor):
        """Test the loaded state is unrecoverable after more than 50 edits."""
        for _ in range(60):
            editor.move_cell("r0c2", 1, 0)
        steps = 0
        while editor.can_undo:
            editor.undo()
            steps += 1
        assert steps == 49
        assert editor.get_cell_by_id("r0c2").get_bounds().min_x == 211
