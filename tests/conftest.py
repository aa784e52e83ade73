"""Pytest configuration and shared fixtures for gridmark tests."""

import pytest

from gridmark import Bounds, Cell, CellLines, EditingSession


def make_cell(cell_id, min_x, min_y, max_x, max_y, **kwargs):
    """Build a rectangular cell from its bounds."""
    return Cell.from_bounds(cell_id, Bounds(min_x, min_y, max_x, max_y), **kwargs)


@pytest.fixture(name="make_cell")
def make_cell_fixture():
    """Factory building a rectangular cell from its bounds."""
    return make_cell


@pytest.fixture
def cell_a():
    """Cell A at {0,0,100,50}."""
    return make_cell("A", 0, 0, 100, 50)


@pytest.fixture
def cell_b():
    """Cell B at {104,0,200,50}, 4 px right of A."""
    return make_cell("B", 104, 0, 200, 50)


@pytest.fixture
def grid_cells():
    """A 2x2 grid of 100x50 cells with all borders visible."""
    lines = CellLines(True, True, True, True)
    return [
        make_cell("r0c0", 0, 0, 100, 50, lines=lines),
        make_cell("r0c1", 100, 0, 200, 50, lines=lines),
        make_cell("r1c0", 0, 50, 100, 100, lines=lines),
        make_cell("r1c1", 100, 50, 200, 100, lines=lines),
    ]


@pytest.fixture
def annotation_data():
    """Annotation document in the interchange format."""
    return {
        "filename": "table.png",
        "tableCoords": {"points": [{"x": 0, "y": 0}, {"x": 200, "y": 100}]},
        "cells": [
            {
                "id": "c1",
                "points": [
                    {"x": 0, "y": 0},
                    {"x": 100, "y": 0},
                    {"x": 100, "y": 50},
                    {"x": 0, "y": 50},
                ],
                "lines": {"top": 1, "bottom": 1, "left": 1, "right": 0},
                "startRow": 0,
                "endRow": 0,
                "startCol": 0,
                "endCol": 0,
            },
            {
                "id": "c2",
                "points": [
                    {"x": 104, "y": 0},
                    {"x": 200, "y": 0},
                    {"x": 200, "y": 50},
                    {"x": 104, "y": 50},
                ],
                "lines": {"top": 1, "bottom": 1, "left": 1, "right": 1},
                "startRow": 0,
                "endRow": 0,
                "startCol": 1,
                "endCol": 1,
            },
        ],
    }


@pytest.fixture
def session():
    """Empty EditingSession with default settings."""
    return EditingSession()


@pytest.fixture
def loaded_session(annotation_data):
    """EditingSession with the two-cell document loaded."""
    session = EditingSession()
    session.load_annotation(annotation_data)
    return session
