"""Unit tests for the models module."""

import pytest

from gridmark.models import (
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
    is_axis_aligned_rectangle,
)


def _is_rectangle(cell):
    tl, tr, br, bl = cell.points
    return tl.y == tr.y and tr.x == br.x and br.y == bl.y and bl.x == tl.x


class TestBounds:
    """Tests for Bounds."""

    def test_width_and_height(self):
        """Test derived dimensions."""
        bounds = Bounds(10, 10, 110, 60)
        assert bounds.width == 100
        assert bounds.height == 50

    def test_to_points_canonical_order(self):
        """Test corners come out TL, TR, BR, BL."""
        assert Bounds(0, 0, 4, 2).to_points() == (
            Point(0, 0),
            Point(4, 0),
            Point(4, 2),
            Point(0, 2),
        )

    def test_spanning_any_corner_order(self):
        """Test spanning normalizes opposite corners."""
        assert Bounds.spanning(Point(10, 60), Point(110, 10)) == Bounds(10, 10, 110, 60)

    def test_is_at_least(self):
        """Test minimum-size check on both axes."""
        assert Bounds(0, 0, 5, 5).is_at_least(5)
        assert not Bounds(0, 0, 4.9, 50).is_at_least(5)


class TestCorner:
    """Tests for Corner neighbours."""

    def test_x_neighbor_shares_x(self):
        """Test the x-neighbour of each corner."""
        assert Corner.TOP_LEFT.x_neighbor is Corner.BOTTOM_LEFT
        assert Corner.TOP_RIGHT.x_neighbor is Corner.BOTTOM_RIGHT

    def test_y_neighbor_shares_y(self):
        """Test the y-neighbour of each corner."""
        assert Corner.TOP_LEFT.y_neighbor is Corner.TOP_RIGHT
        assert Corner.BOTTOM_RIGHT.y_neighbor is Corner.BOTTOM_LEFT

    def test_controlled_edges(self):
        """Test the edges each corner controls."""
        assert Corner.TOP_LEFT.vertical_edge is Edge.LEFT
        assert Corner.TOP_LEFT.horizontal_edge is Edge.TOP
        assert Corner.BOTTOM_RIGHT.vertical_edge is Edge.RIGHT
        assert Corner.BOTTOM_RIGHT.horizontal_edge is Edge.BOTTOM

    def test_toward(self):
        """Test the pointer's corner relative to an anchor."""
        anchor = Point(50, 50)
        assert Corner.toward(anchor, Point(80, 90)) is Corner.BOTTOM_RIGHT
        assert Corner.toward(anchor, Point(10, 10)) is Corner.TOP_LEFT
        assert Corner.toward(anchor, Point(80, 10)) is Corner.TOP_RIGHT
        assert Corner.toward(anchor, Point(10, 90)) is Corner.BOTTOM_LEFT


class TestCellLines:
    """Tests for CellLines."""

    def test_merged_overrides_known_keys(self):
        """Test partial updates leave other flags alone."""
        lines = CellLines(True, True, True, True).merged({"top": 0, "bogus": 1})
        assert lines == CellLines(top=False, bottom=True, left=True, right=True)

    def test_to_data_uses_integers(self):
        """Test export as 0/1."""
        assert CellLines(top=True).to_data() == {
            "top": 1,
            "bottom": 0,
            "left": 0,
            "right": 0,
        }


class TestCell:
    """Tests for Cell geometry operations."""

    def test_get_bounds(self):
        """Test the create-cell scenario bounds."""
        cell = Cell(
            "c", (Point(10, 10), Point(110, 10), Point(110, 60), Point(10, 60))
        )
        assert cell.get_bounds() == Bounds(10, 10, 110, 60)

    def test_points_are_canonicalized(self):
        """Test points given in another order are stored TL, TR, BR, BL."""
        cell = Cell("c", (Point(110, 60), Point(10, 60), Point(10, 10), Point(110, 10)))
        assert cell.points == Bounds(10, 10, 110, 60).to_points()

    def test_rejects_non_rectangle(self):
        """Test a skewed quad is refused."""
        with pytest.raises(ValueError):
            Cell("c", (Point(0, 0), Point(10, 1), Point(10, 10), Point(0, 10)))

    def test_move(self, cell_a):
        """Test translation keeps size and lines."""
        moved = cell_a.move(5, -3)
        assert moved.get_bounds() == Bounds(5, -3, 105, 47)
        assert moved.lines == cell_a.lines
        assert cell_a.get_bounds() == Bounds(0, 0, 100, 50)

    def test_move_zero_is_identity(self, cell_a):
        """Test a zero move leaves bounds unchanged."""
        assert cell_a.move(0, 0).get_bounds() == cell_a.get_bounds()

    def test_set_edge_position(self, cell_a):
        """Test moving one edge only changes that edge."""
        assert cell_a.set_edge_position(Edge.RIGHT, 80).get_bounds() == Bounds(0, 0, 80, 50)
        assert cell_a.set_edge_position(Edge.TOP, 10).get_bounds() == Bounds(0, 10, 100, 50)

    def test_set_edge_past_opposite_edge(self, cell_a):
        """Test the winding stays canonical when an edge crosses over."""
        cell = cell_a.set_edge_position(Edge.LEFT, 120)
        assert cell.get_bounds() == Bounds(100, 0, 120, 50)
        assert _is_rectangle(cell)

    def test_resize_corner_propagates_to_neighbours(self, cell_a):
        """Test dragging the top-left corner updates BL.x and TR.y."""
        cell = cell_a.resize_corner(Corner.TOP_LEFT, 10, 5)
        tl, tr, br, bl = cell.points
        assert tl == Point(10, 5)
        assert bl.x == 10
        assert tr.y == 5
        assert br == Point(100, 50)

    def test_resize_corner_invalid_index(self, cell_a):
        """Test an invalid corner index raises ValueError."""
        with pytest.raises(ValueError):
            cell_a.resize_corner(4, 0, 0)

    def test_rectangle_invariant_over_sequence(self, cell_a):
        """Test any chain of moves and resizes keeps a rectangle."""
        cell = cell_a
        for corner, x, y in [(0, 7, 3), (2, 140, 90), (1, 20, -10), (3, 150, 200)]:
            cell = cell.move(1.5, -2).resize_corner(corner, x, y)
            assert _is_rectangle(cell)
            assert is_axis_aligned_rectangle(cell.points)


class TestCellData:
    """Tests for Cell interchange conversion."""

    def test_round_trip_fields(self, annotation_data):
        """Test every interchange field survives from_data/to_data."""
        raw = annotation_data["cells"][1]
        assert Cell.from_data(raw).to_data() == raw

    def test_color_and_opacity_optional(self, annotation_data):
        """Test color/opacity are only exported when set."""
        cell = Cell.from_data(annotation_data["cells"][0])
        assert "color" not in cell.to_data()
        styled = Cell.from_data(dict(annotation_data["cells"][0], color="#f00", opacity=0.5))
        assert styled.color == "#f00"
        assert styled.opacity == 0.5

    def test_span(self, annotation_data):
        """Test row/column span fields."""
        cell = Cell.from_data(annotation_data["cells"][1])
        assert cell.span == CellSpan(start_row=0, end_row=0, start_col=1, end_col=1)

    def test_points_as_pairs(self):
        """Test points may be given as (x, y) pairs."""
        cell = Cell.from_data({"id": "p", "points": [(0, 0), (10, 0), (10, 10), (0, 10)]})
        assert cell.get_bounds() == Bounds(0, 0, 10, 10)

    def test_non_rectangular_quad_uses_bounding_box(self):
        """Test a slightly skewed quad is normalized to its bounding box."""
        cell = Cell.from_data({"id": "q", "points": [(0, 0), (10, 1), (10, 10), (1, 10)]})
        assert cell.get_bounds() == Bounds(0, 0, 10, 10)

    def test_missing_points(self):
        """Test a cell without points is rejected."""
        with pytest.raises(AnnotationError, match="missing points"):
            Cell.from_data({"id": "x"})

    def test_wrong_point_count(self):
        """Test a cell with three points is rejected."""
        with pytest.raises(AnnotationError, match="expected 4"):
            Cell.from_data({"id": "x", "points": [(0, 0), (1, 0), (1, 1)]})

    def test_bad_coordinate(self):
        """Test a non-numeric coordinate is rejected."""
        with pytest.raises(AnnotationError):
            Cell.from_data({"id": "x", "points": [{"x": "a", "y": 0}] * 4})

    def test_non_finite_coordinate(self):
        """Test NaN coordinates are rejected."""
        with pytest.raises(AnnotationError):
            Cell.from_data(
                {"id": "x", "points": [(float("nan"), 0), (1, 0), (1, 1), (0, 1)]}
            )


class TestAnnotation:
    """Tests for Annotation."""

    def test_from_data(self, annotation_data):
        """Test a document loads with all cells in order."""
        annotation = Annotation.from_data(annotation_data)
        assert annotation.filename == "table.png"
        assert annotation.cell_ids() == ["c1", "c2"]
        assert annotation.table_coords.points == (Point(0, 0), Point(200, 100))
        assert annotation.get_cell_by_id("c1").lines.right is False

    def test_to_data_round_trip(self, annotation_data):
        """Test to_data reproduces the loaded document."""
        assert Annotation.from_data(annotation_data).to_data() == annotation_data

    def test_missing_cells(self):
        """Test a document without cells fails."""
        with pytest.raises(AnnotationError, match="missing 'cells'"):
            Annotation.from_data({"filename": "x.png"})

    def test_not_a_mapping(self):
        """Test a non-mapping document fails."""
        with pytest.raises(AnnotationError):
            Annotation.from_data(["cells"])

    def test_zero_area_cell(self):
        """Test a degenerate cell fails the whole load."""
        data = {"cells": [{"id": "z", "points": [(0, 0), (0, 0), (0, 10), (0, 10)]}]}
        with pytest.raises(AnnotationError, match="zero area"):
            Annotation.from_data(data)

    def test_duplicate_ids(self, annotation_data):
        """Test duplicate cell ids fail the load."""
        annotation_data["cells"][1]["id"] = "c1"
        with pytest.raises(AnnotationError, match="Duplicate"):
            Annotation.from_data(annotation_data)

    def test_missing_ids_get_defaults(self):
        """Test cells without ids are numbered by position."""
        data = {"cells": [{"points": [(0, 0), (10, 0), (10, 10), (0, 10)]}]}
        assert Annotation.from_data(data).cell_ids() == ["cell-0"]

    def test_clone_is_equal_not_identical(self, annotation_data):
        """Test clone produces an equal but separate value."""
        annotation = Annotation.from_data(annotation_data)
        clone = annotation.clone()
        assert clone == annotation
        assert clone is not annotation
        assert clone.cells[0] is not annotation.cells[0]

    def test_mutations_return_new_values(self, cell_a, cell_b):
        """Test add/replace/remove leave the original untouched."""
        annotation = Annotation().add_cell(cell_a)
        grown = annotation.add_cell(cell_b)
        assert annotation.cell_ids() == ["A"]
        assert grown.cell_ids() == ["A", "B"]
        moved = grown.with_cell(cell_a.move(1, 1))
        assert moved.get_cell_by_id("A").get_bounds().min_x == 1
        assert grown.remove_cell("A").cell_ids() == ["B"]
        assert grown.get_cell_by_id("missing") is None


class TestImageSize:
    """Tests for ImageSize."""

    def test_contains(self):
        """Test containment is inclusive of the border."""
        size = ImageSize(200, 100)
        assert size.contains(Point(0, 0))
        assert size.contains(Point(200, 100))
        assert not size.contains(Point(201, 50))
        assert not size.contains(Point(10, -1))

    def test_from_file(self, tmp_path):
        """Test dimensions are read from an image file."""
        from PIL import Image

        path = tmp_path / "page.png"
        Image.new("RGB", (320, 240), "white").save(path)
        assert ImageSize.from_file(str(path)) == ImageSize(320, 240)
