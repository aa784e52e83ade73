"""Unit tests for the empty_cells module."""

from gridmark.empty_cells import cluster_positions, detect_empty_cells


class TestClusterPositions:
    """Tests for grid-line clustering."""

    def test_merges_close_positions(self):
        """Test positions within tolerance collapse to their average."""
        assert cluster_positions([100, 0, 51.5, 1, 50], 2) == [0.5, 50.75, 100]

    def test_keeps_distant_positions(self):
        """Test positions farther apart than tolerance stay separate."""
        assert cluster_positions([0, 3, 6], 2) == [0, 3, 6]

    def test_empty(self):
        """Test no positions give no lines."""
        assert cluster_positions([], 2) == []


class TestDetectEmptyCells:
    """Tests for uncovered-region detection."""

    def test_no_cells(self):
        """Test an empty cell set has no regions."""
        assert detect_empty_cells([]) == []

    def test_fully_covered_grid(self, grid_cells):
        """Test a complete grid has no holes."""
        assert detect_empty_cells(grid_cells) == []

    def test_missing_cell_is_reported(self, grid_cells):
        """Test removing the bottom-right cell exposes its area."""
        regions = detect_empty_cells(grid_cells[:3])
        assert len(regions) == 1
        bounds = regions[0].get_bounds()
        assert 100 <= bounds.min_x <= 103
        assert 197 <= bounds.max_x <= 200
        assert 50 <= bounds.min_y <= 53
        assert 97 <= bounds.max_y <= 100

    def test_region_in_document_coordinates(self, grid_cells):
        """Test regions are shifted back by the grid origin."""
        shifted = [cell.move(300, 400) for cell in grid_cells[:3]]
        bounds = detect_empty_cells(shifted)[0].get_bounds()
        assert 400 <= bounds.min_x <= 403
        assert 450 <= bounds.min_y <= 453

    def test_partially_covered_hole(self, make_cell):
        """Test only the uncovered part of a hole is reported."""
        cells = [
            make_cell("top", 0, 0, 300, 50),
            make_cell("left", 0, 50, 100, 100),
            make_cell("bottom", 0, 100, 300, 150),
            make_cell("right", 200, 50, 300, 100),
            make_cell("middle-top", 100, 50, 200, 60),
        ]
        regions = detect_empty_cells(cells)
        assert len(regions) == 1
        bounds = regions[0].get_bounds()
        assert bounds.min_y >= 60

    def test_small_regions_filtered(self, grid_cells):
        """Test regions below the area floor are dropped."""
        assert detect_empty_cells(grid_cells[:3], min_area=10000) == []

    def test_narrow_gap_ignored(self, make_cell):
        """Test a sliver between cells is not reported."""
        cells = [make_cell("a", 0, 0, 100, 50), make_cell("b", 103, 0, 200, 50)]
        assert detect_empty_cells(cells) == []
