"""
Empty grid-region detection.

Finds stretches of the table grid that no cell covers. The cell set is
rasterized with Pillow inside the grid's bounding box:

1. The canvas starts black (uncovered).
2. Every cell polygon is filled white.
3. Grid lines, clustered from all cell boundaries, are drawn white so that
   neighbouring holes stay separate.
4. Connected black regions that are large enough to be a cell are reported.
"""

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from PIL import Image, ImageDraw

from .models import Bounds, Cell, Point

# Boundary positions closer than this are merged into one grid line.
CLUSTER_TOLERANCE = 2.0
GRID_LINE_WIDTH = 3
MIN_REGION_SIZE = 5
MIN_REGION_AREA = 200

UNCOVERED = 0
COVERED = 255


@dataclass(frozen=True)
class EmptyRegion:
    """An uncovered rectangle of the grid, in document coordinates."""

    points: Tuple[Point, Point, Point, Point]

    def get_bounds(self) -> Bounds:
        return Bounds.from_points(self.points)


def cluster_positions(positions: Sequence[float], tolerance: float) -> List[float]:
    """
    Merge nearby coordinates into grid-line positions.

    Positions are visited in sorted order; one within ``tolerance`` of an
    existing cluster pulls that cluster to the average of the two.
    """
    clusters: List[float] = []
    for position in sorted(positions):
        for index, cluster in enumerate(clusters):
            if abs(cluster - position) <= tolerance:
                clusters[index] = (cluster + position) / 2
                break
        else:
            clusters.append(position)
    return sorted(clusters)


def detect_empty_cells(
    cells: Sequence[Cell],
    tolerance: float = CLUSTER_TOLERANCE,
    min_size: int = MIN_REGION_SIZE,
    min_area: int = MIN_REGION_AREA,
) -> List[EmptyRegion]:
    """
    Detect grid regions not covered by any cell.

    Args:
        cells: Cells to analyse.
        tolerance: Clustering tolerance for grid-line positions.
        min_size: Minimum width and height of a reported region.
        min_area: Minimum area of a reported region.

    Returns:
        Uncovered regions as rectangles, in scan order (top to bottom).
    """
    if not cells:
        return []

    grid = Bounds.from_points(p for cell in cells for p in cell.points)
    width = int(math.ceil(grid.width))
    height = int(math.ceil(grid.height))
    if width <= 0 or height <= 0:
        return []

    image = Image.new("L", (width, height), UNCOVERED)
    draw = ImageDraw.Draw(image)

    for cell in cells:
        draw.polygon(
            [(p.x - grid.min_x, p.y - grid.min_y) for p in cell.points],
            fill=COVERED,
        )

    cell_bounds = [cell.get_bounds() for cell in cells]
    horizontal = cluster_positions(
        [v for b in cell_bounds for v in (b.min_y, b.max_y)], tolerance
    )
    vertical = cluster_positions(
        [v for b in cell_bounds for v in (b.min_x, b.max_x)], tolerance
    )
    for y in horizontal:
        grid_y = y - grid.min_y
        draw.line([(0, grid_y), (width, grid_y)], fill=COVERED, width=GRID_LINE_WIDTH)
    for x in vertical:
        grid_x = x - grid.min_x
        draw.line([(grid_x, 0), (grid_x, height)], fill=COVERED, width=GRID_LINE_WIDTH)

    regions: List[EmptyRegion] = []
    for bounds in _uncovered_components(image):
        if bounds.width < min_size or bounds.height < min_size:
            continue
        if bounds.width * bounds.height < min_area:
            continue
        regions.append(
            EmptyRegion(bounds.shifted(grid.min_x, grid.min_y).to_points())
        )
    return regions


def _uncovered_components(image: Image.Image) -> List[Bounds]:
    """Bounding boxes of 4-connected UNCOVERED pixel regions."""
    width, height = image.size
    pixels = image.load()
    visited = bytearray(width * height)
    components: List[Bounds] = []

    for start_y in range(height):
        for start_x in range(width):
            if visited[start_y * width + start_x] or pixels[start_x, start_y] != UNCOVERED:
                continue

            min_x = max_x = start_x
            min_y = max_y = start_y
            stack = [(start_x, start_y)]
            visited[start_y * width + start_x] = 1
            while stack:
                x, y = stack.pop()
                min_x, max_x = min(min_x, x), max(max_x, x)
                min_y, max_y = min(min_y, y), max(max_y, y)
                for next_x, next_y in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
                    if not (0 <= next_x < width and 0 <= next_y < height):
                        continue
                    index = next_y * width + next_x
                    if visited[index] or pixels[next_x, next_y] != UNCOVERED:
                        continue
                    visited[index] = 1
                    stack.append((next_x, next_y))

            components.append(Bounds(min_x, min_y, max_x, max_y))

    return components
