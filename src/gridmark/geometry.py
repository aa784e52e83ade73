"""
Polygon intersection for overlap analysis.

Uses the Sutherland-Hodgman algorithm to clip one convex polygon against
another. Cells are always axis-aligned rectangles, so the common case is
answered by interval overlap on each axis instead of clipping.
"""

from typing import List, Optional, Sequence

from .models import Bounds, Point, is_axis_aligned_rectangle

# Denominator below which two segments are treated as parallel.
PARALLEL_EPSILON = 1e-10


def signed_area(polygon: Sequence[Point]) -> float:
    """Shoelace area; positive when the interior lies left of each edge."""
    area = 0.0
    for i, current in enumerate(polygon):
        following = polygon[(i + 1) % len(polygon)]
        area += current.x * following.y - following.x * current.y
    return area / 2.0


def normalize_winding(polygon: Sequence[Point]) -> List[Point]:
    """Return the polygon wound so that its signed area is positive."""
    if signed_area(polygon) < 0:
        return list(reversed(polygon))
    return list(polygon)


def bounding_boxes_overlap(
    points1: Sequence[Point], points2: Sequence[Point]
) -> bool:
    """Check whether two point sets' bounding boxes touch or overlap."""
    bounds1 = Bounds.from_points(points1)
    bounds2 = Bounds.from_points(points2)
    return not (
        bounds1.max_x < bounds2.min_x
        or bounds2.max_x < bounds1.min_x
        or bounds1.max_y < bounds2.min_y
        or bounds2.max_y < bounds1.min_y
    )


def rectangle_intersection(
    rect1: Sequence[Point], rect2: Sequence[Point]
) -> Optional[List[Point]]:
    """
    Intersect two axis-aligned rectangles.

    Returns:
        The intersection rectangle in canonical winding order, or None if the
        rectangles do not share a positive area.
    """
    bounds1 = Bounds.from_points(rect1)
    bounds2 = Bounds.from_points(rect2)

    overlap = Bounds(
        max(bounds1.min_x, bounds2.min_x),
        max(bounds1.min_y, bounds2.min_y),
        min(bounds1.max_x, bounds2.max_x),
        min(bounds1.max_y, bounds2.max_y),
    )
    if overlap.min_x >= overlap.max_x or overlap.min_y >= overlap.max_y:
        return None
    return list(overlap.to_points())


def polygon_intersection(
    polygon1: Sequence[Point], polygon2: Sequence[Point]
) -> Optional[List[Point]]:
    """
    Calculate the intersection of two convex polygons.

    Both polygons are normalized to the same winding before clipping. Because
    the clip order can matter for degenerate input, both clip(A, B) and
    clip(B, A) are computed and the one with more vertices is kept.

    Args:
        polygon1: First polygon.
        polygon2: Second polygon.

    Returns:
        The intersection polygon, or None if there is no intersection with at
        least three vertices.
    """
    if len(polygon1) < 3 or len(polygon2) < 3:
        return None

    if is_axis_aligned_rectangle(polygon1) and is_axis_aligned_rectangle(polygon2):
        return rectangle_intersection(polygon1, polygon2)

    normalized1 = normalize_winding(polygon1)
    normalized2 = normalize_winding(polygon2)

    result1 = _clip_against(normalized1, normalized2)
    result2 = _clip_against(normalized2, normalized1)

    if result1 and result2:
        return result1 if len(result1) >= len(result2) else result2
    return result1 or result2


def _clip_against(
    subject: List[Point], clip: List[Point]
) -> Optional[List[Point]]:
    """Clip ``subject`` against every edge of ``clip``."""
    result = list(subject)
    for i, edge_start in enumerate(clip):
        edge_end = clip[(i + 1) % len(clip)]
        result = _clip_polygon(result, edge_start, edge_end)
        if len(result) < 3:
            return None
    return result


def _clip_polygon(
    polygon: List[Point], edge_start: Point, edge_end: Point
) -> List[Point]:
    """One Sutherland-Hodgman pass against the line edge_start -> edge_end."""
    output: List[Point] = []

    for i, current in enumerate(polygon):
        previous = polygon[i - 1]
        current_inside = _is_inside(current, edge_start, edge_end)
        previous_inside = _is_inside(previous, edge_start, edge_end)

        if current_inside:
            if not previous_inside:
                crossing = _line_intersection(previous, current, edge_start, edge_end)
                if crossing is not None:
                    output.append(crossing)
            output.append(current)
        elif previous_inside:
            crossing = _line_intersection(previous, current, edge_start, edge_end)
            if crossing is not None:
                output.append(crossing)

    return output


def _is_inside(point: Point, edge_start: Point, edge_end: Point) -> bool:
    # Left of (or on) the directed edge.
    edge_x = edge_end.x - edge_start.x
    edge_y = edge_end.y - edge_start.y
    cross = edge_x * (point.y - edge_start.y) - edge_y * (point.x - edge_start.x)
    return cross >= 0


def _line_intersection(
    p1: Point, p2: Point, p3: Point, p4: Point
) -> Optional[Point]:
    """Intersection of line p1-p2 with line p3-p4, or None if parallel."""
    denom = (p1.x - p2.x) * (p3.y - p4.y) - (p1.y - p2.y) * (p3.x - p4.x)
    if abs(denom) < PARALLEL_EPSILON:
        return None

    t = ((p1.x - p3.x) * (p3.y - p4.y) - (p1.y - p3.y) * (p3.x - p4.x)) / denom
    return Point(p1.x + t * (p2.x - p1.x), p1.y + t * (p2.y - p1.y))
