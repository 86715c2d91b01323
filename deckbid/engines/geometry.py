"""
Geometry resolver — footprint area, perimeter, bounding box and ledger edge.

Rectangle mode trusts deck_length_ft / deck_width_ft.
Polygon mode uses the ordered point list (feet, any winding):
    area      = |sum(x_i*y_(i+1) - x_(i+1)*y_i)| / 2     (shoelace)
    perimeter = sum of edge lengths
    length    = x extent, width = y extent
Fewer than 3 points is an incomplete drawing, not an error: area and
perimeter come back as 0 with is_complete=False.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from ..schemas import DeckInputs, FenceInputs, GeometryResult, Point

logger = logging.getLogger(__name__)

# Ledger on the left/right side runs along the deck width
_WIDTH_SIDES = ("left", "right")


def polygon_area(points: Sequence[Point]) -> float:
    if len(points) < 3:
        return 0.0
    total = 0.0
    for i, a in enumerate(points):
        b = points[(i + 1) % len(points)]
        total += a.x * b.y - b.x * a.y
    return abs(total) / 2.0


def polygon_perimeter(points: Sequence[Point]) -> float:
    if len(points) < 3:
        return 0.0
    return sum(edge_length(points, i) for i in range(len(points)))


def polygon_bounds(points: Sequence[Point]) -> Tuple[float, float]:
    """(length_ft, width_ft) of the axis-aligned bounding box."""
    if not points:
        return 0.0, 0.0
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return max(xs) - min(xs), max(ys) - min(ys)


def edge_length(points: Sequence[Point], index: int) -> float:
    a = points[index % len(points)]
    b = points[(index + 1) % len(points)]
    return math.hypot(b.x - a.x, b.y - a.y)


def _elect_ledger_edge(inputs: DeckInputs, point_count: int) -> Optional[int]:
    if inputs.ledger_line_index is not None:
        return inputs.ledger_line_index % point_count
    if inputs.ledger:
        return 0
    return None


def resolve_geometry(inputs: DeckInputs) -> GeometryResult:
    """Turn a deck's rectangle or polygon footprint into a GeometryResult."""
    if inputs.shape_mode == "polygon":
        return _resolve_polygon(inputs)
    return _resolve_rectangle(inputs)


def _resolve_rectangle(inputs: DeckInputs) -> GeometryResult:
    length = inputs.deck_length_ft
    width = inputs.deck_width_ft
    ledger_run = width if inputs.ledger_side in _WIDTH_SIDES else length
    return GeometryResult(
        area_sqft=length * width,
        perimeter_lf=2.0 * (length + width),
        length_ft=length,
        width_ft=width,
        ledger_run_ft=ledger_run if inputs.ledger else 0.0,
        source="rectangular_inputs",
        is_complete=True,
    )


def _resolve_polygon(inputs: DeckInputs) -> GeometryResult:
    points = list(inputs.deck_polygon_points)
    length, width = polygon_bounds(points)
    is_complete = len(points) >= 3

    area = polygon_area(points)
    perimeter = polygon_perimeter(points)
    # Overrides come from an outside drawing tool; bounding box stays geometric
    if inputs.deck_area_override_sqft:
        area = inputs.deck_area_override_sqft
    if inputs.deck_perimeter_override_lf:
        perimeter = inputs.deck_perimeter_override_lf

    ledger_edge = None
    ledger_index = None
    ledger_run = 0.0
    if is_complete:
        ledger_index = _elect_ledger_edge(inputs, len(points))
        if ledger_index is not None:
            a = points[ledger_index]
            b = points[(ledger_index + 1) % len(points)]
            ledger_edge = (a, b)
            ledger_run = edge_length(points, ledger_index)
    else:
        logger.warning(
            "Polygon footprint has %d point(s); treating deck as incomplete (0 sqft)",
            len(points),
        )

    return GeometryResult(
        area_sqft=area,
        perimeter_lf=perimeter,
        length_ft=length,
        width_ft=width,
        ledger_edge=ledger_edge,
        ledger_edge_index=ledger_index,
        ledger_run_ft=ledger_run,
        source="polygon_points",
        is_complete=is_complete,
    )


def fence_run_segments(inputs: FenceInputs) -> List[float]:
    """
    Straight runs making up the fence line.

    Corner layouts use sides A+B, U-shapes A+B+C. If the per-side lengths
    weren't filled in, the whole run is treated as one straight segment.
    """
    if inputs.fence_layout == "corner":
        sides = [inputs.fence_side_a_ft, inputs.fence_side_b_ft]
    elif inputs.fence_layout == "u_shape":
        sides = [inputs.fence_side_a_ft, inputs.fence_side_b_ft, inputs.fence_side_c_ft]
    else:
        sides = []

    if sides and all(s is not None for s in sides):
        return [float(s) for s in sides]
    return [inputs.fence_length_ft]
