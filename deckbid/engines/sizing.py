"""
Structural sizing heuristics — joists, beams, posts, railing run, stairs.

These are estimating allowances, NOT a span table or engineering check.
Every threshold comes from AssumptionOverrides so a shop can tune them
without a code change.
"""

import logging

from ..schemas import AssumptionOverrides, DeckInputs, GeometryResult, SizingResult
from .rounding import ceil_clean, positive

logger = logging.getLogger(__name__)

# Two-tier joist rule: anything spanning over 8 ft gets the deeper member
JOIST_UPSIZE_SPAN_FT = 8.0
JOIST_SIZE_SMALL = "2x8"
JOIST_SIZE_LARGE = "2x10"

MIN_POSTS = 4
STAIR_RISER_IN = 7.5
STRINGER_SPACING_FT = 1.5

# Floors for divisors — a zero spacing should never reach a division
_MIN_SPACING_IN = 1.0
_MIN_SPACING_FT = 0.5


def effective_joist_spacing(inputs: DeckInputs, overrides: AssumptionOverrides) -> float:
    """Composite decking is capped at the composite spacing (12" O.C. by default)."""
    spacing = positive(inputs.joist_spacing_in, _MIN_SPACING_IN)
    if inputs.decking_material == "composite":
        cap = positive(overrides.composite_joist_spacing_in, _MIN_SPACING_IN)
        return min(spacing, cap)
    return spacing


def resolve_beam_count(length_ft: float, beam_count: int, has_ledger: bool,
                       max_span_ft: float) -> int:
    """
    Add beam lines until every joist span is within max_span_ft.
    The ledger counts as one support line when present.
    """
    max_span = positive(max_span_ft, _MIN_SPACING_FT)
    ledger_support = 1 if has_ledger else 0
    beams = max(int(beam_count), 1)
    while length_ft / (beams + ledger_support) > max_span:
        beams += 1
    return beams


def joist_size_for_span(span_ft: float) -> str:
    return JOIST_SIZE_LARGE if span_ft > JOIST_UPSIZE_SPAN_FT else JOIST_SIZE_SMALL


def beam_ply(beam_count: int, length_ft: float, overrides: AssumptionOverrides) -> int:
    if beam_count >= 3 or length_ft > overrides.beam_triple_ply_length_ft:
        return 3
    if beam_count >= 2 or length_ft > overrides.beam_double_ply_length_ft:
        return 2
    return 1


def stair_opening_ft(inputs: DeckInputs) -> float:
    if inputs.stair_count <= 0:
        return 0.0
    return inputs.stair_width_ft * inputs.stair_count


def railing_support_run(inputs: DeckInputs, geometry: GeometryResult) -> float:
    """
    Open (non-ledger) edge length that needs railing, minus stair openings.

    Custom railing sides use the user's linear footage verbatim. For polygons
    the elected ledger edge is excluded; when no edge can be resolved the
    house side is approximated by the bounding length (a rough fit for
    irregular or concave shapes, kept on purpose).
    """
    if inputs.railing_type == "none":
        return 0.0
    if inputs.railing_sides == "custom" and inputs.custom_railing_lf:
        return max(inputs.custom_railing_lf, 0.0)

    perimeter = geometry.perimeter_lf
    if not inputs.ledger:
        open_run = perimeter
    elif geometry.source == "polygon_points":
        house_side = geometry.ledger_run_ft
        if house_side <= 0:
            house_side = max(geometry.length_ft, 0.0)
        open_run = max(perimeter - house_side, 0.0)
    else:
        open_run = max(perimeter - geometry.ledger_run_ft, 0.0)

    return max(open_run - stair_opening_ft(inputs), 0.0)


def size_structure(inputs: DeckInputs, geometry: GeometryResult,
                   overrides: AssumptionOverrides = None) -> SizingResult:
    """Derive framing counts and member sizes from geometry + design choices."""
    overrides = overrides or AssumptionOverrides()
    length = geometry.length_ft

    spacing_in = effective_joist_spacing(inputs, overrides)
    beams = resolve_beam_count(length, inputs.beam_count, inputs.ledger,
                               overrides.max_joist_span_ft)
    ledger_support = 1 if inputs.ledger else 0
    span = length / (beams + ledger_support)

    if geometry.source == "polygon_points":
        # Average joist length for an irregular footprint
        framing_depth = max(1.0, geometry.area_sqft / max(1.0, length))
    else:
        framing_depth = geometry.width_ft

    joist_count = max(1, ceil_clean(length * 12.0 / spacing_in))

    post_spacing = positive(inputs.post_spacing_ft, _MIN_SPACING_FT)
    posts_per_beam = ceil_clean(length / post_spacing) + 1
    structural_posts = posts_per_beam * beams

    railing_run = railing_support_run(inputs, geometry)
    if inputs.railing_type == "none":
        railing_spans = 0
        railing_posts = 0
    else:
        railing_spacing = positive(overrides.railing_post_spacing_ft, _MIN_SPACING_FT)
        railing_spans = ceil_clean(railing_run / railing_spacing)
        railing_posts = railing_spans + 1

    risers = ceil_clean(inputs.deck_height_ft * 12.0 / STAIR_RISER_IN)

    result = SizingResult(
        joist_spacing_in=spacing_in,
        joist_span_ft=span,
        joist_size=joist_size_for_span(span),
        joist_count=joist_count,
        framing_depth_ft=framing_depth,
        beam_count=beams,
        beam_ply=beam_ply(beams, length, overrides),
        posts_per_beam=posts_per_beam,
        structural_post_count=structural_posts,
        railing_support_run_lf=railing_run,
        railing_spans=railing_spans,
        railing_post_count=railing_posts,
        post_count=max(structural_posts, railing_posts, MIN_POSTS),
        stair_opening_ft=stair_opening_ft(inputs),
        risers=risers,
        treads=max(risers - 1, 0),
        stringers_per_stair=ceil_clean(inputs.stair_width_ft / STRINGER_SPACING_FT) + 1,
    )

    if beams > inputs.beam_count:
        logger.info(
            "Beam lines raised from %d to %d to keep joist span at %.2f ft (max %.1f)",
            inputs.beam_count, beams, span, overrides.max_joist_span_ft,
        )
    return result
