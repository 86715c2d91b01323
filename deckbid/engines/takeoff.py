"""
Material itemizer — turns validated design inputs into a priced takeoff.

Deck pipeline:
    resolve_geometry -> size_structure -> stock cutting -> line items
Fence pipeline:
    fence_run_segments -> post/rail/picket counts -> line items

Every line is priced through the PriceBook by a structured PriceKey, never by
parsing the display name. Summary lines (joist/rim/beam LF, deck sqft) are
there for the estimator to read and carry $0 so they don't double count
against the stock-length purchase lines underneath them.

Usage:
    result = generate_takeoff(DeckInputs(deck_length_ft=20, deck_width_ft=12))
    result.totals.materials_subtotal
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Union

from ..schemas import (
    AssumptionOverrides,
    DeckInputs,
    FenceInputs,
    GeometryResult,
    PriceKey,
    QtyChange,
    StockMix,
    TakeoffAssumptions,
    TakeoffDiff,
    TakeoffItem,
    TakeoffResult,
    TakeoffTotals,
)
from .estimate import materials_subtotal
from .geometry import fence_run_segments, resolve_geometry
from .price_book import DEFAULT_PRICE_BOOK, PriceBook
from .rounding import ceil_clean, positive, round2
from .sizing import size_structure
from .stock_cutting import (
    BOARD_LENGTHS_FT,
    FRAMING_LENGTHS_FT,
    accumulate_stock_mix,
    best_mix_for_run,
    format_length,
    format_stock_mix,
)

logger = logging.getLogger(__name__)

COST_FORMULA = "line_total = qty*(1+waste_factor)*unit_cost; materials_subtotal = sum(line_total)"

BAGS_PER_FOOTING = 2
SCREW_BOXES_PER_100_SQFT = 1
ROOF_SHEATHING_FACTOR = 1.05
ROOFING_FACTOR = 1.10
CEILING_SQFT_PER_FASTENER = 20
FENCE_PANEL_WIDTH_FT = 8
_MIN_PICKET_PITCH_IN = 0.25

_BEAM_NAMES = {
    1: "PT beam single-ply allowance",
    2: "PT beam double-ply allowance",
    3: "PT beam triple-ply allowance",
}

_CEILING_NAMES = {
    "drywall": "Ceiling drywall",
    "tongue_groove": "Ceiling tongue & groove",
    "beadboard": "Ceiling beadboard",
}


class TakeoffBuilder(ABC):
    """Shared item/pricing helpers for the deck and fence itemizers."""

    # Waste factors by material family
    WASTE_LUMBER = 0.10
    WASTE_POSTS = 0.08
    WASTE_CONCRETE = 0.05
    WASTE_HARDWARE = 0.05
    WASTE_RAILING = 0.08
    WASTE_TREADS = 0.12
    WASTE_ROOFING = 0.03
    WASTE_CEILING = 0.10
    WASTE_FENCE_POSTS = 0.05
    WASTE_FENCE_BOARDS = 0.08
    WASTE_NONE = 0.0

    def __init__(self, overrides: AssumptionOverrides, price_book: PriceBook):
        self.overrides = overrides
        self.price_book = price_book
        self.items: List[TakeoffItem] = []
        self.unpriced: List[str] = []

    def add(self, category: str, name: str, unit: str, qty: float, waste_factor: float,
            lead_time_days: int, notes: str = None, price_key: PriceKey = None) -> TakeoffItem:
        """Price a line through the book and append it. Default key is the name itself."""
        key = price_key or PriceKey(base_material=name)
        price = self.price_book.lookup(key)
        if not self.price_book.has(key.base_material):
            self.unpriced.append(name)
        item = TakeoffItem(
            category=category,
            name=name,
            unit=unit,
            qty=qty,
            waste_factor=waste_factor,
            unit_cost=price.unit_cost,
            vendor=price.vendor,
            lead_time_days=lead_time_days,
            notes=notes,
            is_allowance=price.is_allowance,
            price_key=key,
        )
        self.items.append(item)
        return item

    def add_summary(self, category: str, name: str, qty: float, lead_time_days: int,
                    notes: str) -> TakeoffItem:
        """Informational LF line — $0, always flagged as allowance."""
        item = TakeoffItem(
            category=category,
            name=name,
            unit="lf",
            qty=round2(qty),
            waste_factor=self.WASTE_LUMBER,
            unit_cost=0.0,
            vendor="Calculated",
            lead_time_days=lead_time_days,
            notes=notes,
            is_allowance=True,
        )
        self.items.append(item)
        return item

    def add_stock_lines(self, category: str, base_material: str, mix: StockMix,
                        lead_time_days: int, notes: str):
        for length_ft, count in mix.longest_first():
            self.add(
                category,
                f"{base_material} - {format_length(length_ft)}ft",
                "ea",
                count,
                self.WASTE_LUMBER,
                lead_time_days,
                notes,
                price_key=PriceKey(base_material=base_material, length_ft=length_ft),
            )

    @abstractmethod
    def build(self, inputs) -> TakeoffResult:
        """Itemize one design. Subclasses call finish() with their assumptions."""
        pass

    def finish(self, assumptions: TakeoffAssumptions, sqft: float) -> TakeoffResult:
        if self.unpriced:
            logger.warning("No catalog price for %d item(s): %s",
                           len(self.unpriced), ", ".join(self.unpriced))
        items = tuple(self.items)
        return TakeoffResult(
            assumptions=assumptions,
            items=items,
            totals=TakeoffTotals(
                deck_sqft=round2(sqft),
                materials_subtotal=materials_subtotal(items),
                item_count=len(items),
            ),
        )


class DeckTakeoff(TakeoffBuilder):

    def build(self, inputs: DeckInputs) -> TakeoffResult:
        ov = self.overrides
        geometry = resolve_geometry(inputs)
        if not geometry.is_complete:
            return self._incomplete(geometry)
        sizing = size_structure(inputs, geometry, ov)

        length = geometry.length_ft
        depth = sizing.framing_depth_ft
        sqft = geometry.area_sqft
        is_polygon = geometry.source == "polygon_points"
        rim_lf = geometry.perimeter_lf if is_polygon else 2 * (length + geometry.width_ft)

        joist_name = f"{sizing.joist_size} PT joist"
        rim_name = f"{sizing.joist_size} PT rim joist"
        beam_name = _BEAM_NAMES[sizing.beam_ply]

        joist_stock = accumulate_stock_mix([depth], sizing.joist_count, FRAMING_LENGTHS_FT)
        if is_polygon:
            rim_stock = accumulate_stock_mix([rim_lf], 1, FRAMING_LENGTHS_FT)
        else:
            rim_stock = accumulate_stock_mix([length, geometry.width_ft], 2, FRAMING_LENGTHS_FT)
        beam_stock = accumulate_stock_mix([length], sizing.beam_count * sizing.beam_ply,
                                          FRAMING_LENGTHS_FT)

        board_courses = ceil_clean(depth * 12.0 / inputs.decking_board_width_in) if depth > 0 else 0
        board_mix = best_mix_for_run(length, BOARD_LENGTHS_FT)

        # --- Summaries ---
        self.add_summary(
            "Framing", f"{joist_name} (LF summary)", sizing.joist_count * depth, 2,
            (f"Joists: {sizing.joist_count} @ {format_length(round2(depth))}ft "
             f"({format_length(sizing.joist_spacing_in)}\" O.C.); stock: {format_stock_mix(joist_stock)}"),
        )
        self.add_summary(
            "Framing", f"{rim_name} (LF summary)", rim_lf, 2,
            f"Perimeter rim joists; stock: {format_stock_mix(rim_stock)}",
        )
        self.add_summary(
            "Framing", f"{beam_name} (LF summary)", sizing.beam_count * length, 3,
            (f"{sizing.beam_count} beam line(s), {sizing.beam_ply}-ply allowance; "
             f"stock: {format_stock_mix(beam_stock)}"),
        )
        self.add("Decking", "Deck board takeoff summary", "sqft", round2(sqft), self.WASTE_LUMBER, 4,
                 f"{inputs.decking_material} decking summary; detailed board counts listed below")

        self.add("Fasteners", "Exterior screws box", "box",
                 ceil_clean(sqft / 100.0 * SCREW_BOXES_PER_100_SQFT), self.WASTE_NONE, 1,
                 "1 box per 100 sqft (rounded up)")

        # --- Footings ---
        self.add("Footings", f"{inputs.post_size} PT structural post", "ea", sizing.post_count,
                 self.WASTE_POSTS, 3,
                 f"{sizing.beam_count} beam line(s) x {sizing.posts_per_beam} posts per beam; "
                 f"{sizing.railing_post_count} railing support posts; min 4")
        self.add("Footings", "Concrete bag", "bag", sizing.post_count * BAGS_PER_FOOTING,
                 self.WASTE_CONCRETE, 2,
                 f"{sizing.post_count} footings x {BAGS_PER_FOOTING} bags")

        # --- Stock purchase lines ---
        self.add_stock_lines("Framing", joist_name, joist_stock, 2, "Stock purchase count for joists")
        self.add_stock_lines("Framing", rim_name, rim_stock, 2, "Stock purchase count for rim joists")
        self.add_stock_lines("Framing", beam_name, beam_stock, 3, "Stock purchase count for beam plies")

        board_base = f"Deck board - {inputs.decking_material}"
        for length_ft, per_course in board_mix.longest_first():
            self.add(
                "Decking",
                f"{board_base} {format_length(length_ft)}ft",
                "ea",
                per_course * board_courses,
                self.WASTE_LUMBER,
                4,
                f"{per_course} per course x {board_courses} courses",
                price_key=PriceKey(base_material=board_base, length_ft=length_ft),
            )

        # --- Ledger ---
        if inputs.ledger:
            self.add("Hardware", "Joist hanger", "ea", sizing.joist_count, self.WASTE_HARDWARE, 2,
                     "One per joist with ledger")
            self.add("Waterproofing", "Ledger flashing", "lf", round2(geometry.ledger_run_ft),
                     self.WASTE_HARDWARE, 2, "Ledger flashing length")

        # --- Railing ---
        if inputs.railing_type != "none":
            self.add("Railing", f"Railing - {inputs.railing_type} allowance", "lf",
                     round2(sizing.railing_support_run_lf), self.WASTE_RAILING, 10,
                     "Open edges less stair openings; allowance pricing, edit to supplier quote")
            self.add("Railing", "Railing post", "ea", sizing.railing_post_count, self.WASTE_RAILING, 7,
                     f"Post spacing allowance at ~{format_length(ov.railing_post_spacing_ft)}ft")

        # --- Stairs ---
        if inputs.stair_count > 0:
            self.add("Stairs", "Stair stringer", "ea",
                     sizing.stringers_per_stair * inputs.stair_count, self.WASTE_LUMBER, 4,
                     f"{sizing.stringers_per_stair} per stair, {sizing.risers} risers")
            self.add("Stairs", "Stair tread boards", "lf",
                     round2(sizing.treads * inputs.stair_width_ft * inputs.stair_count),
                     self.WASTE_TREADS, 4, f"{sizing.treads} treads per stair")
            if inputs.railing_type != "none":
                self.add("Stairs", "Stair railing hardware", "ea", inputs.stair_count,
                         self.WASTE_NONE, 5, "Allowance per stair run")

        if inputs.roof_sqft > 0:
            self._add_cover(inputs)

        assumptions = TakeoffAssumptions(
            joist_material=f"{sizing.joist_size} PT",
            bags_per_footing=BAGS_PER_FOOTING,
            screws_per_100_sqft=SCREW_BOXES_PER_100_SQFT,
            formulas={
                "deck_sqft": "length_ft * width_ft, or shoelace area of polygon points",
                "effective_joist_spacing_in": "composite ? min(joist_spacing_in, composite_joist_spacing_in) : joist_spacing_in",
                "joist_count": "max(1, ceil(deck_length_ft*12/effective_joist_spacing_in))",
                "beam_count_effective": "raise beam_count until length/(beams + ledger) <= max_joist_span_ft",
                "joist_size": "joist_span_ft > 8 ? '2x10' : '2x8'",
                "decking_board_count": "board_courses * sum(board_mix_per_course)",
                "rim_joists_lf": "2*length + 2*width, or polygon perimeter",
                "post_count": "max(posts_per_beam*beam_count, ceil(railing_run/railing_post_spacing)+1, 4)",
                "railing_support_run_lf": "perimeter - ledger edge - stair openings",
                "fasteners_boxes": "ceil(deck_sqft/100)",
                "stairs_stringers": "ceil(stair_width_ft/1.5)+1",
                "roof_area": "roof_length_ft*roof_width_ft",
                "rafters_count": "floor(roof_width_ft*12/rafter_spacing_in)+1",
            },
            constants={
                "default_waste_factor": self.WASTE_LUMBER,
                "max_joist_span_ft": ov.max_joist_span_ft,
                "composite_joist_spacing_in": ov.composite_joist_spacing_in,
                "railing_post_spacing_ft": ov.railing_post_spacing_ft,
                "beam_double_ply_length_ft": ov.beam_double_ply_length_ft,
                "beam_triple_ply_length_ft": ov.beam_triple_ply_length_ft,
                "available_board_lengths_ft": ",".join(str(v) for v in BOARD_LENGTHS_FT),
                "available_framing_lengths_ft": ",".join(str(v) for v in FRAMING_LENGTHS_FT),
                "joist_stock_mix": format_stock_mix(joist_stock),
                "rim_stock_mix": format_stock_mix(rim_stock),
                "beam_stock_mix": format_stock_mix(beam_stock),
                "board_mix_per_course": format_stock_mix(board_mix),
                "board_mix_run_overage_ft": board_mix.overage_ft,
                "shape_geometry_source": geometry.source,
                "shape_is_complete": geometry.is_complete,
                "beam_count_effective": sizing.beam_count,
                "beam_ply": sizing.beam_ply,
                "post_count_total": sizing.post_count,
                "beam_support_post_count": sizing.structural_post_count,
                "perimeter_railing_support_post_count": sizing.railing_post_count,
                "railing_support_run_lf": round2(sizing.railing_support_run_lf),
                "railing_support_spans": sizing.railing_spans,
                "post_count_per_beam": sizing.posts_per_beam,
                "cost_formula": COST_FORMULA,
                "non_structural_disclaimer": True,
            },
        )
        result = self.finish(assumptions, sqft)
        logger.info("Deck takeoff: %.2f sqft, %d items, $%.2f materials",
                    result.totals.deck_sqft, result.totals.item_count,
                    result.totals.materials_subtotal)
        return result

    def _incomplete(self, geometry: GeometryResult) -> TakeoffResult:
        """Unfinished footprint drawing: nothing to itemize, everything zero."""
        logger.warning("Deck footprint incomplete; takeoff has no line items")
        assumptions = TakeoffAssumptions(
            joist_material="N/A (incomplete footprint)",
            bags_per_footing=BAGS_PER_FOOTING,
            screws_per_100_sqft=SCREW_BOXES_PER_100_SQFT,
            constants={
                "shape_geometry_source": geometry.source,
                "shape_is_complete": False,
                "cost_formula": COST_FORMULA,
                "non_structural_disclaimer": True,
            },
        )
        return self.finish(assumptions, 0.0)

    def _add_cover(self, inputs: DeckInputs):
        roof_length = inputs.roof_length_ft
        roof_area = inputs.roof_sqft
        rafter_spacing = positive(inputs.rafter_spacing_in, 1.0)
        rafters = math.floor(round(inputs.roof_width_ft * 12.0 / rafter_spacing, 6)) + 1

        self.add("Cover", "2x8 PT joist", "lf", round2(rafters * roof_length), self.WASTE_LUMBER, 5,
                 f"Rafters: {rafters} @ {format_length(roof_length)}ft")
        self.add("Cover", "Roof sheathing", "sqft", round2(roof_area * ROOF_SHEATHING_FACTOR),
                 self.WASTE_ROOFING, 5, "Roof area x 1.05")
        roofing = "Roofing - metal" if inputs.roofing_material == "metal" else "Roofing - shingle"
        self.add("Cover", roofing, "sqft", round2(roof_area * ROOFING_FACTOR),
                 self.WASTE_ROOFING, 7, "Roof area x 1.10")

        if inputs.ceiling_finish != "none":
            self.add("Ceiling", _CEILING_NAMES[inputs.ceiling_finish], "sqft", round2(roof_area),
                     self.WASTE_CEILING, 6, "Ceiling finish allowance")
            self.add("Ceiling", "Ceiling fasteners", "ea",
                     ceil_clean(roof_area / CEILING_SQFT_PER_FASTENER), self.WASTE_NONE, 2,
                     f"1 fastener unit per {CEILING_SQFT_PER_FASTENER} sqft")

        if inputs.cover_post_count:
            self.add("Cover", "Cover posts allowance", "ea", inputs.cover_post_count,
                     self.WASTE_NONE, 7, f"Post allowance ({inputs.post_size})")
        if inputs.cover_beam_size:
            self.add("Cover", "Cover beam allowance", "lf", round2(roof_length), self.WASTE_NONE, 7,
                     f"Beam size allowance: {inputs.cover_beam_size}")


class FenceTakeoff(TakeoffBuilder):

    def build(self, inputs: FenceInputs) -> TakeoffResult:
        ov = self.overrides
        spacing = positive(inputs.fence_post_spacing_ft or ov.fence_post_spacing_ft, 0.5)
        rail_count = inputs.fence_rail_count or ov.fence_rail_count
        bags_per_post = ov.fence_bags_per_post
        kit_lf = positive(ov.fence_hardware_kit_lf, 1.0)

        segments = fence_run_segments(inputs)
        run = sum(segments)
        # Segments share their corner posts
        line_posts = sum(ceil_clean(seg / spacing) for seg in segments) + 1 if run > 0 else 0
        gate_posts = inputs.fence_gate_count * 2
        post_count = line_posts + gate_posts

        self.add("Fence", "Fence post", "ea", post_count, self.WASTE_FENCE_POSTS, 3,
                 f"{line_posts} line posts + {gate_posts} gate posts")
        self.add("Fence", "Concrete bag", "bag", round2(post_count * bags_per_post),
                 self.WASTE_CONCRETE, 2, f"{bags_per_post:g} bags per post footing allowance")
        self.add("Fence", "Fence rail", "lf", round2(run * rail_count), self.WASTE_FENCE_BOARDS, 3,
                 f"{rail_count} rails x run length")
        self.add("Fence", "Fence hardware kit", "ea", ceil_clean(run / kit_lf), self.WASTE_NONE, 2,
                 f"Hardware allowance kits per {kit_lf:g} lf")

        if inputs.fence_style == "panel":
            self.add("Fence", "Fence panel", "ea", ceil_clean(run / FENCE_PANEL_WIDTH_FT),
                     self.WASTE_FENCE_POSTS, 5, f"Panel count at {FENCE_PANEL_WIDTH_FT} lf sections")
        else:
            pitch = max(inputs.fence_picket_width_in + inputs.fence_picket_gap_in, _MIN_PICKET_PITCH_IN)
            self.add("Fence", "Fence picket", "ea", ceil_clean(run * 12.0 / pitch), self.WASTE_FENCE_BOARDS, 4,
                     f"{inputs.fence_style} pickets with width+gap spacing")

        if inputs.fence_gate_count > 0:
            self.add("Fence", "Fence gate allowance", "ea", inputs.fence_gate_count, self.WASTE_NONE, 7,
                     f"{inputs.fence_gate_count} gate(s) @ {format_length(inputs.fence_gate_width_ft)}ft allowance")

        is_panel = inputs.fence_style == "panel"
        assumptions = TakeoffAssumptions(
            joist_material="N/A (fence mode)",
            bags_per_footing=bags_per_post,
            screws_per_100_sqft=0,
            formulas={
                "fence_posts": "sum(ceil(segment_ft/post_spacing_ft)) + 1 + gate_count*2",
                "fence_concrete_bags": "fence_posts * bags_per_post",
                "fence_rail_lf": "fence_length_ft * fence_rail_count",
                "fence_pickets": "0" if is_panel else "ceil(fence_length_ft*12/(picket_width_in+picket_gap_in))",
                "fence_panels": "ceil(fence_length_ft/8)" if is_panel else "0",
            },
            constants={
                "fence_post_spacing_ft": spacing,
                "fence_rail_count": rail_count,
                "fence_hardware_kit_lf": kit_lf,
                "fence_segments": ",".join(format_length(s) for s in segments),
                "cost_formula": COST_FORMULA,
                "non_structural_disclaimer": True,
            },
        )
        result = self.finish(assumptions, run * inputs.fence_height_ft)
        logger.info("Fence takeoff: %.1f lf, %d items, $%.2f materials",
                    run, result.totals.item_count, result.totals.materials_subtotal)
        return result


TAKEOFF_BUILDERS = {
    "deck": DeckTakeoff,
    "fence": FenceTakeoff,
}


def generate_takeoff(inputs: Union[DeckInputs, FenceInputs],
                     overrides: Optional[AssumptionOverrides] = None,
                     price_book: Optional[PriceBook] = None) -> TakeoffResult:
    """Itemize and price a deck or fence design."""
    builder_cls = TAKEOFF_BUILDERS.get(inputs.design_mode)
    if builder_cls is None:
        raise ValueError(f"Unknown design mode: {inputs.design_mode!r}")
    builder = builder_cls(overrides or AssumptionOverrides(), price_book or DEFAULT_PRICE_BOOK)
    return builder.build(inputs)


def takeoff_item_key(item: TakeoffItem) -> str:
    return f"{item.category}|{item.name}"


def compute_takeoff_diff(previous: Iterable[TakeoffItem],
                         current: Iterable[TakeoffItem]) -> TakeoffDiff:
    """
    Compare two takeoff versions by item key (category + name).

    Returns lines that appeared, lines that disappeared, and lines whose
    quantity moved.
    """
    prev_map: Dict[str, TakeoffItem] = {takeoff_item_key(i): i for i in previous}
    curr_map: Dict[str, TakeoffItem] = {takeoff_item_key(i): i for i in current}

    added = [item for key, item in curr_map.items() if key not in prev_map]
    removed = [item for key, item in prev_map.items() if key not in curr_map]
    changed = [
        QtyChange(name=item.name, from_qty=prev_map[key].qty, to_qty=item.qty)
        for key, item in curr_map.items()
        if key in prev_map and prev_map[key].qty != item.qty
    ]
    return TakeoffDiff(added=added, removed=removed, changed=changed)
