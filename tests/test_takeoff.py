"""
Takeoff itemizer tests — deck, covered deck and fence line items, pricing, diffs.

Tests:
1-9.   Deck takeoff (summaries, stock lines, ledger, railing, totals)
10-12. Covered deck cover/ceiling package
13-16. Fence takeoff
17-20. Price book
21-23. Covered package validation + takeoff diff
"""

import json

import pytest

from deckbid.engines.covered import validate_covered_package
from deckbid.engines.price_book import PriceBook, load_price_book
from deckbid.engines.rounding import round2
from deckbid.engines.takeoff import compute_takeoff_diff, generate_takeoff
from deckbid.schemas import AssumptionOverrides, DeckInputs, FenceInputs, PriceKey, TakeoffItem


def _sample_deck_inputs(**overrides):
    data = {
        "deck_length_ft": 20,
        "deck_width_ft": 12,
        "deck_height_ft": 3,
        "decking_material": "wood",
        "joist_spacing_in": 16,
        "ledger": True,
        "beam_count": 1,
        "post_size": "6x6",
        "post_spacing_ft": 6,
        "railing_type": "wood",
    }
    data.update(overrides)
    return DeckInputs(**data)


def _sample_covered_inputs(**overrides):
    data = {
        "is_covered": True,
        "roof_type": "shed",
        "roof_pitch": "4/12",
        "roof_length_ft": 20,
        "roof_width_ft": 12,
        "rafter_spacing_in": 16,
        "roofing_material": "metal",
        "roofing_product_type": "standing seam",
        "roofing_color": "charcoal",
        "ceiling_finish": "drywall",
        "cover_post_count": 3,
        "cover_beam_size": "6x10 PT",
    }
    data.update(overrides)
    return _sample_deck_inputs(**data)


def _sample_fence_inputs(**overrides):
    data = {
        "fence_length_ft": 100,
        "fence_height_ft": 6,
        "fence_style": "privacy",
        "fence_gate_count": 1,
    }
    data.update(overrides)
    return FenceInputs(**data)


def _by_name(result):
    return {item.name: item for item in result.items}


# ============================================================
# Deck takeoff
# ============================================================

def test_deck_summary_lines_come_first():
    result = generate_takeoff(_sample_deck_inputs())
    names = [item.name for item in result.items[:3]]
    assert names == [
        "2x10 PT joist (LF summary)",
        "2x10 PT rim joist (LF summary)",
        "PT beam double-ply allowance (LF summary)",
    ]
    joists = result.items[0]
    assert joists.qty == 180           # 15 joists x 12 ft
    assert joists.unit_cost == 0
    assert joists.is_allowance
    assert "stock: 12ft x 15" in joists.notes


def test_deck_core_quantities():
    items = _by_name(generate_takeoff(_sample_deck_inputs()))
    assert items["Deck board takeoff summary"].qty == 240
    assert items["Exterior screws box"].qty == 3
    assert items["6x6 PT structural post"].qty == 9
    assert items["Concrete bag"].qty == 18
    assert items["Joist hanger"].qty == 15
    assert items["Ledger flashing"].qty == 20


def test_joist_stock_line_priced_by_length():
    items = _by_name(generate_takeoff(_sample_deck_inputs()))
    joist = items["2x10 PT joist - 12ft"]
    assert joist.qty == 15
    assert joist.unit_cost == 45.6     # 3.80/lf x 12
    assert joist.price_key == PriceKey(base_material="2x10 PT joist", length_ft=12)
    assert joist.line_total == pytest.approx(15 * 1.1 * 45.6)


def test_rim_and_beam_stock_cover_their_runs():
    result = generate_takeoff(_sample_deck_inputs())
    rim = [i for i in result.items if i.name.startswith("2x10 PT rim joist - ")]
    beam = [i for i in result.items if i.name.startswith("PT beam double-ply allowance - ")]
    rim_lf = sum(i.qty * i.price_key.length_ft for i in rim)
    beam_lf = sum(i.qty * i.price_key.length_ft for i in beam)
    assert rim_lf == 64                # 2 x (20 + 12)
    assert beam_lf == 40               # 1 beam x 2 plies x 20 ft


def test_deck_boards_per_course():
    items = _by_name(generate_takeoff(_sample_deck_inputs()))
    boards = {name: item for name, item in items.items() if name.startswith("Deck board - wood")}
    # 20 ft course = 12 + 8; 27 courses across 12 ft of 5.5" boards
    assert set(boards) == {"Deck board - wood 12ft", "Deck board - wood 8ft"}
    assert all(item.qty == 27 for item in boards.values())
    assert boards["Deck board - wood 12ft"].unit_cost == 25.2


def test_railing_excludes_ledger_side():
    items = _by_name(generate_takeoff(_sample_deck_inputs(stair_count=1, stair_width_ft=4)))
    assert items["Railing - wood allowance"].qty == 40
    assert items["Railing post"].qty == 8
    assert items["Stair stringer"].qty == 4
    assert items["Stair tread boards"].qty == 16
    assert items["Stair railing hardware"].qty == 1


def test_no_ledger_no_hanger_or_flashing():
    items = _by_name(generate_takeoff(_sample_deck_inputs(ledger=False)))
    assert "Joist hanger" not in items
    assert "Ledger flashing" not in items


def test_materials_subtotal_is_rounded_sum():
    result = generate_takeoff(_sample_deck_inputs(stair_count=1))
    expected = round2(sum(item.line_total for item in result.items))
    assert result.totals.materials_subtotal == expected
    assert result.totals.item_count == len(result.items)
    assert result.totals.deck_sqft == 240


def test_generation_is_deterministic():
    inputs = _sample_covered_inputs(stair_count=2)
    assert generate_takeoff(inputs) == generate_takeoff(inputs)


def test_assumptions_record_formulas_and_overrides():
    overrides = AssumptionOverrides(max_joist_span_ft=8)
    result = generate_takeoff(_sample_deck_inputs(), overrides)
    assert result.assumptions.joist_material == "2x8 PT"
    assert result.assumptions.constants["max_joist_span_ft"] == 8
    assert result.assumptions.constants["non_structural_disclaimer"] is True
    assert "joist_count" in result.assumptions.formulas


@pytest.mark.parametrize("points", [
    [],
    [{"x": 0, "y": 0}, {"x": 10, "y": 0}],
])
def test_incomplete_polygon_has_no_priced_lines(points):
    result = generate_takeoff(_sample_deck_inputs(shape_mode="polygon", deck_polygon_points=points))
    assert result.totals.deck_sqft == 0
    assert result.totals.materials_subtotal == 0
    assert result.totals.item_count == 0
    assert result.items == ()
    assert result.assumptions.constants["shape_is_complete"] is False


# ============================================================
# Covered deck
# ============================================================

def test_covered_deck_cover_items():
    items = _by_name(generate_takeoff(_sample_covered_inputs()))
    assert items["2x8 PT joist"].qty == 200          # 10 rafters x 20 ft
    assert items["2x8 PT joist"].category == "Cover"
    assert items["Roof sheathing"].qty == 252
    assert items["Roofing - metal"].qty == 264
    assert items["Ceiling drywall"].qty == 240
    assert items["Ceiling fasteners"].qty == 12
    assert items["Cover posts allowance"].qty == 3
    assert items["Cover beam allowance"].qty == 20


def test_uncovered_deck_has_no_cover_items():
    result = generate_takeoff(_sample_covered_inputs(is_covered=False))
    assert not [i for i in result.items if i.category in ("Cover", "Ceiling")]


def test_ceiling_none_skips_ceiling():
    result = generate_takeoff(_sample_covered_inputs(ceiling_finish="none", roofing_material="shingle"))
    items = _by_name(result)
    assert "Roofing - shingle" in items
    assert not [i for i in result.items if i.category == "Ceiling"]


# ============================================================
# Fence
# ============================================================

def test_fence_items():
    result = generate_takeoff(_sample_fence_inputs())
    items = _by_name(result)
    assert items["Fence post"].qty == 16       # ceil(100/8)+1 line + 2 gate
    assert items["Concrete bag"].qty == 32
    assert items["Fence rail"].qty == 200
    assert items["Fence hardware kit"].qty == 2
    assert items["Fence picket"].qty == 200    # 1200" / 6" pitch
    assert items["Fence gate allowance"].qty == 1
    assert result.totals.deck_sqft == 600
    assert result.assumptions.joist_material == "N/A (fence mode)"


def test_fence_corner_shares_posts():
    result = generate_takeoff(_sample_fence_inputs(
        fence_length_ft=70, fence_layout="corner", fence_side_a_ft=40, fence_side_b_ft=30,
        fence_gate_count=0))
    assert _by_name(result)["Fence post"].qty == 10   # 5 + 4 + 1


def test_fence_panel_style():
    items = _by_name(generate_takeoff(_sample_fence_inputs(fence_style="panel")))
    assert items["Fence panel"].qty == 13
    assert "Fence picket" not in items


def test_fence_and_deck_items_are_disjoint():
    fence = generate_takeoff(_sample_fence_inputs())
    deck = generate_takeoff(_sample_covered_inputs(stair_count=1))
    assert {i.category for i in fence.items} == {"Fence"}
    assert "Fence" not in {i.category for i in deck.items}


def test_fence_inputs_override_project_assumptions():
    overrides = AssumptionOverrides(fence_post_spacing_ft=10, fence_rail_count=3)
    from_assumptions = _by_name(generate_takeoff(_sample_fence_inputs(fence_gate_count=0), overrides))
    from_inputs = _by_name(generate_takeoff(
        _sample_fence_inputs(fence_gate_count=0, fence_post_spacing_ft=5), overrides))
    assert from_assumptions["Fence post"].qty == 11
    assert from_assumptions["Fence rail"].qty == 300
    assert from_inputs["Fence post"].qty == 21


# ============================================================
# Price book
# ============================================================

def test_price_book_lookup_multiplies_length():
    book = PriceBook()
    assert book.lookup(PriceKey(base_material="2x10 PT joist", length_ft=14)).unit_cost == 53.2
    assert book.lookup(PriceKey(base_material="Joist hanger")).unit_cost == 2.25


def test_price_book_unknown_is_zero_allowance():
    entry = PriceBook().lookup(PriceKey(base_material="Unobtainium bracket"))
    assert entry.unit_cost == 0
    assert entry.is_allowance


def test_empty_catalog_flags_every_line():
    result = generate_takeoff(_sample_deck_inputs(), price_book=PriceBook(catalog={}))
    assert result.totals.materials_subtotal == 0
    assert all(item.is_allowance for item in result.items)


def test_price_book_json_override(tmp_path):
    path = tmp_path / "prices.json"
    path.write_text(json.dumps({"Joist hanger": {"unit_cost": 3.10, "vendor": "Yard B"}}))
    book = load_price_book(str(path))
    entry = book.lookup(PriceKey(base_material="Joist hanger"))
    assert entry.unit_cost == 3.10
    assert entry.vendor == "Yard B"
    assert book.lookup(PriceKey(base_material="Concrete bag")).unit_cost == 7.80


# ============================================================
# Covered package + diff
# ============================================================

def test_covered_package_missing_labels():
    check = validate_covered_package({"is_covered": True, "roof_length_ft": 20})
    assert not check.ready
    assert "Roof length + width" in check.missing
    assert "Roof pitch" in check.missing
    assert len(check.missing) == 8


def test_covered_package_complete():
    check = validate_covered_package(_sample_covered_inputs())
    assert check.ready
    assert check.missing == []


def test_takeoff_diff():
    def item(name, qty, category="Framing"):
        return TakeoffItem(category=category, name=name, unit="ea", qty=qty)

    previous = [item("Joist hanger", 15), item("Ledger flashing", 20), item("Railing post", 9)]
    current = [item("Joist hanger", 18), item("Railing post", 9), item("Stair stringer", 4)]
    diff = compute_takeoff_diff(previous, current)
    assert [i.name for i in diff.added] == ["Stair stringer"]
    assert [i.name for i in diff.removed] == ["Ledger flashing"]
    assert len(diff.changed) == 1
    assert (diff.changed[0].name, diff.changed[0].from_qty, diff.changed[0].to_qty) == ("Joist hanger", 15, 18)
