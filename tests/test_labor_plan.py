"""
Labor plan tests — production-rate tasks, demo allowance, overrides, templates.
"""

import pytest

from deckbid.engines.labor import DEFAULT_LABOR_TEMPLATES, generate_labor_plan, template_from_json
from deckbid.engines.takeoff import generate_takeoff
from deckbid.schemas import DeckInputs, FenceInputs, LaborTaskOverride

BURDENED_RATE = 64.9  # 55 x 1.18


def _template(name):
    return next(t for t in DEFAULT_LABOR_TEMPLATES if t.name == name)


def _sample_deck_inputs(**overrides):
    data = {
        "deck_length_ft": 20,
        "deck_width_ft": 12,
        "deck_height_ft": 3,
        "post_spacing_ft": 6,
        "railing_type": "wood",
    }
    data.update(overrides)
    return DeckInputs(**data)


def _deck_plan(inputs=None, template="Deck Only - Standard", **kwargs):
    inputs = inputs or _sample_deck_inputs()
    return generate_labor_plan(inputs, generate_takeoff(inputs), _template(template), **kwargs)


def _tasks(plan):
    return {t.key: t for t in plan.tasks}


def test_default_templates():
    names = [t.name for t in DEFAULT_LABOR_TEMPLATES]
    assert names == ["Deck Only - Standard", "Covered Deck - Standard", "Fence - Standard"]
    assert all(t.rates.base_rate == 55 and t.rates.burden_pct == 0.18 for t in DEFAULT_LABOR_TEMPLATES)
    assert _template("Covered Deck - Standard").production.footings_hrs_each == 0.9
    assert _template("Fence - Standard").production.framing_hrs_per_sqft == 0


def test_deck_tasks_from_takeoff_quantities():
    plan = _deck_plan()
    tasks = _tasks(plan)
    assert list(tasks) == ["footings", "framing", "decking", "railing", "stairs"]
    assert tasks["footings"].quantity == 9          # structural post line
    assert tasks["footings"].hours == 6.75
    assert tasks["framing"].hours == 14.4
    assert tasks["decking"].hours == 9.6
    assert tasks["railing"].quantity == 44          # railing line lf
    assert tasks["railing"].hours == 6.6
    assert tasks["stairs"].hours == 0
    assert all(t.rate == BURDENED_RATE for t in plan.tasks)
    assert plan.total_hours == pytest.approx(37.35)


def test_totals_sum_task_costs():
    plan = _deck_plan(_sample_deck_inputs(stair_count=2))
    assert plan.total_labor_cost == pytest.approx(sum(t.cost for t in plan.tasks), abs=0.01)
    assert _tasks(plan)["stairs"].hours == 12


def test_demo_allowance():
    tasks = _tasks(_deck_plan(include_demo=True))
    assert tasks["demo"].hours == 4.0           # max(4, 240 x 0.01)
    assert tasks["demo"].quantity_driver == "include_demo"

    big = _deck_plan(_sample_deck_inputs(deck_length_ft=40, deck_width_ft=15), include_demo=True)
    assert _tasks(big)["demo"].hours == 6.0


def test_override_replaces_hours_and_recomputes_cost():
    plan = _deck_plan(overrides={"framing": LaborTaskOverride(hours=10)})
    framing = _tasks(plan)["framing"]
    assert framing.overridden
    assert framing.hours == 10
    assert framing.rate == BURDENED_RATE
    assert framing.cost == 649.0
    assert not _tasks(plan)["decking"].overridden


def test_override_rate_only():
    plan = _deck_plan(overrides={"railing": LaborTaskOverride(rate=80)})
    railing = _tasks(plan)["railing"]
    assert railing.hours == 6.6
    assert railing.rate == 80
    assert railing.cost == 528.0


def test_covered_deck_adds_cover_task():
    inputs = _sample_deck_inputs(is_covered=True, roof_length_ft=20, roof_width_ft=12)
    tasks = _tasks(_deck_plan(inputs, template="Covered Deck - Standard"))
    assert tasks["cover"].quantity == 240
    assert tasks["cover"].hours == 19.2
    assert tasks["footings"].hours == pytest.approx(8.1)


def test_fence_tasks():
    inputs = FenceInputs(fence_length_ft=100, fence_height_ft=6, fence_gate_count=1)
    plan = generate_labor_plan(inputs, generate_takeoff(inputs), _template("Fence - Standard"),
                               include_demo=True)
    tasks = _tasks(plan)
    assert list(tasks) == ["demo", "fence_layout", "fence_rails", "fence_finish", "fence_gates"]
    assert tasks["demo"].hours == 2.0           # max(2, 100 x 0.02)
    assert tasks["fence_layout"].hours == 5
    assert tasks["fence_rails"].hours == 7
    assert tasks["fence_finish"].hours == 8
    assert tasks["fence_gates"].hours == 2.5
    assert plan.total_hours == 24.5


def test_corner_fence_labor_follows_side_lengths():
    inputs = FenceInputs(fence_layout="corner", fence_side_a_ft=40, fence_side_b_ft=30, fence_height_ft=6)
    takeoff = generate_takeoff(inputs)
    plan = generate_labor_plan(inputs, takeoff, _template("Fence - Standard"), include_demo=True)
    tasks = _tasks(plan)
    assert takeoff.totals.deck_sqft == 420
    assert tasks["fence_layout"].quantity == 70
    assert tasks["fence_layout"].hours == 3.5
    assert tasks["fence_rails"].hours == 4.9
    assert tasks["fence_finish"].hours == 5.6
    assert tasks["demo"].hours == 2.0           # max(2, 70 x 0.02)
    assert plan.total_labor_cost > 0


def test_incomplete_polygon_deck_has_no_footings_labor():
    inputs = _sample_deck_inputs(shape_mode="polygon", deck_polygon_points=[])
    tasks = _tasks(generate_labor_plan(inputs, generate_takeoff(inputs), _template("Deck Only - Standard")))
    assert tasks["footings"].quantity == 0
    assert tasks["framing"].hours == 0


def test_template_from_json_defaults_bad_numbers():
    template = template_from_json(
        "Imported",
        {"base_rate": "not a number", "burden_pct": 0.25},
        {"framing_hrs_per_sqft": float("nan"), "decking_hrs_per_sqft": 0.05},
    )
    assert template.rates.base_rate == 55
    assert template.rates.burden_pct == 0.25
    assert template.production.framing_hrs_per_sqft == 0.06
    assert template.production.decking_hrs_per_sqft == 0.05


def test_missing_template_uses_defaults():
    inputs = _sample_deck_inputs()
    plan = generate_labor_plan(inputs, generate_takeoff(inputs), None)
    assert _tasks(plan)["framing"].rate == BURDENED_RATE
