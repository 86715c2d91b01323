"""
Labor plan generator — production-rate model.

    hours = quantity * production rate
    rate  = base_rate * (1 + burden_pct)        (burdened hourly)
    cost  = hours * rate

Quantities come from the takeoff where possible (post count, railing lf) so
labor and materials never disagree about what's being built.

Per-task overrides replace hours and/or rate; the task is then marked
overridden=True and its cost recomputed.
"""

import logging
from typing import Dict, List, Mapping, Optional, Union

from ..schemas import (
    DeckInputs,
    FenceInputs,
    LaborPlanResult,
    LaborProduction,
    LaborRates,
    LaborTask,
    LaborTaskOverride,
    LaborTemplate,
    TakeoffResult,
)
from .geometry import fence_run_segments
from .rounding import ceil_clean, finite, positive, round2

logger = logging.getLogger(__name__)

_DEFAULT_RATES = LaborRates()
_DEFAULT_PRODUCTION = LaborProduction()

DEFAULT_LABOR_TEMPLATES = [
    LaborTemplate(
        name="Deck Only - Standard",
        production=LaborProduction(cover_hrs_per_sqft=0.0),
    ),
    LaborTemplate(
        name="Covered Deck - Standard",
        production=LaborProduction(footings_hrs_each=0.9),
    ),
    LaborTemplate(
        name="Fence - Standard",
        production=LaborProduction(
            framing_hrs_per_sqft=0.0,
            decking_hrs_per_sqft=0.0,
            railing_hrs_per_lf=0.0,
            stairs_hrs_each=0.0,
            cover_hrs_per_sqft=0.0,
            footings_hrs_each=0.0,
        ),
    ),
]

# Demo allowance when the template leaves demo_hrs at 0
DECK_DEMO_MIN_HRS = 4.0
DECK_DEMO_HRS_PER_SQFT = 0.01
FENCE_DEMO_MIN_HRS = 2.0
FENCE_DEMO_HRS_PER_LF = 0.02


def _clean_template(template: Optional[LaborTemplate]) -> LaborTemplate:
    """Template with any missing or non-finite number replaced by the default."""
    if template is None:
        return LaborTemplate(name="Default")
    rates = {
        field: finite(getattr(template.rates, field, None), getattr(_DEFAULT_RATES, field))
        for field in LaborRates.model_fields
    }
    production = {
        field: finite(getattr(template.production, field, None), getattr(_DEFAULT_PRODUCTION, field))
        for field in LaborProduction.model_fields
    }
    return LaborTemplate(
        name=template.name,
        rates=LaborRates(**rates),
        production=LaborProduction(**production),
    )


def template_from_json(name: str, rates_json: Optional[Mapping],
                       production_json: Optional[Mapping]) -> LaborTemplate:
    """Build a template from stored JSON blobs; unknown keys ignored, bad numbers defaulted."""
    rates_json = rates_json if isinstance(rates_json, Mapping) else {}
    production_json = production_json if isinstance(production_json, Mapping) else {}
    return LaborTemplate(
        name=name,
        rates=LaborRates(**{
            field: finite(rates_json.get(field), getattr(_DEFAULT_RATES, field))
            for field in LaborRates.model_fields
        }),
        production=LaborProduction(**{
            field: finite(production_json.get(field), getattr(_DEFAULT_PRODUCTION, field))
            for field in LaborProduction.model_fields
        }),
    )


def _task(key: str, label: str, driver: str, quantity: float, hours: float,
          rate: float) -> LaborTask:
    return LaborTask(
        key=key,
        task=label,
        quantity_driver=driver,
        quantity=round2(quantity),
        hours=round2(hours),
        rate=round2(rate),
        cost=round2(hours * rate),
    )


def _apply_override(task: LaborTask, override: Optional[LaborTaskOverride]) -> LaborTask:
    if override is None or (override.hours is None and override.rate is None):
        return task
    hours = task.hours if override.hours is None else override.hours
    rate = task.rate if override.rate is None else override.rate
    return task.model_copy(update={
        "hours": round2(hours),
        "rate": round2(rate),
        "cost": round2(hours * rate),
        "overridden": True,
    })


def _first_item_qty(takeoff: Optional[TakeoffResult], category: str,
                    name_suffix: str = "") -> Optional[float]:
    if takeoff is None:
        return None
    for item in takeoff.items:
        if item.category == category and item.name.lower().endswith(name_suffix.lower()):
            return item.qty
    return None


def _deck_tasks(inputs: DeckInputs, takeoff: Optional[TakeoffResult], production: LaborProduction,
                rate: float, include_demo: bool) -> List[LaborTask]:
    deck_sqft = takeoff.totals.deck_sqft if takeoff else 0.0
    railing_lf = _first_item_qty(takeoff, "Railing") or 0.0
    post_count = _first_item_qty(takeoff, "Footings", "PT structural post")
    if post_count is None and takeoff is None:
        # No takeoff yet — rough count from the beam layout
        spacing = positive(inputs.post_spacing_ft, 0.5)
        post_count = (ceil_clean(inputs.deck_length_ft / spacing) + 1) * max(inputs.beam_count, 1)
    elif post_count is None:
        post_count = 0.0

    tasks = []
    if include_demo:
        demo = production.demo_hrs if production.demo_hrs > 0 else max(
            DECK_DEMO_MIN_HRS, deck_sqft * DECK_DEMO_HRS_PER_SQFT)
        tasks.append(_task("demo", "Demo", "include_demo", 1, demo, rate))

    tasks += [
        _task("footings", "Footings/posts", "post_count", post_count,
              post_count * production.footings_hrs_each, rate),
        _task("framing", "Framing", "deck_sqft", deck_sqft,
              deck_sqft * production.framing_hrs_per_sqft, rate),
        _task("decking", "Decking install", "deck_sqft", deck_sqft,
              deck_sqft * production.decking_hrs_per_sqft, rate),
        _task("railing", "Railing", "railing_lf", railing_lf,
              railing_lf * production.railing_hrs_per_lf, rate),
        _task("stairs", "Stairs", "stair_count", inputs.stair_count,
              inputs.stair_count * production.stairs_hrs_each, rate),
    ]
    if inputs.is_covered:
        roof_sqft = inputs.roof_sqft
        tasks.append(_task("cover", "Cover framing + roofing", "roof_sqft", roof_sqft,
                           roof_sqft * production.cover_hrs_per_sqft, rate))
    return tasks


def _fence_tasks(inputs: FenceInputs, production: LaborProduction, rate: float,
                 include_demo: bool) -> List[LaborTask]:
    # Same run the takeoff itemizes: per-side lengths when the layout has them
    length = sum(fence_run_segments(inputs))
    gates = inputs.fence_gate_count

    tasks = []
    if include_demo:
        demo = production.demo_hrs if production.demo_hrs > 0 else max(
            FENCE_DEMO_MIN_HRS, length * FENCE_DEMO_HRS_PER_LF)
        tasks.append(_task("demo", "Demo", "include_demo", 1, demo, rate))

    tasks += [
        _task("fence_layout", "Layout + post install", "fence_run_lf", length,
              length * production.fence_layout_hrs_per_lf, rate),
        _task("fence_rails", "Rails + panel framing", "fence_run_lf", length,
              length * production.fence_rails_hrs_per_lf, rate),
        _task("fence_finish", "Pickets / panel install", "fence_run_lf", length,
              length * production.fence_pickets_hrs_per_lf, rate),
        _task("fence_gates", "Gate install", "fence_gate_count", gates,
              gates * production.fence_gate_hrs_each, rate),
    ]
    return tasks


def generate_labor_plan(inputs: Union[DeckInputs, FenceInputs],
                        takeoff: Optional[TakeoffResult],
                        template: Optional[LaborTemplate],
                        include_demo: bool = False,
                        overrides: Optional[Mapping[str, LaborTaskOverride]] = None) -> LaborPlanResult:
    """Build the task list for a design, apply overrides, and total it up."""
    clean = _clean_template(template)
    rate = clean.rates.base_rate * (1 + clean.rates.burden_pct)

    if inputs.design_mode == "fence":
        tasks = _fence_tasks(inputs, clean.production, rate, include_demo)
    else:
        tasks = _deck_tasks(inputs, takeoff, clean.production, rate, include_demo)

    overrides: Dict[str, LaborTaskOverride] = dict(overrides or {})
    tasks = [_apply_override(t, overrides.get(t.key)) for t in tasks]

    total_hours = round2(sum(t.hours for t in tasks))
    total_cost = round2(sum(t.cost for t in tasks))
    logger.info("Labor plan (%s): %d tasks, %.2f hrs, $%.2f",
                clean.name, len(tasks), total_hours, total_cost)
    return LaborPlanResult(tasks=tuple(tasks), total_hours=total_hours, total_labor_cost=total_cost)
