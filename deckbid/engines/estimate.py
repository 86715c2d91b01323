"""
Estimate totals — materials + labor, then overhead, profit and tax.

    base      = materials + labor
    overhead  = base * overhead_pct
    profit    = (base + overhead) * profit_pct
    pre_tax   = base + overhead + profit
    tax       = (materials | pre_tax) * tax_pct      depending on tax_mode
    grand     = pre_tax + tax

Each stage is rounded half-up to cents before the next stage uses it, so the
printed lines always add up to the printed grand total.
"""

import logging
from typing import Iterable, Optional

from ..schemas import EstimateTotals, LaborPlanResult, TakeoffItem
from .rounding import finite, round2

logger = logging.getLogger(__name__)


def materials_subtotal(items: Iterable[TakeoffItem]) -> float:
    """Sum of line totals, rounded to cents once at the end."""
    total = 0.0
    for item in items:
        qty = finite(item.qty)
        waste = finite(item.waste_factor)
        unit_cost = finite(item.unit_cost)
        total += qty * (1 + waste) * unit_cost
    return round2(total)


def estimate_totals(items: Iterable[TakeoffItem], labor_plan: Optional[LaborPlanResult],
                    overhead_pct: float, profit_pct: float, tax_pct: float,
                    tax_mode: str = "materials_only") -> EstimateTotals:
    subtotal_materials = materials_subtotal(items)
    subtotal_labor = round2(finite(labor_plan.total_labor_cost)) if labor_plan else 0.0

    base = subtotal_materials + subtotal_labor
    overhead_amount = round2(base * finite(overhead_pct))
    profit_amount = round2((base + overhead_amount) * finite(profit_pct))
    pre_tax = base + overhead_amount + profit_amount

    tax_base = subtotal_materials if tax_mode == "materials_only" else pre_tax
    tax_amount = round2(tax_base * finite(tax_pct))
    grand_total = round2(pre_tax + tax_amount)

    logger.info(
        "Estimate: materials $%.2f + labor $%.2f -> grand total $%.2f (%s tax)",
        subtotal_materials, subtotal_labor, grand_total, tax_mode,
    )
    return EstimateTotals(
        subtotal_materials=subtotal_materials,
        subtotal_labor=subtotal_labor,
        overhead_amount=overhead_amount,
        profit_amount=profit_amount,
        tax_amount=tax_amount,
        grand_total=grand_total,
    )
