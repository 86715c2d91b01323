"""
Stock-length cutting optimizer.

For one run (a joist, a rim side, a beam ply, a decking course) pick the
combination of stock lengths whose total is the smallest value >= the run,
breaking ties by fewest pieces. Lengths are handled in tenths of a foot so
the dynamic program works on integers:

    pieces[t] = min(pieces[t - len] + 1) for len in catalog
    search window: target .. target + longest stock length

Runs are solved independently and summed. There is no global bin-packing
across different run lengths — lumber is ordered per distinct run.
"""

import math
from typing import Dict, Iterable, List, Sequence

from ..schemas import StockMix
from .rounding import round2

# Standard yard lengths (ft)
BOARD_LENGTHS_FT = (8, 10, 12, 14, 16)
FRAMING_LENGTHS_FT = (8, 10, 12, 14, 16)

_TENTHS = 10


def _to_tenths(feet: float) -> int:
    return int(round(feet * _TENTHS))


def _catalog_tenths(stock_lengths_ft: Iterable[float]) -> List[int]:
    lengths = sorted({_to_tenths(v) for v in stock_lengths_ft if v and v > 0})
    lengths = [v for v in lengths if v > 0]
    if not lengths:
        raise ValueError(
            "Stock catalog has no positive lengths — configure at least one stock size"
        )
    return lengths


def best_mix_for_run(run_length_ft: float, stock_lengths_ft: Sequence[float]) -> StockMix:
    """Minimum-overage stock combination for a single run."""
    lengths = _catalog_tenths(stock_lengths_ft)
    if not run_length_ft or run_length_ft <= 0:
        return StockMix()

    target = max(1, math.ceil(round(run_length_ft * _TENTHS, 6)))
    limit = target + lengths[-1]

    pieces = [math.inf] * (limit + 1)
    prev = [-1] * (limit + 1)
    used = [0] * (limit + 1)
    pieces[0] = 0

    for total in range(1, limit + 1):
        for length in lengths:
            start = total - length
            if start < 0:
                break
            candidate = pieces[start] + 1
            if candidate < pieces[total]:
                pieces[total] = candidate
                prev[total] = start
                used[total] = length

    best_total = -1
    best_over = math.inf
    best_pieces = math.inf
    for total in range(target, limit + 1):
        if pieces[total] == math.inf:
            continue
        over = total - target
        if over < best_over or (over == best_over and pieces[total] < best_pieces):
            best_total = total
            best_over = over
            best_pieces = pieces[total]

    counts: Dict[float, int] = {}
    cursor = best_total
    while cursor > 0 and prev[cursor] >= 0:
        length_ft = used[cursor] / _TENTHS
        counts[length_ft] = counts.get(length_ft, 0) + 1
        cursor = prev[cursor]

    return StockMix(counts=counts, overage_ft=round2(best_over / _TENTHS))


def accumulate_stock_mix(runs_ft: Sequence[float], repeat_count: int,
                         stock_lengths_ft: Sequence[float]) -> StockMix:
    """
    Solve each run independently, then scale by repeat_count and sum.

    e.g. runs=[deck_length, deck_width], repeat_count=2 for a rectangle's rim.
    """
    _catalog_tenths(stock_lengths_ft)
    repeat = max(int(repeat_count), 0)
    totals: Dict[float, int] = {}
    overage = 0.0
    for run in runs_ft:
        mix = best_mix_for_run(run, stock_lengths_ft)
        overage += mix.overage_ft * repeat
        for length_ft, count in mix.counts.items():
            totals[length_ft] = totals.get(length_ft, 0) + count * repeat
    totals = {length: count for length, count in totals.items() if count > 0}
    return StockMix(counts=totals, overage_ft=round2(overage))


def format_length(length_ft: float) -> str:
    """16.0 -> '16', 10.5 -> '10.5'."""
    return f"{length_ft:g}"


def format_stock_mix(mix: StockMix) -> str:
    entries = mix.longest_first()
    if not entries:
        return "no stock lengths"
    return ", ".join(f"{format_length(length)}ft x {qty}" for length, qty in entries)
