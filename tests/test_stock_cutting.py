"""
Stock-cutting optimizer tests — minimum overage, fewest pieces, catalog validation.
"""

import itertools

import pytest

from deckbid.engines.stock_cutting import (
    BOARD_LENGTHS_FT,
    accumulate_stock_mix,
    best_mix_for_run,
    format_stock_mix,
)
from deckbid.schemas import StockMix


def _brute_force(run_ft, lengths, max_pieces=4):
    """(overage, pieces) of the best combination, by exhaustive search."""
    best = None
    for n in range(1, max_pieces + 1):
        for combo in itertools.combinations_with_replacement(lengths, n):
            total = sum(combo)
            if total + 1e-9 < run_ft:
                continue
            candidate = (round(total - run_ft, 6), n)
            if best is None or candidate < best:
                best = candidate
    return best


def test_exact_single_piece():
    mix = best_mix_for_run(12, BOARD_LENGTHS_FT)
    assert mix.counts == {12.0: 1}
    assert mix.overage_ft == 0


def test_twenty_feet_is_two_pieces_no_overage():
    mix = best_mix_for_run(20, BOARD_LENGTHS_FT)
    assert mix.total_length_ft == 20
    assert mix.piece_count == 2
    assert mix.overage_ft == 0


def test_odd_run_takes_smallest_overage():
    mix = best_mix_for_run(17, BOARD_LENGTHS_FT)
    assert mix.overage_ft == 1.0
    assert mix.total_length_ft == 18


def test_fractional_run():
    mix = best_mix_for_run(16.5, BOARD_LENGTHS_FT)
    assert mix.overage_ft == 1.5
    assert mix.piece_count == 2


@pytest.mark.parametrize("run_ft", [3, 7.5, 9, 11.2, 15, 21, 23.4, 27, 31, 40])
def test_matches_exhaustive_search(run_ft):
    """Nothing beats the DP on overage, and ties go to fewer pieces."""
    mix = best_mix_for_run(run_ft, BOARD_LENGTHS_FT)
    expected_over, expected_pieces = _brute_force(run_ft, BOARD_LENGTHS_FT)
    assert mix.overage_ft == pytest.approx(expected_over, abs=0.051)
    assert mix.piece_count == expected_pieces
    assert mix.total_length_ft >= run_ft


def test_non_positive_run_is_empty():
    assert best_mix_for_run(0, BOARD_LENGTHS_FT).counts == {}
    assert best_mix_for_run(-5, BOARD_LENGTHS_FT).piece_count == 0


def test_empty_catalog_fails_fast():
    with pytest.raises(ValueError):
        best_mix_for_run(12, [])
    with pytest.raises(ValueError):
        best_mix_for_run(12, [0, -8])
    with pytest.raises(ValueError):
        accumulate_stock_mix([12], 2, [])


def test_accumulate_scales_by_repeat():
    """Rectangle rim: [length, width] x 2 sides."""
    mix = accumulate_stock_mix([20, 12], 2, BOARD_LENGTHS_FT)
    assert mix.total_length_ft == 64
    assert mix.piece_count == 6
    assert mix.overage_ft == 0


def test_accumulate_sums_overage():
    mix = accumulate_stock_mix([17], 3, BOARD_LENGTHS_FT)
    assert mix.overage_ft == 3.0


def test_format_stock_mix_longest_first():
    assert format_stock_mix(StockMix(counts={12.0: 1, 16.0: 3})) == "16ft x 3, 12ft x 1"
    assert format_stock_mix(StockMix(counts={10.5: 2})) == "10.5ft x 2"
    assert format_stock_mix(StockMix()) == "no stock lengths"
