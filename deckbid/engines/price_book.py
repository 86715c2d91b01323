"""
Material price lookup keyed by PriceKey(base_material, length_ft).

The catalog stores one per-unit price per base material. Stock pieces carry
their length in the key, so a 14 ft joist costs 14 x the per-lf joist price.
A key that isn't in the catalog comes back at $0 with is_allowance=True so
it shows up as incomplete instead of quietly pricing at zero.

Prices are allowance-grade market averages — replace with supplier quotes
before a contract goes out. A JSON file can be merged over the defaults:

    {"2x10 PT joist": {"unit_cost": 4.10, "vendor": "Yard B"}, ...}
"""

import json
import logging
from typing import Dict, Mapping, Optional

from ..schemas import PriceEntry, PriceKey
from .rounding import round2

logger = logging.getLogger(__name__)

_LUMBER = "Allowance Lumber Yard"

# Base prices — per lf for framing/boards, otherwise per listed unit
PRICE_BOOK: Dict[str, dict] = {
    # Framing (per lf)
    "2x8 PT joist": {"unit_cost": 2.90, "vendor": _LUMBER},
    "2x10 PT joist": {"unit_cost": 3.80, "vendor": _LUMBER},
    "2x8 PT rim joist": {"unit_cost": 2.95, "vendor": _LUMBER},
    "2x10 PT rim joist": {"unit_cost": 3.95, "vendor": _LUMBER},
    "PT beam single-ply allowance": {"unit_cost": 8.50, "vendor": _LUMBER, "is_allowance": True},
    "PT beam double-ply allowance": {"unit_cost": 16.50, "vendor": _LUMBER, "is_allowance": True},
    "PT beam triple-ply allowance": {"unit_cost": 24.50, "vendor": _LUMBER, "is_allowance": True},
    # Decking
    "Deck board - wood": {"unit_cost": 2.10, "vendor": _LUMBER},
    "Deck board - composite": {"unit_cost": 3.20, "vendor": "Allowance Composite Supply",
                               "is_allowance": True},
    "Deck board takeoff summary": {"unit_cost": 0.0, "vendor": "Calculated Takeoff",
                                   "is_allowance": True},
    # Fasteners / hardware / waterproofing
    "Exterior screws box": {"unit_cost": 48.00, "vendor": "Allowance Fasteners"},
    "Joist hanger": {"unit_cost": 2.25, "vendor": "Allowance Fasteners"},
    "Ledger flashing": {"unit_cost": 4.50, "vendor": "Allowance Waterproofing"},
    # Footings
    "Concrete bag": {"unit_cost": 7.80, "vendor": "Allowance Concrete"},
    "4x4 PT structural post": {"unit_cost": 24.00, "vendor": "Allowance Structural Lumber"},
    "6x6 PT structural post": {"unit_cost": 42.00, "vendor": "Allowance Structural Lumber"},
    # Railing
    "Railing - wood allowance": {"unit_cost": 42.00, "vendor": "Allowance Railing", "is_allowance": True},
    "Railing - aluminum allowance": {"unit_cost": 78.00, "vendor": "Allowance Railing", "is_allowance": True},
    "Railing - cable allowance": {"unit_cost": 95.00, "vendor": "Allowance Railing", "is_allowance": True},
    "Railing post": {"unit_cost": 32.00, "vendor": "Allowance Railing", "is_allowance": True},
    # Stairs
    "Stair stringer": {"unit_cost": 38.00, "vendor": "Allowance Stairs"},
    "Stair tread boards": {"unit_cost": 5.50, "vendor": "Allowance Stairs"},
    "Stair railing hardware": {"unit_cost": 90.00, "vendor": "Allowance Stairs", "is_allowance": True},
    # Cover / roof
    "Roof sheathing": {"unit_cost": 2.10, "vendor": "Allowance Roofing"},
    "Roofing - shingle": {"unit_cost": 3.85, "vendor": "Allowance Roofing"},
    "Roofing - metal": {"unit_cost": 6.40, "vendor": "Allowance Roofing", "is_allowance": True},
    "Cover posts allowance": {"unit_cost": 165.00, "vendor": "Allowance Structural", "is_allowance": True},
    "Cover beam allowance": {"unit_cost": 45.00, "vendor": "Allowance Structural", "is_allowance": True},
    # Ceiling
    "Ceiling drywall": {"unit_cost": 2.35, "vendor": "Allowance Ceiling"},
    "Ceiling tongue & groove": {"unit_cost": 5.90, "vendor": "Allowance Ceiling", "is_allowance": True},
    "Ceiling beadboard": {"unit_cost": 4.75, "vendor": "Allowance Ceiling", "is_allowance": True},
    "Ceiling fasteners": {"unit_cost": 0.22, "vendor": "Allowance Ceiling"},
    # Fence
    "Fence post": {"unit_cost": 28.00, "vendor": "Allowance Fence Supply"},
    "Fence rail": {"unit_cost": 2.70, "vendor": "Allowance Fence Supply"},
    "Fence picket": {"unit_cost": 4.40, "vendor": "Allowance Fence Supply"},
    "Fence panel": {"unit_cost": 145.00, "vendor": "Allowance Fence Supply", "is_allowance": True},
    "Fence gate allowance": {"unit_cost": 240.00, "vendor": "Allowance Fence Supply", "is_allowance": True},
    "Fence hardware kit": {"unit_cost": 24.00, "vendor": "Allowance Fence Supply"},
}

UNPRICED = PriceEntry(unit_cost=0.0, vendor=None, is_allowance=True)


class PriceBook:
    """
    Resolves PriceKeys against a catalog.

    Usage:
        book = PriceBook()
        entry = book.lookup(PriceKey(base_material="2x10 PT joist", length_ft=14))
        entry.unit_cost  # 53.2
    """

    def __init__(self, catalog: Optional[Mapping[str, dict]] = None):
        source = PRICE_BOOK if catalog is None else catalog
        self._catalog: Dict[str, PriceEntry] = {
            name: PriceEntry(**data) for name, data in source.items()
        }

    @classmethod
    def from_json(cls, path: str) -> "PriceBook":
        """Built-in prices with the entries from a JSON file merged on top."""
        with open(path) as f:
            overrides = json.load(f)
        merged = dict(PRICE_BOOK)
        merged.update(overrides)
        logger.info("Loaded %d price overrides from %s", len(overrides), path)
        return cls(merged)

    def has(self, base_material: str) -> bool:
        return base_material in self._catalog

    def lookup(self, key: PriceKey) -> PriceEntry:
        base = self._catalog.get(key.base_material)
        if base is None:
            return UNPRICED
        if key.length_ft:
            return PriceEntry(
                unit_cost=round2(base.unit_cost * key.length_ft),
                vendor=base.vendor,
                is_allowance=base.is_allowance,
            )
        return base

    def __len__(self) -> int:
        return len(self._catalog)


DEFAULT_PRICE_BOOK = PriceBook()


def load_price_book(path: Optional[str] = None) -> PriceBook:
    """Configured catalog: the JSON override file if one is set, else the built-in book."""
    if not path:
        return DEFAULT_PRICE_BOOK
    return PriceBook.from_json(path)
