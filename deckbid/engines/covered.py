"""
Covered-deck package completeness.

A covered deck can't be bid until the roof/ceiling package is specified.
Checks run against raw form data as well as validated DeckInputs, so the
API can report every missing piece in one pass.
"""

from typing import Mapping, Union

from pydantic import BaseModel

from ..schemas import CoveredPackageValidation
from .rounding import finite


def _text(data: Mapping, key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value).strip()


def _number(data: Mapping, key: str) -> float:
    return finite(data.get(key))


# (label shown to the estimator, check)
COVERED_PACKAGE_CHECKS = [
    ("Roof style", lambda d: bool(_text(d, "roof_type"))),
    ("Roof pitch", lambda d: bool(_text(d, "roof_pitch"))),
    ("Roof length + width", lambda d: _number(d, "roof_length_ft") > 0 and _number(d, "roof_width_ft") > 0),
    ("Roofing material + type",
     lambda d: bool(_text(d, "roofing_material")) and bool(_text(d, "roofing_product_type"))),
    ("Roof color", lambda d: bool(_text(d, "roofing_color"))),
    ("Ceiling finish", lambda d: bool(_text(d, "ceiling_finish"))),
    ("Cover post count", lambda d: _number(d, "cover_post_count") > 0),
    ("Cover beam size", lambda d: bool(_text(d, "cover_beam_size"))),
]


def validate_covered_package(inputs: Union[BaseModel, Mapping]) -> CoveredPackageValidation:
    data = inputs.model_dump() if isinstance(inputs, BaseModel) else dict(inputs or {})
    missing = [label for label, check in COVERED_PACKAGE_CHECKS if not check(data)]
    return CoveredPackageValidation(ready=not missing, missing=missing)
