"""
Data contracts shared by the estimating engines and the API layer.

Inputs (DeckInputs / FenceInputs / AssumptionOverrides) are validated here
before they reach the engines. Results (GeometryResult, TakeoffResult,
LaborPlanResult, EstimateTotals, ...) are frozen value objects — a new
calculation produces a new object, nothing is mutated in place.
"""

from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    computed_field,
    field_validator,
    model_validator,
)

DeckingMaterial = Literal["wood", "composite"]
JoistSpacing = Literal[12, 16, 24]
LedgerSide = Literal["top", "right", "bottom", "left"]
PostSize = Literal["4x4", "6x6"]
RailingType = Literal["none", "wood", "aluminum", "cable"]
RailingSides = Literal["all", "3_sides", "custom"]
RoofType = Literal["shed", "gable"]
RoofingMaterial = Literal["shingle", "metal"]
CeilingFinish = Literal["none", "drywall", "tongue_groove", "beadboard"]
ShapeMode = Literal["rectangle", "polygon"]
FenceLayout = Literal["straight", "corner", "u_shape"]
FenceMaterial = Literal["wood", "vinyl", "metal"]
FenceStyle = Literal["privacy", "picket", "panel"]
Unit = Literal["ea", "lf", "sqft", "yd", "bag", "box"]
TaxMode = Literal["materials_only", "grand_total"]
ProjectType = Literal["deck", "covered_deck", "fence"]
ProjectStatus = Literal["draft", "estimating", "sent", "won", "lost"]


# ============================================================
# Design inputs
# ============================================================

class _InputModel(BaseModel):
    """Form-friendly base: blank strings fall back to defaults, infinities are rejected."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def _drop_blanks(cls, data):
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if not (isinstance(v, str) and v == "")}
        return data


def _coerce_spacing(value):
    # Spacing arrives as "16" from forms; Literal[12, 16, 24] won't coerce on its own
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class Point(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float
    y: float


class DeckInputs(_InputModel):
    design_mode: Literal["deck"] = "deck"

    deck_length_ft: float = Field(default=0.0, ge=0)
    deck_width_ft: float = Field(default=0.0, ge=0)
    deck_height_ft: float = Field(default=0.0, ge=0)
    decking_material: DeckingMaterial = "wood"
    decking_board_width_in: float = Field(default=5.5, gt=0)
    joist_spacing_in: JoistSpacing = 16
    ledger: bool = True
    ledger_side: LedgerSide = "top"
    beam_count: int = Field(default=1, ge=1)
    post_size: PostSize = "6x6"
    post_spacing_ft: float = Field(default=6.0, gt=0)
    stair_count: int = Field(default=0, ge=0)
    stair_width_ft: float = Field(default=4.0, gt=0)
    railing_type: RailingType = "wood"
    railing_sides: RailingSides = "all"
    custom_railing_lf: Optional[float] = Field(default=None, gt=0)

    # Cover (roof) package
    is_covered: bool = False
    roof_type: Optional[RoofType] = None
    roof_pitch: Optional[str] = None
    roof_length_ft: Optional[float] = Field(default=None, gt=0)
    roof_width_ft: Optional[float] = Field(default=None, gt=0)
    rafter_spacing_in: JoistSpacing = 16
    roofing_material: Optional[RoofingMaterial] = None
    roofing_product_type: Optional[str] = None
    roofing_color: Optional[str] = None
    ceiling_finish: CeilingFinish = "none"
    cover_post_count: Optional[int] = Field(default=None, ge=0)
    cover_beam_size: Optional[str] = Field(default=None, max_length=120)

    # Footprint
    shape_mode: ShapeMode = "rectangle"
    deck_polygon_points: Tuple[Point, ...] = ()
    ledger_line_index: Optional[int] = None
    deck_area_override_sqft: Optional[float] = Field(default=None, gt=0)
    deck_perimeter_override_lf: Optional[float] = Field(default=None, gt=0)

    @field_validator("joist_spacing_in", "rafter_spacing_in", mode="before")
    @classmethod
    def _spacing(cls, value):
        return _coerce_spacing(value)

    @property
    def roof_sqft(self) -> float:
        if self.is_covered and self.roof_length_ft and self.roof_width_ft:
            return self.roof_length_ft * self.roof_width_ft
        return 0.0


class FenceInputs(_InputModel):
    design_mode: Literal["fence"] = "fence"

    fence_length_ft: float = Field(default=0.0, ge=0)
    fence_layout: FenceLayout = "straight"
    fence_side_a_ft: Optional[float] = Field(default=None, ge=0)
    fence_side_b_ft: Optional[float] = Field(default=None, ge=0)
    fence_side_c_ft: Optional[float] = Field(default=None, ge=0)
    fence_height_ft: float = Field(default=0.0, ge=0)
    fence_material: FenceMaterial = "wood"
    fence_style: FenceStyle = "privacy"
    # None means "use the project assumption" (AssumptionOverrides)
    fence_post_spacing_ft: Optional[float] = Field(default=None, gt=0)
    fence_rail_count: Optional[int] = Field(default=None, ge=1)
    fence_picket_width_in: float = Field(default=5.5, gt=0)
    fence_picket_gap_in: float = Field(default=0.5, ge=0)
    fence_gate_count: int = Field(default=0, ge=0)
    fence_gate_width_ft: float = Field(default=4.0, gt=0)


DesignInputs = Annotated[Union[DeckInputs, FenceInputs], Field(discriminator="design_mode")]

_design_inputs_adapter = TypeAdapter(DesignInputs)


def parse_design_inputs(data: dict) -> Union[DeckInputs, FenceInputs]:
    """Validate a raw inputs dict. Missing design_mode means a deck."""
    payload = dict(data or {})
    if not payload.get("design_mode"):
        payload["design_mode"] = "deck"
    return _design_inputs_adapter.validate_python(payload)


class AssumptionOverrides(BaseModel):
    """Tunable estimating constants. Every field has the shop default."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    max_joist_span_ft: float = Field(default=10.0, gt=0)
    composite_joist_spacing_in: float = Field(default=12.0, gt=0)
    railing_post_spacing_ft: float = Field(default=6.0, gt=0)
    beam_double_ply_length_ft: float = Field(default=14.0, gt=0)
    beam_triple_ply_length_ft: float = Field(default=24.0, gt=0)
    require_complete_covered_package: bool = False
    fence_post_spacing_ft: float = Field(default=8.0, gt=0)
    fence_rail_count: int = Field(default=2, ge=1)
    fence_bags_per_post: float = Field(default=2.0, ge=0)
    fence_hardware_kit_lf: float = Field(default=50.0, gt=0)


# ============================================================
# Engine results
# ============================================================

class GeometryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    area_sqft: float
    perimeter_lf: float
    length_ft: float
    width_ft: float
    ledger_edge: Optional[Tuple[Point, Point]] = None
    ledger_edge_index: Optional[int] = None
    ledger_run_ft: float = 0.0
    source: Literal["rectangular_inputs", "polygon_points"] = "rectangular_inputs"
    is_complete: bool = True


class SizingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    joist_spacing_in: float
    joist_span_ft: float
    joist_size: str
    joist_count: int
    framing_depth_ft: float
    beam_count: int
    beam_ply: int
    posts_per_beam: int
    structural_post_count: int
    railing_support_run_lf: float
    railing_spans: int
    railing_post_count: int
    post_count: int
    stair_opening_ft: float
    risers: int
    treads: int
    stringers_per_stair: int


class StockMix(BaseModel):
    """Stock length (ft) -> piece count, plus the cut-off left over."""

    model_config = ConfigDict(frozen=True)

    counts: Dict[float, int] = Field(default_factory=dict)
    overage_ft: float = 0.0

    @property
    def piece_count(self) -> int:
        return sum(self.counts.values())

    @property
    def total_length_ft(self) -> float:
        return sum(length * count for length, count in self.counts.items())

    def longest_first(self) -> List[Tuple[float, int]]:
        return sorted(self.counts.items(), key=lambda entry: entry[0], reverse=True)


class PriceKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_material: str
    length_ft: Optional[float] = None


class PriceEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit_cost: float = 0.0
    vendor: Optional[str] = None
    is_allowance: bool = False


class TakeoffItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    name: str
    unit: Unit
    qty: float
    waste_factor: float = 0.0
    unit_cost: float = 0.0
    vendor: Optional[str] = None
    lead_time_days: int = 0
    notes: Optional[str] = None
    is_allowance: bool = False
    sku: Optional[str] = None
    price_key: Optional[PriceKey] = None

    @computed_field
    @property
    def line_total(self) -> float:
        return self.qty * (1 + self.waste_factor) * self.unit_cost


class TakeoffAssumptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    joist_material: str
    bags_per_footing: float
    screws_per_100_sqft: float
    formulas: Dict[str, str] = Field(default_factory=dict)
    constants: Dict[str, Union[bool, int, float, str]] = Field(default_factory=dict)


class TakeoffTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    deck_sqft: float = 0.0
    materials_subtotal: float = 0.0
    item_count: int = 0


class TakeoffResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    assumptions: TakeoffAssumptions
    items: Tuple[TakeoffItem, ...] = ()
    totals: TakeoffTotals = TakeoffTotals()


class QtyChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    from_qty: float
    to_qty: float


class TakeoffDiff(BaseModel):
    model_config = ConfigDict(frozen=True)

    added: List[TakeoffItem] = Field(default_factory=list)
    removed: List[TakeoffItem] = Field(default_factory=list)
    changed: List[QtyChange] = Field(default_factory=list)


class CoveredPackageValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    ready: bool
    missing: List[str] = Field(default_factory=list)


# --- Labor ---

class LaborRates(BaseModel):
    base_rate: float = 55.0
    burden_pct: float = 0.18


class LaborProduction(BaseModel):
    framing_hrs_per_sqft: float = 0.06
    decking_hrs_per_sqft: float = 0.04
    railing_hrs_per_lf: float = 0.15
    stairs_hrs_each: float = 6.0
    cover_hrs_per_sqft: float = 0.08
    footings_hrs_each: float = 0.75
    demo_hrs: float = 0.0
    fence_layout_hrs_per_lf: float = 0.05
    fence_rails_hrs_per_lf: float = 0.07
    fence_pickets_hrs_per_lf: float = 0.08
    fence_gate_hrs_each: float = 2.5


class LaborTemplate(BaseModel):
    name: str
    rates: LaborRates = LaborRates()
    production: LaborProduction = LaborProduction()


class LaborTaskOverride(BaseModel):
    hours: Optional[float] = Field(default=None, ge=0)
    rate: Optional[float] = Field(default=None, ge=0)


class LaborTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    task: str
    quantity_driver: str
    quantity: float
    hours: float
    rate: float
    cost: float
    overridden: bool = False


class LaborPlanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    tasks: Tuple[LaborTask, ...] = ()
    total_hours: float = 0.0
    total_labor_cost: float = 0.0


# --- Estimate ---

class EstimateSettings(BaseModel):
    overhead_pct: float = Field(ge=0, le=1)
    profit_pct: float = Field(ge=0, le=1)
    tax_pct: float = Field(ge=0, le=1)
    tax_mode: TaxMode = "materials_only"


class EstimateTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal_materials: float
    subtotal_labor: float
    overhead_amount: float
    profit_amount: float
    tax_amount: float
    grand_total: float


# ============================================================
# API payloads
# ============================================================

class ProjectCreate(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    type: ProjectType
    address: str = Field(default="", max_length=220)
    status: ProjectStatus = "draft"


class Project(BaseModel):
    id: int
    name: str
    type: str
    address: Optional[str] = None
    status: str

    model_config = ConfigDict(from_attributes=True)
