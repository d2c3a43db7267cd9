"""
Quote display configuration — the settings a quote template carries.

The configuration is split into one variant per axis:

    organization       room | surface | floor | phase
    composition        BundledComposition | SeparatedComposition(material_grouping)
    labor pricing      unit_sqft | fixed | hourly | day_rate
    material strategy  inclusive | allowance | itemized_volume | specific_product
    toggles            show_quantities, show_rates, show_coat_counts,
                       show_prep_tasks, show_tax_line

Material grouping lives on the separated variant only, so a bundled config
cannot carry one. The remaining cross-axis rule (no grouping under the
inclusive strategy) is enforced when the config is built.

Templates are stored and sent over the API in a flat shape;
QuoteDisplayConfig.from_flat() / to_flat() convert between the two.
"""

import enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError


class Organization(str, enum.Enum):
    ROOM = "room"
    SURFACE = "surface"
    FLOOR = "floor"
    PHASE = "phase"


class ItemComposition(str, enum.Enum):
    BUNDLED = "bundled"
    SEPARATED = "separated"


class LaborPricingModel(str, enum.Enum):
    UNIT_SQFT = "unit_sqft"
    FIXED = "fixed"
    HOURLY = "hourly"
    DAY_RATE = "day_rate"


class MaterialStrategy(str, enum.Enum):
    INCLUSIVE = "inclusive"
    ALLOWANCE = "allowance"
    ITEMIZED_VOLUME = "itemized_volume"
    SPECIFIC_PRODUCT = "specific_product"


class MaterialGrouping(str, enum.Enum):
    ITEMIZED_PER_TASK = "itemized_per_task"
    COMBINED_SECTION = "combined_section"
    COMBINED_SETUP = "combined_setup"


class BundledComposition(BaseModel):
    """Labor and material for one task collapse into a single line."""
    mode: Literal["bundled"] = "bundled"

    class Config:
        frozen = True


class SeparatedComposition(BaseModel):
    """Labor and material stay on distinct lines, labor first."""
    mode: Literal["separated"] = "separated"
    material_grouping: Optional[MaterialGrouping] = None

    class Config:
        frozen = True


CompositionPlan = Annotated[
    Union[BundledComposition, SeparatedComposition],
    Field(discriminator="mode"),
]


class DisplayToggles(BaseModel):
    """Presentation switches. None of these change a computed amount."""
    show_quantities: bool = True
    show_rates: bool = True
    show_coat_counts: bool = False
    show_prep_tasks: bool = True
    show_tax_line: bool = True

    class Config:
        frozen = True


FLAT_FIELDS = (
    "organization",
    "item_composition",
    "labor_pricing_model",
    "material_strategy",
    "material_grouping",
    "show_quantities",
    "show_rates",
    "show_coat_counts",
    "show_prep_tasks",
    "show_tax_line",
)


class QuoteDisplayConfig(BaseModel):
    organization: Organization = Organization.ROOM
    composition: CompositionPlan = BundledComposition()
    labor_pricing_model: LaborPricingModel = LaborPricingModel.UNIT_SQFT
    material_strategy: MaterialStrategy = MaterialStrategy.INCLUSIVE
    toggles: DisplayToggles = DisplayToggles()

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_material_grouping(self):
        if (
            isinstance(self.composition, SeparatedComposition)
            and self.composition.material_grouping is not None
            and self.material_strategy == MaterialStrategy.INCLUSIVE
        ):
            raise ValueError(
                "material_grouping cannot be set when material_strategy is 'inclusive'"
            )
        return self

    # --- Derived views ---

    @property
    def item_composition(self) -> ItemComposition:
        return ItemComposition(self.composition.mode)

    @property
    def is_bundled(self) -> bool:
        return self.item_composition == ItemComposition.BUNDLED

    @property
    def bills_materials(self) -> bool:
        return self.material_strategy != MaterialStrategy.INCLUSIVE

    @property
    def material_grouping(self) -> Optional[MaterialGrouping]:
        """Effective grouping, or None when grouping does not apply."""
        if self.is_bundled or not self.bills_materials:
            return None
        return self.composition.material_grouping or MaterialGrouping.ITEMIZED_PER_TASK

    # --- Flat storage shape ---

    @classmethod
    def from_flat(cls, data: Optional[dict]) -> "QuoteDisplayConfig":
        """Build from the flat template record. Raises ValidationError."""
        data = dict(data or {})
        unknown = sorted(set(data) - set(FLAT_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown display config field(s): {', '.join(unknown)}")

        builder = QuoteDisplayConfigBuilder()
        if data.get("organization") is not None:
            builder.organize_by(data["organization"])
        if data.get("labor_pricing_model") is not None:
            builder.labor(data["labor_pricing_model"])
        if data.get("material_strategy") is not None:
            builder.materials(data["material_strategy"])

        composition = data.get("item_composition") or ItemComposition.BUNDLED.value
        grouping = data.get("material_grouping")
        if _enum_value(composition) == ItemComposition.BUNDLED.value:
            if grouping is not None:
                raise ValidationError(
                    "material_grouping cannot be set when item_composition is 'bundled'"
                )
            builder.bundled()
        elif _enum_value(composition) == ItemComposition.SEPARATED.value:
            builder.separated(grouping)
        else:
            raise ValidationError(f"Unknown item_composition: {composition!r}")

        builder.toggles(**{
            k: data[k] for k in DisplayToggles.model_fields if data.get(k) is not None
        })
        return builder.build()

    def to_flat(self) -> dict:
        grouping = None
        if isinstance(self.composition, SeparatedComposition) and self.composition.material_grouping:
            grouping = self.composition.material_grouping.value
        return {
            "organization": self.organization.value,
            "item_composition": self.item_composition.value,
            "labor_pricing_model": self.labor_pricing_model.value,
            "material_strategy": self.material_strategy.value,
            "material_grouping": grouping,
            **self.toggles.model_dump(),
        }


class QuoteDisplayConfigBuilder:
    """
    Validated builder for QuoteDisplayConfig.

        config = (QuoteDisplayConfigBuilder()
                  .organize_by("surface")
                  .separated("combined_section")
                  .labor("hourly")
                  .materials("allowance")
                  .build())

    Every setter checks its own axis; build() checks the combination.
    All failures raise paintquote.errors.ValidationError.
    """

    def __init__(self, base: Optional[QuoteDisplayConfig] = None):
        base = base or QuoteDisplayConfig()
        self._organization = base.organization
        self._composition = base.composition
        self._labor = base.labor_pricing_model
        self._materials = base.material_strategy
        self._toggles = base.toggles.model_dump()

    def organize_by(self, organization) -> "QuoteDisplayConfigBuilder":
        self._organization = _coerce(Organization, organization, "organization")
        return self

    def bundled(self) -> "QuoteDisplayConfigBuilder":
        self._composition = BundledComposition()
        return self

    def separated(self, material_grouping=None) -> "QuoteDisplayConfigBuilder":
        grouping = None
        if material_grouping is not None:
            grouping = _coerce(MaterialGrouping, material_grouping, "material_grouping")
        self._composition = SeparatedComposition(material_grouping=grouping)
        return self

    def labor(self, model) -> "QuoteDisplayConfigBuilder":
        self._labor = _coerce(LaborPricingModel, model, "labor_pricing_model")
        return self

    def materials(self, strategy) -> "QuoteDisplayConfigBuilder":
        self._materials = _coerce(MaterialStrategy, strategy, "material_strategy")
        return self

    def toggles(self, **flags) -> "QuoteDisplayConfigBuilder":
        for name, value in flags.items():
            if name not in DisplayToggles.model_fields:
                raise ValidationError(f"Unknown display toggle: {name}")
            if not isinstance(value, bool):
                raise ValidationError(f"Display toggle {name} must be true or false")
            self._toggles[name] = value
        return self

    def build(self) -> QuoteDisplayConfig:
        try:
            return QuoteDisplayConfig(
                organization=self._organization,
                composition=self._composition,
                labor_pricing_model=self._labor,
                material_strategy=self._materials,
                toggles=DisplayToggles(**self._toggles),
            )
        except PydanticValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            raise ValidationError(f"Invalid display config: {messages}") from e


def build_display_config(**flat) -> QuoteDisplayConfig:
    """Keyword form of QuoteDisplayConfig.from_flat()."""
    return QuoteDisplayConfig.from_flat(flat)


def _enum_value(value) -> str:
    return value.value if isinstance(value, enum.Enum) else str(value)


def _coerce(enum_cls, value, field: str):
    try:
        return enum_cls(_enum_value(value))
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field}: {value!r} (expected one of: {allowed})")


# Source defaults: room sections, one bundled line per task, materials folded into labor
DEFAULT_DISPLAY_CONFIG = QuoteDisplayConfig()
