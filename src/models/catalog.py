"""Pydantic models for the static room-type / rate-plan catalog.

The catalog maps OPERA codes to the display metadata the booking site shows
(bilingual names, capacities, amenities, package classification). It is
loaded once at start-up and never mutated afterwards; every model is frozen.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

Language = Literal["en", "es"]
DEFAULT_LANGUAGE: Language = "en"


class View(str, Enum):
    """Room view classification."""

    OCEAN = "ocean"
    GARDEN = "garden"
    POOL = "pool"


class PackageType(str, Enum):
    """Rate plan package classification."""

    PREMIUM = "premium"
    FAMILY = "family"
    BASIC = "basic"
    PROMO = "promo"


class CatalogModel(BaseModel):
    """Base for catalog entries: immutable, camelCase aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class LocalizedText(CatalogModel):
    """A label in every supported language."""

    en: str
    es: str

    def get(self, language: str) -> str:
        """Return the label for ``language``, falling back to English."""
        if language == "es" and self.es:
            return self.es
        return self.en


class RoomTypeConfig(CatalogModel):
    """Display metadata for an OPERA room type code."""

    name_en: str = Field(alias="nameEn")
    name_es: str = Field(alias="nameEs")
    bedrooms: int = Field(ge=0)
    max_adults: int = Field(alias="maxAdults", ge=1)
    max_children: int = Field(alias="maxChildren", ge=0)
    beds: tuple[str, ...] = ()
    location: str = ""
    view: View
    sort_order: int = Field(alias="sortOrder")

    @property
    def name(self) -> LocalizedText:
        return LocalizedText(en=self.name_en, es=self.name_es)


class RatePlanConfig(CatalogModel):
    """Package classification and amenities for an OPERA rate plan code."""

    package: PackageType
    label_en: str = Field(alias="labelEn")
    label_es: str = Field(alias="labelEs")
    includes: tuple[str, ...] = ()
    sort_order: int = Field(alias="sortOrder")

    @property
    def label(self) -> LocalizedText:
        return LocalizedText(en=self.label_en, es=self.label_es)


class PackageTypeConfig(CatalogModel):
    """Label and colours used to badge a package type."""

    label_en: str = Field(alias="labelEn")
    label_es: str = Field(alias="labelEs")
    color: str
    bg_class: Optional[str] = Field(None, alias="bgClass")

    @property
    def label(self) -> LocalizedText:
        return LocalizedText(en=self.label_en, es=self.label_es)


class ConfigCatalog(CatalogModel):
    """Complete static catalog keyed by OPERA codes."""

    default_rate_plan_code: Optional[str] = Field(None, alias="defaultRatePlanCode")
    room_types: dict[str, RoomTypeConfig] = Field(default_factory=dict, alias="roomTypes")
    rate_plans: dict[str, RatePlanConfig] = Field(default_factory=dict, alias="ratePlans")
    package_types: dict[PackageType, PackageTypeConfig] = Field(
        default_factory=dict, alias="packageTypes"
    )
    amenities: dict[str, LocalizedText] = Field(default_factory=dict)
    views: dict[View, LocalizedText] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_package_references(self) -> "ConfigCatalog":
        missing = sorted(
            {plan.package.value for plan in self.rate_plans.values()}
            - {package.value for package in self.package_types}
        )
        if missing:
            raise ValueError(f"Rate plans reference undefined package types: {missing}")
        return self

    def room_type(self, code: str) -> Optional[RoomTypeConfig]:
        return self.room_types.get(code)

    def rate_plan(self, code: str) -> Optional[RatePlanConfig]:
        return self.rate_plans.get(code)

    def package_type(self, package: PackageType) -> PackageTypeConfig:
        return self.package_types[package]

    def view_label(self, view: View) -> LocalizedText:
        """Label for a view, or the raw view value in both languages."""
        return self.views.get(view) or LocalizedText(en=view.value, es=view.value)

    def amenity_label(self, code: str, language: str) -> str:
        """Amenity label in ``language``; English, then the code itself, as fallbacks."""
        label = self.amenities.get(code)
        if label is None:
            return code
        return label.get(language)
