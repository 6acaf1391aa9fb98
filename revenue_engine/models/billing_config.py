"""Billing configuration data models.

This module defines the versioned billing attributes of a project and the
values the resolver produces for one (project, month):
- BillingAttribute: The independently versioned configuration tracks
- CarryoverPolicy: Carryover settings stored as one track
- AttributeOverride: An explicit value set at an effective month
- ResolvedValue: A resolved value together with where it came from
- EffectiveBillingConfig: All resolved attributes for one project and month
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from revenue_engine.calculators.money import to_decimal
from revenue_engine.calculators.month_utils import month_start
from revenue_engine.calculators.rounding import validate_increment
from revenue_engine.models.base import BaseDataModel


class BillingAttribute(str, Enum):
    """Configuration tracks that are versioned independently per project."""

    RATE = "rate"
    ROUNDING_INCREMENT = "rounding_increment"
    MINIMUM_HOURS = "minimum_hours"
    MAXIMUM_HOURS = "maximum_hours"
    CARRYOVER = "carryover"
    ACTIVE = "active"


class ConfigSource(str, Enum):
    """Origin of a resolved configuration value."""

    EXPLICIT = "explicit"
    INHERITED = "inherited"
    DEFAULT = "default"


class CarryoverPolicy(BaseDataModel):
    """Carryover settings for a project.

    Attributes:
        enabled: Whether excess hours above the maximum are carried forward
        max_hours: Cap on carryover usable in one month (None = no cap)
        expiry_months: Months a carryover row stays usable (None = no expiry)

    Example:
        >>> policy = CarryoverPolicy(enabled=True, max_hours=40, expiry_months=3)
        >>> policy.max_hours
        Decimal('40')
    """

    enabled: bool = Field(False, description="Carryover enabled")
    max_hours: Optional[Decimal] = Field(None, ge=0, description="Carryover cap")
    expiry_months: Optional[int] = Field(
        None, gt=0, description="Months until carried hours expire"
    )

    @field_validator("max_hours", mode="before")
    @classmethod
    def convert_max_hours(cls, v: Any) -> Optional[Decimal]:
        """Convert the cap to Decimal, keeping None as "no cap"."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return to_decimal(v, "max_hours")


#: Policy used when a project has no carryover configuration.
DISABLED_CARRYOVER = CarryoverPolicy()


class AttributeOverride(BaseDataModel):
    """An explicit configuration value effective from a month onward.

    The value is normalized for its attribute on construction: rates and
    limits become Decimal, rounding increments are validated, carryover
    becomes a CarryoverPolicy and active becomes a bool. ``None`` for
    minimum or maximum hours clears the limit from that month on.

    Attributes:
        project_id: External project identifier
        attribute: Which configuration track this override belongs to
        effective_month: First month the value applies to (first of month)
        value: The normalized value

    Example:
        >>> override = AttributeOverride(
        ...     project_id="P-1",
        ...     attribute=BillingAttribute.RATE,
        ...     effective_month="2026-01",
        ...     value="120",
        ... )
        >>> override.effective_month, override.value
        (datetime.date(2026, 1, 1), Decimal('120'))
    """

    project_id: str = Field(..., min_length=1, description="External project id")
    attribute: BillingAttribute = Field(..., description="Configuration track")
    effective_month: dt.date = Field(..., description="First effective month")
    value: Any = Field(None, description="Override value")

    @field_validator("project_id")
    @classmethod
    def validate_project_id(cls, v: str) -> str:
        """Validate that the project id is not whitespace only."""
        if not v.strip():
            raise ValueError("project_id cannot be empty or whitespace")
        return v.strip()

    @field_validator("effective_month", mode="before")
    @classmethod
    def normalize_month(cls, v: Any) -> dt.date:
        """Normalize any date in the month to the first of the month."""
        return month_start(v)

    @model_validator(mode="after")
    def normalize_value(self) -> "AttributeOverride":
        """Convert the raw value to the attribute's type.

        Raises:
            ValueError: If the value is not valid for the attribute
        """
        normalized = normalize_attribute_value(self.attribute, self.value)
        # Direct write; assignment would re-run this validator
        self.__dict__["value"] = normalized
        return self


def normalize_attribute_value(attribute: BillingAttribute, value: Any) -> Any:
    """Normalize a raw override value for its attribute.

    Args:
        attribute: The configuration track
        value: Raw value (string from a sheet, number, dict, ...)

    Returns:
        The value in the attribute's canonical type

    Raises:
        ValueError: If the value is invalid for the attribute
    """
    if attribute == BillingAttribute.RATE:
        if _is_blank(value):
            raise ValueError("rate override requires a value")
        rate = to_decimal(value, "rate")
        if rate < 0:
            raise ValueError(f"rate must be non-negative, got {rate}")
        return rate

    if attribute == BillingAttribute.ROUNDING_INCREMENT:
        if _is_blank(value):
            raise ValueError("rounding_increment override requires a value")
        return validate_increment(int(to_decimal(value, "rounding_increment")))

    if attribute in (BillingAttribute.MINIMUM_HOURS, BillingAttribute.MAXIMUM_HOURS):
        if _is_blank(value):
            return None
        hours = to_decimal(value, attribute.value)
        if hours < 0:
            raise ValueError(f"{attribute.value} must be non-negative, got {hours}")
        return hours

    if attribute == BillingAttribute.CARRYOVER:
        if isinstance(value, CarryoverPolicy):
            return value
        if _is_blank(value):
            return DISABLED_CARRYOVER
        if isinstance(value, dict):
            return CarryoverPolicy(**value)
        return CarryoverPolicy(enabled=parse_bool(value))

    if attribute == BillingAttribute.ACTIVE:
        return parse_bool(value)

    raise ValueError(f"Unknown billing attribute: {attribute}")


def parse_bool(value: Any) -> bool:
    """Parse a boolean from common spreadsheet spellings.

    Raises:
        ValueError: If the value is not a recognizable boolean
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "yes", "y", "1", "x"):
        return True
    if text in ("false", "no", "n", "0", ""):
        return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ResolvedValue(BaseDataModel):
    """A configuration value resolved for one month.

    Attributes:
        value: The effective value
        source: explicit (set at this month), inherited (set earlier) or
            default (global fallback)
        source_month: Effective month of the override that supplied the
            value, None for defaults
    """

    value: Any = None
    source: ConfigSource
    source_month: Optional[dt.date] = None

    @property
    def is_default(self) -> bool:
        return self.source == ConfigSource.DEFAULT


class EffectiveBillingConfig(BaseDataModel):
    """All resolved billing attributes for one project in one month."""

    project_id: str
    month: dt.date
    rate: ResolvedValue
    rounding_increment: ResolvedValue
    minimum_hours: ResolvedValue
    maximum_hours: ResolvedValue
    carryover: ResolvedValue
    active: ResolvedValue

    @property
    def rate_value(self) -> Decimal:
        return self.rate.value

    @property
    def increment_value(self) -> int:
        return self.rounding_increment.value

    @property
    def minimum_value(self) -> Optional[Decimal]:
        return self.minimum_hours.value

    @property
    def maximum_value(self) -> Optional[Decimal]:
        return self.maximum_hours.value

    @property
    def carryover_policy(self) -> CarryoverPolicy:
        return self.carryover.value

    @property
    def is_active(self) -> bool:
        return bool(self.active.value)

    def value_for(self, attribute: BillingAttribute) -> ResolvedValue:
        """Get the resolved value of one attribute."""
        return getattr(self, attribute.value)
