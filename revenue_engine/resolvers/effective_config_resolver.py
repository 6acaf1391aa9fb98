"""Effective billing configuration resolution.

Every billing attribute of a project (rate, rounding increment, minimum
hours, maximum hours, carryover policy, active flag) is versioned on its
own timeline. For a target month each attribute resolves to:
- explicit: an override is effective exactly at the month
- inherited: the latest earlier override, with its month as source
- default: the global default when the project has no override at or
  before the month
"""

import logging
import threading
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from revenue_engine.calculators.money import to_decimal
from revenue_engine.calculators.month_utils import MonthLike, month_start
from revenue_engine.calculators.rounding import (
    DEFAULT_ROUNDING_INCREMENT,
    validate_increment,
)
from revenue_engine.config.settings import DEFAULT_FALLBACK_RATE
from revenue_engine.models.billing_config import (
    DISABLED_CARRYOVER,
    AttributeOverride,
    BillingAttribute,
    ConfigSource,
    EffectiveBillingConfig,
    ResolvedValue,
)
from revenue_engine.resolvers.override_timeline import OverrideTimeline

logger = logging.getLogger(__name__)


class BillingConfigStore:
    """In-memory store of attribute overrides, one timeline per track.

    Example:
        >>> store = BillingConfigStore()
        >>> store.add(AttributeOverride(
        ...     project_id="P-1", attribute="rate",
        ...     effective_month="2026-01", value=120,
        ... ))
        >>> len(store)
        1
    """

    def __init__(self, overrides: Optional[Iterable[AttributeOverride]] = None):
        self._timelines: Dict[
            Tuple[str, BillingAttribute], OverrideTimeline[Any]
        ] = defaultdict(OverrideTimeline)
        self._lock = threading.Lock()
        for override in overrides or []:
            self.add(override)

    def add(self, override: AttributeOverride) -> None:
        """Add or replace the override at its (project, attribute, month)."""
        with self._lock:
            key = (override.project_id, override.attribute)
            self._timelines[key].set(override.effective_month, override.value)

    def remove(
        self, project_id: str, attribute: BillingAttribute, effective_month: MonthLike
    ) -> bool:
        with self._lock:
            timeline = self._timelines.get((project_id, BillingAttribute(attribute)))
            return bool(timeline) and timeline.remove(effective_month)

    def timeline(
        self, project_id: str, attribute: BillingAttribute
    ) -> Optional[OverrideTimeline[Any]]:
        """Get the timeline of one track, None when it has no overrides."""
        return self._timelines.get((project_id, BillingAttribute(attribute)))

    def project_ids(self) -> List[str]:
        return sorted({project_id for project_id, _ in self._timelines})

    def __len__(self) -> int:
        return sum(len(t) for t in self._timelines.values())


class EffectiveConfigResolver:
    """Resolve the billing configuration in force for a project and month.

    Args:
        store: Override store
        default_rate: Rate used when a project has no rate override
        default_rounding_increment: Increment used without an override
    """

    def __init__(
        self,
        store: BillingConfigStore,
        default_rate: Decimal = DEFAULT_FALLBACK_RATE,
        default_rounding_increment: int = DEFAULT_ROUNDING_INCREMENT,
    ):
        self.store = store
        self._defaults: Dict[BillingAttribute, Any] = {
            BillingAttribute.RATE: to_decimal(default_rate, "default_rate"),
            BillingAttribute.ROUNDING_INCREMENT: validate_increment(
                default_rounding_increment
            ),
            BillingAttribute.MINIMUM_HOURS: None,
            BillingAttribute.MAXIMUM_HOURS: None,
            BillingAttribute.CARRYOVER: DISABLED_CARRYOVER,
            BillingAttribute.ACTIVE: True,
        }

    @classmethod
    def from_config(cls, store: BillingConfigStore, config) -> "EffectiveConfigResolver":
        """Create a resolver with defaults from RevenueEngineConfig."""
        return cls(
            store,
            default_rate=config.default_rate,
            default_rounding_increment=config.default_rounding_increment,
        )

    def default_for(self, attribute: BillingAttribute) -> Any:
        return self._defaults[BillingAttribute(attribute)]

    def resolve(
        self, project_id: str, attribute: BillingAttribute, month: MonthLike
    ) -> ResolvedValue:
        """Resolve one attribute for a project and month.

        Example:
            >>> store = BillingConfigStore([AttributeOverride(
            ...     project_id="P-1", attribute="rate",
            ...     effective_month="2026-01", value=120,
            ... )])
            >>> resolver = EffectiveConfigResolver(store)
            >>> resolved = resolver.resolve("P-1", BillingAttribute.RATE, "2026-03")
            >>> resolved.value, resolved.source.value
            (Decimal('120'), 'inherited')
        """
        attribute = BillingAttribute(attribute)
        target = month_start(month)
        timeline = self.store.timeline(project_id, attribute)
        entry = timeline.entry_at(target) if timeline else None

        if entry is None:
            return ResolvedValue(
                value=self._defaults[attribute], source=ConfigSource.DEFAULT
            )

        effective_month, value = entry
        source = (
            ConfigSource.EXPLICIT if effective_month == target else ConfigSource.INHERITED
        )
        return ResolvedValue(value=value, source=source, source_month=effective_month)

    def resolve_all(self, project_id: str, month: MonthLike) -> EffectiveBillingConfig:
        """Resolve every attribute for a project and month."""
        target = month_start(month)
        resolved = {
            attribute.value: self.resolve(project_id, attribute, target)
            for attribute in BillingAttribute
        }

        if resolved[BillingAttribute.RATE.value].is_default:
            logger.info(
                f"No rate configured for project {project_id} in "
                f"{target:%Y-%m}, using default rate "
                f"{self._defaults[BillingAttribute.RATE]}"
            )

        return EffectiveBillingConfig(project_id=project_id, month=target, **resolved)

    def get_history(
        self, project_id: str, attribute: BillingAttribute
    ) -> List[AttributeOverride]:
        """List the explicit overrides of one track, newest first."""
        attribute = BillingAttribute(attribute)
        timeline = self.store.timeline(project_id, attribute)
        if not timeline:
            return []
        return [
            AttributeOverride(
                project_id=project_id,
                attribute=attribute,
                effective_month=effective_month,
                value=value,
            )
            for effective_month, value in timeline.history()
        ]
