"""Resolvers for versioned billing configuration."""

from revenue_engine.resolvers.effective_config_resolver import (
    BillingConfigStore,
    EffectiveConfigResolver,
)
from revenue_engine.resolvers.override_timeline import OverrideTimeline

__all__ = ["BillingConfigStore", "EffectiveConfigResolver", "OverrideTimeline"]
