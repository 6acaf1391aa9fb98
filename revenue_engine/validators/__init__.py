"""Validation for billing inputs."""

from revenue_engine.validators.billing_validators import BillingRuleValidators
from revenue_engine.validators.validation_report import (
    ValidationIssue,
    ValidationReport,
    ValidationSeverity,
)

__all__ = [
    "BillingRuleValidators",
    "ValidationIssue",
    "ValidationReport",
    "ValidationSeverity",
]
