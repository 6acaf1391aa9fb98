"""Base model for all input models of the revenue engine.

This module provides a base Pydantic model with the shared configuration
used by timesheet entries, configuration overrides and ledger rows.
"""

from pydantic import BaseModel, ConfigDict


class BaseDataModel(BaseModel):
    """Base class for all validated input models.

    Provides common configuration for:
    - Validation with type checking on construction and assignment
    - Rejection of unknown fields
    - Arbitrary types support for dates and decimals

    Example:
        >>> class Client(BaseDataModel):
        ...     client_id: str
        >>> Client(client_id="C-1").model_dump()
        {'client_id': 'C-1'}
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        strict=False,
        extra="forbid",
        frozen=False,
    )
