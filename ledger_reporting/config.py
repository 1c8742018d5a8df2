"""
Reporting Configuration Schema.

Report presentation options.  Which statement line an account reports
under is decided by taxonomy codes and classification rules (see
``ledger_reporting.classifier``), not by this object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting layer.

    Controls headings, currency and which zero lines are shown.
    """

    # Entity name shown on reports
    entity_name: str = "Company"

    # Reporting currency for headings
    default_currency: str = "INR"

    # Rounding precision for display
    display_precision: int = 2

    # Whether to list accounts whose statement amount is zero
    include_zero_balances: bool = False

    # Whether trial balance reports drop all-zero rows
    trial_balance_non_zero_only: bool = False

    def __post_init__(self):
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")
        if len(self.default_currency) != 3:
            raise ValueError("default_currency must be a 3-letter ISO 4217 code")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
