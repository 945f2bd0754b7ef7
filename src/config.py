"""
Configuration for Growthline.

Settings are read from environment variables once per process.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional


DEFAULT_MAX_AGE_MONTHS = 60
DEFAULT_BMI_SPREAD = 4.0


class GrowthConfig:
  """Configuration for the growth analytics engine."""

  def __init__(self):
    table = os.environ.get("GROWTH_REFERENCE_TABLE")
    self.reference_table: Optional[Path] = Path(table) if table else None
    self.max_age_months = int(os.environ.get("GROWTH_MAX_AGE_MONTHS", DEFAULT_MAX_AGE_MONTHS))
    self.bmi_spread = float(os.environ.get("GROWTH_BMI_SPREAD", DEFAULT_BMI_SPREAD))
    self.log_level = os.environ.get("GROWTH_LOG_LEVEL", "INFO").upper()

  @property
  def uses_custom_table(self) -> bool:
    """Check if a reference table file is configured."""
    return self.reference_table is not None

  def validate(self) -> None:
    """Raise error if the configuration cannot be used."""
    if self.reference_table is not None and not self.reference_table.is_file():
      raise ValueError(f"GROWTH_REFERENCE_TABLE not found: {self.reference_table}")
    if self.max_age_months < 0:
      raise ValueError("GROWTH_MAX_AGE_MONTHS must not be negative")
    if self.bmi_spread <= 0:
      raise ValueError("GROWTH_BMI_SPREAD must be positive")


@lru_cache()
def get_config() -> GrowthConfig:
  """Get the validated process-wide configuration."""
  config = GrowthConfig()
  config.validate()
  return config
