# src/callcenter_stats/config.py

"""
Parameters controlling how statistics are collected.

The model itself (call types, agent groups, segments, AWT tables) is
described by `model.CallCenter`. This module holds the switches that
change how the same model is observed: normalization of time-dependent
measures, per-(type, group) granularity, the period a call is counted in,
and a few diagnostics.
"""

import logging
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import CollectingMode
from .errors import ConfigurationError

log = logging.getLogger(__name__)


class StatParams(BaseModel):
    """
    Switches for the statistics pipeline.

    Attributes:
        normalize_to_default_unit (bool): If True, measures whose time
            normalization is CONDITIONAL are divided by the period
            duration, which turns counts into rates.
        contact_type_agent_group (bool): If True, counters for served
            calls keep one row per (call type, agent group) pair.
        per_period_collecting_mode (CollectingMode): Which period a call
            is counted in. Enum names are accepted in any case.
        keep_obs (bool): Whether tallies store their individual
            observations.
        check_consistency (bool): Run the diagnostic checks after each
            statistics pass.
        confidence_level (float): Default level of confidence intervals,
            in (0, 1).
    """
    normalize_to_default_unit: bool = False
    contact_type_agent_group: bool = False
    per_period_collecting_mode: CollectingMode = CollectingMode.PERIOD_OF_ENTRY
    keep_obs: bool = False
    check_consistency: bool = False
    confidence_level: float = Field(0.95, gt=0.0, lt=1.0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("per_period_collecting_mode", mode="before")
    @classmethod
    def parse_mode_name(cls, v):
        if isinstance(v, str):
            try:
                return CollectingMode[v.upper()]
            except KeyError:
                raise ValueError(f"Unknown collecting mode '{v}'") from None
        return v

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "StatParams":
        """
        Builds parameters from a plain mapping, e.g. parsed from JSON.

        Raises:
            ConfigurationError: If a key is unknown or a value invalid.
        """
        try:
            return cls.model_validate(dict(values))
        except ValidationError as e:
            log.error(f"Invalid statistics parameters: {e}")
            raise ConfigurationError(f"Invalid statistics parameters: {e}") from e
