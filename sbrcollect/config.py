"""
sbrcollect/config.py
Store settings: environment defaults and the optional sbr.config file.

sbr.config lives in the base directory of a grouped store and pins the
settings the store was created with, so later imports cannot silently
switch grouping period. Keys follow the historical file format:

  {
    "GroupPeriod": 1,
    "Backup": true
  }

Environment variables (SBR_COLLECTION_ prefix) provide defaults for
command-line flags, e.g. SBR_COLLECTION_BASE_DIRECTORY.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from sbrcollect.grouping import GroupPeriod

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "sbr.config"
ENV_PREFIX       = "SBR_COLLECTION"

_TRUE = {"1", "true", "yes", "on"}


class StoreSettings(BaseModel):
    """Persisted settings of a grouped store."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    group_period: GroupPeriod = Field(default=GroupPeriod.NONE, alias="GroupPeriod")
    backup:       bool        = Field(default=False, alias="Backup")


def env_value(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read SBR_COLLECTION_<name>; empty values count as unset."""
    value = os.environ.get(f"{ENV_PREFIX}_{name}", "")
    return value if value.strip() else default


def env_flag(name: str) -> bool:
    value = env_value(name)
    return value is not None and value.strip().lower() in _TRUE


def settings_path(base_directory: Union[str, Path]) -> Path:
    return Path(base_directory) / CONFIG_FILE_NAME


def load_settings(base_directory: Union[str, Path]) -> Optional[StoreSettings]:
    """
    Load sbr.config from base_directory. Returns None if there is none.
    An unreadable or invalid file raises (pydantic ValidationError is a ValueError).
    """
    path = settings_path(base_directory)
    if not path.exists():
        return None
    settings = StoreSettings.model_validate_json(path.read_text(encoding="utf-8"))
    logger.info(f"Using settings from {path}")
    return settings


def save_settings(settings: StoreSettings, base_directory: Union[str, Path]) -> Path:
    """Persist settings to sbr.config in base_directory."""
    path = settings_path(base_directory)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(settings.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    return path


def resolve_settings(
    base_directory: Union[str, Path],
    group_period:   Optional[int],
    backup:         bool,
    use_config:     bool = False,
) -> StoreSettings:
    """
    Decide the settings for a run.

    With use_config an existing sbr.config wins over the given flags; when
    the file is missing it is created from them. Without use_config the
    flags are used as given. A group period is required unless it comes
    from the file.
    """
    if use_config:
        stored = load_settings(base_directory)
        if stored is not None:
            return stored

    if group_period is None:
        raise ValueError("a group period is required: 0 (none), 1 (monthly) or 2 (yearly)")
    settings = StoreSettings(group_period=group_period, backup=backup)

    if use_config:
        path = save_settings(settings, base_directory)
        logger.info(f"Wrote settings to {path}")
    return settings
