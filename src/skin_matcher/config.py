"""Centralized configuration management for the skin matcher engine."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class SelectionConfig(BaseModel):
    """Thresholds and sizes used when reducing scored products to a shortlist."""
    qualified_threshold: int = Field(
        3,
        description="Minimum score for a product to count as qualified"
    )
    relaxed_threshold: int = Field(
        1,
        description="Fallback minimum score used when too few products qualify"
    )
    target_count: int = Field(
        3,
        ge=1,
        description="Number of products in the final shortlist"
    )
    reasons_shown: int = Field(
        3,
        ge=0,
        description="Number of reasons displayed per recommended product"
    )


class BudgetBandsConfig(BaseModel):
    """Price bands for the budget tiers.

    budget: price <= budget_max
    mid_range: budget_max < price <= mid_range_max
    premium: price > mid_range_max
    """
    budget_max: float = Field(25.0, description="Upper bound of the budget band")
    mid_range_max: float = Field(50.0, description="Upper bound of the mid-range band")


class CacheConfig(BaseModel):
    """Local result cache settings."""
    directory: str = Field(
        str(Path.home() / ".cache" / "skin-matcher"),
        description="Directory holding one JSON result file per session"
    )
    max_age_seconds: Optional[int] = Field(
        None,
        description="Age after which a cached result is considered stale (None keeps it forever)"
    )


class EngineConfig(BaseModel):
    """Complete configuration for the skin matcher engine."""
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    budget_bands: BudgetBandsConfig = Field(default_factory=BudgetBandsConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    ruleset_path: Optional[str] = Field(
        None,
        description="Optional YAML ruleset replacing the built-in keyword ladders"
    )


# Global config instance
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get the current configuration.

    Returns the global config, initializing with defaults if not yet loaded.
    """
    global _config
    if _config is None:
        _config = EngineConfig()
    return _config


def load_config(path: Path) -> EngineConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The loaded EngineConfig.
    """
    global _config

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    _config = EngineConfig.model_validate(data or {})
    return _config


def reset_config() -> None:
    """Reset configuration to defaults."""
    global _config
    _config = EngineConfig()


def find_config_file() -> Optional[Path]:
    """Find a skin matcher configuration file.

    Looks in (order of priority):
    1. SKIN_MATCHER_CONFIG environment variable
    2. ./skin-matcher.yaml
    3. ./skin-matcher.yml
    4. ~/.config/skin-matcher/config.yaml
    """
    env_path = os.environ.get("SKIN_MATCHER_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    for name in ["skin-matcher.yaml", "skin-matcher.yml"]:
        path = Path(name)
        if path.exists():
            return path

    user_config = Path.home() / ".config" / "skin-matcher" / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def save_default_config(path: Path) -> None:
    """Save the default configuration to a YAML file.

    Args:
        path: Path where to save the configuration.
    """
    config = EngineConfig()
    data = config.model_dump()

    yaml_content = """# Skin Matcher Configuration
# ==========================
#
# Copy this file to one of these locations:
#   - ./skin-matcher.yaml (current directory)
#   - ~/.config/skin-matcher/config.yaml (user config)
#
# Or set the SKIN_MATCHER_CONFIG environment variable.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)
