"""Platform profile loader.

Platform profiles are JSON files shipped inside this package, one per
target platform. Uses importlib.resources for proper package data access
when installed as a wheel.
"""

from __future__ import annotations

import json
from importlib import resources
from typing import Any, Mapping

from ..errors import PlatformConfigError
from .platform_profile_model import PlatformProfile, VendoredFile

__all__ = [
    "PlatformProfile",
    "VendoredFile",
    "load_config",
    "list_available_configs",
    "load_profile",
]


def load_config(platform: str) -> dict[str, Any] | None:
    """Load the raw profile dictionary for a platform.

    Args:
        platform: Platform key (e.g., 'linux', 'darwin', 'windows')

    Returns:
        The configuration dictionary if found, None otherwise.
    """
    if not platform:
        return None

    try:
        config_file = resources.files(__package__).joinpath(f"{platform}.json")
        if config_file.is_file():
            with config_file.open("r", encoding="utf-8") as f:
                return json.load(f)
    except (FileNotFoundError, TypeError):
        pass

    return None


def list_available_configs() -> list[str]:
    """List all platform keys that have a profile (without .json extension)."""
    configs = []
    try:
        for f in resources.files(__package__).iterdir():
            if f.name.endswith(".json") and f.is_file():
                configs.append(f.name[:-5])
    except (TypeError, AttributeError, FileNotFoundError):
        pass

    return sorted(configs)


def load_profile(platform: str, variables: Mapping[str, str]) -> PlatformProfile:
    """Load and resolve the profile for a platform.

    Selected once at startup; the resulting profile is passed to every
    component that has platform-dependent behavior.

    Args:
        platform: Platform key
        variables: Values for {NAME} placeholders (captured override variables)

    Returns:
        Resolved PlatformProfile

    Raises:
        PlatformConfigError: If no profile exists or a placeholder is unset
    """
    data = load_config(platform)
    if data is None:
        raise PlatformConfigError(f"No platform profile found for {platform!r}. Available: {list_available_configs()}")

    try:
        profile = PlatformProfile.from_dict(data)
    except ValueError as e:
        raise PlatformConfigError(f"Invalid platform profile {platform!r}: {e}")

    try:
        return profile.resolve(variables)
    except KeyError as e:
        raise PlatformConfigError(f"Platform profile {platform!r} requires environment variable {e.args[0]}")
