"""Console colors for dotctl.

The bundled ``data/theme.toml`` holds the defaults; a ``theme.toml`` in the
dotctl config directory may override any subset of its ``[colors]`` table.
"""

import logging
import re
import tomllib
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from dotctl.core.paths import get_config_dir

logger = logging.getLogger(__name__)

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")

# Styles rendered bold on top of their color
_BOLD = frozenset({"error", "state_conflict", "key_name"})


class ThemeColors(BaseModel):
    """Hex colors (#RGB or #RRGGBB) for messages, states and keys."""

    model_config = ConfigDict(extra="forbid")

    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    state_clean: str = "#03b971"
    state_pending: str = "#0e8ac8"
    state_conflict: str = "#f53263"
    state_missing: str = "#f5b332"

    key_name: str = "#69B9A1"

    @field_validator("*", mode="before")
    @classmethod
    def validate_hex_color(cls, v: object, info: Any) -> str:
        if not isinstance(v, str):
            raise ValueError(f"{info.field_name}: color must be a string")
        color = v.strip()
        if not color.startswith("#"):
            raise ValueError(f"{info.field_name}: color must start with '#'")
        digits = color[1:]
        if len(digits) not in (3, 6):
            raise ValueError(f"{info.field_name}: color must be #RGB or #RRGGBB format")
        if not _HEX_DIGITS.fullmatch(digits):
            raise ValueError(f"{info.field_name}: invalid hex color '{color}'")
        return color


def get_user_theme_path() -> Path:
    return get_config_dir() / "theme.toml"


def _load_toml_colors(path: Path) -> dict[str, str] | None:
    """Read the ``[colors]`` table of a theme file.

    Returns:
        String-valued colors, or None if the file is absent or unusable.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return None

    colors = data.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Ignoring theme file %s: [colors] is not a table", path)
        return None
    return {key: value for key, value in colors.items() if isinstance(value, str)}


def load_theme() -> ThemeColors:
    """Bundled colors merged with the user's overrides.

    An invalid override discards the whole theme in favor of the defaults.
    """
    bundled = resources.files("dotctl.data").joinpath("theme.toml")
    colors = _load_toml_colors(Path(str(bundled))) or {}

    user_path = get_user_theme_path()
    overrides = _load_toml_colors(user_path)
    if overrides:
        logger.debug("Loaded theme overrides from %s", user_path)
        colors = {**colors, **overrides}

    try:
        return ThemeColors(**colors)
    except ValidationError as e:
        logger.warning("Invalid theme configuration, using defaults: %s", e)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Rich styles named after the ThemeColors fields, plus ``bold_header``."""
    if colors is None:
        colors = load_theme()

    styles = {
        name: f"bold {color}" if name in _BOLD else color
        for name, color in colors.model_dump().items()
    }
    styles["bold_header"] = f"bold {colors.header}"
    return Theme(styles)


@cache
def get_theme() -> Theme:
    """The Rich theme shared by every console, loaded once."""
    return get_rich_theme()
