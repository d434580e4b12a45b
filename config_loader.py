# config_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any

try:
    import yaml  # PyYAML
except ImportError as e:
    raise SystemExit(
        "Missing dependency: PyYAML\n"
        "Install with: python -m pip install pyyaml"
    ) from e


class CompilerConfig:
    """
    Immutable-ish container for page compiler settings.
    """

    def __init__(
        self,
        *,
        default_dataset: str,
        fallback_text: str,
        viz_heading_level: dict[str, int],
        dashboard_row_size: int,
        chunk_label_max_length: int,
        filter_hash_length: int,
        r_package: str,
        knitr_options: dict[str, Any],
        overlay: dict[str, Any],
        lazy_load: dict[str, Any],
    ):
        self.default_dataset = default_dataset
        self.fallback_text = fallback_text
        self.viz_heading_level = viz_heading_level
        self.dashboard_row_size = dashboard_row_size
        self.chunk_label_max_length = chunk_label_max_length
        self.filter_hash_length = filter_hash_length
        self.r_package = r_package
        self.knitr_options = knitr_options
        self.overlay = overlay
        self.lazy_load = lazy_load

    def heading_level(self, dashboard: bool) -> int:
        return self.viz_heading_level["dashboard" if dashboard else "flat"]


# ---------------- Defaults ---------------------------------------------------

DEFAULT_CONFIG = CompilerConfig(
    default_dataset="data",
    fallback_text="This page was generated without a template.",
    viz_heading_level={"flat": 2, "dashboard": 4},
    dashboard_row_size=2,
    chunk_label_max_length=50,
    filter_hash_length=8,
    r_package="dashboardr",
    knitr_options={
        "echo": False,
        "warning": False,
        "message": False,
        "error": False,
        "fig.width": 12,
        "fig.height": 8,
        "dpi": 300,
    },
    overlay={"theme": "light", "text": "Loading", "duration": 2200},
    lazy_load={"margin": "200px", "tabs": True, "theme": "light"},
)

# ---------------- Loader -----------------------------------------------------


def _as_positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise TypeError(f"{name} must be a positive integer")
    return value


def _as_mapping(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"{name} must be a mapping")
    return dict(value)


def _merged(raw: dict[str, Any], key: str, default: dict[str, Any]) -> dict[str, Any]:
    merged = dict(default)
    merged.update(_as_mapping(raw.get(key), key))
    return merged


def load_config(path: Path) -> CompilerConfig:
    """
    Load YAML config and return a CompilerConfig instance.

    Keys that are absent fall back to DEFAULT_CONFIG; mapping-valued keys
    (knitr_options, overlay, lazy_load, viz_heading_level) are merged key by
    key so a config may override a single entry.
    """
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise TypeError("Config root must be a mapping")

    levels = _merged(raw, "viz_heading_level", DEFAULT_CONFIG.viz_heading_level)
    for mode in ("flat", "dashboard"):
        levels[mode] = _as_positive_int(levels.get(mode), f"viz_heading_level.{mode}")

    return CompilerConfig(
        default_dataset=str(raw.get("default_dataset", DEFAULT_CONFIG.default_dataset)),
        fallback_text=str(raw.get("fallback_text", DEFAULT_CONFIG.fallback_text)),
        viz_heading_level=levels,
        dashboard_row_size=_as_positive_int(
            raw.get("dashboard_row_size", DEFAULT_CONFIG.dashboard_row_size),
            "dashboard_row_size",
        ),
        chunk_label_max_length=_as_positive_int(
            raw.get("chunk_label_max_length", DEFAULT_CONFIG.chunk_label_max_length),
            "chunk_label_max_length",
        ),
        filter_hash_length=_as_positive_int(
            raw.get("filter_hash_length", DEFAULT_CONFIG.filter_hash_length),
            "filter_hash_length",
        ),
        r_package=str(raw.get("r_package", DEFAULT_CONFIG.r_package)),
        knitr_options=_merged(raw, "knitr_options", DEFAULT_CONFIG.knitr_options),
        overlay=_merged(raw, "overlay", DEFAULT_CONFIG.overlay),
        lazy_load=_merged(raw, "lazy_load", DEFAULT_CONFIG.lazy_load),
    )
