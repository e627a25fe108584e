from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from .logger import get_logger

_logger = get_logger("settings")

SUPPORTED_FORMATS = ("jpeg", "webp")


@dataclass(frozen=True, slots=True)
class CropSettings:
    """Host-overridable constants for a crop session and the re-encoder.

    Passed explicitly into ``begin_session`` and ``compress``; there is no
    process-wide mutable configuration.
    """

    min_crop_size: float = 100.0
    max_crop_size: float = 400.0
    default_crop_fraction: float = 0.6
    default_output_size: int | None = None
    initial_quality: float = 0.9
    quality_step: float = 0.1
    quality_floor: float = 0.1
    encode_format: str = "jpeg"

    def __post_init__(self) -> None:
        if self.min_crop_size <= 0:
            raise ValueError(f"min_crop_size must be positive, got {self.min_crop_size}")
        if self.min_crop_size > self.max_crop_size:
            raise ValueError(f"min_crop_size {self.min_crop_size} exceeds max_crop_size {self.max_crop_size}")
        if not 0.0 < self.default_crop_fraction <= 1.0:
            raise ValueError(f"default_crop_fraction must be in (0, 1], got {self.default_crop_fraction}")
        if self.default_output_size is not None and self.default_output_size <= 0:
            raise ValueError(f"default_output_size must be positive, got {self.default_output_size}")
        for name in ("initial_quality", "quality_step", "quality_floor"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {value}")
        if self.quality_floor > self.initial_quality:
            raise ValueError("quality_floor must not exceed initial_quality")
        if self.encode_format not in SUPPORTED_FORMATS:
            raise ValueError(f"encode_format must be one of {SUPPORTED_FORMATS}, got {self.encode_format!r}")

    def replace(self, **changes: Any) -> CropSettings:
        return replace(self, **changes)

    def clamp_crop_size(self, size: float) -> float:
        return min(max(float(size), self.min_crop_size), self.max_crop_size)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> CropSettings:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            _logger.warning("ignoring unknown settings keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


DEFAULT_SETTINGS = CropSettings()


def load_settings(settings_path: str | os.PathLike[str] | None) -> CropSettings:
    """Load settings from a JSON object file, merging known keys over the defaults.

    A missing or unreadable file yields the defaults. Values that fail validation
    raise ``ValueError`` so a broken configuration is not silently ignored.
    """
    if not settings_path:
        return DEFAULT_SETTINGS
    path = os.fspath(settings_path)
    data: Any = None
    try:
        if os.path.exists(path):
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        _logger.warning("settings load failed: %s", e)
        return DEFAULT_SETTINGS

    if data is None:
        _logger.debug("settings file not found, using defaults: %s", path)
        return DEFAULT_SETTINGS
    if not isinstance(data, dict):
        _logger.warning("settings file is not a JSON object: %s", path)
        return DEFAULT_SETTINGS

    settings = CropSettings.from_mapping(data)
    _logger.debug("settings loaded: %s", path)
    return settings
