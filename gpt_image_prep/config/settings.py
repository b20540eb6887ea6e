"""Settings storage for tool paths and image defaults."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "GPT_IMAGE_PREP_SETTINGS_PATH",
        Path.home() / ".config" / "gpt-image-prep" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_QEMU_IMG_PATH = "qemu-img"
DEFAULT_SGDISK_PATH = "sgdisk"
DEFAULT_IMAGE_SIZE = "30G"
DEFAULT_IMAGE_FORMAT = "raw"

DEFAULT_SETTINGS: dict[str, Any] = {
    "qemu_img_path": DEFAULT_QEMU_IMG_PATH,
    "sgdisk_path": DEFAULT_SGDISK_PATH,
    "image_format": DEFAULT_IMAGE_FORMAT,
    "default_image_size": DEFAULT_IMAGE_SIZE,
    "verify_after_repair": True,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def save_settings() -> None:
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    SETTINGS_PATH.write_text(
        json.dumps(settings_store.values, indent=2, sort_keys=True),
        encoding="utf-8",
    )


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def set_setting(key: str, value: Any) -> None:
    settings_store.values[key] = value
    save_settings()


def get_bool(key: str, default: bool = False) -> bool:
    return bool(get_setting(key, default))


def set_bool(key: str, value: bool) -> None:
    set_setting(key, bool(value))


load_settings()
