from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TypeAlias

import msgspec
from platformdirs import PlatformDirs

from .events import INTERACTION_KINDS, InteractionKind
from .game_data import STAT_KEYS

APP_NAME = "bonkwatch"
SETTINGS_FILENAME = "settings.json"
_SETTINGS_SCHEMA_VERSION = 1

AnimationStyle: TypeAlias = Literal["slide", "fade", "pop"]
ANIMATION_STYLES: tuple[AnimationStyle, ...] = ("slide", "fade", "pop")

# Stats the game reports inconsistently; hidden until the user opts in.
DEFAULT_HIDDEN_STATS = frozenset({"DamageMultiplier", "HealthRegen"})


class SettingsError(ValueError):
    pass


class DisplaySettings(msgspec.Struct, rename="camel"):
    duration: int = 5000
    max_visible: int = 3
    show_stat_changes: bool = True
    show_item_changes: bool = True
    animation_style: AnimationStyle = "slide"
    debug_logging: bool = False
    ui_scale: float = 1.2


class _SettingsFile(msgspec.Struct, rename="camel"):
    version: int = _SETTINGS_SCHEMA_VERSION
    enabled_interactions: dict[str, bool] = msgspec.field(default_factory=dict)
    display_settings: DisplaySettings = msgspec.field(default_factory=DisplaySettings)
    show_unreliable_stats: bool = False
    stat_visibility: dict[str, bool] = msgspec.field(default_factory=dict)


def default_enabled_interactions() -> dict[InteractionKind, bool]:
    return {kind: True for kind in INTERACTION_KINDS}


def default_stat_visibility() -> dict[str, bool]:
    return {key: key not in DEFAULT_HIDDEN_STATS for key in STAT_KEYS}


def validate_display_settings(display: DisplaySettings) -> DisplaySettings:
    if int(display.duration) <= 0:
        raise SettingsError(f"duration must be positive, got {display.duration}")
    if int(display.max_visible) < 1:
        raise SettingsError(f"max_visible must be at least 1, got {display.max_visible}")
    if display.animation_style not in ANIMATION_STYLES:
        raise SettingsError(
            f"animation_style must be one of {', '.join(ANIMATION_STYLES)}, got {display.animation_style!r}"
        )
    if float(display.ui_scale) <= 0.0:
        raise SettingsError(f"ui_scale must be positive, got {display.ui_scale}")
    return display


@dataclass(slots=True)
class InteractionSettings:
    """User-facing switches shared by every player's engine.

    `available_stat_keys` is runtime state and is never persisted.
    """

    enabled_interactions: dict[InteractionKind, bool] = field(default_factory=default_enabled_interactions)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    show_unreliable_stats: bool = False
    stat_visibility: dict[str, bool] = field(default_factory=default_stat_visibility)
    available_stat_keys: list[str] = field(default_factory=list)

    def is_enabled(self, kind: InteractionKind) -> bool:
        return bool(self.enabled_interactions.get(kind, False))

    def toggle_interaction(self, kind: str) -> bool:
        if kind not in INTERACTION_KINDS:
            raise ValueError(f"unknown interaction kind: {kind!r}")
        enabled = not self.enabled_interactions.get(kind, False)  # type: ignore[call-overload]
        self.enabled_interactions[kind] = enabled  # type: ignore[index]
        return enabled

    def set_all_interactions(self, enabled: bool) -> None:
        self.enabled_interactions = {kind: bool(enabled) for kind in INTERACTION_KINDS}

    def update_display_settings(self, **changes: object) -> DisplaySettings:
        unknown = sorted(set(changes) - set(DisplaySettings.__struct_fields__))
        if unknown:
            raise ValueError(f"unknown display settings: {', '.join(unknown)}")
        replaced = msgspec.structs.replace(self.display, **changes)
        # `replace` does not type-check; round-trip so only storable values are kept.
        try:
            checked = msgspec.convert(msgspec.to_builtins(replaced), DisplaySettings)
        except (msgspec.ValidationError, TypeError) as exc:
            raise SettingsError(f"invalid display settings: {exc}") from exc
        self.display = validate_display_settings(checked)
        return self.display

    def toggle_stat_visibility(self, stat_key: str) -> bool:
        visible = not self.stat_visibility.get(stat_key, False)
        self.stat_visibility[stat_key] = visible
        return visible

    def set_show_unreliable_stats(self, enabled: bool) -> None:
        self.show_unreliable_stats = bool(enabled)

    def observe_stat_keys(self, keys: Iterable[str]) -> None:
        """Record stat keys seen in a snapshot; unknown keys start hidden."""
        for key in keys:
            if key not in self.stat_visibility:
                self.stat_visibility[key] = key in STAT_KEYS
            if key not in self.available_stat_keys:
                self.available_stat_keys.append(key)

    def allowed_stat_keys(self) -> frozenset[str]:
        return frozenset(
            key
            for key, visible in self.stat_visibility.items()
            if visible and (self.show_unreliable_stats or key in STAT_KEYS)
        )


def default_settings_path() -> Path:
    override = os.environ.get("BONKWATCH_CONFIG_DIR")
    if override:
        return Path(override).expanduser().resolve() / SETTINGS_FILENAME
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_config_path) / SETTINGS_FILENAME


def settings_from_json(data: bytes | str) -> InteractionSettings:
    try:
        stored = msgspec.json.decode(data, type=_SettingsFile)
    except msgspec.DecodeError as exc:
        raise SettingsError(f"invalid settings file: {exc}") from exc
    if int(stored.version) > _SETTINGS_SCHEMA_VERSION:
        raise SettingsError(f"unsupported settings version: {stored.version}")

    enabled = default_enabled_interactions()
    for kind, value in stored.enabled_interactions.items():
        if kind in enabled:
            enabled[kind] = bool(value)  # type: ignore[index]
    visibility = default_stat_visibility()
    visibility.update(stored.stat_visibility)
    return InteractionSettings(
        enabled_interactions=enabled,
        display=validate_display_settings(stored.display_settings),
        show_unreliable_stats=bool(stored.show_unreliable_stats),
        stat_visibility=visibility,
    )


def settings_to_json(settings: InteractionSettings) -> bytes:
    stored = _SettingsFile(
        enabled_interactions=dict(settings.enabled_interactions),
        display_settings=settings.display,
        show_unreliable_stats=bool(settings.show_unreliable_stats),
        stat_visibility=dict(sorted(settings.stat_visibility.items())),
    )
    return msgspec.json.format(msgspec.json.encode(stored), indent=2) + b"\n"


def load_settings(path: Path | None = None) -> InteractionSettings:
    """Load persisted settings; a missing file yields defaults."""
    target = default_settings_path() if path is None else Path(path)
    if not target.is_file():
        return InteractionSettings()
    try:
        return settings_from_json(target.read_bytes())
    except SettingsError as exc:
        raise SettingsError(f"{target}: {exc}") from exc


def save_settings(settings: InteractionSettings, path: Path | None = None) -> Path:
    target = default_settings_path() if path is None else Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(settings_to_json(settings))
    return target


__all__ = [
    "ANIMATION_STYLES",
    "APP_NAME",
    "AnimationStyle",
    "DEFAULT_HIDDEN_STATS",
    "DisplaySettings",
    "InteractionSettings",
    "SettingsError",
    "default_enabled_interactions",
    "default_settings_path",
    "default_stat_visibility",
    "load_settings",
    "save_settings",
    "settings_from_json",
    "settings_to_json",
    "validate_display_settings",
]
