"""YAML configuration and the persisted device address."""

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

import yaml

log = logging.getLogger(__name__)

PROJECT_MARKERS: Iterable[str] = (".git", "pyproject.toml", "config")
DEFAULT_SETTINGS_PATH = Path("config/settings.yml")
DEFAULT_SESSION_PATH = Path("config/session.yml")
ADDRESS_KEY = "device_address"

PathLike = Union[str, os.PathLike]

DEFAULT_SETTINGS: Dict[str, Any] = {
    "link": {
        "port": 81,
        "reconnect_delay_s": 3.0,
        "heartbeat_interval_s": 1.0,
        "auto_connect": True,
        "auto_connect_delay_s": 0.5,
    },
    "series": {
        "window_s": 30.0,
        "max_points": 600,
        "sweep_interval_s": 1.0,
    },
    "chart": {
        "frame_interval_ms": 16,
        "x_window_s": 30.0,
    },
    "metrics": {
        "rpm": {"floor": -5.0, "ceiling": 10.0, "padding": 5.0},
        "temperature": {"floor": 0.0, "ceiling": 30.0, "padding": 5.0},
        "voltage": {"floor": 0.0, "ceiling": 30.0, "padding": 5.0},
    },
    "console": {
        "max_lines": 1000,
    },
    "session_file": str(DEFAULT_SESSION_PATH),
}


class SettingsError(RuntimeError):
    """Raised when the settings file holds unusable values."""


@dataclass(frozen=True)
class LinkConfig:
    port: int = 81
    reconnect_delay_s: float = 3.0
    heartbeat_interval_s: float = 1.0
    auto_connect: bool = True
    auto_connect_delay_s: float = 0.5


@dataclass(frozen=True)
class SeriesConfig:
    window_s: float = 30.0
    max_points: int = 600
    sweep_interval_s: float = 1.0


@dataclass(frozen=True)
class ChartConfig:
    frame_interval_ms: int = 16
    x_window_s: float = 30.0


@dataclass(frozen=True)
class ConsoleConfig:
    max_lines: int = 1000


@dataclass(frozen=True)
class MetricRange:
    floor: float
    ceiling: float
    padding: float = 5.0


@dataclass(frozen=True)
class DashboardConfig:
    link: LinkConfig = field(default_factory=LinkConfig)
    series: SeriesConfig = field(default_factory=SeriesConfig)
    chart: ChartConfig = field(default_factory=ChartConfig)
    console: ConsoleConfig = field(default_factory=ConsoleConfig)
    metrics: Dict[str, MetricRange] = field(default_factory=dict)
    session_file: Path = DEFAULT_SESSION_PATH


def find_project_root(markers: Iterable[str] = PROJECT_MARKERS) -> Path:
    """Attempt to locate the repository root by walking up until a marker file/dir appears."""
    start = Path(__file__).resolve().parent
    for candidate in [start] + list(start.parents):
        for marker in markers:
            if (candidate / marker).exists():
                return candidate
    return start


def _resolve(path: PathLike, project_root: Path) -> Path:
    target = Path(path)
    if not target.is_absolute():
        target = project_root / target
    return target


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Load ``config/settings.yml`` layered over the built-in defaults.

    A missing file yields the defaults unchanged.
    """
    project_root = find_project_root()
    target = _resolve(path or DEFAULT_SETTINGS_PATH, project_root)
    if not target.exists():
        log.info("settings file %s not found, using defaults", target)
        return copy.deepcopy(DEFAULT_SETTINGS)
    try:
        with open(target, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"Invalid YAML in settings file {target}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise SettingsError(f"Settings file {target} must contain a mapping")
    return _deep_merge(DEFAULT_SETTINGS, data)


def _number(section: Mapping[str, Any], key: str, context: str, kind=float, positive: bool = True):
    value = section.get(key)
    try:
        number = kind(value)
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"'{context}.{key}' must be a number, got {value!r}") from exc
    if positive and number <= 0:
        raise SettingsError(f"'{context}.{key}' must be positive, got {number}")
    return number


def _metric_ranges(metrics: Mapping[str, Any]) -> Dict[str, MetricRange]:
    ranges: Dict[str, MetricRange] = {}
    for name, raw in metrics.items():
        if not isinstance(raw, Mapping):
            raise SettingsError(f"metrics.{name} must be a mapping")
        context = f"metrics.{name}"
        floor = _number(raw, "floor", context, positive=False)
        ceiling = _number(raw, "ceiling", context, positive=False)
        if floor >= ceiling:
            raise SettingsError(f"{context}: floor ({floor}) must be below ceiling ({ceiling})")
        padding = _number(raw, "padding", context, positive=False)
        ranges[name] = MetricRange(floor=floor, ceiling=ceiling, padding=padding)
    return ranges


def load_config(path: Optional[PathLike] = None) -> DashboardConfig:
    """Load settings and convert them to typed configuration objects."""
    data = load_settings(path)
    link = data.get("link", {})
    series = data.get("series", {})
    chart = data.get("chart", {})
    console = data.get("console", {})
    return DashboardConfig(
        link=LinkConfig(
            port=_number(link, "port", "link", kind=int),
            reconnect_delay_s=_number(link, "reconnect_delay_s", "link"),
            heartbeat_interval_s=_number(link, "heartbeat_interval_s", "link"),
            auto_connect=bool(link.get("auto_connect", True)),
            auto_connect_delay_s=_number(link, "auto_connect_delay_s", "link", positive=False),
        ),
        series=SeriesConfig(
            window_s=_number(series, "window_s", "series"),
            max_points=_number(series, "max_points", "series", kind=int),
            sweep_interval_s=_number(series, "sweep_interval_s", "series"),
        ),
        chart=ChartConfig(
            frame_interval_ms=_number(chart, "frame_interval_ms", "chart", kind=int),
            x_window_s=_number(chart, "x_window_s", "chart"),
        ),
        console=ConsoleConfig(max_lines=_number(console, "max_lines", "console", kind=int)),
        metrics=_metric_ranges(data.get("metrics", {})),
        session_file=_resolve(data.get("session_file") or DEFAULT_SESSION_PATH, find_project_root()),
    )


class AddressStore:
    """Remembers the last device address that reached the open state."""

    def __init__(self, path: Optional[PathLike] = None) -> None:
        self.path = _resolve(path or DEFAULT_SESSION_PATH, find_project_root())

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as exc:
            log.warning("could not read session file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> str:
        value = self._read().get(ADDRESS_KEY)
        return str(value).strip() if value else ""

    def save(self, address: str) -> None:
        data = self._read()
        data[ADDRESS_KEY] = address
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(data, handle, sort_keys=False)
