"""I/O utilities (configuration and persisted session state)."""

from .settings import (
    ADDRESS_KEY,
    DEFAULT_SESSION_PATH,
    DEFAULT_SETTINGS_PATH,
    AddressStore,
    ChartConfig,
    ConsoleConfig,
    DashboardConfig,
    LinkConfig,
    MetricRange,
    SeriesConfig,
    SettingsError,
    find_project_root,
    load_config,
    load_settings,
)

__all__ = [
    "ADDRESS_KEY",
    "DEFAULT_SESSION_PATH",
    "DEFAULT_SETTINGS_PATH",
    "AddressStore",
    "ChartConfig",
    "ConsoleConfig",
    "DashboardConfig",
    "LinkConfig",
    "MetricRange",
    "SeriesConfig",
    "SettingsError",
    "find_project_root",
    "load_config",
    "load_settings",
]
