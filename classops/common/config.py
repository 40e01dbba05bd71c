"""Configuration helpers for the class operations dashboard."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


class ConfigError(RuntimeError):
    """Raised when a required setting cannot be resolved."""


@dataclass(frozen=True)
class YearSource:
    """Where the spreadsheet for one academic year lives."""

    url: Optional[str] = None
    url_env: Optional[str] = None


@dataclass(frozen=True)
class SheetsConfig:
    """Spreadsheet locations and tab names."""

    years: Mapping[str, YearSource] = field(default_factory=dict)
    fb_sheet: str = "Central_Class_OPS"
    app_sheet: str = "App_Class_OPS"
    images_sheet: str = "Sheet29"
    credentials_file: Optional[str] = None


@dataclass(frozen=True)
class ImporterConfig:
    """Fan-out settings for the sheet import."""

    max_workers: int = 3
    include_images: bool = True


@dataclass(frozen=True)
class DashboardConfig:
    """Dashboard defaults."""

    default_year: str = "2025"
    top_n: int = 5
    chart_top_n: int = 30


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    """Aggregated configuration model."""

    sheets: SheetsConfig
    importer: ImporterConfig
    dashboard: DashboardConfig
    logging: LoggingConfig

    @property
    def years(self) -> list[str]:
        return sorted(self.sheets.years)

    def sheet_url(self, year: str, environ: Mapping[str, str] | None = None) -> str:
        """Resolve the spreadsheet URL for ``year`` (direct value or environment variable)."""

        env = os.environ if environ is None else environ
        source = self.sheets.years.get(str(year))
        if source is None:
            raise ConfigError(f"No spreadsheet configured for {year}.")
        url = source.url
        if not url and source.url_env:
            url = env.get(source.url_env)
        if not url:
            raise ConfigError(f"Google Sheet URL for {year} is not configured.")
        return url


def load_config(path: str | Path) -> AppConfig:
    """Parse a YAML config file into an AppConfig dataclass."""

    raw = _load_yaml(path)
    return config_from_mapping(raw)


def config_from_mapping(raw: Mapping[str, Any]) -> AppConfig:
    sheets_cfg = raw.get("sheets") or {}
    importer_cfg = raw.get("importer") or {}
    dashboard_cfg = raw.get("dashboard") or {}
    logging_cfg = raw.get("logging") or {}

    years = {
        str(year): YearSource(
            url=(entry or {}).get("url"),
            url_env=(entry or {}).get("url_env"),
        )
        for year, entry in (sheets_cfg.get("years") or {}).items()
    }
    sheets = SheetsConfig(
        years=years,
        fb_sheet=str(sheets_cfg.get("fb_sheet", "Central_Class_OPS")),
        app_sheet=str(sheets_cfg.get("app_sheet", "App_Class_OPS")),
        images_sheet=str(sheets_cfg.get("images_sheet", "Sheet29")),
        credentials_file=sheets_cfg.get("credentials_file"),
    )
    importer = ImporterConfig(
        max_workers=max(int(importer_cfg.get("max_workers", 3)), 1),
        include_images=bool(importer_cfg.get("include_images", True)),
    )
    dashboard = DashboardConfig(
        default_year=str(dashboard_cfg.get("default_year", "2025")),
        top_n=max(int(dashboard_cfg.get("top_n", 5)), 1),
        chart_top_n=max(int(dashboard_cfg.get("chart_top_n", 30)), 1),
    )
    logging_settings = LoggingConfig(level=str(logging_cfg.get("level", "INFO")).upper())
    return AppConfig(
        sheets=sheets,
        importer=importer,
        dashboard=dashboard,
        logging=logging_settings,
    )


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a top-level mapping.")
    return data
