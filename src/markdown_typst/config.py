from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


CONFIG_FILE = Path("config.toml")

HEADING_LEVELS = range(1, 7)


@dataclass(slots=True)
class LinksConfig:
    color: str = "#1a4f8b"
    underline: bool = True


@dataclass(slots=True)
class PageConfig:
    numbers: bool = False


@dataclass(slots=True)
class FontConfig:
    sans: bool = False
    dir: Path | None = None


@dataclass(slots=True)
class LayoutConfig:
    """Per heading level pagination rules.

    ``h{N}_min_space`` is a Typst length (``"3cm"``) that must remain on the
    page for a level-N heading to stay there. ``h{N}_break_if_lines`` forces a
    page break before and after a level-N section estimated at that many
    lines or more.
    """

    h1_min_space: str | None = None
    h2_min_space: str | None = None
    h3_min_space: str | None = None
    h4_min_space: str | None = None
    h5_min_space: str | None = None
    h6_min_space: str | None = None
    h1_break_if_lines: int | None = None
    h2_break_if_lines: int | None = None
    h3_break_if_lines: int | None = None
    h4_break_if_lines: int | None = None
    h5_break_if_lines: int | None = None
    h6_break_if_lines: int | None = None

    def min_space_for_heading(self, level: int) -> str | None:
        if level not in HEADING_LEVELS:
            return None
        return getattr(self, f"h{level}_min_space")

    def break_if_lines_for_heading(self, level: int) -> int | None:
        if level not in HEADING_LEVELS:
            return None
        return getattr(self, f"h{level}_break_if_lines")


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = Path("runs")
    log_file: str = "log.jsonl"
    summary_csv: str = "summary.csv"
    max_file_size_mb: int = 25
    enable_local_api: bool = False
    parallelism: int = 1


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    links: LinksConfig = field(default_factory=LinksConfig)
    page: PageConfig = field(default_factory=PageConfig)
    font: FontConfig = field(default_factory=FontConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    api: APIConfig = field(default_factory=APIConfig)
    warnings: list[str] = field(default_factory=list)


class ConfigValueError(ValueError):
    """Raised while building a section from a wrongly typed TOML value."""


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object] | None:
    value = raw.get(name)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ConfigValueError(f"[{name}] must be a table")
    return value


def _bool(data: Mapping[str, object], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigValueError(f"{key} must be a boolean, got {value!r}")
    return value


def _str(data: Mapping[str, object], key: str, default: str | None) -> str | None:
    value = data.get(key, default)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigValueError(f"{key} must be a string, got {value!r}")
    return value


def _int(data: Mapping[str, object], key: str, default: int | None) -> int | None:
    value = data.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigValueError(f"{key} must be an integer, got {value!r}")
    return value


def _build_links(data: Mapping[str, object] | None) -> LinksConfig:
    if not data:
        return LinksConfig()
    return LinksConfig(
        color=_str(data, "color", "#1a4f8b") or "#1a4f8b",
        underline=_bool(data, "underline", True),
    )


def _build_page(data: Mapping[str, object] | None) -> PageConfig:
    if not data:
        return PageConfig()
    return PageConfig(numbers=_bool(data, "numbers", False))


def _build_font(data: Mapping[str, object] | None) -> FontConfig:
    if not data:
        return FontConfig()
    font_dir = _str(data, "dir", None)
    return FontConfig(
        sans=_bool(data, "sans", False),
        dir=Path(font_dir) if font_dir else None,
    )


def _build_layout(data: Mapping[str, object] | None) -> LayoutConfig:
    if not data:
        return LayoutConfig()
    values: dict[str, object] = {}
    for level in HEADING_LEVELS:
        values[f"h{level}_min_space"] = _str(data, f"h{level}_min_space", None)
        threshold = _int(data, f"h{level}_break_if_lines", None)
        # Zero or negative thresholds would break before every section.
        values[f"h{level}_break_if_lines"] = threshold if threshold and threshold > 0 else None
    return LayoutConfig(**values)


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", "runs"))),
        log_file=str(data.get("log_file", "log.jsonl")),
        summary_csv=str(data.get("summary_csv", "summary.csv")),
        max_file_size_mb=_int(data, "max_file_size_mb", 25) or 25,
        enable_local_api=_bool(data, "enable_local_api", False),
        parallelism=max(1, _int(data, "parallelism", 1) or 1),
    )


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=_int(data, "port", 8000) or 8000)


def load_config(path: Path | None = None) -> AppConfig:
    """Load *path* (``config.toml`` by default).

    A missing file yields the defaults. A file that cannot be read or parsed,
    or holds values of the wrong type, also yields the defaults, with a
    ``CONFIG_INVALID`` entry in ``AppConfig.warnings``.
    """

    path = path or CONFIG_FILE
    try:
        raw = _read_toml(path)
        return AppConfig(
            links=_build_links(_section(raw, "links")),
            page=_build_page(_section(raw, "page")),
            font=_build_font(_section(raw, "font")),
            layout=_build_layout(_section(raw, "layout")),
            runtime=_build_runtime(_section(raw, "runtime")),
            api=_build_api(_section(raw, "api")),
        )
    except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError, ConfigValueError) as exc:
        return AppConfig(warnings=[f"CONFIG_INVALID: {path}: {exc}"])


def dump_config(config: AppConfig) -> str:
    layout = config.layout
    payload = {
        "links": {"color": config.links.color, "underline": config.links.underline},
        "page": {"numbers": config.page.numbers},
        "font": {
            "sans": config.font.sans,
            "dir": str(config.font.dir) if config.font.dir else None,
        },
        "layout": {
            **{f"h{level}_min_space": layout.min_space_for_heading(level) for level in HEADING_LEVELS},
            **{
                f"h{level}_break_if_lines": layout.break_if_lines_for_heading(level)
                for level in HEADING_LEVELS
            },
        },
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "log_file": config.runtime.log_file,
            "summary_csv": config.runtime.summary_csv,
            "max_file_size_mb": config.runtime.max_file_size_mb,
            "enable_local_api": config.runtime.enable_local_api,
            "parallelism": config.runtime.parallelism,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)
