"""Configuration loading for hunkwise."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAMES = (".hunkwise.toml", "hunkwise.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("hunkwise",)
LOG_LEVELS = {"debug", "info", "warning", "error"}


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "human"
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    show_lines: bool = True
    normalize_newlines: bool = True
    log_level: str = "warning"
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "include": list(self.include),
            "exclude": list(self.exclude),
            "show_lines": self.show_lines,
            "normalize_newlines": self.normalize_newlines,
            "log_level": self.log_level,
            "source": self.source,
        }


def load_app_config(root: Path, config_path: Path | None = None) -> AppConfig:
    """Load config from an explicit path or from files under ``root``, in precedence order."""
    root = root.resolve()
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else (root / config_path)
        if not resolved.exists():
            raise ValueError(f"Config file does not exist: {resolved}")
        mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
        return _from_mapping(mapping, source=str(resolved))

    for filename in CONFIG_FILENAMES:
        resolved = root / filename
        if resolved.exists():
            mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
            return _from_mapping(mapping, source=str(resolved))

    pyproject_path = root / PYPROJECT_FILENAME
    if pyproject_path.exists():
        mapping = _extract_config_mapping(_load_toml(pyproject_path), source_path=pyproject_path)
        if mapping:
            return _from_mapping(mapping, source=str(pyproject_path))

    return AppConfig()


def default_config_template() -> str:
    """Return a starter config template."""
    return "\n".join(
        [
            'format = "human"',
            '# include = ["src/**"]',
            'exclude = ["*.lock"]',
            "show_lines = true",
            "normalize_newlines = true",
            'log_level = "warning"',
            "",
        ]
    )


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as file_obj:
            loaded = tomllib.load(file_obj)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _extract_config_mapping(loaded: dict[str, Any], *, source_path: Path) -> dict[str, Any]:
    if source_path.name == PYPROJECT_FILENAME:
        section = _find_pyproject_tool_section(loaded)
        return section if section is not None else {}

    tool_section = _find_pyproject_tool_section(loaded)
    if tool_section is not None:
        return tool_section
    return loaded


def _find_pyproject_tool_section(loaded: dict[str, Any]) -> dict[str, Any] | None:
    tool = loaded.get("tool")
    if not isinstance(tool, dict):
        return None
    for key in PYPROJECT_TOOL_KEYS:
        section = tool.get(key)
        if isinstance(section, dict):
            return section
    return None


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    return AppConfig(
        format=_as_choice(mapping.get("format", "human"), {"human", "json"}, "format"),
        include=_as_str_list(mapping.get("include"), "include"),
        exclude=_as_str_list(mapping.get("exclude"), "exclude"),
        show_lines=_as_bool(mapping.get("show_lines", True), "show_lines"),
        normalize_newlines=_as_bool(
            mapping.get("normalize_newlines", True), "normalize_newlines"
        ),
        log_level=_as_choice(mapping.get("log_level", "warning"), LOG_LEVELS, "log_level"),
        source=source,
    )


def _as_str_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{field_name} must be a list of strings")
        items.append(item)
    return items


def _as_choice(raw: Any, allowed: set[str], field_name: str) -> str:
    value = str(raw).lower()
    if value not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValueError(f"{field_name} must be one of: {choices}")
    return value


def _as_bool(raw: Any, field_name: str) -> bool:
    if not isinstance(raw, bool):
        raise ValueError(f"{field_name} must be a boolean")
    return raw
