"""Configuration loading for deadsweep (.deadsweep.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".deadsweep.yml"

DEFAULT_MAX_PASSES = 10
DEFAULT_MAX_FILE_LINES = 500
DEFAULT_MAX_FUNCTION_LINES = 50
DEFAULT_MAX_NESTING_DEPTH = 4


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


class RunMode(str, Enum):
    DRY_RUN = "dry-run"
    APPLY = "apply"


@dataclass
class AnalysisConfig:
    """Symbol analysis settings."""

    deep_scrub: bool = False
    workers: int = 1


@dataclass
class RemovalConfig:
    """What an apply run is allowed to touch."""

    delete_unused_files: bool = False
    max_passes: int = DEFAULT_MAX_PASSES


@dataclass
class StylesConfig:
    enabled: bool = False
    scan_components: bool = True


@dataclass
class DependenciesConfig:
    enabled: bool = False
    ignore: List[str] = field(default_factory=list)


@dataclass
class CyclesConfig:
    enabled: bool = False


@dataclass
class AssetsConfig:
    """Unused image and font detection."""

    enabled: bool = False
    delete_unused: bool = False
    include_images: bool = True
    include_fonts: bool = True


@dataclass
class ComplexityConfig:
    """Thresholds above which files and functions are reported."""

    enabled: bool = False
    max_file_lines: int = DEFAULT_MAX_FILE_LINES
    max_function_lines: int = DEFAULT_MAX_FUNCTION_LINES
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH


@dataclass
class ProtectionConfig:
    extra_patterns: List[str] = field(default_factory=list)


@dataclass
class SweepConfig:
    """Represents the settings defined in .deadsweep.yml."""

    root: Path
    exclude_paths: List[str] = field(default_factory=list)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    removal: RemovalConfig = field(default_factory=RemovalConfig)
    styles: StylesConfig = field(default_factory=StylesConfig)
    dependencies: DependenciesConfig = field(default_factory=DependenciesConfig)
    cycles: CyclesConfig = field(default_factory=CyclesConfig)
    assets: AssetsConfig = field(default_factory=AssetsConfig)
    complexity: ComplexityConfig = field(default_factory=ComplexityConfig)
    protection: ProtectionConfig = field(default_factory=ProtectionConfig)


@dataclass(frozen=True)
class RunOptions:
    """Effective flags for a single run."""

    mode: RunMode = RunMode.DRY_RUN
    deep_scrub: bool = False
    delete_unused_files: bool = False
    clean_styles: bool = False
    scan_components: bool = True
    audit_dependencies: bool = False
    check_cycles: bool = False
    sweep_assets: bool = False
    delete_unused_assets: bool = False
    check_complexity: bool = False
    workers: int = 1
    max_passes: int = DEFAULT_MAX_PASSES

    @property
    def dry_run(self) -> bool:
        return self.mode is RunMode.DRY_RUN

    @classmethod
    def from_config(cls, config: Optional[SweepConfig] = None, **overrides: Any) -> "RunOptions":
        """Merge file settings with caller overrides; ``None`` overrides are ignored."""
        options = cls()
        if config is not None:
            options = cls(
                deep_scrub=config.analysis.deep_scrub,
                delete_unused_files=config.removal.delete_unused_files,
                clean_styles=config.styles.enabled,
                scan_components=config.styles.scan_components,
                audit_dependencies=config.dependencies.enabled,
                check_cycles=config.cycles.enabled,
                sweep_assets=config.assets.enabled,
                delete_unused_assets=config.assets.delete_unused,
                check_complexity=config.complexity.enabled,
                workers=config.analysis.workers,
                max_passes=config.removal.max_passes,
            )

        known = {item.name for item in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise TypeError(f"Unknown run option(s): {', '.join(unknown)}")

        values = {key: value for key, value in overrides.items() if value is not None}
        if "mode" in values and not isinstance(values["mode"], RunMode):
            values["mode"] = RunMode(values["mode"])
        options = replace(options, **values)
        if options.workers < 1 or options.max_passes < 1:
            raise ValueError("workers and max_passes must be at least 1")
        return options


def load_config(config_path: Path) -> SweepConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SweepConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    analysis_data = _as_dict(data.get("analysis"))
    analysis = AnalysisConfig(
        deep_scrub=_pick(_as_bool(analysis_data.get("deep_scrub")), False),
        workers=max(1, _pick(_as_int(analysis_data.get("workers")), 1)),
    )

    removal_data = _as_dict(data.get("removal"))
    removal = RemovalConfig(
        delete_unused_files=_pick(_as_bool(removal_data.get("delete_unused_files")), False),
        max_passes=max(1, _pick(_as_int(removal_data.get("max_passes")), DEFAULT_MAX_PASSES)),
    )

    styles_data = _as_dict(data.get("styles"))
    styles = StylesConfig(
        enabled=_pick(_as_bool(styles_data.get("enabled")), False),
        scan_components=_pick(_as_bool(styles_data.get("scan_components")), True),
    )

    dependencies_data = _as_dict(data.get("dependencies"))
    dependencies = DependenciesConfig(
        enabled=_pick(_as_bool(dependencies_data.get("enabled")), False),
        ignore=_as_str_list(dependencies_data.get("ignore")),
    )

    cycles_data = _as_dict(data.get("cycles"))
    cycles = CyclesConfig(enabled=_pick(_as_bool(cycles_data.get("enabled")), False))

    protection_data = _as_dict(data.get("protection"))
    protection = ProtectionConfig(
        extra_patterns=_as_str_list(protection_data.get("extra_patterns")),
    )

    assets_data = _as_dict(data.get("assets"))
    assets = AssetsConfig(
        enabled=_pick(_as_bool(assets_data.get("enabled")), False),
        delete_unused=_pick(_as_bool(assets_data.get("delete_unused")), False),
        include_images=_pick(_as_bool(assets_data.get("include_images")), True),
        include_fonts=_pick(_as_bool(assets_data.get("include_fonts")), True),
    )

    complexity_data = _as_dict(data.get("complexity"))
    complexity = ComplexityConfig(
        enabled=_pick(_as_bool(complexity_data.get("enabled")), False),
        max_file_lines=max(
            1, _pick(_as_int(complexity_data.get("max_file_lines")), DEFAULT_MAX_FILE_LINES)
        ),
        max_function_lines=max(
            1, _pick(_as_int(complexity_data.get("max_function_lines")), DEFAULT_MAX_FUNCTION_LINES)
        ),
        max_nesting_depth=max(
            1, _pick(_as_int(complexity_data.get("max_nesting_depth")), DEFAULT_MAX_NESTING_DEPTH)
        ),
    )

    return SweepConfig(
        root=root,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        analysis=analysis,
        removal=removal,
        styles=styles,
        dependencies=dependencies,
        cycles=cycles,
        protection=protection,
        assets=assets,
        complexity=complexity,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on", "1"}:
            return True
        if lowered in {"false", "no", "off", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AnalysisConfig",
    "AssetsConfig",
    "CONFIG_FILENAME",
    "ComplexityConfig",
    "ConfigError",
    "CyclesConfig",
    "DependenciesConfig",
    "ProtectionConfig",
    "RemovalConfig",
    "RunMode",
    "RunOptions",
    "StylesConfig",
    "SweepConfig",
    "load_config",
]
