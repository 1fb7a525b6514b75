"""Shared helper utilities for analyzer implementations."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..errors import ManifestMissing

# Node.js manifest helpers


@dataclass(frozen=True)
class PackageManifest:
    """The parts of package.json that deadsweep cares about."""

    name: Optional[str] = None
    main: Optional[str] = None
    bin: Mapping[str, str] = field(default_factory=dict)
    dependencies: List[str] = field(default_factory=list)
    dev_dependencies: List[str] = field(default_factory=list)
    scripts: Mapping[str, str] = field(default_factory=dict)

    @property
    def entry_points(self) -> List[str]:
        entries = [self.main] if self.main else []
        entries.extend(self.bin.values())
        return entries

    @property
    def all_dependencies(self) -> List[str]:
        return sorted(set(self.dependencies) | set(self.dev_dependencies))


def load_package_manifest(root: Path) -> PackageManifest:
    """Read ``root/package.json``.

    Raises :class:`ManifestMissing` when the file is absent, unreadable or not
    a JSON object.
    """
    package_json = root / "package.json"
    if not package_json.is_file():
        raise ManifestMissing(f"No package.json found in {root}")
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ManifestMissing(f"Unreadable package.json: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestMissing("package.json must contain a JSON object")

    return PackageManifest(
        name=data["name"] if isinstance(data.get("name"), str) else None,
        main=data["main"] if isinstance(data.get("main"), str) else None,
        bin=_parse_bin(data.get("bin"), data.get("name")),
        dependencies=_dependency_names(data, "dependencies"),
        dev_dependencies=_dependency_names(data, "devDependencies"),
        scripts=_string_mapping(data.get("scripts")),
    )


def _parse_bin(value: Any, name: Any) -> Dict[str, str]:
    if isinstance(value, str):
        return {name if isinstance(name, str) and name else "bin": value}
    return _string_mapping(value)


def _string_mapping(value: Any) -> Dict[str, str]:
    if isinstance(value, dict):
        return {str(key): item for key, item in value.items() if isinstance(item, str)}
    return {}


def _dependency_names(data: Dict[str, Any], key: str) -> List[str]:
    deps = data.get(key, {})
    if isinstance(deps, dict):
        return sorted(str(name) for name in deps.keys())
    return []


def package_name(specifier: str) -> Optional[str]:
    """Return the npm package a bare specifier refers to (``@scope/pkg`` aware)."""
    if not specifier or specifier.startswith((".", "/")):
        return None
    parts = specifier.split("/")
    if specifier.startswith("@"):
        if len(parts) < 2 or not parts[1]:
            return None
        return f"{parts[0]}/{parts[1]}"
    return parts[0]


__all__ = ["PackageManifest", "load_package_manifest", "package_name"]
