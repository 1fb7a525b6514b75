"""Resource protection: files that must survive regardless of usage."""

from __future__ import annotations

import os
import re
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from ..models import ProtectionTag

TEST_MARKER = "test-marker"
TYPE_DECLARATION = "type-declaration"
CONFIG_FILE = "config-file"
DOCUMENTATION = "documentation"
RESERVED_DIRECTORY = "reserved-directory"
FRAMEWORK_ROUTE = "framework-route"
PROJECT_ROOT = "project-root"
OUTSIDE_ROOT = "outside-root"
CONFIGURED_PATTERN = "configured-pattern"

_MARKER_PATTERN = re.compile(
    r"(^|[._-])(test|tests|spec|specs|mock|mocks|fixture|fixtures)([._-]|$)",
    re.IGNORECASE,
)
_TEST_DIRS = {"test", "tests", "__tests__", "__mocks__", "__fixtures__", "fixtures", "mocks"}

_DECLARATION_SUFFIXES = (".d.ts", ".d.mts", ".d.cts")

_CONFIG_PATTERNS: Tuple[str, ...] = (
    "package.json",
    "package-lock.json",
    "npm-shrinkwrap.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "pnpm-workspace.yaml",
    "bun.lockb",
    "tsconfig*.json",
    "jsconfig*.json",
    "*.config.*",
    "jest.setup.*",
    "setuptests.*",
    "vite-env.d.ts",
    "gulpfile.*",
    "gruntfile.*",
)

_DOC_SUFFIXES = (".md", ".mdx", ".markdown")
_DOC_NAMES = {"readme", "license", "licence", "changelog", "contributing", "authors", "notice"}

_RESERVED_DIRS = {
    "node_modules",
    "dist",
    "build",
    "out",
    "coverage",
    ".git",
    "docs",
    "doc",
    "examples",
    "example",
    "scripts",
    ".next",
    ".nuxt",
    ".output",
    ".svelte-kit",
    "_site",
}

_FRAMEWORK_DIRS = {"pages", "app", "routes"}


class ProtectionClassifier:
    """Pure predicate over paths; every rule can only add a reason."""

    def __init__(self, root: str | Path, extra_patterns: Iterable[str] = ()) -> None:
        self.root = Path(os.path.abspath(root))
        self.extra_patterns: Tuple[str, ...] = tuple(extra_patterns)

    def is_protected(self, path: str | Path) -> bool:
        return self.classify(path).protected

    def classify(self, path: str | Path) -> ProtectionTag:
        absolute = Path(os.path.abspath(os.path.join(self.root, path)))
        tag = ProtectionTag(path=str(absolute))

        try:
            relative = absolute.relative_to(self.root)
        except ValueError:
            return tag.with_reason(OUTSIDE_ROOT)

        parts = relative.parts
        if not parts:
            return tag.with_reason(PROJECT_ROOT)
        directories, name = parts[:-1], parts[-1]
        lower_name = name.lower()

        for reason in self._reasons(directories, name, lower_name, relative.as_posix()):
            tag = tag.with_reason(reason)
        return tag

    def _reasons(
        self, directories: Sequence[str], name: str, lower_name: str, rel_path: str
    ) -> List[str]:
        reasons: List[str] = []

        if _MARKER_PATTERN.search(name) or any(
            part.lower() in _TEST_DIRS or _MARKER_PATTERN.search(part) for part in directories
        ):
            reasons.append(TEST_MARKER)

        if lower_name.endswith(_DECLARATION_SUFFIXES):
            reasons.append(TYPE_DECLARATION)

        if name.startswith(".") or any(fnmatchcase(lower_name, pattern) for pattern in _CONFIG_PATTERNS):
            reasons.append(CONFIG_FILE)

        stem = lower_name.split(".", 1)[0]
        if lower_name.endswith(_DOC_SUFFIXES) or stem in _DOC_NAMES:
            reasons.append(DOCUMENTATION)

        if any(part.lower() in _RESERVED_DIRS for part in directories):
            reasons.append(RESERVED_DIRECTORY)

        lowered_dirs = [part.lower() for part in directories]
        if lowered_dirs and (
            lowered_dirs[0] in _FRAMEWORK_DIRS
            or (len(lowered_dirs) > 1 and lowered_dirs[0] == "src" and lowered_dirs[1] in _FRAMEWORK_DIRS)
        ):
            reasons.append(FRAMEWORK_ROUTE)

        if not directories:
            reasons.append(PROJECT_ROOT)

        if any(fnmatchcase(rel_path, pattern) for pattern in self.extra_patterns):
            reasons.append(CONFIGURED_PATTERN)

        return reasons


__all__ = [
    "CONFIGURED_PATTERN",
    "CONFIG_FILE",
    "DOCUMENTATION",
    "FRAMEWORK_ROUTE",
    "OUTSIDE_ROOT",
    "PROJECT_ROOT",
    "ProtectionClassifier",
    "RESERVED_DIRECTORY",
    "TEST_MARKER",
    "TYPE_DECLARATION",
]
