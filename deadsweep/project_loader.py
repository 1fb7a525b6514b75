"""Project enumeration: source units, stylesheets and markup files."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from .context import RunContext
from .errors import PARSE, AnalysisWarning, FatalConfigurationError, RecoverableParseError, Result
from .logging import get_logger
from .models import SourceUnit
from .syntax.base import SyntaxTreeProvider
from .syntax.stylesheet import STYLESHEET_SUFFIXES
from .syntax.tree_sitter import TreeSitterProvider

SOURCE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx")
MARKUP_SUFFIXES = (".html", ".htm", ".vue", ".svelte", ".md", ".mdx")
DOCUMENT_SUFFIXES = (".json", ".sass")
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico")
FONT_SUFFIXES = (".woff", ".woff2", ".eot", ".ttf", ".otf")

_EXCLUDED_DIRS = {
    "node_modules",
    "dist",
    "build",
    "coverage",
    ".git",
    ".next",
    ".nuxt",
    "out",
    ".venv",
    ".cache",
}

_DECLARATION_SUFFIXES = (".d.ts", ".d.mts", ".d.cts")

# Used only for files the grammar rejects, so their imports still count.
_SPECIFIER_PATTERN = re.compile(
    r"""(?:\bfrom\s*|\bimport\s*\(?\s*|\brequire\s*\(\s*)(['"])([^'"\n]+)\1"""
)


@dataclass(frozen=True)
class IgnoreRule:
    """One gitignore-style pattern, from ``.gitignore`` or ``exclude_paths``.

    Patterns containing a slash are matched against the whole relative path;
    others match any single path component.
    """

    glob: str
    dir_only: bool = False
    rooted: bool = False
    negated: bool = False

    @classmethod
    def parse(cls, line: str) -> Optional["IgnoreRule"]:
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        negated = text.startswith("!")
        if negated:
            text = text[1:]
        dir_only = text.endswith("/")
        text = text.rstrip("/")
        rooted = "/" in text
        text = text.lstrip("/")
        if not text:
            return None
        return cls(glob=text, dir_only=dir_only, rooted=rooted, negated=negated)

    def applies_to(self, rel_path: str, is_dir: bool) -> bool:
        if self.dir_only and not is_dir:
            return False
        if self.rooted:
            return fnmatchcase(rel_path, self.glob)
        return any(fnmatchcase(part, self.glob) for part in rel_path.split("/"))


@dataclass
class IgnoreRules:
    """Ordered rule list; the last matching rule decides."""

    rules: List[IgnoreRule] = field(default_factory=list)

    @classmethod
    def for_project(cls, root: Path, extra: Iterable[str] = ()) -> "IgnoreRules":
        lines: List[str] = []
        gitignore = root / ".gitignore"
        if gitignore.is_file():
            lines.extend(gitignore.read_text(encoding="utf-8", errors="ignore").splitlines())
        lines.extend(extra)
        parsed = (IgnoreRule.parse(line) for line in lines)
        return cls([rule for rule in parsed if rule is not None])

    def ignores(self, rel_path: str, is_dir: bool) -> bool:
        verdict = False
        for rule in self.rules:
            if rule.applies_to(rel_path, is_dir):
                verdict = not rule.negated
        return verdict


def scan_specifiers(text: str) -> List[str]:
    """Best-effort module specifiers of a file that failed to parse."""
    return [match.group(2) for match in _SPECIFIER_PATTERN.finditer(text)]


def resolve_root(path: str | Path) -> Path:
    root = Path(path).expanduser().resolve()
    if not root.exists():
        raise FatalConfigurationError(f"Project path not found: {path}")
    if not root.is_dir():
        raise FatalConfigurationError(f"Project path is not a directory: {path}")
    return root


def is_source_file(path: str) -> bool:
    lower = path.lower()
    return lower.endswith(SOURCE_SUFFIXES) and not lower.endswith(_DECLARATION_SUFFIXES)


@dataclass
class ProjectFiles:
    """Everything the analyzers read, as absolute paths."""

    root: Path
    units: List[SourceUnit] = field(default_factory=list)
    stylesheets: List[str] = field(default_factory=list)
    markup: List[str] = field(default_factory=list)
    documents: List[str] = field(default_factory=list)
    assets: List[str] = field(default_factory=list)


class ProjectLoader:
    """Walks the project and parses each source file into a SourceUnit."""

    def __init__(self, provider: SyntaxTreeProvider | None = None) -> None:
        self.provider = provider or TreeSitterProvider()
        self.logger = get_logger("loader")

    def load(self, context: RunContext) -> ProjectFiles:
        root = context.root
        ignore = IgnoreRules.for_project(root, context.config.exclude_paths)

        project = ProjectFiles(root=root)
        for path in self._iter_files(root, ignore):
            name = path.name.lower()
            if is_source_file(name):
                unit = context.record(self.load_unit(str(path)))
                if unit is not None:
                    project.units.append(unit)
            elif name.endswith(STYLESHEET_SUFFIXES):
                project.stylesheets.append(str(path))
            elif name.endswith(MARKUP_SUFFIXES):
                project.markup.append(str(path))
            elif name.endswith(DOCUMENT_SUFFIXES):
                project.documents.append(str(path))
            elif name.endswith(IMAGE_SUFFIXES + FONT_SUFFIXES):
                project.assets.append(str(path))

        self.logger.debug(
            "Loaded %d source units, %d stylesheets, %d markup files, %d assets",
            len(project.units),
            len(project.stylesheets),
            len(project.markup),
            len(project.assets),
        )
        return project

    def load_unit(self, path: str) -> Result[SourceUnit]:
        """Read and parse one file.

        Unreadable files fail. Files with syntax errors or bytes that are not
        UTF-8 load as degraded units, so the files they import stay reachable.
        """
        try:
            raw = Path(path).read_bytes()
        except OSError as exc:
            return Result.failure(AnalysisWarning(PARSE, path, f"unreadable: {exc}"))

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            self.logger.debug("Degraded unit %s: %s", path, exc)
            text = raw.decode("utf-8", errors="replace")
            return Result.success(self._degraded(path, text, f"not valid UTF-8 ({exc.reason})"))

        try:
            module = self.provider.parse(path, text)
        except RecoverableParseError as exc:
            self.logger.debug("Degraded unit %s: %s", path, exc.message)
            return Result.success(self._degraded(path, text, exc.message))
        return Result.success(
            SourceUnit(path=path, text=text, module=module, specifiers=list(module.specifiers))
        )

    @staticmethod
    def _degraded(path: str, text: str, reason: str) -> SourceUnit:
        return SourceUnit(
            path=path,
            text=text,
            module=None,
            specifiers=scan_specifiers(text),
            parse_error=reason,
        )

    @staticmethod
    def _iter_files(root: Path, ignore: IgnoreRules) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            base = Path(dirpath)
            prefix = base.relative_to(root).as_posix()
            prefix = "" if prefix == "." else f"{prefix}/"
            dirnames[:] = [
                name
                for name in sorted(dirnames)
                if name not in _EXCLUDED_DIRS and not ignore.ignores(prefix + name, True)
            ]
            for filename in sorted(filenames):
                if not ignore.ignores(prefix + filename, False):
                    yield base / filename


__all__ = [
    "DOCUMENT_SUFFIXES",
    "FONT_SUFFIXES",
    "IMAGE_SUFFIXES",
    "IgnoreRule",
    "IgnoreRules",
    "MARKUP_SUFFIXES",
    "ProjectFiles",
    "ProjectLoader",
    "SOURCE_SUFFIXES",
    "is_source_file",
    "resolve_root",
    "scan_specifiers",
]
