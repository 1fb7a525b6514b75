"""Dependency audit: declared packages vs. packages the sources import."""

from __future__ import annotations

import re
from fnmatch import fnmatchcase
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Set, Tuple

from ..context import RunContext
from ..logging import get_logger
from ..models import DependencyAuditResult, SourceUnit
from .utils import PackageManifest, load_package_manifest, package_name

NATIVE_REPLACEMENTS: Dict[str, Tuple[str, ...]] = {
    "lodash": ("Array, Object and String methods in modern JavaScript",),
    "moment": ("Intl.DateTimeFormat", "Date methods", "Temporal API"),
    "request": ("fetch API", "node-fetch", "axios"),
    "underscore": ("Array, Object and String methods in modern JavaScript",),
    "jquery": ("querySelector", "querySelectorAll", "fetch API"),
    "bluebird": ("Native Promises", "async/await"),
    "cheerio": ("DOMParser (browser)", "JSDOM (Node)"),
    "q": ("Native Promises", "async/await"),
    "async": ("Promise.all", "Promise methods", "async/await"),
    "mkdirp": ("fs.mkdir with recursive: true",),
}

NODE_BUILTINS = frozenset(
    {
        "assert", "async_hooks", "buffer", "child_process", "cluster", "console", "constants",
        "crypto", "dgram", "diagnostics_channel", "dns", "domain", "events", "fs", "http",
        "http2", "https", "inspector", "module", "net", "os", "path", "perf_hooks", "process",
        "punycode", "querystring", "readline", "repl", "stream", "string_decoder", "sys",
        "timers", "tls", "trace_events", "tty", "url", "util", "v8", "vm", "wasi",
        "worker_threads", "zlib",
    }
)


def _patterns(*entries: str) -> Tuple[Pattern[str], ...]:
    """Compile package matchers: ``re:`` entries are regexes, ``x/`` a scope prefix."""
    compiled = []
    for entry in entries:
        if entry.startswith("re:"):
            compiled.append(re.compile(entry[3:]))
        elif entry.endswith("/"):
            compiled.append(re.compile("^" + re.escape(entry)))
        else:
            compiled.append(re.compile("^" + re.escape(entry) + "$"))
    return tuple(compiled)


# Packages that are used implicitly (by tooling or config) rather than imported.
IMPLICIT_DEPENDENCIES: Dict[str, Tuple[Pattern[str], ...]] = {
    "framework-plugins": _patterns(
        "re:^gatsby-(plugin|source|transformer)-", "re:^next-", "@next/", "@astrojs/",
        "re:^astro-", "@nuxtjs/", "re:^nuxt-",
    ),
    "testing": _patterns(
        "re:^jest", "@testing-library/", "identity-obj-proxy", "babel-jest", "ts-jest",
        "vitest", "cypress", "@cypress/", "playwright", "@playwright/", "mocha", "chai",
        "sinon", "enzyme", "ava", "supertest", "msw", "@mswjs/",
    ),
    "types": _patterns("@types/"),
    "build": _patterns(
        "webpack", "re:webpack-", "re:-loader$", "rollup", "re:rollup-plugin-", "@rollup/",
        "esbuild", "re:esbuild-", "vite", "re:vite-plugin-", "@vitejs/", "parcel", "babel",
        "@babel/", "re:^babel-", "swc", "@swc/", "typescript", "ts-node", "tsx",
    ),
    "styling": _patterns(
        "postcss", "re:postcss-", "autoprefixer", "tailwindcss", "sass", "node-sass", "less",
        "stylus", "cssnano",
    ),
    "linting": _patterns(
        "eslint", "re:eslint-", "@eslint/", "prettier", "re:prettier-", "@prettier/",
        "stylelint", "re:stylelint-", "commitlint", "@commitlint/", "@typescript-eslint/",
    ),
    "docs": _patterns("jsdoc", "typedoc", "storybook", "@storybook/", "@docusaurus/"),
    "monorepo": _patterns("lerna", "nx", "@nrwl/", "turbo"),
    "env": _patterns("dotenv", "re:^dotenv-", "cross-env", "env-cmd"),
    "git": _patterns(
        "husky", "lint-staged", "commitizen", "cz-conventional-changelog",
        "standard-version", "semantic-release", "@semantic-release/",
    ),
}

_CONFIG_FILE_PATTERNS = (
    "*.config.js", "*.config.cjs", "*.config.mjs", "*.config.ts", "*.config.json",
    ".eslintrc*", ".prettierrc*", ".babelrc*", ".stylelintrc*", ".postcssrc*",
    "babel.config.*", "tsconfig*.json", "cypress.json",
)

logger = get_logger("dependencies")


def implicit_category(name: str) -> Optional[str]:
    for category, patterns in IMPLICIT_DEPENDENCIES.items():
        if any(pattern.search(name) for pattern in patterns):
            return category
    return None


def is_builtin(specifier: str) -> bool:
    if specifier.startswith("node:"):
        return True
    return specifier.split("/", 1)[0] in NODE_BUILTINS


class DependencyAuditor:
    """Compares package.json declarations with imported package specifiers."""

    def audit(
        self,
        units: Sequence[SourceUnit],
        context: RunContext,
        manifest: Optional[PackageManifest] = None,
    ) -> DependencyAuditResult:
        """Raises :class:`ManifestMissing` when no manifest is given or found."""
        if manifest is None:
            manifest = load_package_manifest(context.root)
        ignored = list(context.config.dependencies.ignore)

        imported = self.imported_packages(units)
        mentioned = self._mentioned_in_config(context.root, manifest)
        declared = manifest.all_dependencies

        unused = [
            name
            for name in declared
            if name not in imported
            and name not in mentioned
            and implicit_category(name) is None
            and not _is_ignored(name, ignored)
        ]
        missing = sorted(
            name
            for name in imported
            if name not in declared
            and name != manifest.name
            and not _is_ignored(name, ignored)
        )
        replaceable = {
            name: ", ".join(NATIVE_REPLACEMENTS[name])
            for name in declared
            if name in NATIVE_REPLACEMENTS
        }

        logger.info(
            "Dependency audit: %d declared, %d unused, %d missing",
            len(declared),
            len(unused),
            len(missing),
        )
        return DependencyAuditResult(
            unused=tuple(unused),
            missing=tuple(missing),
            replaceable=MappingProxyType(replaceable),
        )

    @staticmethod
    def imported_packages(units: Iterable[SourceUnit]) -> Set[str]:
        packages: Set[str] = set()
        for unit in units:
            for specifier in unit.specifiers:
                if is_builtin(specifier):
                    continue
                name = package_name(specifier)
                if name:
                    packages.add(name)
        return packages

    @staticmethod
    def _mentioned_in_config(root: Path, manifest: PackageManifest) -> Set[str]:
        texts: List[str] = list(manifest.scripts.values())
        for path in sorted(root.iterdir()):
            if not path.is_file():
                continue
            if not any(fnmatchcase(path.name, pattern) for pattern in _CONFIG_FILE_PATTERNS):
                continue
            try:
                texts.append(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError):
                logger.debug("Skipping unreadable config file %s", path.name)

        mentioned: Set[str] = set()
        for name in manifest.all_dependencies:
            pattern = re.compile(rf"(?<![\w@/.-]){re.escape(name)}(?![\w-])")
            if any(pattern.search(text) for text in texts):
                mentioned.add(name)
        return mentioned


def _is_ignored(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatchcase(name, pattern) for pattern in patterns)


__all__ = [
    "DependencyAuditor",
    "IMPLICIT_DEPENDENCIES",
    "NATIVE_REPLACEMENTS",
    "NODE_BUILTINS",
    "implicit_category",
    "is_builtin",
]
