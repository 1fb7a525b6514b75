"""Tests for deadsweep.project_loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from deadsweep.errors import FatalConfigurationError
from deadsweep.project_loader import ProjectLoader, resolve_root, scan_specifiers


def _relative(paths, root: Path):
    return sorted(Path(path).relative_to(root.resolve()).as_posix() for path in paths)


def test_load_sorts_files_into_units_stylesheets_and_markup(repo_builder) -> None:
    repo_builder.write(
        {
            "src/app.ts": "export const app = 1;\n",
            "src/View.jsx": "export const View = () => <div />;\n",
            "src/types.d.ts": "declare const x: number;\n",
            "src/theme.scss": ".a { color: red; }\n",
            "public/index.html": "<div></div>\n",
            "node_modules/lib/index.js": "module.exports = 1;\n",
            "dist/bundle.js": "var a = 1;\n",
            "README.md": "# Demo\n",
        }
    )
    root = repo_builder.path()
    project = repo_builder.load()

    assert _relative([unit.path for unit in project.units], root) == ["src/View.jsx", "src/app.ts"]
    assert _relative(project.stylesheets, root) == ["src/theme.scss"]
    assert _relative(project.markup, root) == ["README.md", "public/index.html"]


def test_gitignore_and_configured_excludes_are_honoured(repo_builder) -> None:
    repo_builder.write(
        {
            ".gitignore": "generated/\n*.gen.ts\n!keep.gen.ts\n",
            "generated/api.ts": "export const api = 1;\n",
            "src/schema.gen.ts": "export const schema = 1;\n",
            "src/keep.gen.ts": "export const keep = 1;\n",
            "src/legacy/old.ts": "export const old = 1;\n",
            "src/main.ts": "export const main = 1;\n",
        }
    )
    context = repo_builder.context()
    context.config.exclude_paths = ["src/legacy/"]
    project = ProjectLoader().load(context)

    assert _relative([unit.path for unit in project.units], repo_builder.path()) == [
        "src/keep.gen.ts",
        "src/main.ts",
    ]


def test_unparseable_file_loads_as_degraded_unit(repo_builder) -> None:
    repo_builder.write(
        {"src/broken.ts": 'import { a } from "./a";\nconst b = require("./b");\nfunction (\n'}
    )
    context = repo_builder.context()
    (unit,) = ProjectLoader().load(context).units

    assert unit.degraded
    assert unit.parse_error and "syntax error" in unit.parse_error
    assert unit.specifiers == ["./a", "./b"]
    assert context.warnings == []


def test_undecodable_file_loads_as_degraded_unit(repo_builder) -> None:
    path = repo_builder.path() / "src" / "legacy.js"
    path.parent.mkdir(parents=True)
    path.write_bytes(b'import { helper } from "./helper";\n// caf\xe9\n')
    context = repo_builder.context()

    (unit,) = ProjectLoader().load(context).units

    assert unit.path == str(path.resolve())
    assert unit.degraded
    assert unit.parse_error and unit.parse_error.startswith("not valid UTF-8")
    assert unit.specifiers == ["./helper"]
    assert context.warnings == []


def test_scan_specifiers_finds_static_and_dynamic_forms() -> None:
    text = 'import x from "./x";\nexport * from \'./y\';\nimport("./z");\nrequire("pkg");\nimport "./side";\n'
    assert scan_specifiers(text) == ["./x", "./y", "./z", "pkg", "./side"]


def test_resolve_root_rejects_missing_and_file_paths(tmp_path: Path) -> None:
    with pytest.raises(FatalConfigurationError):
        resolve_root(tmp_path / "missing")
    target = tmp_path / "file.ts"
    target.write_text("", encoding="utf-8")
    with pytest.raises(FatalConfigurationError):
        resolve_root(target)
    assert resolve_root(tmp_path) == tmp_path.resolve()
