"""Tests for deadsweep.removal."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from deadsweep.analyzers.protection import ProtectionClassifier
from deadsweep.config import RunMode
from deadsweep.errors import WRITE
from deadsweep.models import IMAGE, AnalysisResult, AssetSweepResult, UnusedAsset, freeze_groups
from deadsweep.removal import RemovalEngine, declaration_removal_spans
from deadsweep.syntax.edits import apply_edits
from deadsweep.syntax.tree_sitter import TreeSitterProvider


def _remove(path: str, content: str, **unused) -> str:
    text = textwrap.dedent(content).lstrip("\n")
    module = TreeSitterProvider().parse(path, text)
    source = text.encode("utf-8")
    spans = declaration_removal_spans(module, source, **{key: set(value) for key, value in unused.items()})
    return apply_edits(source, spans).decode("utf-8")


@pytest.mark.parametrize(
    ("statement", "unused", "expected"),
    [
        (
            'import { useState, useEffect, useRef } from "react";',
            {"useRef"},
            'import { useState, useEffect } from "react";',
        ),
        (
            'import { useState, useEffect, useRef } from "react";',
            {"useState"},
            'import { useEffect, useRef } from "react";',
        ),
        (
            'import { a, b, c, d } from "x";',
            {"b", "c"},
            'import { a, d } from "x";',
        ),
        ('import React, { useState } from "react";', {"React"}, 'import { useState } from "react";'),
        ('import React, { a, b } from "x";', {"a", "b"}, 'import React from "x";'),
        ('import React, * as All from "x";', {"All"}, 'import React from "x";'),
        ('import { a as alias, b } from "x";', {"alias"}, 'import { b } from "x";'),
    ],
)
def test_partial_import_removal(statement: str, unused, expected: str) -> None:
    assert _remove("src/app.ts", statement + "\n", imports=unused) == expected + "\n"


def test_fully_unused_import_removes_the_line() -> None:
    result = _remove(
        "src/app.ts",
        """
        import { a } from "a";
        import { b, c } from "b";
        export const value = a;
        """,
        imports={"b", "c"},
    )
    assert result == 'import { a } from "a";\nexport const value = a;\n'


def test_variable_removal_keeps_used_siblings() -> None:
    result = _remove(
        "src/vars.js",
        """
        const first = 1, second = 2;
        let third = 3;
        const gone = 4;
        use(first, third);
        """,
        variables={"second", "gone"},
    )
    assert result == "const first = 1;\nlet third = 3;\nuse(first, third);\n"


def test_exported_and_destructured_variables_are_never_removed() -> None:
    content = """
    export const shared = 1;
    const { picked } = source();
    """
    assert _remove("src/vars.js", content, variables={"shared", "{ picked }"}) == textwrap.dedent(
        content
    ).lstrip("\n")


def test_function_and_method_removal() -> None:
    result = _remove(
        "src/service.ts",
        """
        function orphan() {
          return 1;
        }

        export function kept() {}

        class Service {
          stale() {}
          active() {}
        }
        """,
        functions={"orphan", "kept", "Service.stale"},
    )
    assert "orphan" not in result
    assert "export function kept() {}" in result
    assert "stale" not in result
    assert "  active() {}\n" in result


def _result(root: Path, **fields) -> AnalysisResult:
    return AnalysisResult(root=str(root), **fields)


def test_dry_run_returns_result_untouched(repo_builder) -> None:
    repo_builder.write({"src/app.ts": 'import { a } from "a";\n'})
    path = repo_builder.abspath("src/app.ts")
    result = _result(repo_builder.path(), unused_imports=freeze_groups({path: ["a"]}))
    context = repo_builder.context()

    assert RemovalEngine().execute(result, RunMode.DRY_RUN, context) is result
    assert repo_builder.read("src/app.ts") == 'import { a } from "a";\n'


def test_execute_rewrites_sources_and_reports_them(repo_builder) -> None:
    repo_builder.write(
        {"src/app.ts": 'import { a, b } from "lib";\nconst unused = 1;\nexport default a;\n'}
    )
    path = repo_builder.abspath("src/app.ts")
    result = _result(
        repo_builder.path(),
        unused_imports=freeze_groups({path: ["b"]}),
        unused_variables=freeze_groups({path: ["unused"]}),
    )

    shallow = RemovalEngine().execute(result, RunMode.APPLY, repo_builder.context(mode="apply"))
    assert shallow.modified_files == (path,)
    assert repo_builder.read("src/app.ts") == 'import { a } from "lib";\nconst unused = 1;\nexport default a;\n'

    RemovalEngine().execute(result, RunMode.APPLY, repo_builder.context(mode="apply", deep_scrub=True))
    assert repo_builder.read("src/app.ts") == 'import { a } from "lib";\nexport default a;\n'


def test_delete_file_respects_protection(repo_builder) -> None:
    repo_builder.write({"src/unused.ts": "export const x = 1;\n", "tests/main.test.ts": "export {};\n"})
    protection = ProtectionClassifier(repo_builder.path())
    engine = RemovalEngine()

    deleted = engine.delete_file(repo_builder.abspath("src/unused.ts"), protection)
    kept = engine.delete_file(repo_builder.abspath("tests/main.test.ts"), protection)

    assert deleted.value == len("export const x = 1;\n")
    assert not (repo_builder.path() / "src/unused.ts").exists()
    assert kept.ok and kept.value is None
    assert (repo_builder.path() / "tests/main.test.ts").exists()


def test_delete_missing_file_is_a_write_warning(repo_builder) -> None:
    protection = ProtectionClassifier(repo_builder.path())
    outcome = RemovalEngine().delete_file(repo_builder.abspath("src/gone.ts"), protection)
    assert not outcome.ok
    assert outcome.warning.category == WRITE


def test_clean_stylesheet_reports_saved_bytes(repo_builder) -> None:
    css = ".keep { color: red; }\n.drop { color: blue; }\n"
    repo_builder.write({"src/site.css": css})
    path = repo_builder.abspath("src/site.css")

    saved = RemovalEngine().clean_stylesheet(path, {"drop"})
    unchanged = RemovalEngine().clean_stylesheet(path, {"drop"})

    assert saved.value == len(".drop { color: blue; }\n")
    assert repo_builder.read("src/site.css") == ".keep { color: red; }\n"
    assert unchanged.ok and unchanged.value is None


def test_write_failure_becomes_warning(repo_builder, monkeypatch: pytest.MonkeyPatch) -> None:
    repo_builder.write({"src/app.ts": 'import { a } from "a";\nexport const b = 1;\n'})
    path = repo_builder.abspath("src/app.ts")

    def _fail(self, data):
        raise PermissionError("read-only")

    monkeypatch.setattr(Path, "write_bytes", _fail)
    outcome = RemovalEngine().rewrite_source(path, imports=["a"])

    assert not outcome.ok
    assert outcome.warning.category == WRITE
    assert outcome.warning.path == path


def test_execute_deletes_unused_assets_unless_protected(repo_builder) -> None:
    repo_builder.write({"src/img/old.png": "png-bytes", "favicon.ico": "ico"})
    old = repo_builder.abspath("src/img/old.png")
    favicon = repo_builder.abspath("favicon.ico")
    assets = AssetSweepResult(
        items=(UnusedAsset(old, IMAGE, size=9), UnusedAsset(favicon, IMAGE, size=3))
    )
    result = _result(repo_builder.path(), assets=assets)

    reported = RemovalEngine().execute(result, RunMode.APPLY, repo_builder.context(mode="apply"))
    assert reported.deleted_files == ()
    assert (repo_builder.path() / "src/img/old.png").exists()

    applied = RemovalEngine().execute(
        result, RunMode.APPLY, repo_builder.context(mode="apply", delete_unused_assets=True)
    )
    assert applied.deleted_files == (old,)
    assert applied.bytes_reclaimed == len("png-bytes")
    assert not (repo_builder.path() / "src/img/old.png").exists()
    assert (repo_builder.path() / "favicon.ico").exists()
