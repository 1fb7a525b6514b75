"""Tests for deadsweep.analyzers.references."""

from __future__ import annotations

from deadsweep.analyzers.references import ReferenceGraphBuilder, TextOccurrenceHeuristic
from deadsweep.errors import PARSE
from deadsweep.models import SourceUnit


def test_text_occurrence_counts_whole_words_only() -> None:
    heuristic = TextOccurrenceHeuristic()
    text = "const value = 1; valueOf(); $value; value_; use(value);"
    assert heuristic.occurrences("value", text) == 2
    assert heuristic.occurrences("missing", text) == 1


def test_unused_named_import_is_reported(repo_builder) -> None:
    repo_builder.write(
        {
            "src/hooks.ts": """
            import { useState, useEffect, useRef } from "react";

            export function useCounter() {
              const [count] = useState(0);
              useEffect(() => {}, []);
              return count;
            }
            """,
        }
    )
    context = repo_builder.context()
    (unit,) = repo_builder.load().units
    result = ReferenceGraphBuilder().analyze_unit(unit, context.options.deep_scrub)
    assert result.ok
    assert result.value.unused_imports == ("useRef",)
    assert result.value.unused_variables == ()


def test_re_exported_import_is_kept(repo_builder) -> None:
    repo_builder.write(
        {
            "src/index.ts": """
            import Button from "./Button";
            export { Button };
            """,
        }
    )
    (unit,) = repo_builder.load().units
    result = ReferenceGraphBuilder().analyze_unit(unit)
    assert result.value.unused_imports == ()


def test_deep_scrub_reports_declarations(repo_builder) -> None:
    repo_builder.write(
        {
            "src/util.ts": """
            const unusedValue = 42;
            const used = 1;
            const { picked } = source();
            for (let i = 0; i < used; i++) {}

            function orphan() {}
            export function api() {
              return used + picked;
            }

            class Store {
              constructor() {}
              private hidden() {}
              get size() { return 0; }
              refresh() {}
              load() {}
              run() {
                this.load();
              }
            }
            """,
        }
    )
    (unit,) = repo_builder.load().units
    builder = ReferenceGraphBuilder()

    shallow = builder.analyze_unit(unit, deep_scrub=False).value
    assert shallow.unused_variables == ()
    assert shallow.unused_functions == ()

    deep = builder.analyze_unit(unit, deep_scrub=True).value
    assert deep.unused_variables == ("unusedValue",)
    assert set(deep.unused_functions) == {"orphan", "Store.refresh", "Store.run"}


def test_degraded_unit_yields_parse_warning() -> None:
    unit = SourceUnit(
        path="/project/src/broken.ts",
        text="function (",
        module=None,
        specifiers=[],
        parse_error="syntax error near line 1",
    )
    result = ReferenceGraphBuilder().analyze_unit(unit, deep_scrub=True)
    assert not result.ok
    assert result.warning.category == PARSE
    assert result.warning.path == unit.path
    assert "syntax error near line 1" in result.warning.message


def test_build_with_workers_preserves_unit_order(repo_builder) -> None:
    files = {f"src/mod{index}.ts": f'import {{ a{index} }} from "./x";\n' for index in range(6)}
    repo_builder.write(files)
    units = repo_builder.load().units
    context = repo_builder.context(workers=3)
    results = ReferenceGraphBuilder().build(units, context)
    assert [result.value.path for result in results] == [unit.path for unit in units]
    assert all(result.value.unused_imports for result in results)
