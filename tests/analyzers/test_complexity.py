"""Tests for deadsweep.analyzers.complexity."""

from __future__ import annotations

from deadsweep.analyzers.complexity import ComplexityAnalyzer, count_lines


def _nested(depth: int) -> str:
    lines = ["export function deep(a) {"]
    for level in range(depth):
        lines.append("  " * (level + 1) + f"if (a > {level}) {{")
    lines.append("  " * (depth + 1) + "return a;")
    for level in reversed(range(depth)):
        lines.append("  " * (level + 1) + "}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def test_count_lines_ignores_trailing_newline() -> None:
    assert count_lines("") == 0
    assert count_lines("a\nb\n") == 2
    assert count_lines("a\nb") == 2


def test_files_within_thresholds_are_not_reported(repo_builder) -> None:
    repo_builder.write({"src/small.ts": "export const small = () => 1;\n"})
    context = repo_builder.context(check_complexity=True)

    assert ComplexityAnalyzer().analyze(repo_builder.load().units, context) == ()


def test_large_files_long_functions_and_deep_nesting(repo_builder) -> None:
    body = "\n".join(f"  const v{index} = {index};" for index in range(6))
    repo_builder.write(
        {
            "src/long.ts": f"export function long() {{\n{body}\n  return 0;\n}}\n",
            "src/deep.ts": _nested(3),
            "src/big.ts": "".join(f"export const c{index} = {index};\n" for index in range(12)),
        }
    )
    context = repo_builder.context(check_complexity=True)
    limits = context.config.complexity
    limits.max_file_lines = 10
    limits.max_function_lines = 5
    limits.max_nesting_depth = 2

    analyzed = ComplexityAnalyzer().analyze(repo_builder.load().units, context)
    reports = {report.path: report for report in analyzed}

    big = reports[repo_builder.abspath("src/big.ts")]
    assert big.large and big.line_count == 12 and big.function_count == 0

    (long_function,) = reports[repo_builder.abspath("src/long.ts")].long_functions
    assert (long_function.name, long_function.line, long_function.line_count) == ("long", 1, 9)

    deep = reports[repo_builder.abspath("src/deep.ts")]
    (hotspot,) = deep.deep_nesting
    assert (hotspot.name, hotspot.line, hotspot.depth) == ("deep", 4, 3)
    assert not deep.large
    assert deep.score == 10 + 5 * len(deep.long_functions)


def test_reports_are_sorted_by_line_count(repo_builder) -> None:
    repo_builder.write(
        {
            "src/a.ts": "export const a = 1;\n" * 3,
            "src/b.ts": "export const b = 1;\n" * 5,
        }
    )
    context = repo_builder.context(check_complexity=True)
    context.config.complexity.max_file_lines = 2

    reports = ComplexityAnalyzer().analyze(repo_builder.load().units, context)

    assert [report.path for report in reports] == [
        repo_builder.abspath("src/b.ts"),
        repo_builder.abspath("src/a.ts"),
    ]
