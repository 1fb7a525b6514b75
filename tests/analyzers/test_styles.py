"""Tests for deadsweep.analyzers.styles."""

from __future__ import annotations

from deadsweep.analyzers.styles import StyleUsageAnalyzer, collect_class_usage
from deadsweep.errors import PARSE


def test_collect_class_usage_reads_attributes_and_class_list() -> None:
    usage = collect_class_usage(
        """
        <div className="header main-nav"></div>
        <span class='badge'></span>
        <p className={"lead"}></p>
        el.classList.add("active", 'open');
        const cls = styles.card;
        const dynamic = `btn-${variant}`;
        """
    )
    assert {"header", "main-nav", "badge", "lead", "active", "open", "card"} <= usage.names
    assert usage.matches("btn-primary")
    assert not usage.matches("footer")


def test_unused_selectors_are_reported_with_positions(repo_builder) -> None:
    repo_builder.write(
        {
            "src/styles.css": """
            .header {
              color: red;
            }

            .footer {
              color: green;
            }

            .unused-class {
              color: blue;
            }
            """,
            "src/App.jsx": """
            import "./styles.css";

            export function App() {
              return (
                <div>
                  <header className="header" />
                  <footer className="footer" />
                </div>
              );
            }
            """,
        }
    )
    context = repo_builder.context(clean_styles=True)
    project = repo_builder.load()
    report = StyleUsageAnalyzer().analyze(project.stylesheets, project.units, project.markup, context)
    unused = report.unused_by_file()
    assert list(unused) == [repo_builder.abspath("src/styles.css")]
    (selector,) = unused[repo_builder.abspath("src/styles.css")]
    assert (selector.selector, selector.line, selector.column) == (".unused-class", 9, 1)


def test_markup_files_count_as_usage(repo_builder) -> None:
    repo_builder.write(
        {
            "public/index.html": '<body class="landing"></body>\n',
            "src/site.css": ".landing { margin: 0; }\n.gone { margin: 0; }\n",
        }
    )
    context = repo_builder.context(clean_styles=True)
    project = repo_builder.load()
    report = StyleUsageAnalyzer().analyze(project.stylesheets, project.units, project.markup, context)
    (usage,) = report.stylesheets
    assert usage.unused_class_names == {"gone"}


def test_scan_components_keeps_styles_next_to_dynamic_class_names(repo_builder) -> None:
    files = {
        "src/Button.jsx": """
        export function Button({ kind }) {
          return <button className={kind} />;
        }
        """,
        "src/button.css": ".primary { color: red; }\n",
    }
    repo_builder.write(files)
    project = repo_builder.load()

    plain = StyleUsageAnalyzer().analyze(
        project.stylesheets,
        project.units,
        project.markup,
        repo_builder.context(clean_styles=True, scan_components=False),
    )
    assert plain.unused_by_file()

    scanning = StyleUsageAnalyzer().analyze(
        project.stylesheets,
        project.units,
        project.markup,
        repo_builder.context(clean_styles=True),
    )
    assert scanning.unused_by_file() == {}


def test_unparseable_stylesheet_becomes_warning(repo_builder) -> None:
    repo_builder.write({"src/broken.css": ".a { color: red; }\n}\n"})
    context = repo_builder.context(clean_styles=True)
    project = repo_builder.load()
    report = StyleUsageAnalyzer().analyze(project.stylesheets, project.units, project.markup, context)
    assert report.stylesheets == []
    assert [warning.category for warning in context.warnings] == [PARSE]
