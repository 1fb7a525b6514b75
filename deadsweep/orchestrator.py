"""Pipeline orchestration for dry-run and apply runs."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .analyzers.assets import AssetSweeper
from .analyzers.complexity import ComplexityAnalyzer
from .analyzers.cycles import ModuleCycleDetector
from .analyzers.dependencies import DependencyAuditor
from .analyzers.protection import ProtectionClassifier
from .analyzers.reachability import FileReachabilityResolver, ReachabilityReport
from .analyzers.references import ReferenceGraphBuilder
from .analyzers.styles import StyleUsageAnalyzer
from .analyzers.utils import PackageManifest, load_package_manifest
from .config import CONFIG_FILENAME, ConfigError, RunOptions, SweepConfig, load_config
from .context import RunContext
from .errors import CONFIG, MANIFEST, ManifestMissing
from .logging import get_logger
from .models import AnalysisResult, AssetSweepResult, DependencyAuditResult, FileComplexity, freeze_groups
from .project_loader import ProjectLoader, resolve_root
from .removal import RemovalEngine


class Orchestrator:
    """Coordinates loading, analysis and removal for one project."""

    def __init__(
        self,
        loader: ProjectLoader | None = None,
        references: ReferenceGraphBuilder | None = None,
        reachability: FileReachabilityResolver | None = None,
        styles: StyleUsageAnalyzer | None = None,
        dependencies: DependencyAuditor | None = None,
        cycles: ModuleCycleDetector | None = None,
        assets: AssetSweeper | None = None,
        complexity: ComplexityAnalyzer | None = None,
        removal: RemovalEngine | None = None,
    ) -> None:
        self.loader = loader or ProjectLoader()
        self.references = references or ReferenceGraphBuilder()
        self.reachability = reachability or FileReachabilityResolver()
        self.styles = styles or StyleUsageAnalyzer()
        self.dependencies = dependencies or DependencyAuditor()
        self.cycles = cycles or ModuleCycleDetector()
        self.assets = assets or AssetSweeper()
        self.complexity = complexity or ComplexityAnalyzer()
        self.removal = removal or RemovalEngine()
        self.logger = get_logger("orchestrator")

    def run(self, path: str | Path, options: RunOptions | None = None, **overrides: Any) -> AnalysisResult:
        """Analyze ``path`` and, in apply mode, clean it until nothing changes.

        Raises :class:`FatalConfigurationError` when ``path`` is not a
        directory. Every other failure is recorded as a warning.
        """
        root = resolve_root(path)
        config, config_error = self._load_config(root)
        if options is None:
            options = RunOptions.from_config(config, **overrides)
        elif overrides:
            options = replace(options, **overrides)

        context = RunContext(root=root, options=options, config=config)
        if config_error is not None:
            context.warn(CONFIG, f"{config_error}; using defaults", str(root / CONFIG_FILENAME))

        self.logger.info("Starting %s run for %s", options.mode.value, root)
        result = self.removal.execute(self._analyze(context, first_pass=True), options.mode, context)
        passes = 1
        latest = result
        while not options.dry_run and latest.changed and passes < options.max_passes:
            self.logger.debug("Pass %d changed files; analyzing again", passes)
            latest = self.removal.execute(self._analyze(context, first_pass=False), options.mode, context)
            result = result.merge(latest)
            passes += 1

        if not options.dry_run and latest.changed:
            self.logger.info("Stopped after %d passes; another run may find more", passes)

        result = replace(result, warnings=tuple(context.warnings), passes=passes)
        self._log_summary(result, context)
        return result

    def _analyze(self, context: RunContext, *, first_pass: bool) -> AnalysisResult:
        options = context.options
        project = self.loader.load(context)
        self.logger.debug("Loaded %d source units", len(project.units))

        imports: Dict[str, Tuple[str, ...]] = {}
        variables: Dict[str, Tuple[str, ...]] = {}
        functions: Dict[str, Tuple[str, ...]] = {}
        for unit_result in self.references.build(project.units, context):
            references = context.record(unit_result)
            if references is None:
                continue
            imports[references.path] = references.unused_imports
            variables[references.path] = references.unused_variables
            functions[references.path] = references.unused_functions

        manifest = self._load_manifest(context, report_missing=first_pass and options.audit_dependencies)

        unused_files: Tuple[str, ...] = ()
        cycles: Tuple[Tuple[str, ...], ...] = ()
        wants_files = options.deep_scrub or options.delete_unused_files
        wants_cycles = first_pass and options.check_cycles
        if wants_files or wants_cycles:
            report = self.reachability.resolve(project.units, manifest, context)
            if wants_files:
                unused_files = self._unprotected(report, context)
            if wants_cycles:
                cycles = self.cycles.find_cycles(report.graph)

        unused_selectors: Dict[str, Any] = {}
        if options.clean_styles:
            style_report = self.styles.analyze(project.stylesheets, project.units, project.markup, context)
            unused_selectors = style_report.unused_by_file()

        audit: Optional[DependencyAuditResult] = None
        if first_pass and options.audit_dependencies and manifest is not None:
            audit = self.dependencies.audit(project.units, context, manifest)

        assets: Optional[AssetSweepResult] = None
        if options.sweep_assets:
            reference_files = project.markup + project.stylesheets + project.documents
            assets = self.assets.sweep(project.assets, project.units, reference_files, context)

        complexity: Tuple[FileComplexity, ...] = ()
        if first_pass and options.check_complexity:
            complexity = self.complexity.analyze(project.units, context)

        return AnalysisResult(
            root=str(context.root),
            unused_imports=freeze_groups(imports),
            unused_variables=freeze_groups(variables),
            unused_functions=freeze_groups(functions),
            unused_files=unused_files,
            unused_selectors=freeze_groups(unused_selectors),
            dependency_audit=audit,
            cycles=cycles,
            assets=assets,
            complexity=complexity,
            files_analyzed=len(project.units),
            stylesheets_analyzed=len(project.stylesheets),
        )

    def _unprotected(self, report: ReachabilityReport, context: RunContext) -> Tuple[str, ...]:
        protection = ProtectionClassifier(context.root, context.config.protection.extra_patterns)
        kept: List[str] = []
        for path in report.unreachable:
            tag = protection.classify(path)
            if tag.protected:
                self.logger.debug(
                    "Unreferenced but protected: %s (%s)", context.relative(path), ", ".join(tag.reasons)
                )
                continue
            kept.append(path)
        return tuple(kept)

    def _load_manifest(self, context: RunContext, *, report_missing: bool) -> Optional[PackageManifest]:
        try:
            return load_package_manifest(context.root)
        except ManifestMissing as exc:
            if report_missing:
                context.warn(MANIFEST, f"{exc}; dependency audit skipped")
            else:
                self.logger.debug("%s; no entry points from package.json", exc)
            return None

    def _load_config(self, root: Path) -> Tuple[SweepConfig, Optional[ConfigError]]:
        try:
            return load_config(root), None
        except ConfigError as exc:
            self.logger.debug("Falling back to default configuration: %s", exc)
            return SweepConfig(root=root), exc

    def _log_summary(self, result: AnalysisResult, context: RunContext) -> None:
        def total(groups: Any) -> int:
            return sum(len(items) for items in groups.values())

        self.logger.info(
            "Analyzed %d files: %d unused imports, %d unused variables, %d unused functions, "
            "%d unused files, %d unused selectors",
            result.files_analyzed,
            total(result.unused_imports),
            total(result.unused_variables),
            total(result.unused_functions),
            len(result.unused_files),
            total(result.unused_selectors),
        )
        if result.assets is not None:
            self.logger.info(
                "Found %d unused assets (%d bytes)", len(result.assets.items), result.assets.total_size
            )
        if result.complexity:
            self.logger.info("%d file(s) exceed complexity thresholds", len(result.complexity))
        if not context.options.dry_run:
            self.logger.info(
                "Modified %d files, deleted %d files, reclaimed %d bytes in %d pass(es)",
                len(result.modified_files),
                len(result.deleted_files),
                result.bytes_reclaimed,
                result.passes,
            )
        counts = result.warning_counts()
        if counts:
            summary = ", ".join(f"{category}={count}" for category, count in sorted(counts.items()))
            self.logger.warning("Completed with warnings: %s", summary)


def run(path: str | Path, options: RunOptions | None = None, **overrides: Any) -> AnalysisResult:
    """Convenience wrapper around :meth:`Orchestrator.run`."""
    return Orchestrator().run(path, options, **overrides)


__all__ = ["Orchestrator", "run"]
