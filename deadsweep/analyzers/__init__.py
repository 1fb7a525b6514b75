"""Analyzers that turn loaded source units into findings."""

from __future__ import annotations

from .assets import AssetSweeper
from .complexity import ComplexityAnalyzer
from .cycles import ModuleCycleDetector
from .dependencies import DependencyAuditor
from .protection import ProtectionClassifier
from .reachability import FileReachabilityResolver, ReachabilityReport, resolve_module_path
from .references import ReferenceGraphBuilder, TextOccurrenceHeuristic, UsageStrategy
from .styles import StyleReport, StyleUsageAnalyzer
from .utils import PackageManifest, load_package_manifest

__all__ = [
    "AssetSweeper",
    "ComplexityAnalyzer",
    "DependencyAuditor",
    "FileReachabilityResolver",
    "ModuleCycleDetector",
    "PackageManifest",
    "ProtectionClassifier",
    "ReachabilityReport",
    "ReferenceGraphBuilder",
    "StyleReport",
    "StyleUsageAnalyzer",
    "TextOccurrenceHeuristic",
    "UsageStrategy",
    "load_package_manifest",
    "resolve_module_path",
]
