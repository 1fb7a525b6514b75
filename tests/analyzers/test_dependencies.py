"""Tests for deadsweep.analyzers.dependencies."""

from __future__ import annotations

import pytest

from deadsweep.analyzers.dependencies import DependencyAuditor, implicit_category, is_builtin
from deadsweep.analyzers.utils import load_package_manifest, package_name
from deadsweep.errors import ManifestMissing


def test_package_name_handles_scopes_and_subpaths() -> None:
    assert package_name("lodash/fp") == "lodash"
    assert package_name("@scope/pkg/deep") == "@scope/pkg"
    assert package_name("./local") is None
    assert package_name("@broken") is None


def test_builtins_and_implicit_categories() -> None:
    assert is_builtin("fs")
    assert is_builtin("node:path")
    assert is_builtin("fs/promises")
    assert not is_builtin("react")
    assert implicit_category("@types/node") == "types"
    assert implicit_category("eslint-plugin-react") == "linting"
    assert implicit_category("jest") == "testing"
    assert implicit_category("java") is None
    assert implicit_category("react") is None


def test_audit_reports_unused_missing_and_replaceable(repo_builder) -> None:
    repo_builder.write(
        {
            "src/index.ts": """
            import React from "react";
            import { chunk } from "lodash";
            import axios from "axios";
            import fs from "fs";
            import { own } from "demo/sub";

            export const run = () => [React, chunk, axios, fs, own];
            """,
            "postcss.config.js": 'module.exports = { plugins: [require("autoprefixer")] };\n',
        }
    )
    repo_builder.write_manifest(
        name="demo",
        dependencies={"react": "^18.0.0", "lodash": "^4.0.0", "left-pad": "^1.0.0", "moment": "^2.0.0"},
        devDependencies={"@types/react": "^18.0.0", "rimraf": "^5.0.0", "typescript": "^5.0.0"},
        scripts={"clean": "rimraf dist"},
    )
    context = repo_builder.context(audit_dependencies=True)
    audit = DependencyAuditor().audit(repo_builder.load().units, context)
    assert audit.unused == ("left-pad", "moment")
    assert audit.missing == ("axios",)
    assert set(audit.replaceable) == {"lodash", "moment"}


def test_configured_ignore_patterns_are_honoured(repo_builder) -> None:
    repo_builder.write({"src/index.ts": 'import "@internal/tool";\n'})
    repo_builder.write_manifest(name="demo", dependencies={"left-pad": "1.0.0"})
    context = repo_builder.context(audit_dependencies=True)
    context.config.dependencies.ignore = ["left-*", "@internal/*"]
    audit = DependencyAuditor().audit(repo_builder.load().units, context)
    assert audit.unused == ()
    assert audit.missing == ()


def test_missing_manifest_raises(repo_builder) -> None:
    context = repo_builder.context(audit_dependencies=True)
    with pytest.raises(ManifestMissing):
        DependencyAuditor().audit([], context)


def test_manifest_must_be_a_json_object(repo_builder) -> None:
    (repo_builder.path() / "package.json").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ManifestMissing):
        load_package_manifest(repo_builder.path())
