"""Unused image and font detection.

An asset counts as referenced when any source, markup, stylesheet or JSON
file contains its file name. Matching is by substring, so ``logo.png`` is
kept when only ``biglogo.png`` is mentioned.
Assets under served directories (``public``, ``static``, ``assets``) are
addressed by URL at runtime and are never candidates.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from ..context import RunContext
from ..errors import PARSE, AnalysisWarning, Result
from ..logging import get_logger
from ..models import FONT, IMAGE, AssetSweepResult, SourceUnit, UnusedAsset
from ..project_loader import FONT_SUFFIXES, IMAGE_SUFFIXES

SERVED_DIRS = {"public", "static", "assets"}


def asset_kind(path: str) -> Optional[str]:
    lower = path.lower()
    if lower.endswith(IMAGE_SUFFIXES):
        return IMAGE
    if lower.endswith(FONT_SUFFIXES):
        return FONT
    return None


class AssetSweeper:
    """Finds images and fonts that nothing in the project names."""

    def __init__(self) -> None:
        self.logger = get_logger("assets")

    def sweep(
        self,
        assets: Sequence[str],
        units: Sequence[SourceUnit],
        references: Iterable[str],
        context: RunContext,
    ) -> AssetSweepResult:
        """Return the unused assets among ``assets``.

        ``references`` are the non-source files (markup, stylesheets, JSON)
        whose text may name an asset. When one of them cannot be read, the
        sweep reports nothing rather than guess.
        """
        candidates = [path for path in assets if self._is_candidate(path, context)]
        if not candidates:
            return AssetSweepResult()

        texts: List[str] = [unit.text for unit in units]
        for path in references:
            text = context.record(_read_reference(path))
            if text is None:
                self.logger.info("Asset sweep skipped: %s could not be read", context.relative(path))
                return AssetSweepResult()
            texts.append(text)

        items: List[UnusedAsset] = []
        for path in candidates:
            name = os.path.basename(path)
            if any(name in text for text in texts):
                continue
            try:
                size = os.path.getsize(path)
            except OSError:
                size = 0
            items.append(UnusedAsset(path=path, kind=asset_kind(path) or IMAGE, size=size))

        result = AssetSweepResult(items=tuple(items))
        self.logger.info(
            "Found %d unused images and %d unused fonts (%d bytes)",
            len(result.images),
            len(result.fonts),
            result.total_size,
        )
        return result

    @staticmethod
    def _is_candidate(path: str, context: RunContext) -> bool:
        settings = context.config.assets
        kind = asset_kind(path)
        if kind == IMAGE and not settings.include_images:
            return False
        if kind == FONT and not settings.include_fonts:
            return False
        if kind is None:
            return False
        try:
            directories = Path(path).relative_to(context.root).parts[:-1]
        except ValueError:
            return False
        return not any(part.lower() in SERVED_DIRS for part in directories)


def _read_reference(path: str) -> Result[str]:
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        return Result.failure(AnalysisWarning(PARSE, path, f"unreadable: {exc}"))
    return Result.success(raw.decode("utf-8", errors="replace"))


__all__ = ["AssetSweeper", "SERVED_DIRS", "asset_kind"]
