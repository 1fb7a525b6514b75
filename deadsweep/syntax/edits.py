"""Byte-span splicing shared by source and stylesheet rewriting."""

from __future__ import annotations

from typing import Iterable, List

from .base import Span


def expand_to_line(source: bytes, span: Span) -> Span:
    """Widen ``span`` to its full line(s) when nothing else shares them."""
    line_start = source.rfind(b"\n", 0, span.start) + 1
    line_end = source.find(b"\n", span.end)
    if line_end == -1:
        line_end = len(source)
    if source[line_start : span.start].strip() or source[span.end : line_end].strip():
        return span
    if line_end < len(source):
        line_end += 1
    return Span(line_start, line_end)


def apply_edits(source: bytes, spans: Iterable[Span]) -> bytes:
    """Remove every span from ``source``.

    Spans nested in (or overlapping) an earlier removal are dropped, so the
    outer removal wins.
    """
    kept: List[Span] = []
    for span in sorted(spans, key=lambda item: (item.start, -item.end)):
        if span.start >= span.end:
            continue
        if kept and span.start < kept[-1].end:
            continue
        kept.append(span)

    if not kept:
        return source

    pieces: List[bytes] = []
    cursor = 0
    for span in kept:
        pieces.append(source[cursor : span.start])
        cursor = span.end
    pieces.append(source[cursor:])
    return b"".join(pieces)


__all__ = ["apply_edits", "expand_to_line"]
