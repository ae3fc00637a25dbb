"""Ingest boundary: turn loosely-typed rows into validated :class:`RawContentItem` objects.

Malformed rows (missing fields, empty text, unparseable timestamps, unknown
voices) are dropped here and counted, so they never reach the pipeline.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Collection, Dict, Iterable, List, Mapping

import pandas as pd
from pydantic import ValidationError

from .models import IngestResult, RawContentItem

logger = logging.getLogger(__name__)

METRIC_FIELDS = ("views", "likes", "comments", "shares")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and not value.strip()


def _normalise_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop empty cells and fold flat metric columns into a ``metrics`` mapping."""
    clean = {str(k): v for k, v in row.items() if not _is_missing(v)}
    metrics = {name: clean.pop(name) for name in METRIC_FIELDS if name in clean}
    if metrics and "metrics" not in clean:
        clean["metrics"] = metrics
    return clean


def parse_content_items(
    rows: Iterable[Mapping[str, Any] | RawContentItem],
    known_voices: Collection[str] | None = None,
) -> IngestResult:
    """Validate *rows* and return the accepted items plus a skipped count.

    Parameters
    ----------
    rows:
        Mappings from an ingest adapter, or already-built items.
    known_voices:
        When given, items authored by any other voice are skipped.
    """
    items: List[RawContentItem] = []
    seen_ids: set[str] = set()
    skipped = 0

    for index, row in enumerate(rows):
        if isinstance(row, RawContentItem):
            item = row
        else:
            try:
                item = RawContentItem(**_normalise_row(row))
            except (ValidationError, TypeError, AttributeError) as exc:
                skipped += 1
                row_id = row.get("id", index) if isinstance(row, Mapping) else index
                logger.warning(f"Skipping content row {row_id}: {exc}")
                continue

        if known_voices is not None and item.voice_id not in known_voices:
            skipped += 1
            logger.warning(f"Skipping content {item.id}: unknown voice {item.voice_id!r}")
            continue

        if item.id in seen_ids:
            skipped += 1
            logger.warning(f"Skipping content {item.id}: duplicate id")
            continue
        seen_ids.add(item.id)

        items.append(item)

    if skipped:
        logger.info(f"Ingest accepted {len(items)} items, skipped {skipped}")
    return IngestResult(items=items, skipped=skipped)


def load_content_file(path: Path) -> List[Dict[str, Any]]:
    """Read raw content rows from a CSV or JSON (array of objects) file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    elif path.suffix.lower() in {".json", ".jsonl"}:
        df = pd.read_json(
            path,
            orient="records",
            lines=path.suffix.lower() == ".jsonl",
            dtype=False,
            convert_dates=False,
        )
    else:
        raise ValueError(f"Unsupported content file type: {path.suffix}")

    logger.info(f"Read {len(df)} content rows from {path}")
    return df.to_dict(orient="records")
