"""Voice / topic catalog loading.

The catalog is immutable reference data. It is validated once, here, so the
pipeline stages never need to re-check it.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Tuple

from pydantic import ValidationError

from .config import ConfigurationError
from .models import Topic, Voice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Catalog:
    """Validated voices and topics, indexed by id."""

    voices: Tuple[Voice, ...]
    topics: Tuple[Topic, ...]

    @property
    def voice_ids(self) -> frozenset[str]:
        return frozenset(v.voice_id for v in self.voices)

    def voice(self, voice_id: str) -> Voice | None:
        return next((v for v in self.voices if v.voice_id == voice_id), None)

    def topic(self, topic_id: str) -> Topic | None:
        return next((t for t in self.topics if t.topic_id == topic_id), None)


def _build(model, entries: Iterable[Any], kind: str, id_field: str) -> Tuple[Any, ...]:
    built = []
    seen: set[str] = set()
    for entry in entries:
        if isinstance(entry, model):
            obj = entry
        else:
            try:
                obj = model(**dict(entry))
            except (ValidationError, TypeError, ValueError) as exc:
                ident = entry.get(id_field, "?") if isinstance(entry, Mapping) else "?"
                raise ConfigurationError(f"Invalid {kind} {ident!r}: {exc}") from exc
        ident = getattr(obj, id_field)
        if ident in seen:
            raise ConfigurationError(f"Duplicate {kind} id {ident!r}")
        seen.add(ident)
        built.append(obj)
    return tuple(built)


def load_catalog(voices: Iterable[Any], topics: Iterable[Any]) -> Catalog:
    """Validate *voices* and *topics* (models or plain mappings) into a :class:`Catalog`.

    A topic with no seed keywords can never be linked, so it is rejected with
    :class:`ConfigurationError` rather than silently ignored.
    """
    catalog = Catalog(
        voices=_build(Voice, voices, "voice", "voice_id"),
        topics=_build(Topic, topics, "topic", "topic_id"),
    )
    if not catalog.topics:
        raise ConfigurationError("Catalog has no topics")
    logger.info(f"Loaded catalog with {len(catalog.voices)} voices and {len(catalog.topics)} topics")
    return catalog


def load_catalog_file(path: Path) -> Catalog:
    """Load a JSON catalog of the form ``{"voices": [...], "topics": [...]}``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    try:
        data: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Catalog file {path} is not valid JSON: {exc}") from exc
    return load_catalog(data.get("voices", []), data.get("topics", []))
