"""Keyword-based topic linking for content items."""
from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Iterable, List, Sequence

from .models import ContentTopicLink, RawContentItem, Topic

SUBSTRING = "substring"
WORD = "word"
MATCH_MODES = (SUBSTRING, WORD)


@lru_cache(maxsize=4096)
def keyword_pattern(keyword: str, mode: str = SUBSTRING) -> re.Pattern[str]:
    """Return a compiled phrase matcher for a lower-cased *keyword*.

    Whitespace inside a phrase matches any run of whitespace. In ``substring``
    mode the keyword may sit inside a longer word (``border`` matches
    ``borders``); in ``word`` mode it may not be glued to other letters or
    digits, so ``ai`` does not match inside ``said``.
    """
    if mode not in MATCH_MODES:
        raise ValueError(f"Unknown keyword match mode: {mode!r}")
    body = r"\s+".join(re.escape(part) for part in keyword.split())
    if mode == WORD:
        body = rf"(?<![a-z0-9]){body}(?![a-z0-9])"
    return re.compile(body)


def matching_keywords(text_lower: str, keywords: Iterable[str], mode: str = SUBSTRING) -> List[str]:
    """Return the distinct *keywords* found in *text_lower*, in keyword order."""
    return [kw for kw in keywords if keyword_pattern(kw, mode).search(text_lower)]


class TopicLinker:
    """Link content items to catalog topics by seed-keyword matching."""

    def __init__(self, match_mode: str = SUBSTRING):
        """Initialize the topic linker.

        Args:
            match_mode: ``"substring"`` (default) or ``"word"`` boundary matching
        """
        if match_mode not in MATCH_MODES:
            raise ValueError(f"Unknown keyword match mode: {match_mode!r}")
        self.match_mode = match_mode
        self.logger = logging.getLogger(__name__)

    def link(self, item: RawContentItem, topics: Sequence[Topic]) -> List[ContentTopicLink]:
        """Return one :class:`ContentTopicLink` per topic whose keywords occur in *item*.

        Confidence is the fraction of the topic's seed keywords that matched.
        """
        text_lower = item.full_text.lower()
        if not text_lower.strip():
            return []

        links = []
        for topic in topics:
            matched = matching_keywords(text_lower, topic.seed_keywords, self.match_mode)
            if not matched:
                continue
            confidence = min(1.0, max(0.0, len(matched) / len(topic.seed_keywords)))
            links.append(
                ContentTopicLink(
                    content_id=item.id,
                    topic_id=topic.topic_id,
                    confidence=confidence,
                    matched_keywords=tuple(matched),
                )
            )
        return links

    def link_all(self, items: Sequence[RawContentItem], topics: Sequence[Topic]) -> List[ContentTopicLink]:
        """Link every item; items with no topic simply contribute nothing."""
        links: List[ContentTopicLink] = []
        for item in items:
            links.extend(self.link(item, topics))
        self.logger.info(f"Linked {len(items)} items to {len(links)} topic links ({self.match_mode} matching)")
        return links


def link(item: RawContentItem, topics: Sequence[Topic], match_mode: str = SUBSTRING) -> List[ContentTopicLink]:
    """Convenience wrapper around :meth:`TopicLinker.link`."""
    return TopicLinker(match_mode).link(item, topics)
