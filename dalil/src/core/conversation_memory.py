"""
Dalil - ConversationMemory
===========================
Short-lived, per-user context used as a retrieval fallback and for
follow-up suggestions.

Per user it keeps:
  • the last ``max_items`` topics and entity names (most recent first)
  • every category / subcategory seen in results (insertion order)
  • the top-ranked item of the last non-empty result set

Contexts expire after ``ttl_seconds`` of inactivity.  When more than
``max_users`` contexts are tracked, the least recently active one is
evicted.  Both sweeps run lazily inside ``update``; there is no
background timer.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field

from dalil.config.settings import settings
from dalil.config.taxonomy import QUESTION_STARTERS, TOPIC_STOPWORDS
from dalil.src.models.catalog import CatalogItem
from dalil.src.utils.cache import Clock
from dalil.src.utils.logger import get_logger

logger = get_logger(__name__)

_ABOUT_RE = re.compile(r"\b(?:about|regarding|concerning)\s+(\w+)", re.IGNORECASE)
_TOPIC_WORD_RE = re.compile(r"[\w'-]+")


@dataclass(slots=True)
class ConversationContext:
    last_query_time: float
    recent_topics: list[str] = field(default_factory=list)
    recent_entities: list[str] = field(default_factory=list)
    categories: dict[str, None] = field(default_factory=dict)
    subcategories: dict[str, None] = field(default_factory=dict)
    last_item: CatalogItem | None = None


@dataclass(frozen=True, slots=True)
class RelatedContext:
    """Read-only snapshot returned by ``ConversationMemory.get_related_data``."""

    categories: tuple[str, ...] = ()
    subcategories: tuple[str, ...] = ()
    entities: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()
    last_item: CatalogItem | None = None


def _push_front(values: list[str], new_values: list[str], limit: int) -> list[str]:
    """Prepend *new_values*, drop duplicates (first occurrence wins), trim to *limit*."""
    merged = list(dict.fromkeys(new_values + values))
    return merged[:limit]


class ConversationMemory:
    """
    In-process map of ``user_id`` → ``ConversationContext``.

    Parameters
    ----------
    ttl_seconds
        Inactivity window before a context expires.
    max_users
        Number of contexts tracked before the oldest is evicted.
    max_items
        Length of the per-user topic and entity lists.
    clock
        Seconds-returning callable; injectable for tests.
    """

    __slots__ = ("_contexts", "_ttl", "_max_users", "_max_items", "_clock")

    def __init__(self, ttl_seconds: float | None = None, max_users: int | None = None, max_items: int | None = None, clock: Clock = time.monotonic) -> None:
        self._contexts: dict[str, ConversationContext] = {}
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.MEMORY_TTL_SECONDS
        self._max_users = max_users if max_users is not None else settings.MEMORY_MAX_USERS
        self._max_items = max_items if max_items is not None else settings.MEMORY_MAX_ITEMS
        self._clock = clock


    def update(self, user_id: str, query: str, results: list[CatalogItem]) -> None:
        now = self._clock()
        context = self._contexts.get(user_id)
        if context is None:
            context = ConversationContext(last_query_time=now)
            self._contexts[user_id] = context
        context.last_query_time = now

        if results:
            for item in results:
                if item.category:
                    context.categories.setdefault(item.category, None)
                if item.subcategory:
                    context.subcategories.setdefault(item.subcategory, None)
            context.last_item = results[0]
            names = [item.name for item in results if item.name]
            context.recent_entities = _push_front(context.recent_entities, names, self._max_items)

        topic = self.extract_main_topic(query)
        if topic:
            context.recent_topics = _push_front(context.recent_topics, [topic], self._max_items)

        self._cleanup(now, keep=user_id)


    def get_related_data(self, user_id: str) -> RelatedContext:
        context = self._contexts.get(user_id)
        if context is None:
            return RelatedContext()
        return RelatedContext(
            categories=tuple(context.categories),
            subcategories=tuple(context.subcategories),
            entities=tuple(context.recent_entities),
            topics=tuple(context.recent_topics),
            last_item=context.last_item,
        )


    def forget(self, user_id: str) -> bool:
        """Drop a user's context.  Returns True if one existed."""
        return self._contexts.pop(user_id, None) is not None


    def __len__(self) -> int:
        return len(self._contexts)


    def __contains__(self, user_id: object) -> bool:
        return user_id in self._contexts


    @staticmethod
    def extract_main_topic(query: str) -> str | None:
        """
        Main subject of a query.

        "... about X" / "regarding X" / "concerning X" wins outright;
        otherwise the first word longer than 3 characters that is not a
        stopword, skipping a leading question word ("tell", "where").
        """
        about = _ABOUT_RE.search(query or "")
        if about:
            return about.group(1).lower()

        words = [w for w in _TOPIC_WORD_RE.findall((query or "").lower()) if len(w) > 3 and w not in TOPIC_STOPWORDS]
        if words and words[0] in QUESTION_STARTERS:
            words.pop(0)
        return words[0] if words else None


    def _cleanup(self, now: float, keep: str) -> None:
        expired = [uid for uid, ctx in self._contexts.items() if now - ctx.last_query_time > self._ttl]
        for uid in expired:
            del self._contexts[uid]
        if expired:
            logger.debug("[MEMORY] Expired %d context(s).", len(expired))

        while len(self._contexts) > self._max_users:
            candidates = [uid for uid in self._contexts if uid != keep]
            if not candidates:
                break
            oldest = min(candidates, key=lambda uid: self._contexts[uid].last_query_time)
            del self._contexts[oldest]
            logger.debug("[MEMORY] Evicted context for '%s' (over %d users).", oldest, self._max_users)
