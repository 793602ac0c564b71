"""
Dalil - Retrieval Engine
=========================
Turns a user query (plus its embedding) into a bounded, deduplicated
list of catalog items.

Waterfall (first stage with at least one item wins):

    1. entity    — named-item text match        (only for entity queries)
    2. category  — detected taxonomy, vector-ranked
    3. fuzzy     — OR-pattern over the detected subcategory words
    4. context   — categories × subcategories remembered for this user
    5. vector    — unscoped nearest neighbours within the relevance threshold

Every stage reports a tagged outcome (``Hit`` / ``Miss``) so callers and
tests can see *why* the waterfall ended where it did without parsing
logs.  Each stage consults the ``SimilarityCache`` first; a cached empty
list still counts as a miss.  A failing stage is logged and becomes
``Miss(stage, "error")``.  After the waterfall the user's
``ConversationMemory`` is updated with the query and the final items.

Initialization
--------------
``initialize()`` counts the catalog rows once.  Concurrent callers
share the single in-flight task; the handle is cleared once it settles,
so a failed attempt can be retried later.

Usage:
    engine = RetrievalEngine(LanceCatalogStore())
    await engine.initialize()
    items = await engine.find_relevant("beach clubs", query_vector, user_id="u1")
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Literal

from dalil.config.settings import settings
from dalil.src.core.category_detector import CategoryDetector, DetectionResult
from dalil.src.core.conversation_memory import ConversationMemory
from dalil.src.core.entity_recognizer import EntityRecognizer
from dalil.src.core.taxonomy_index import TaxonomyIndex
from dalil.src.database.catalog_store import CatalogQuery
from dalil.src.models.catalog import TEXT_FIELDS, CatalogItem
from dalil.src.utils.cache import SimilarityCache
from dalil.src.utils.logger import get_logger

logger = get_logger(__name__)

StageName = Literal["entity", "category", "fuzzy", "context", "vector"]
Embedding = Sequence[float]


# ══════════════════════════════════════════════════════════════════════
#  STAGE OUTCOMES
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class Hit:
    stage: StageName
    items: tuple[CatalogItem, ...]


@dataclass(frozen=True, slots=True)
class Miss:
    stage: StageName
    reason: str


StageOutcome = Hit | Miss


@dataclass(frozen=True, slots=True)
class RetrievalOutcome:
    """Final items plus the ordered per-stage trace that produced them."""

    items: list[CatalogItem]
    trace: tuple[StageOutcome, ...] = ()
    detection: DetectionResult | None = None

    @property
    def stage(self) -> StageName | None:
        """The stage that produced the items, or None when every stage missed."""
        for outcome in self.trace:
            if isinstance(outcome, Hit):
                return outcome.stage
        return None


# ══════════════════════════════════════════════════════════════════════
#  RETRIEVAL ENGINE
# ══════════════════════════════════════════════════════════════════════

class RetrievalEngine:
    """
    Explicitly constructed retrieval service; one per hosting process.

    Parameters
    ----------
    catalog
        Anything satisfying ``CatalogQuery``.
    taxonomy
        Shared vocabulary.  Defaults to ``TaxonomyIndex.from_settings()``.
    detector, recognizer
        Override the category detector / entity recognizer.
    cache
        Result cache.  Defaults to ``settings.SIMILARITY_CACHE_SIZE`` entries.
    memory
        Per-user conversation memory.
    relevance_threshold
        Maximum cosine distance kept by the unscoped vector stage.
    """

    __slots__ = ("_catalog", "_taxonomy", "_detector", "_recognizer", "_cache", "_memory", "_threshold", "_key_prefix", "_initialized", "_init_task")

    def __init__(self, catalog: CatalogQuery, taxonomy: TaxonomyIndex | None = None, detector: CategoryDetector | None = None, recognizer: EntityRecognizer | None = None, cache: SimilarityCache[CatalogItem] | None = None, memory: ConversationMemory | None = None, relevance_threshold: float | None = None) -> None:
        self._catalog = catalog
        self._taxonomy = taxonomy or TaxonomyIndex.from_settings()
        self._detector = detector or CategoryDetector(self._taxonomy, catalog)
        self._recognizer = recognizer or EntityRecognizer(self._taxonomy)
        self._cache: SimilarityCache[CatalogItem] = cache if cache is not None else SimilarityCache(settings.SIMILARITY_CACHE_SIZE)
        self._memory = memory if memory is not None else ConversationMemory()
        self._threshold = relevance_threshold if relevance_threshold is not None else settings.RELEVANCE_THRESHOLD
        self._key_prefix = settings.CACHE_KEY_VECTOR_PREFIX
        self._initialized = False
        self._init_task: asyncio.Task[bool] | None = None


    @property
    def cache(self) -> SimilarityCache[CatalogItem]:
        return self._cache


    @property
    def memory(self) -> ConversationMemory:
        return self._memory


    @property
    def taxonomy(self) -> TaxonomyIndex:
        return self._taxonomy

    # ── Initialization ─────────────────────────────────────────────────

    def is_initialized(self) -> bool:
        return self._initialized


    async def initialize(self) -> bool:
        """Confirm the catalog is reachable and non-empty.  Safe to call concurrently."""
        if self._initialized:
            return True
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize_once())
        return await asyncio.shield(self._init_task)


    async def _initialize_once(self) -> bool:
        try:
            count = await self._catalog.count_items()
            self._initialized = count > 0
            if self._initialized:
                logger.info("[RETRIEVAL] Catalog ready (%d items).", count)
            else:
                logger.warning("[RETRIEVAL] Catalog is empty — engine stays uninitialized.")
        except Exception:
            logger.exception("[RETRIEVAL] Catalog initialization failed.")
            self._initialized = False
        finally:
            self._init_task = None
        return self._initialized

    # ── Public API ─────────────────────────────────────────────────────

    async def find_relevant(self, query: str, embedding: Embedding | None, user_id: str, limit: int | None = None) -> list[CatalogItem]:
        outcome = await self.retrieve(query, embedding, user_id, limit)
        return outcome.items


    async def retrieve(self, query: str, embedding: Embedding | None, user_id: str, limit: int | None = None) -> RetrievalOutcome:
        """
        Run the waterfall and return items together with the stage trace.

        ``limit`` caps the entity and unscoped stages (default
        ``DEFAULT_RESULTS_LIMIT``).  Taxonomy-scoped listings are meant to
        be comprehensive, so without an explicit limit they use
        ``CATEGORY_RESULTS_LIMIT`` instead.
        """
        if not self._initialized:
            logger.warning("[RETRIEVAL] find_relevant called before initialize() succeeded.")
            return RetrievalOutcome(items=[])

        top_k = limit or settings.DEFAULT_RESULTS_LIMIT
        scoped_k = limit or settings.CATEGORY_RESULTS_LIMIT
        trace: list[StageOutcome] = []

        # ── 1. Entity ─────────────────────────────────────────────────
        if self._recognizer.is_entity_query(query):
            trace.append(await self._run_stage("entity", self._entity_search, query, top_k))
        else:
            trace.append(Miss("entity", "not an entity query"))

        # ── 2. Category ───────────────────────────────────────────────
        detection = DetectionResult()
        if not isinstance(trace[-1], Hit):
            detection = await self._detect(query)
            if detection.category:
                trace.append(await self._run_stage("category", self._category_search, embedding, detection, scoped_k))
            else:
                trace.append(Miss("category", "no category detected"))

        # ── 3. Fuzzy subcategory ──────────────────────────────────────
        if not isinstance(trace[-1], Hit):
            if detection.subcategory:
                trace.append(await self._run_stage("fuzzy", self._fuzzy_search, detection))
            else:
                trace.append(Miss("fuzzy", "no subcategory detected"))

        # ── 4. Conversation context ───────────────────────────────────
        if not isinstance(trace[-1], Hit):
            trace.append(await self._context_stage(user_id, embedding))

        # ── 5. Unscoped vector ────────────────────────────────────────
        if not isinstance(trace[-1], Hit):
            if _has_vector(embedding):
                trace.append(await self._run_stage("vector", self._unscoped_search, embedding, top_k))
            else:
                trace.append(Miss("vector", "no embedding"))

        last = trace[-1]
        items = _dedupe(last.items) if isinstance(last, Hit) else []
        logger.info("[RETRIEVAL] '%s' → %d item(s) via %s", query[:60], len(items), last.stage if isinstance(last, Hit) else "no stage")

        self._memory.update(user_id, query, items)
        return RetrievalOutcome(items=items, trace=tuple(trace), detection=detection)

    # ── Stage plumbing ─────────────────────────────────────────────────

    async def _run_stage(self, stage: StageName, search: Callable[..., Awaitable[list[CatalogItem]]], *args: object) -> StageOutcome:
        try:
            items = await search(*args)
        except Exception:
            logger.exception("[RETRIEVAL] Stage '%s' failed; continuing waterfall.", stage)
            return Miss(stage, "error")
        if not items:
            logger.debug("[RETRIEVAL] Stage '%s' found nothing.", stage)
            return Miss(stage, "empty")
        return Hit(stage, tuple(items))


    async def _detect(self, query: str) -> DetectionResult:
        try:
            return await self._detector.detect(query)
        except Exception:
            logger.exception("[RETRIEVAL] Category detection failed.")
            return DetectionResult()


    async def _cached(self, key: str, compute: Callable[[], Awaitable[list[CatalogItem]]]) -> list[CatalogItem]:
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("[RETRIEVAL] Cache hit: %s", key[:80])
            return cached
        items = await compute()
        self._cache.put(key, items)
        return items


    def vector_cache_key(self, stage: StageName, embedding: Embedding, limit: int, category: str | None = None, subcategory: str | None = None) -> str:
        prefix = ",".join(repr(float(v)) for v in list(embedding)[:self._key_prefix])
        return f"vector:{stage}:{prefix}|cat:{category or ''}|subcat:{subcategory or ''}|k:{limit}"


    async def _vector_search(self, stage: StageName, embedding: Embedding, limit: int, category: str | None = None, subcategory: str | None = None) -> list[CatalogItem]:
        async def compute() -> list[CatalogItem]:
            scored = await self._catalog.search_by_vector(embedding, limit, category=category, subcategory=subcategory)
            return [s.item for s in scored]

        return await self._cached(self.vector_cache_key(stage, embedding, limit, category, subcategory), compute)

    # ── 1. Entity ──────────────────────────────────────────────────────

    async def _entity_search(self, query: str, limit: int) -> list[CatalogItem]:
        async def compute() -> list[CatalogItem]:
            entities = self._recognizer.extract_entities(query)
            logger.debug("[RETRIEVAL] Entities: %s", entities)
            found: dict[str, CatalogItem] = {}
            for entity in entities:
                for item in await self._catalog.search_by_text_match([entity], TEXT_FIELDS, limit):
                    found.setdefault(item.id, item)
                if len(found) >= limit:
                    break
            return list(found.values())[:limit]

        return await self._cached(f"entity:{query}|k:{limit}", compute)

    # ── 2. Category ────────────────────────────────────────────────────

    async def _category_search(self, embedding: Embedding | None, detection: DetectionResult, limit: int) -> list[CatalogItem]:
        category, subcategory = detection.category, detection.subcategory
        if not _has_vector(embedding):
            return await self._unranked_category_search(category, subcategory, limit)

        if subcategory:
            items = await self._vector_search("category", embedding, limit * 2, category, subcategory)
            if items:
                return items
        return await self._vector_search("category", embedding, limit, category)


    async def _unranked_category_search(self, category: str, subcategory: str | None, limit: int) -> list[CatalogItem]:
        if subcategory:
            items = await self._cached(f"filter:{category}|{subcategory}|k:{limit * 2}", lambda: self._catalog.search_by_category_subcategory(category, subcategory, limit * 2))
            if items:
                return items
        return await self._cached(f"filter:{category}||k:{limit}", lambda: self._catalog.search_by_category_subcategory(category, None, limit))

    # ── 3. Fuzzy ───────────────────────────────────────────────────────

    async def _fuzzy_search(self, detection: DetectionResult) -> list[CatalogItem]:
        subcategory = (detection.subcategory or "").lower()
        patterns = list(dict.fromkeys([w for w in subcategory.split() if len(w) > 2] + [subcategory]))
        return await self._cached(
            f"fuzzy:{detection.category or ''}|{detection.subcategory}",
            lambda: self._catalog.search_by_fuzzy_taxonomy(patterns, detection.category, settings.FUZZY_RESULTS_LIMIT),
        )

    # ── 4. Context ─────────────────────────────────────────────────────

    async def _context_stage(self, user_id: str, embedding: Embedding | None) -> StageOutcome:
        related = self._memory.get_related_data(user_id)
        if not related.categories or not related.subcategories:
            return Miss("context", "no conversation context")
        if not _has_vector(embedding):
            return Miss("context", "no embedding")
        return await self._run_stage("context", self._context_search, related.categories, related.subcategories, embedding)


    async def _context_search(self, categories: Sequence[str], subcategories: Sequence[str], embedding: Embedding) -> list[CatalogItem]:
        for category in categories:
            for subcategory in subcategories:
                items = await self._vector_search("context", embedding, settings.CONTEXT_RESULTS_LIMIT, category, subcategory)
                if items:
                    logger.debug("[RETRIEVAL] Context match: %s / %s", category, subcategory)
                    return items
        return []

    # ── 5. Unscoped vector ─────────────────────────────────────────────

    async def _unscoped_search(self, embedding: Embedding, limit: int) -> list[CatalogItem]:
        async def compute() -> list[CatalogItem]:
            scored = await self._catalog.search_by_vector(embedding, limit)
            kept = [s.item for s in scored if s.distance <= self._threshold]
            logger.debug("[RETRIEVAL] Unscoped: %d/%d within distance %.2f", len(kept), len(scored), self._threshold)
            return kept

        return await self._cached(self.vector_cache_key("vector", embedding, limit), compute)


def _has_vector(embedding: Embedding | None) -> bool:
    return embedding is not None and len(embedding) > 0


def _dedupe(items: Sequence[CatalogItem]) -> list[CatalogItem]:
    unique: dict[str, CatalogItem] = {}
    for item in items:
        unique.setdefault(item.id, item)
    return list(unique.values())
