import asyncio

import pytest
from conftest import E1, E2, E3, NEAR_E1, FakeCatalog, make_item

from dalil.src.core.conversation_memory import ConversationMemory
from dalil.src.core.retrieval_engine import Hit, Miss, RetrievalEngine


async def ready_engine(catalog, clock=None):
    memory = ConversationMemory(clock=clock) if clock else ConversationMemory()
    engine = RetrievalEngine(catalog, memory=memory, relevance_threshold=0.3)
    assert await engine.initialize()
    return engine


# ── End to end ────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_category_query_returns_vector_ranked_subcategory_items(catalog, nikki_beach):
    engine = await ready_engine(catalog)

    outcome = await engine.retrieve("beach clubs", NEAR_E1, user_id="u1")

    assert outcome.items == [nikki_beach]
    assert outcome.stage == "category"
    assert outcome.trace == (Miss("entity", "not an entity query"), Hit("category", (nikki_beach,)))
    assert (outcome.detection.category, outcome.detection.subcategory) == ("places", "beach clubs to chill")
    nearest = await catalog.search_by_vector(NEAR_E1, 1)
    assert nearest[0].item == nikki_beach
    assert nearest[0].distance < 0.3


@pytest.mark.asyncio
async def test_unknown_named_venue_falls_through_every_stage(catalog):
    engine = await ready_engine(catalog)

    outcome = await engine.retrieve("Tell me about Atlantis Aquaventure", E3, user_id="u1")

    assert outcome.items == []
    assert outcome.stage is None
    assert outcome.trace == (
        Miss("entity", "empty"),
        Miss("category", "no category detected"),
        Miss("fuzzy", "no subcategory detected"),
        Miss("context", "no conversation context"),
        Miss("vector", "empty"),
    )


@pytest.mark.asyncio
async def test_named_venue_is_found_by_text_match(catalog):
    waterpark = make_item("x1", "Atlantis Aquaventure Waterpark", "activities", "must do", E3)
    catalog.add_items([waterpark])
    engine = await ready_engine(catalog)

    outcome = await engine.retrieve("Tell me about Atlantis Aquaventure", E1, user_id="u1")

    assert outcome.items == [waterpark]
    assert outcome.trace == (Hit("entity", (waterpark,)),)
    assert catalog.calls["search_by_vector"] == 0


@pytest.mark.asyncio
async def test_unscoped_vector_stage_applies_relevance_threshold(catalog, nikki_beach):
    engine = await ready_engine(catalog)

    outcome = await engine.retrieve("quantum physics lecture", NEAR_E1, user_id="u1")

    assert outcome.stage == "vector"
    assert outcome.items == [nikki_beach]


# ── Initialization ────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_concurrent_initialize_counts_catalog_once(nikki_beach):
    catalog = FakeCatalog([nikki_beach], count_delay=0.01)
    engine = RetrievalEngine(catalog)

    results = await asyncio.gather(*(engine.initialize() for _ in range(5)))

    assert results == [True] * 5
    assert catalog.calls["count_items"] == 1
    assert engine.is_initialized()


@pytest.mark.asyncio
async def test_empty_catalog_can_be_retried(nikki_beach):
    catalog = FakeCatalog()
    engine = RetrievalEngine(catalog)

    assert await engine.initialize() is False
    catalog.add_items([nikki_beach])
    assert await engine.initialize() is True
    assert catalog.calls["count_items"] == 2


@pytest.mark.asyncio
async def test_unreachable_catalog_leaves_engine_uninitialized(nikki_beach):
    engine = RetrievalEngine(FakeCatalog([nikki_beach], fail_on={"count_items"}))

    assert await engine.initialize() is False
    assert not engine.is_initialized()


@pytest.mark.asyncio
async def test_uninitialized_engine_returns_nothing_and_remembers_nothing(catalog):
    engine = RetrievalEngine(catalog)

    assert await engine.find_relevant("beach clubs", NEAR_E1, user_id="u1") == []
    assert len(engine.memory) == 0
    assert sum(catalog.calls.values()) == 0

# ── Caching ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_repeated_query_is_served_from_cache(catalog, nikki_beach):
    engine = await ready_engine(catalog)

    first = await engine.find_relevant("beach clubs", NEAR_E1, user_id="u1")
    second = await engine.find_relevant("beach clubs", NEAR_E1, user_id="u1")

    assert first == second == [nikki_beach]
    assert catalog.calls["search_by_vector"] == 1


@pytest.mark.asyncio
async def test_cached_empty_stage_still_falls_through(catalog, nikki_beach):
    engine = await ready_engine(catalog)

    first = await engine.retrieve("beach resorts", E1, user_id="u1")
    vector_calls = catalog.calls["search_by_vector"]
    second = await engine.retrieve("beach resorts", E1, user_id="u2")

    for outcome in (first, second):
        assert outcome.trace[1] == Miss("category", "empty")
        assert outcome.stage == "vector"
        assert outcome.items == [nikki_beach]
    assert catalog.calls["search_by_vector"] == vector_calls


@pytest.mark.asyncio
async def test_entity_results_are_cached_per_limit():
    rooms = [make_item(f"r{n}", f"Atlantis Room {n}", "hotels", "resorts", E3) for n in range(5)]
    catalog = FakeCatalog(rooms)
    engine = await ready_engine(catalog)

    few = await engine.find_relevant("Tell me about Atlantis", E1, user_id="u1", limit=1)
    many = await engine.find_relevant("Tell me about Atlantis", E1, user_id="u1", limit=5)
    again = await engine.find_relevant("Tell me about Atlantis", E1, user_id="u2", limit=5)

    assert len(few) == 1
    assert many == rooms
    assert again == rooms
    assert catalog.calls["search_by_text_match"] == 2


def test_vector_cache_key_uses_leading_components(catalog):
    engine = RetrievalEngine(catalog)

    assert engine.vector_cache_key("category", [1.0, 0.5], 5, "places", "beach") == "vector:category:1.0,0.5|cat:places|subcat:beach|k:5"
    long_key = engine.vector_cache_key("vector", [0.1] * 30, 10)
    assert long_key.count("0.1") == 20
    assert long_key.endswith("|cat:|subcat:|k:10")

# ── Fallback stages ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_follow_up_query_uses_conversation_context(catalog, nikki_beach):
    engine = await ready_engine(catalog)
    await engine.retrieve("beach clubs", NEAR_E1, user_id="u1")

    outcome = await engine.retrieve("what else", E2, user_id="u1")

    assert outcome.stage == "context"
    assert outcome.items == [nikki_beach]


@pytest.mark.asyncio
async def test_failing_vector_search_degrades_to_fuzzy_stage(nikki_beach, pool_club):
    catalog = FakeCatalog([nikki_beach, pool_club], fail_on={"search_by_vector"})
    engine = await ready_engine(catalog)

    outcome = await engine.retrieve("beach clubs", NEAR_E1, user_id="u1")

    assert outcome.trace[1] == Miss("category", "error")
    assert outcome.stage == "fuzzy"
    assert outcome.items == [nikki_beach, pool_club]


@pytest.mark.asyncio
async def test_missing_embedding_uses_unranked_category_listing(catalog, nikki_beach):
    engine = await ready_engine(catalog)

    outcome = await engine.retrieve("beach clubs", None, user_id="u1")

    assert outcome.stage == "category"
    assert outcome.items == [nikki_beach]
    assert catalog.calls["search_by_vector"] == 0


@pytest.mark.asyncio
async def test_category_only_fallback_is_capped_at_the_limit():
    rooftops = [make_item(f"t{n}", f"Sky Terrace {n}", "places", "rooftop lounges", vector) for n, vector in enumerate((E1, NEAR_E1, E2))]
    engine = await ready_engine(FakeCatalog(rooftops))

    outcome = await engine.retrieve("beach clubs", E1, user_id="u1", limit=2)

    assert outcome.stage == "category"
    assert (outcome.detection.category, outcome.detection.subcategory) == ("places", "beach clubs to chill")
    assert outcome.items == [rooftops[0], rooftops[1]]


@pytest.mark.asyncio
async def test_subcategory_search_returns_at_most_twice_the_limit(catalog):
    catalog.add_items([
        make_item("a3", "White Beach", "places", "beach clubs to chill", E1),
        make_item("a4", "Zero Gravity", "places", "beach clubs to chill", NEAR_E1),
    ])
    engine = await ready_engine(catalog)

    items = await engine.find_relevant("beach clubs", NEAR_E1, user_id="u1", limit=1)

    assert len(items) == 2
    assert all(item.subcategory == "beach clubs to chill" for item in items)


@pytest.mark.asyncio
async def test_results_are_recorded_in_memory(catalog, clock):
    engine = await ready_engine(catalog, clock)

    await engine.find_relevant("beach clubs", NEAR_E1, user_id="u1")

    related = engine.memory.get_related_data("u1")
    assert related.entities == ("Nikki Beach",)
    assert related.categories == ("places",)
    assert related.subcategories == ("beach clubs to chill",)


@pytest.mark.asyncio
async def test_cancellation_is_not_swallowed(nikki_beach):
    class CancellingCatalog(FakeCatalog):
        async def search_by_vector(self, embedding, limit, category=None, subcategory=None):
            raise asyncio.CancelledError

    engine = await ready_engine(CancellingCatalog([nikki_beach]))

    with pytest.raises(asyncio.CancelledError):
        await engine.retrieve("beach clubs", NEAR_E1, user_id="u1")
