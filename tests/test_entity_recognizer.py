import pytest

from dalil.src.core.entity_recognizer import EntityRecognizer


@pytest.fixture
def recognizer(taxonomy):
    return EntityRecognizer(taxonomy)


@pytest.mark.parametrize("query", [
    "Tell me about Atlantis Aquaventure",
    "Atlantis Aquaventure hours",
    "dinner at zuma restaurant",
    "Is White Beach open today?",
])
def test_named_venue_queries_are_entity_queries(recognizer, query):
    assert recognizer.is_entity_query(query)


@pytest.mark.parametrize("query", [
    "show me beach clubs to chill",
    "what are the best beach clubs",
    "Show me Beach clubs",
    "",
])
def test_category_browsing_is_not_an_entity_query(recognizer, query):
    assert not recognizer.is_entity_query(query)


def test_sentence_initial_capital_is_not_a_proper_noun(recognizer):
    assert not recognizer.is_entity_query("Brunch deals this weekend")
    assert not recognizer.is_entity_query("any ideas? Breakfast maybe")


def test_extract_multiword_name_without_leading_verb(recognizer):
    assert recognizer.extract_entities("Tell me about Atlantis Aquaventure") == ["Atlantis Aquaventure"]


def test_extract_name_in_front_of_venue_noun(recognizer):
    assert recognizer.extract_entities("dinner at zuma restaurant") == ["zuma"]


def test_extract_keeps_separate_names_and_drops_contained_ones(recognizer):
    assert recognizer.extract_entities("Is White Beach open? I love Nikki Beach") == ["White Beach", "Nikki Beach"]


def test_extract_nothing_from_plain_category_query(recognizer):
    assert recognizer.extract_entities("show me beach clubs to chill") == []
