import math

import pytest

from dalil.config.taxonomy import STOPWORDS
from dalil.src.utils.text_utils import contains_word, cosine_distance, cosine_similarity, meaningful_words, normalize_query, slugify, tokenize


def test_normalize_query_lowercases_and_collapses_whitespace():
    assert normalize_query("  Beach\u200b   Clubs\n") == "beach clubs"
    assert normalize_query("") == ""
    assert normalize_query(None) == ""


def test_tokenize_and_meaningful_words():
    assert tokenize("beach clubs to chill") == ["beach", "clubs", "to", "chill"]
    assert meaningful_words("Show me the beach clubs", STOPWORDS) == ["beach", "clubs"]
    assert meaningful_words("a spa by the sea", STOPWORDS, min_length=4) == []


def test_contains_word_matches_whole_words_only():
    assert contains_word("any free activities?", "free")
    assert not contains_word("a carefree day", "free")
    assert contains_word("Japanese-Peruvian fusion", "peruvian")


@pytest.mark.parametrize("a, b", [([1.0, 2.0, 3.0], [4.0, -5.0, 6.0]), ([0.3, 0.1], [0.2, 0.9]), ([1.0, 0.0, 0.0, 0.0], [0.99, 0.05, 0.0, 0.0])])
def test_cosine_similarity_is_symmetric_and_bounded(a, b):
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))
    assert -1.0 <= cosine_similarity(a, b) <= 1.0


def test_cosine_similarity_of_vector_with_itself_is_one():
    v = [0.2, -0.4, 0.9]
    assert cosine_similarity(v, v) == pytest.approx(1.0)
    assert cosine_distance(v, v) == pytest.approx(0.0, abs=1e-12)


def test_cosine_similarity_degenerate_inputs():
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
    assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_distance([1.0, 0.0], [0.0, 1.0]) == pytest.approx(1.0)


def test_cosine_similarity_known_value():
    expected = (1 * 4 + 2 * 5 + 3 * 6) / (math.sqrt(14) * math.sqrt(77))
    assert cosine_similarity([1, 2, 3], [4, 5, 6]) == pytest.approx(expected)


def test_slugify():
    assert slugify("Nikki Beach Dubai") == "nikki-beach-dubai"
    assert slugify("Café Société") == "cafe-societe"
    assert slugify("  --Rooftop & Lounge--  ") == "rooftop-lounge"
