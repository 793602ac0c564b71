import json

from dalil.config.settings import settings
from dalil.src.core.retrieval_engine import RetrievalEngine
from dalil.src.core.taxonomy_index import TaxonomyIndex
from dalil.src.database.memory_catalog import InMemoryCatalog


def test_keyword_rules_keep_declared_order(taxonomy):
    subcategories = [rule.subcategory for rule in taxonomy.keyword_rules]
    assert subcategories[0] == "adventure"
    assert subcategories.index("gifts for her") < subcategories.index("gifts for him")


def test_taxonomy_terms_cover_categories_and_subcategory_words(taxonomy):
    for term in ("places", "dining", "hotels", "beach", "clubs", "chill", "shisha"):
        assert taxonomy.is_taxonomy_term(term), term
    # short words and stopwords never become terms
    assert not taxonomy.is_taxonomy_term("to")
    assert not taxonomy.is_taxonomy_term("sea")
    assert not taxonomy.is_taxonomy_term("with")


def test_entity_types_include_seeds_and_derived_terms(taxonomy):
    assert taxonomy.is_entity_type("hotel")
    assert taxonomy.is_entity_type("restaurants")
    assert taxonomy.is_entity_type("clubs")
    assert taxonomy.is_entity_type("lounges")
    assert taxonomy.is_entity_type("beachfront")
    assert not taxonomy.is_entity_type("sushi")


def test_meaningful_words_drop_stopwords_and_short_tokens(taxonomy):
    assert taxonomy.meaningful_words("Show me the best beach clubs in JBR") == ["best", "beach", "clubs", "jbr"]


def test_count_taxonomy_terms(taxonomy):
    assert taxonomy.count_taxonomy_terms("quantum physics lecture") == 0
    assert taxonomy.count_taxonomy_terms("beach clubs") >= 2


def test_from_json_adds_catalog_taxonomy(tmp_path):
    path = tmp_path / "taxonomy.json"
    path.write_text(json.dumps([{"category": "Wellness", "subcategory": "day spas"}]), encoding="utf-8")

    index = TaxonomyIndex.from_json(path)

    assert "wellness" in index.categories
    assert "day spas" in index.subcategories
    assert index.is_taxonomy_term("spas")
    assert index.is_entity_type("spas")


def test_from_json_missing_file_falls_back_to_defaults(tmp_path):
    index = TaxonomyIndex.from_json(tmp_path / "missing.json")
    assert index.mappings == TaxonomyIndex().mappings


def test_from_settings_uses_builtin_vocabulary_without_a_path(monkeypatch):
    monkeypatch.setattr(settings, "TAXONOMY_PATH", None)
    assert TaxonomyIndex.from_settings().categories == TaxonomyIndex().categories


def test_engine_loads_taxonomy_export_from_settings(tmp_path, monkeypatch):
    path = tmp_path / "taxonomy.json"
    path.write_text(json.dumps([{"category": "Wellness", "subcategory": "day spas"}]), encoding="utf-8")
    monkeypatch.setattr(settings, "TAXONOMY_PATH", path)

    engine = RetrievalEngine(InMemoryCatalog())

    assert "wellness" in engine.taxonomy.categories
    assert engine.taxonomy.is_taxonomy_term("spas")
