"""Unit tests for embedding text generation"""

import pytest

from product_search.services.embedding import (
    ProductEmbeddingTexts,
    generate_combined_text,
    generate_product_embedding_texts,
    generate_query_embedding_text,
    truncate_text_for_embedding,
)


class TestCombinedText:
    """Combined text is name and description joined by one space, trimmed"""

    def test_joins_name_and_description(self):
        assert generate_combined_text("Valve", "Brass, 1/2 inch") == "Valve Brass, 1/2 inch"

    def test_trims_each_part(self):
        assert generate_combined_text("  Valve ", " Brass  ") == "Valve Brass"

    def test_missing_description(self):
        assert generate_combined_text("Hydraulic Pipe Connector", None) == "Hydraulic Pipe Connector"

    def test_missing_name(self):
        assert generate_combined_text(None, "Only a description") == "Only a description"

    def test_both_missing(self):
        assert generate_combined_text(None, "   ") == ""


class TestProductEmbeddingTexts:
    """Texts embedded into the title, description and combined vectors"""

    def test_all_fields_present(self):
        texts = generate_product_embedding_texts("Coffee Grinder", "Burr grinder")
        assert texts == ProductEmbeddingTexts(
            title="Coffee Grinder",
            description="Burr grinder",
            combined="Coffee Grinder Burr grinder",
        )

    def test_empty_description_uses_combined_text(self):
        texts = generate_product_embedding_texts("Garden Hose", "")
        assert texts.description == "Garden Hose"
        assert texts.combined == "Garden Hose"

    def test_empty_name_uses_combined_text(self):
        texts = generate_product_embedding_texts("", "Flexible hose")
        assert texts.title == "Flexible hose"

    def test_never_produces_empty_text(self):
        texts = generate_product_embedding_texts("Name", None)
        assert all([texts.title, texts.description, texts.combined])

    def test_both_empty_raises(self):
        with pytest.raises(ValueError):
            generate_product_embedding_texts("  ", None)

    def test_deterministic(self):
        assert generate_product_embedding_texts("A", "B") == generate_product_embedding_texts("A", "B")


class TestQueryText:

    def test_collapses_whitespace(self):
        assert generate_query_embedding_text("  pipe \t  connector\n") == "pipe connector"


class TestTruncation:

    def test_short_text_unchanged(self):
        assert truncate_text_for_embedding("  short  ") == "short"

    def test_truncates_to_max_chars(self):
        text = "x" * 600
        assert len(truncate_text_for_embedding(text)) == 512
        assert truncate_text_for_embedding(text, max_chars=10) == "x" * 10
