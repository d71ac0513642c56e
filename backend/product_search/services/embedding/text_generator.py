"""Embedding Text Generator - Build the texts embedded for each product.

Provides deterministic text generation from product and query data so that
re-syncing an unchanged product reproduces the same vectors.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProductEmbeddingTexts:
    """The three texts embedded for one product.

    Attributes:
        title: Text for title_embedding
        description: Text for description_embedding
        combined: Text for combined_embedding
    """
    title: str
    description: str
    combined: str


def generate_combined_text(name: Optional[str], description: Optional[str]) -> str:
    """Join name and description with a single space and trim.

    Example:
        >>> generate_combined_text("Hydraulic Pipe Connector", None)
        'Hydraulic Pipe Connector'
        >>> generate_combined_text("  Valve ", "Brass, 1/2 inch ")
        'Valve Brass, 1/2 inch'
    """
    name = (name or "").strip()
    description = (description or "").strip()
    return f"{name} {description}".strip()


def generate_product_embedding_texts(
    name: Optional[str],
    description: Optional[str] = None,
) -> ProductEmbeddingTexts:
    """Generate the title, description and combined texts for a product.

    An empty name or description never produces an empty text: its vector is
    computed over the combined text instead.

    Args:
        name: Product name
        description: Product description (optional)

    Returns:
        ProductEmbeddingTexts

    Raises:
        ValueError: If both name and description are empty

    Example:
        >>> generate_product_embedding_texts("Hydraulic Pipe Connector", "")
        ProductEmbeddingTexts(title='Hydraulic Pipe Connector', description='Hydraulic Pipe Connector', combined='Hydraulic Pipe Connector')
    """
    combined = generate_combined_text(name, description)
    if not combined:
        raise ValueError("Product has neither name nor description to embed")

    title = (name or "").strip() or combined
    desc = (description or "").strip() or combined

    return ProductEmbeddingTexts(title=title, description=desc, combined=combined)


def generate_query_embedding_text(query: str) -> str:
    """Normalize a free-text search query before embedding.

    Collapses runs of whitespace so "pipe   connector" and "pipe connector"
    embed identically.
    """
    return " ".join(query.split())


def truncate_text_for_embedding(text: str, max_chars: int = 512) -> str:
    """Truncate text to bound embedding latency and memory.

    Args:
        text: Text to truncate
        max_chars: Maximum characters kept (default: 512)

    Returns:
        The first ``max_chars`` characters of the trimmed text

    Notes:
        - Truncation preserves the beginning of the text (name first)
        - The tokenizer applies its own token limit on top of this
    """
    text = text.strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars]
