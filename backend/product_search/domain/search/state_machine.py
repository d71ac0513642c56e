"""SearchStage state machine for the semantic search request lifecycle

State flow:
AVAILABILITY_CHECK → QUERY_EMBEDDING → SIMILARITY_SEARCH → ZERO_RESULT_CHECK
    → CATALOG_JOIN → SUCCESS
Any non-terminal stage may divert to KEYWORD_FALLBACK. There are no cycles.
"""

from enum import Enum
from typing import Dict, List, Optional


class SearchStage(str, Enum):
    """Stages of one search request"""
    AVAILABILITY_CHECK = "AVAILABILITY_CHECK"
    QUERY_EMBEDDING = "QUERY_EMBEDDING"
    SIMILARITY_SEARCH = "SIMILARITY_SEARCH"
    ZERO_RESULT_CHECK = "ZERO_RESULT_CHECK"
    CATALOG_JOIN = "CATALOG_JOIN"
    SUCCESS = "SUCCESS"                    # Terminal, search_type=semantic
    KEYWORD_FALLBACK = "KEYWORD_FALLBACK"  # Terminal, keyword results


# State transition rules
ALLOWED_TRANSITIONS: Dict[Optional[SearchStage], List[SearchStage]] = {
    None: [SearchStage.AVAILABILITY_CHECK],
    SearchStage.AVAILABILITY_CHECK: [SearchStage.QUERY_EMBEDDING, SearchStage.KEYWORD_FALLBACK],
    SearchStage.QUERY_EMBEDDING: [SearchStage.SIMILARITY_SEARCH, SearchStage.KEYWORD_FALLBACK],
    SearchStage.SIMILARITY_SEARCH: [SearchStage.ZERO_RESULT_CHECK, SearchStage.KEYWORD_FALLBACK],
    SearchStage.ZERO_RESULT_CHECK: [SearchStage.CATALOG_JOIN, SearchStage.KEYWORD_FALLBACK],
    SearchStage.CATALOG_JOIN: [SearchStage.SUCCESS, SearchStage.KEYWORD_FALLBACK],
    SearchStage.SUCCESS: [],
    SearchStage.KEYWORD_FALLBACK: [],
}

TERMINAL_STAGES = frozenset({SearchStage.SUCCESS, SearchStage.KEYWORD_FALLBACK})


def can_transition(from_stage: Optional[SearchStage], to_stage: SearchStage) -> bool:
    """Validate if stage transition is allowed

    Args:
        from_stage: Current stage (None before the request starts)
        to_stage: Target stage

    Returns:
        True if transition is allowed, False otherwise

    Example:
        >>> can_transition(SearchStage.QUERY_EMBEDDING, SearchStage.KEYWORD_FALLBACK)
        True
        >>> can_transition(SearchStage.SUCCESS, SearchStage.KEYWORD_FALLBACK)
        False
    """
    allowed = ALLOWED_TRANSITIONS.get(from_stage, [])
    return to_stage in allowed


def is_terminal(stage: SearchStage) -> bool:
    return stage in TERMINAL_STAGES


class InvalidStageTransition(RuntimeError):
    """Raised when the orchestrator attempts a transition outside the table."""

    def __init__(self, from_stage: Optional[SearchStage], to_stage: SearchStage):
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(f"Invalid search stage transition: {from_stage} -> {to_stage}")
