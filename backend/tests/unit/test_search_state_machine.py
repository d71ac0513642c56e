"""Unit tests for the SearchStage state machine"""

import pytest

from product_search.domain.search import (
    ALLOWED_TRANSITIONS,
    InvalidStageTransition,
    SearchStage,
    TERMINAL_STAGES,
    can_transition,
    is_terminal,
)

HAPPY_PATH = [
    SearchStage.AVAILABILITY_CHECK,
    SearchStage.QUERY_EMBEDDING,
    SearchStage.SIMILARITY_SEARCH,
    SearchStage.ZERO_RESULT_CHECK,
    SearchStage.CATALOG_JOIN,
    SearchStage.SUCCESS,
]


class TestSearchStageStateMachine:
    """Test SearchStage transitions"""

    def test_initial_transition(self):
        """A request can only start with the availability check"""
        assert can_transition(None, SearchStage.AVAILABILITY_CHECK) is True
        for stage in SearchStage:
            if stage != SearchStage.AVAILABILITY_CHECK:
                assert can_transition(None, stage) is False

    def test_happy_path(self):
        """Each stage advances to the next one in order"""
        previous = None
        for stage in HAPPY_PATH:
            assert can_transition(previous, stage) is True
            previous = stage

    @pytest.mark.parametrize("stage", HAPPY_PATH[:-1])
    def test_every_non_terminal_stage_can_fall_back(self, stage):
        assert can_transition(stage, SearchStage.KEYWORD_FALLBACK) is True

    def test_no_skipping_stages(self):
        assert can_transition(SearchStage.AVAILABILITY_CHECK, SearchStage.SIMILARITY_SEARCH) is False
        assert can_transition(SearchStage.QUERY_EMBEDDING, SearchStage.CATALOG_JOIN) is False
        assert can_transition(SearchStage.ZERO_RESULT_CHECK, SearchStage.SUCCESS) is False

    def test_no_cycles(self):
        """No stage may return to itself or to an earlier stage"""
        for index, stage in enumerate(HAPPY_PATH):
            for earlier in HAPPY_PATH[:index + 1]:
                assert can_transition(stage, earlier) is False

    def test_terminal_stages_have_no_transitions(self):
        assert TERMINAL_STAGES == {SearchStage.SUCCESS, SearchStage.KEYWORD_FALLBACK}
        for stage in TERMINAL_STAGES:
            assert ALLOWED_TRANSITIONS[stage] == []
            assert is_terminal(stage) is True

    def test_all_stages_in_table(self):
        for stage in SearchStage:
            assert stage in ALLOWED_TRANSITIONS

    def test_invalid_transition_error_message(self):
        error = InvalidStageTransition(SearchStage.SUCCESS, SearchStage.KEYWORD_FALLBACK)
        assert "SUCCESS" in str(error)
        assert error.to_stage == SearchStage.KEYWORD_FALLBACK
