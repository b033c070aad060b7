"""Unit tests for the structured reply contracts."""

import pytest

from interviewcoach.core.domain.contracts import (
    CompanyMatchList,
    FeedbackPayload,
    GraderVerdict,
    HintPayload,
    InfoPointPayload,
    TopicTurnAssessment,
    extract_json,
    parse_contract,
)
from interviewcoach.core.domain.models import InfoPointType


class TestExtractJson:
    def test_plain_json(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_embedded_in_prose(self):
        assert extract_json('Here you go: {"a": 1} hope it helps') == {"a": 1}

    def test_decoded_value_passes_through(self):
        assert extract_json({"a": 1}) == {"a": 1}

    def test_no_json_raises(self):
        with pytest.raises(ValueError):
            extract_json("no json here")


class TestParseContract:
    def test_valid_reply(self):
        payload = parse_contract(HintPayload, '{"hint": "Think about a recent deadline"}')
        assert payload.hint == "Think about a recent deadline"
        assert payload.example_direction is None

    def test_missing_required_field_returns_default(self):
        default = HintPayload(hint="fallback")
        assert parse_contract(HintPayload, '{"example_direction": "x"}', default) is default

    def test_empty_reply_returns_default(self):
        assert parse_contract(HintPayload, "   ") is None
        assert parse_contract(HintPayload, None) is None

    def test_non_json_returns_default(self):
        assert parse_contract(HintPayload, "just some words") is None

    def test_empty_match_list_is_rejected(self):
        assert parse_contract(CompanyMatchList, '{"matches": []}') is None


class TestNormalization:
    def test_feedback_score_is_clamped(self):
        assert FeedbackPayload(score=14).score == 10
        assert FeedbackPayload(score=0).score == 1
        assert FeedbackPayload(score="7.4").score == 7

    def test_unknown_info_type_becomes_other(self):
        point = InfoPointPayload(type="hobby", summary="Plays chess", depth=9)
        assert point.type == InfoPointType.OTHER
        assert point.depth == 5

    def test_info_point_to_domain(self):
        point = InfoPointPayload(type="quantified_result", summary="Cut latency by 40%", depth=4).to_domain()
        assert point.type == InfoPointType.QUANTIFIED_RESULT
        assert point.depth == 4
        assert point.needs_follow_up is False

    def test_turn_assessment_requires_response(self):
        assert parse_contract(TopicTurnAssessment, '{"status": "collecting"}') is None

    def test_turn_assessment_defaults(self):
        payload = parse_contract(TopicTurnAssessment, '{"ai_response": "Tell me more."}')
        assert payload.status == "collecting"
        assert payload.new_info_points == []

    def test_grader_verdict_clamped_to_unit_interval(self):
        assert GraderVerdict(score=1.7).score == 1.0
        assert GraderVerdict(score=-2).score == 0.0

    def test_company_match_score_clamped(self):
        payload = parse_contract(CompanyMatchList, '{"matches": [{"company": "Acme", "match_score": 140}]}')
        assert payload.matches[0].match_score == 100
        assert payload.matches[0].to_domain().company == "Acme"
