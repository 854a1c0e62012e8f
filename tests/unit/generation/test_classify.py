"""Tests for blocking response classification."""

from __future__ import annotations

import json

import pytest

from shigen.core.generation.classify import ResponseClassifier
from shigen.core.generation.errors import (
    EmptyResponseError,
    PremiumRequiredError,
    RemoteError,
)
from shigen.core.generation.models import FailureKind


@pytest.fixture
def classifier() -> ResponseClassifier:
    return ResponseClassifier()


class TestErrorForStatus:
    def test_premium_keyword(self, classifier: ResponseClassifier) -> None:
        error = classifier.error_for_status(402, '{"error": "insufficient_quota"}', "openai")
        assert isinstance(error, PremiumRequiredError)
        assert error.kind is FailureKind.PREMIUM_REQUIRED
        assert "premium plan" in error.message

    def test_premium_match_is_case_insensitive(self, classifier: ResponseClassifier) -> None:
        error = classifier.error_for_status(403, "Please UPGRADE your Subscription", "m")
        assert isinstance(error, PremiumRequiredError)

    def test_nested_error_message(self, classifier: ResponseClassifier) -> None:
        body = json.dumps({"error": {"message": "context too long"}})
        error = classifier.error_for_status(400, body, "openai")
        assert isinstance(error, RemoteError)
        assert error.status_code == 400
        assert error.message == 'Error from model "openai": context too long'

    def test_raw_body_detail(self, classifier: ResponseClassifier) -> None:
        error = classifier.error_for_status(500, "Internal Server Error", "openai")
        assert error.message == (
            'The model "openai" failed with status 500. Details: Internal Server Error'
        )

    def test_empty_body(self, classifier: ResponseClassifier) -> None:
        error = classifier.error_for_status(503, "", "openai")
        assert error.message == 'The model "openai" failed with status 503.'

    def test_keywords_are_configurable(self) -> None:
        classifier = ResponseClassifier(premium_keywords=("gold tier",))
        assert isinstance(classifier.error_for_status(402, "Gold Tier only", "m"), PremiumRequiredError)
        assert isinstance(classifier.error_for_status(402, "premium", "m"), RemoteError)


class TestTextFromBody:
    def test_chat_message(self, classifier: ResponseClassifier) -> None:
        body = json.dumps({"choices": [{"message": {"content": "Hello!"}}]})
        assert classifier.text_from_body(body) == "Hello!"

    def test_flat_field(self, classifier: ResponseClassifier) -> None:
        assert classifier.text_from_body('{"response": "Hi"}') == "Hi"

    def test_raw_text_trimmed(self, classifier: ResponseClassifier) -> None:
        assert classifier.text_from_body("  plain answer \n") == "plain answer"

    def test_unknown_json_returned_raw(self, classifier: ResponseClassifier) -> None:
        assert classifier.text_from_body('{"answer": 1}') == '{"answer": 1}'

    @pytest.mark.parametrize("body", ["", "   ", "{}", "[]", "null", '""'])
    def test_empty_bodies(self, classifier: ResponseClassifier, body: str) -> None:
        with pytest.raises(EmptyResponseError) as exc_info:
            classifier.text_from_body(body)
        assert exc_info.value.kind is FailureKind.EMPTY_RESPONSE

    def test_empty_content_field_falls_back_to_body(self, classifier: ResponseClassifier) -> None:
        body = '{"choices": [{"message": {"content": ""}}]}'
        assert classifier.text_from_body(body) == body
