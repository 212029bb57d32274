"""Tests for ExampleClientAdapter (offline provider)."""

import json

from biomarker_ingest.ai.example_client_adapter import ExampleClientAdapter
from biomarker_ingest.extraction.response_parser import parse_model_response


def _complete(json_schema: dict[str, object] | None = None) -> str:
    return ExampleClientAdapter().create_chat_completion(
        model="any",
        temperature=0.0,
        system_prompt="sys",
        user_prompt="Glucose: 95 mg/dL",
        json_schema=json_schema,
    )


class TestExampleClientAdapter:
    def test_structured_request_returns_empty_extraction(self) -> None:
        assert json.loads(_complete({"type": "object"})) == {"biomarkers": []}

    def test_structured_response_parses_as_no_items(self) -> None:
        assert parse_model_response(_complete({"type": "object"})) == []

    def test_plain_request_returns_summary(self) -> None:
        summary = _complete()
        assert summary == ExampleClientAdapter.DEFAULT_SUMMARY
        assert summary.startswith("Lab results were processed")
