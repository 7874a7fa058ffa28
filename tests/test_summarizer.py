"""
Tests for the Claude-backed summary and the fallback summary.

The Anthropic client is mocked throughout; nothing here touches the network.
"""

from types import SimpleNamespace
from unittest.mock import Mock, patch

import anthropic
import httpx
import pytest

from pr_release_notes.errors import ConfigurationError, DecodeError, ServiceError
from pr_release_notes.models import ParsedBody, RawPullRequest, Summary
from pr_release_notes.parser import parse_pr_body
from pr_release_notes.summarizer import (
    DEFAULT_MODEL,
    MAX_TOKENS,
    create_fallback_summary,
    generate_summary,
    parse_ai_response,
    truncate_description,
)

MESSAGES_URL = "https://api.anthropic.com/v1/messages"


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def pr():
    return RawPullRequest(
        number=42,
        title="Add CSV export",
        body="## What was done\n- Added CSV export\n- Fixed date column",
        labels=["feature"],
        authors=["alice"],
        merged_at="2025-01-02T03:04:05Z",
        url="https://github.com/acme/app/pull/42",
    )


@pytest.fixture
def mock_client():
    """Patch the SDK client class and hand back the instance it returns."""
    with patch("pr_release_notes.summarizer.anthropic.Anthropic") as client_cls:
        client = Mock()
        client_cls.return_value = client
        client.client_cls = client_cls
        yield client


def _reply(text):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


# ============================================================================
# parse_ai_response
# ============================================================================


class TestParseAiResponse:
    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"title":"T","description":"D","changes":["A","B"]}\n```'
        assert parse_ai_response(text) == Summary(title="T", description="D", changes=["A", "B"])

    def test_fence_without_language(self):
        text = '```\n{"title":"T","description":"D","changes":[]}\n```'
        assert parse_ai_response(text).title == "T"

    def test_bare_json(self):
        summary = parse_ai_response('{"title":"T","description":"D","changes":["A"]}')
        assert summary.changes == ["A"]

    def test_title_truncated_description_kept(self):
        long_desc = "d" * 500
        summary = parse_ai_response(f'{{"title":"{"t" * 100}","description":"{long_desc}"}}')
        assert summary.title == "t" * 80
        assert summary.description == long_desc

    def test_missing_fields_default(self):
        assert parse_ai_response("{}") == Summary(title="", description="", changes=[])

    def test_changes_not_a_list(self):
        assert parse_ai_response('{"changes": "one"}').changes == []

    def test_changes_coerced_to_strings(self):
        assert parse_ai_response('{"changes": [1, 2.5, "x"]}').changes == ["1", "2.5", "x"]

    def test_non_string_values_keep_json_spelling(self):
        summary = parse_ai_response('{"title": true, "description": 3, "changes": [null, false, "ok"]}')
        assert summary.title == "true"
        assert summary.description == "3"
        assert summary.changes == ["null", "false", "ok"]

    @pytest.mark.parametrize(
        "text",
        [
            "not json at all",
            "```json\nnot json\n```",
            '{"title": "T",',
            "",
        ],
    )
    def test_malformed_raises_decode_error(self, text):
        with pytest.raises(DecodeError):
            parse_ai_response(text)

    def test_decode_error_chains_cause(self):
        with pytest.raises(DecodeError) as exc_info:
            parse_ai_response("nope")
        assert exc_info.value.__cause__ is not None

    @pytest.mark.parametrize("text", ["[1, 2]", '"just a string"', "42", "null"])
    def test_non_object_raises_decode_error(self, text):
        with pytest.raises(DecodeError):
            parse_ai_response(text)


# ============================================================================
# generate_summary
# ============================================================================


class TestGenerateSummary:
    @pytest.mark.parametrize("api_key", [None, ""])
    def test_missing_api_key(self, pr, mock_client, api_key):
        with pytest.raises(ConfigurationError):
            generate_summary(pr, parse_pr_body(pr.body), api_key=api_key)
        mock_client.client_cls.assert_not_called()

    def test_success(self, pr, mock_client):
        mock_client.messages.create.return_value = _reply(
            '```json\n{"title":"CSV export","description":"Export to CSV.","changes":["Export"]}\n```'
        )
        summary = generate_summary(pr, parse_pr_body(pr.body), api_key="sk-test")
        assert summary == Summary(title="CSV export", description="Export to CSV.", changes=["Export"])

    def test_request_shape(self, pr, mock_client):
        mock_client.messages.create.return_value = _reply("{}")
        generate_summary(pr, parse_pr_body(pr.body), api_key="sk-test")

        mock_client.client_cls.assert_called_once_with(api_key="sk-test", max_retries=0)
        mock_client.messages.create.assert_called_once()
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == DEFAULT_MODEL
        assert kwargs["max_tokens"] == MAX_TOKENS
        assert kwargs["messages"][0]["role"] == "user"
        assert "PR Title: Add CSV export" in kwargs["messages"][0]["content"]

    def test_custom_model(self, pr, mock_client):
        mock_client.messages.create.return_value = _reply("{}")
        generate_summary(pr, ParsedBody(), model="claude-3-haiku-20240307", api_key="k")
        assert mock_client.messages.create.call_args.kwargs["model"] == "claude-3-haiku-20240307"

    def test_status_error_becomes_service_error(self, pr, mock_client):
        response = httpx.Response(529, text="overloaded", request=httpx.Request("POST", MESSAGES_URL))
        mock_client.messages.create.side_effect = anthropic.APIStatusError(
            "overloaded", response=response, body=None
        )
        with pytest.raises(ServiceError) as exc_info:
            generate_summary(pr, ParsedBody(), api_key="k")
        assert exc_info.value.status_code == 529
        assert exc_info.value.body == "overloaded"
        assert str(exc_info.value) == "Anthropic API error: 529 - overloaded"

    def test_connection_error_becomes_service_error(self, pr, mock_client):
        mock_client.messages.create.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", MESSAGES_URL)
        )
        with pytest.raises(ServiceError) as exc_info:
            generate_summary(pr, ParsedBody(), api_key="k")
        assert exc_info.value.status_code is None

    def test_empty_content(self, pr, mock_client):
        mock_client.messages.create.return_value = SimpleNamespace(content=[])
        with pytest.raises(DecodeError):
            generate_summary(pr, ParsedBody(), api_key="k")

    def test_malformed_reply(self, pr, mock_client):
        mock_client.messages.create.return_value = _reply("Sorry, I can't do that.")
        with pytest.raises(DecodeError):
            generate_summary(pr, ParsedBody(), api_key="k")


# ============================================================================
# create_fallback_summary
# ============================================================================


def _pr(title, body=""):
    return RawPullRequest(number=1, title=title, body=body)


class TestCreateFallbackSummary:
    def test_short_title_unchanged(self):
        title = "x" * 40
        assert create_fallback_summary(_pr(title), ParsedBody()).title == title

    def test_long_title_truncated_with_ellipsis(self):
        summary = create_fallback_summary(_pr("y" * 90), ParsedBody())
        assert len(summary.title) == 80
        assert summary.title == "y" * 77 + "..."

    def test_title_of_exactly_80_unchanged(self):
        title = "z" * 80
        assert create_fallback_summary(_pr(title), ParsedBody()).title == title

    def test_description_priority(self):
        parsed = ParsedBody(what_was_done="done", why="why", user_impact="impact")
        assert create_fallback_summary(_pr("T"), parsed).description == "impact"
        parsed = ParsedBody(what_was_done="done", why="why")
        assert create_fallback_summary(_pr("T"), parsed).description == "why"
        parsed = ParsedBody(what_was_done="done")
        assert create_fallback_summary(_pr("T"), parsed).description == "done"
        assert create_fallback_summary(_pr("T"), ParsedBody()).description == "T"

    def test_description_first_line_hard_cut(self):
        parsed = ParsedBody(why="w" * 300 + "\nsecond line")
        description = create_fallback_summary(_pr("T"), parsed).description
        assert description == "w" * 200

    def test_description_truncation_is_idempotent(self):
        parsed = ParsedBody(user_impact="a" * 250 + "\nmore")
        description = create_fallback_summary(_pr("T"), parsed).description
        assert truncate_description(description) == description

    def test_changes_from_what_was_done(self):
        parsed = ParsedBody(what_was_done="- one\n- two", user_impact="- three")
        assert create_fallback_summary(_pr("T"), parsed).changes == ["one", "two"]

    def test_changes_from_user_impact(self):
        parsed = ParsedBody(user_impact="1. three\n2. four")
        assert create_fallback_summary(_pr("T"), parsed).changes == ["three", "four"]

    def test_changes_default_to_title(self):
        parsed = ParsedBody(why="reason", other_sections={"Notes": "- n"})
        assert create_fallback_summary(_pr("The title"), parsed).changes == ["The title"]

    def test_changes_capped_at_five(self):
        parsed = ParsedBody(what_was_done="\n".join(f"- item {i}" for i in range(8)))
        changes = create_fallback_summary(_pr("T"), parsed).changes
        assert changes == [f"item {i}" for i in range(5)]

    def test_end_to_end_from_body(self, pr):
        summary = create_fallback_summary(pr, parse_pr_body(pr.body))
        assert summary == Summary(
            title="Add CSV export",
            description="- Added CSV export",
            changes=["Added CSV export", "Fixed date column"],
        )
