import json
import logging
import re
from typing import Any, Optional

import anthropic

from .errors import ConfigurationError, DecodeError, ServiceError
from .models import ParsedBody, RawPullRequest, Summary
from .parser import extract_changes_from_parsed_body
from .prompt import build_summarization_prompt

DEFAULT_MODEL: str = "claude-3-5-sonnet-20241022"
MAX_TOKENS: int = 1024
MAX_TITLE_LENGTH: int = 80
MAX_DESCRIPTION_LENGTH: int = 200
MAX_CHANGES: int = 5
ELLIPSIS: str = "..."

JSON_FENCE_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


def generate_summary(
    pr: RawPullRequest,
    parsed: ParsedBody,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
) -> Summary:
    """
    Ask Claude for a user-facing summary of the pull request.

    Makes exactly one request. Errors are not handled here; callers decide
    whether to fall back to create_fallback_summary.

    Args:
        pr (RawPullRequest): The merged pull request
        parsed (ParsedBody): Sections parsed from the PR body
        model (Optional[str]): Model name, DEFAULT_MODEL when not given
        api_key (Optional[str]): Anthropic API key

    Returns:
        Summary: Title, description and changes from the model

    Raises:
        ConfigurationError: No API key was given
        ServiceError: The API call failed or returned a non-success status
        DecodeError: The reply was not a JSON object
    """
    if not api_key:
        raise ConfigurationError("API key is required for summary generation")

    prompt = build_summarization_prompt(pr, parsed)
    text = call_anthropic_api(prompt, model or DEFAULT_MODEL, api_key)
    return parse_ai_response(text)


def call_anthropic_api(prompt: str, model: str, api_key: str) -> str:
    """Send the prompt to the Messages API and return the first text block."""
    client = anthropic.Anthropic(api_key=api_key, max_retries=0)
    logging.info(f"Requesting summary from {model}")
    try:
        response: Any = client.messages.create(
            model=model,
            max_tokens=MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIStatusError as e:
        raise ServiceError(e.status_code, e.response.text) from e
    except anthropic.APIConnectionError as e:
        raise ServiceError(None, str(e)) from e

    content = getattr(response, "content", None)
    if not content:
        raise DecodeError("No content returned from Anthropic API")
    text = getattr(content[0], "text", None)
    if not isinstance(text, str):
        raise DecodeError("Anthropic API reply did not start with a text block")
    return text


def parse_ai_response(text: str) -> Summary:
    """
    Read the model's JSON reply, unwrapping a fenced code block if present.

    The title is cut to MAX_TITLE_LENGTH; the description is left as is.
    """
    match = JSON_FENCE_RE.search(text)
    json_text = match.group(1) if match else text

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Failed to parse AI response as JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError(
            f"Failed to parse AI response as JSON: expected an object, got {type(data).__name__}"
        )

    changes = data.get("changes")
    return Summary(
        title=_as_text(data.get("title") or "")[:MAX_TITLE_LENGTH],
        description=_as_text(data.get("description") or ""),
        changes=[_as_text(change) for change in changes] if isinstance(changes, list) else [],
    )


def _as_text(value: Any) -> str:
    # Non-string JSON values keep their JSON spelling ("null", "true").
    if isinstance(value, str):
        return value
    return json.dumps(value)


def truncate_title(title: str) -> str:
    if len(title) <= MAX_TITLE_LENGTH:
        return title
    return title[: MAX_TITLE_LENGTH - len(ELLIPSIS)] + ELLIPSIS


def truncate_description(text: str) -> str:
    """First line only, hard cut at MAX_DESCRIPTION_LENGTH."""
    return text.split("\n")[0][:MAX_DESCRIPTION_LENGTH]


def create_fallback_summary(pr: RawPullRequest, parsed: ParsedBody) -> Summary:
    """
    Build a summary from the PR itself, without calling any service.

    The description prefers user impact, then why, then what was done, then
    the PR title. Changes come from the parsed sections, or the PR title
    when there are none.
    """
    description = parsed.user_impact or parsed.why or parsed.what_was_done or pr.title
    changes = extract_changes_from_parsed_body(parsed) or [pr.title]

    return Summary(
        title=truncate_title(pr.title),
        description=truncate_description(description),
        changes=changes[:MAX_CHANGES],
    )
