import argparse
import json
import logging
import os
import sys
import traceback
from typing import List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError, DecodeError, PullRequestNotEligible, ServiceError
from .github_fetcher import (
    DEFAULT_BASE_BRANCH,
    fetch_pull_request,
    get_merged_pull_request,
    load_event_payload,
)
from .models import ActionInputs, RawPullRequest, ReleaseNote
from .output import print_json_output, release_note_json, set_action_output, write_release_note
from .parser import extract_authors, extract_changes_from_parsed_body, normalize_tags, parse_pr_body
from .summarizer import create_fallback_summary, generate_summary


def build_release_note(pr: RawPullRequest, inputs: ActionInputs) -> ReleaseNote:
    """
    Assemble the release note for a merged pull request.

    When summary generation is enabled the model is asked first; if that call
    fails or its reply can't be read, the fallback summary built from the PR
    body is used instead.
    """
    parsed = parse_pr_body(pr.body)
    tags = normalize_tags(pr.labels)
    authors = extract_authors(pr)

    if inputs.generate_summary and inputs.api_key:
        try:
            summary = generate_summary(pr, parsed, inputs.model, inputs.api_key)
        except (ServiceError, DecodeError) as e:
            logging.warning(f"Failed to generate AI summary: {e}. Falling back to parsed content.")
            summary = create_fallback_summary(pr, parsed)
        changes = summary.changes
    else:
        summary = create_fallback_summary(pr, parsed)
        changes = summary.changes or extract_changes_from_parsed_body(parsed)

    return ReleaseNote(
        title=summary.title,
        description=summary.description,
        changes=list(changes),
        tags=tags,
        number=pr.number,
        url=pr.url,
        authors=authors,
        merged_at=pr.merged_at,
        raw_title=pr.title,
        raw_body=pr.body,
        raw_labels=list(pr.labels),
    )


def get_inputs(args: argparse.Namespace) -> ActionInputs:
    """
    Combine CLI flags with environment configuration.

    Raises:
        ConfigurationError: Summary generation requested without ANTHROPIC_API_KEY
    """
    generate = bool(args.generate_summary) or os.getenv("GENERATE_SUMMARY", "") == "true"
    model = args.model or os.getenv("RELEASE_NOTE_MODEL") or None
    api_key = os.getenv("ANTHROPIC_API_KEY") or None
    github_token = os.getenv("GITHUB_TOKEN") or None

    if generate and not api_key:
        raise ConfigurationError("ANTHROPIC_API_KEY is required when generate_summary is true")

    return ActionInputs(
        generate_summary=generate,
        model=model,
        api_key=api_key,
        github_token=github_token,
    )


def get_pull_request(args: argparse.Namespace) -> RawPullRequest:
    """Read the PR from --pr-file, or fetch the one that triggered the workflow."""
    if args.pr_file:
        with open(args.pr_file, "r", encoding="utf-8") as f:
            return RawPullRequest.from_dict(json.load(f))

    payload = load_event_payload(args.event_path)
    event_name = args.event_name or os.getenv("GITHUB_EVENT_NAME")
    pr = get_merged_pull_request(event_name, payload, base_branch=args.base_branch)

    repo = args.repo or os.getenv("GITHUB_REPOSITORY") or (payload.get("repository") or {}).get("full_name")
    if not repo:
        raise ConfigurationError("Repository is unknown: pass --repo or set GITHUB_REPOSITORY")
    return fetch_pull_request(repo, pr["number"], timeout_seconds=args.timeout)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate a structured release note from a merged GitHub pull request."
    )
    parser.add_argument(
        "--pr-file",
        type=str,
        help="Path to a JSON file holding the pull request, instead of fetching it",
    )
    parser.add_argument(
        "--event-path",
        type=str,
        help="Path to the GitHub event payload (defaults to GITHUB_EVENT_PATH)",
    )
    parser.add_argument(
        "--event-name",
        type=str,
        help="Name of the triggering event (defaults to GITHUB_EVENT_NAME)",
    )
    parser.add_argument(
        "--repo",
        type=str,
        help="Repository in owner/repo format (defaults to GITHUB_REPOSITORY)",
    )
    parser.add_argument(
        "--base-branch",
        type=str,
        default=DEFAULT_BASE_BRANCH,
        help="Only pull requests merged into this branch get a release note",
    )
    parser.add_argument(
        "--generate-summary",
        action="store_true",
        help="Ask Claude for a user-facing summary (requires ANTHROPIC_API_KEY)",
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Model to use for the summary (defaults to RELEASE_NOTE_MODEL or the built-in default)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=120,
        help="Timeout in seconds for GitHub API calls",
    )
    parser.add_argument(
        "--json-output",
        action="store_true",
        help="Print only the release note JSON to stdout",
    )
    parser.add_argument(
        "--output-file",
        type=str,
        help="Also write the release note JSON to this file",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> ReleaseNote:
    """
    Build the release note for a merged pull request and publish it.

    Usage Examples:
    --------------
    1. Inside a GitHub Actions workflow triggered by pull_request (closed):
       generate-release-note --generate-summary

    2. From a saved pull request:
       generate-release-note --pr-file pr.json --json-output

    3. Writing the result to a file:
       generate-release-note --pr-file pr.json --output-file release_notes/pr-42.json

    Returns:
        ReleaseNote: The generated release note
    """
    load_dotenv()
    args = parse_args(argv)

    # Configure logging
    if args.json_output:
        logging.basicConfig(level=logging.CRITICAL)
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    inputs = get_inputs(args)
    pr = get_pull_request(args)
    note = build_release_note(pr, inputs)

    json_text = release_note_json(note)
    set_action_output("release_note", json_text)
    if args.output_file:
        write_release_note(note, args.output_file)

    if args.json_output:
        print_json_output(note.to_dict())
    else:
        logging.info("Release note generated successfully")
        logging.info(json_text)
    return note


def run(argv: Optional[List[str]] = None) -> int:
    try:
        main(argv)
    except PullRequestNotEligible as e:
        logging.warning(str(e))
        logging.error("This action must be run on a merged pull request")
        return 1
    except Exception as e:
        logging.error(f"Error: {str(e)}\n{traceback.format_exc()}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())
