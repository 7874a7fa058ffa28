import dataclasses
import json
import logging
import os
import subprocess
from typing import Any, Dict, List, Optional

from .errors import PullRequestNotEligible, ReleaseNoteError
from .models import RawPullRequest

DEFAULT_BASE_BRANCH = "main"


def load_event_payload(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the GitHub Actions event payload.

    Args:
        path (Optional[str]): Path to the event JSON. Defaults to GITHUB_EVENT_PATH.

    Returns:
        Dict[str, Any]: The decoded event payload
    """
    path = path or os.getenv("GITHUB_EVENT_PATH")
    if not path:
        raise ReleaseNoteError("No event payload: set GITHUB_EVENT_PATH or pass --event-path")
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def get_merged_pull_request(
    event_name: Optional[str],
    payload: Dict[str, Any],
    base_branch: str = DEFAULT_BASE_BRANCH,
) -> Dict[str, Any]:
    """
    Return the pull request from a "closed" event if it was merged into base_branch.

    Raises:
        PullRequestNotEligible: For any other event
    """
    if event_name != "pull_request":
        raise PullRequestNotEligible(f"Event is {event_name}, expected pull_request")

    action = payload.get("action")
    if action != "closed":
        raise PullRequestNotEligible(f"PR action is {action}, expected closed")

    pr = payload.get("pull_request")
    if not pr:
        raise PullRequestNotEligible("No pull request found in payload")

    if not pr.get("merged"):
        raise PullRequestNotEligible("Pull request was closed but not merged")

    base_ref = (pr.get("base") or {}).get("ref")
    if base_ref != base_branch:
        raise PullRequestNotEligible(f"PR was merged to {base_ref}, expected {base_branch}")

    return pr


def _gh_api(endpoint: str, timeout_seconds: int) -> Any:
    try:
        result = subprocess.run(
            ["gh", "api", endpoint],
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout_seconds,
        )
    except FileNotFoundError as e:
        raise ReleaseNoteError(
            "GitHub CLI (gh) is not installed or not in PATH. Please install it: https://cli.github.com/"
        ) from e
    except subprocess.TimeoutExpired as e:
        raise ReleaseNoteError(
            f"Timeout error: GitHub CLI call to {endpoint} exceeded {timeout_seconds} seconds timeout"
        ) from e
    except subprocess.CalledProcessError as e:
        raise ReleaseNoteError(f"Error calling GitHub CLI for {endpoint}: {e.stderr}") from e
    return json.loads(result.stdout)


def fetch_pull_request(repo: str, number: int, timeout_seconds: int = 120) -> RawPullRequest:
    """
    Fetch a pull request and the logins of everyone who committed to it.

    Works with both public and private repositories, provided the GitHub CLI
    is authenticated with access (GH_TOKEN or GITHUB_TOKEN).

    Args:
        repo (str): Repository in "owner/repo" format
        number (int): Pull request number
        timeout_seconds (int): Timeout in seconds for each API call

    Returns:
        RawPullRequest: The pull request with its deduplicated authors

    Example usage:
        fetch_pull_request("octo-org/octo-repo", 42)
    """
    data = _gh_api(f"/repos/{repo}/pulls/{number}", timeout_seconds)
    commits = _gh_api(f"/repos/{repo}/pulls/{number}/commits", timeout_seconds)

    authors: List[str] = [(data.get("user") or {}).get("login") or "unknown"]
    for commit in commits:
        login = (commit.get("author") or {}).get("login")
        if login and login not in authors:
            authors.append(login)

    logging.info(f"Fetched PR #{number} from {repo} with {len(commits)} commits")
    return dataclasses.replace(RawPullRequest.from_dict(data), authors=authors)
