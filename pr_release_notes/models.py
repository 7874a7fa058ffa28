from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class RawPullRequest:
    """
    A merged pull request as fetched from GitHub.

    Labels and authors keep the order they were fetched in.
    """

    number: int
    title: str
    body: str
    labels: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    merged_at: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawPullRequest":
        """
        Build a pull request record from either the GitHub REST shape
        (``labels`` as objects, ``merged_at``, ``html_url``) or a record
        saved with this class's own field names (``mergedAt``, ``url``).

        The REST ``url`` field is the API endpoint, so ``html_url`` wins
        when both are present.
        """
        labels: List[str] = []
        for label in data.get("labels") or []:
            name = label.get("name", "") if isinstance(label, dict) else str(label)
            if name:
                labels.append(name)

        authors = list(data.get("authors") or [])
        if not authors and isinstance(data.get("user"), dict):
            authors = [data["user"].get("login") or "unknown"]

        merged_at = (
            data.get("mergedAt")
            or data.get("merged_at")
            or datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        )

        return cls(
            number=int(data.get("number") or 0),
            title=data.get("title") or "",
            body=data.get("body") or "",
            labels=labels,
            authors=authors,
            merged_at=merged_at,
            url=data.get("html_url") or data.get("url") or "",
        )


@dataclass(frozen=True)
class ParsedBody:
    """Sections of a PR description, split on level-2/3 markdown headings."""

    what_was_done: Optional[str] = None
    why: Optional[str] = None
    user_impact: Optional[str] = None
    technical_details: Optional[str] = None
    other_sections: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Summary:
    title: str
    description: str
    changes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReleaseNote:
    title: str
    description: str
    changes: List[str]
    tags: List[str]
    number: int
    url: str
    authors: List[str]
    merged_at: str
    raw_title: str
    raw_body: str
    raw_labels: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "changes": list(self.changes),
            "tags": list(self.tags),
            "pr": {
                "number": self.number,
                "url": self.url,
                "authors": list(self.authors),
                "mergedAt": self.merged_at,
            },
            "raw": {
                "title": self.raw_title,
                "body": self.raw_body,
                "labels": list(self.raw_labels),
            },
        }


@dataclass(frozen=True)
class ActionInputs:
    """Run configuration gathered from CLI flags and the environment."""

    generate_summary: bool = False
    model: Optional[str] = None
    api_key: Optional[str] = None
    github_token: Optional[str] = None
