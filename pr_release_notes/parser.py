import re
from typing import Dict, Iterable, List, Optional

from .models import ParsedBody, RawPullRequest

LABEL_TAG_MAP: Dict[str, str] = {
    "bug": "fix",
    "fix": "fix",
    "bugfix": "fix",
    "feature": "feature",
    "enhancement": "feature",
    "feat": "feature",
    "refactor": "refactor",
    "refactoring": "refactor",
    "infrastructure": "infra",
    "infra": "infra",
    "ci": "infra",
    "deployment": "infra",
    "documentation": "docs",
    "docs": "docs",
    "chore": "chore",
    "maintenance": "chore",
    "dependencies": "dependencies",
    "deps": "dependencies",
    "security": "security",
    "breaking": "breaking-change",
    "breaking-change": "breaking-change",
}

HEADING_RE = re.compile(r"^#{2,3}\s+(.+)$")
BULLET_RE = re.compile(r"^[-*+]\s+(.+)$")
NUMBERED_RE = re.compile(r"^\d+\.\s+(.+)$")

# Plain lines after the first bullet must be longer than this to count.
MIN_PROSE_BULLET_LENGTH = 20


def _classify_heading(heading: str) -> Optional[str]:
    lower = heading.lower()
    if "what" in lower and ("done" in lower or "changed" in lower):
        return "what_was_done"
    if "why" in lower or "motivation" in lower:
        return "why"
    if "user" in lower and "impact" in lower:
        return "user_impact"
    if "technical" in lower or "implementation" in lower:
        return "technical_details"
    return None


def parse_pr_body(body: str) -> ParsedBody:
    """
    Split a PR description into its known sections.

    Only ``##`` and ``###`` headings start a section; text before the first
    heading is ignored. Headings are matched to the fixed slots by keyword,
    anything else lands in ``other_sections`` under its original title.
    Sections whose content is blank are dropped.

    Args:
        body (str): Raw markdown body of the pull request

    Returns:
        ParsedBody: The recognised sections
    """
    if not body or not body.strip():
        return ParsedBody()

    slots: Dict[str, str] = {}
    other_sections: Dict[str, str] = {}
    current_heading: Optional[str] = None
    current_lines: List[str] = []

    def save_section() -> None:
        if current_heading is None:
            return
        content = "\n".join(current_lines).strip()
        if not content:
            return
        slot = _classify_heading(current_heading)
        if slot:
            slots[slot] = content
        else:
            other_sections[current_heading] = content

    for line in body.split("\n"):
        match = HEADING_RE.match(line.strip())
        if match:
            save_section()
            current_heading = match.group(1).strip()
            current_lines = []
            continue
        if current_heading is not None:
            current_lines.append(line)

    save_section()

    return ParsedBody(other_sections=other_sections, **slots)


def extract_bullet_points(text: str) -> List[str]:
    """
    Pull individual change items out of a block of text.

    List items (``-``, ``*``, ``+`` or ``1.``) always count. Other non-heading
    lines count if nothing has been collected yet or if they are long enough
    to be a sentence.
    """
    bullets: List[str] = []
    for line in text.split("\n"):
        trimmed = line.strip()
        bullet_match = BULLET_RE.match(trimmed)
        numbered_match = NUMBERED_RE.match(trimmed)

        if bullet_match:
            bullets.append(bullet_match.group(1).strip())
        elif numbered_match:
            bullets.append(numbered_match.group(1).strip())
        elif trimmed and not trimmed.startswith("#"):
            if not bullets or len(trimmed) > MIN_PROSE_BULLET_LENGTH:
                bullets.append(trimmed)
    return bullets


def normalize_tags(labels: Iterable[str]) -> List[str]:
    """
    Map GitHub labels onto the canonical tag set.

    Unknown labels are kept lower-cased. The result has no duplicates or
    empty entries and keeps first-seen order.
    """
    tags: Dict[str, None] = {}
    for label in labels:
        normalized = label.lower().strip()
        tag = LABEL_TAG_MAP.get(normalized)
        if tag:
            tags[tag] = None
        elif normalized:
            tags[normalized] = None
    return list(tags)


def extract_authors(pr: RawPullRequest) -> List[str]:
    authors: Dict[str, None] = {}
    for author in pr.authors:
        if author:
            authors[author] = None
    return list(authors)


def extract_changes_from_parsed_body(parsed: ParsedBody) -> List[str]:
    """Bullets from "what was done", else from "user impact"."""
    changes: List[str] = []
    if parsed.what_was_done:
        changes.extend(extract_bullet_points(parsed.what_was_done))
    if not changes and parsed.user_impact:
        changes.extend(extract_bullet_points(parsed.user_impact))
    return changes
