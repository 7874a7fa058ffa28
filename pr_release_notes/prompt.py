"""Prompt used to ask the model for a user-facing release note."""

from typing import List

from .models import ParsedBody, RawPullRequest

PREAMBLE: str = "Generate a concise, user-friendly release note from this pull request."

RESPONSE_INSTRUCTIONS: str = """---

Generate a JSON response with this exact structure:
{
  "title": "A concise title (max 80 characters) suitable for end users",
  "description": "A brief one-sentence summary of the change",
  "changes": ["3-5 bullet points written for end users, not developers"]
}

Focus on user-facing value, not implementation details. Use clear, non-technical language."""


def build_summarization_prompt(pr: RawPullRequest, parsed: ParsedBody) -> str:
    """
    Render the PR title and every parsed section into the summarization prompt.

    Sections appear in a fixed order (what was done, why, user impact,
    technical details) followed by any other sections in the order they
    were found.
    """
    blocks: List[str] = [PREAMBLE, "", f"PR Title: {pr.title}", ""]

    labelled = [
        ("What was done", parsed.what_was_done),
        ("Why", parsed.why),
        ("User impact", parsed.user_impact),
        ("Technical details", parsed.technical_details),
    ]
    labelled.extend(parsed.other_sections.items())

    for label, content in labelled:
        if content:
            blocks.extend([f"{label}:", content, ""])

    blocks.append(RESPONSE_INSTRUCTIONS)
    return "\n".join(blocks)
