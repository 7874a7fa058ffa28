import json
import logging
import os
import uuid

from .models import ReleaseNote


def release_note_json(note: ReleaseNote) -> str:
    return json.dumps(note.to_dict(), indent=2)


def write_release_note(note: ReleaseNote, path: str) -> None:
    """
    Write the release note as JSON to the given path, creating parent directories.
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(release_note_json(note))
    logging.info(f"Release note written to: {path}")


def set_action_output(name: str, value: str) -> bool:
    """
    Expose a value as a GitHub Actions step output via GITHUB_OUTPUT.

    Returns:
        bool: False when not running inside GitHub Actions
    """
    output_path = os.getenv("GITHUB_OUTPUT")
    if not output_path:
        return False
    delimiter = f"EOF_{uuid.uuid4().hex}"
    with open(output_path, "a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
    return True


def print_json_output(result: dict) -> None:
    """
    Print the result as a JSON string (for GitHub Actions or other automation).
    """
    print(json.dumps(result, indent=2))
