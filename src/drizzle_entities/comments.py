"""Normalize leading source comments into documentation text."""
from __future__ import annotations

import re


def normalize_comment(text: str) -> str:
    """Normalize one raw comment into paragraph-structured text.

    Strips the comment delimiters and per-line `*` markers, trims every line,
    drops leading and trailing blank lines, then joins consecutive non-blank
    lines with a space. A blank line starts a new paragraph; paragraphs are
    separated by a single newline.

    Args:
        text: Raw comment including its delimiters

    Returns:
        Normalized text, empty if the comment holds no text
    """
    if text.startswith("/**"):
        body = re.sub(r"/\*\*|\*/", "", text)
        lines = [re.sub(r"^\s*\*\s?", "", line) for line in body.split("\n")]
    elif text.startswith("/*"):
        body = re.sub(r"/\*|\*/", "", text)
        lines = [re.sub(r"^\s*\*?\s?", "", line) for line in body.split("\n")]
    else:
        lines = [text.replace("//", "")]

    lines = [line.strip() for line in lines]

    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()

    paragraphs = []
    current: list[str] = []
    for line in lines:
        if line:
            current.append(line)
        elif current:
            paragraphs.append(" ".join(current))
            current = []
    if current:
        paragraphs.append(" ".join(current))

    return "\n".join(paragraphs)


def extract_comments(*comment_groups: list[str]) -> str | None:
    """Documentation text from the first group of comments that has any.

    Each group is the raw leading comments of one candidate node, in
    priority order (e.g. the enclosing statement, then the declaration).
    Comment blocks within a group are joined with a newline.

    Returns:
        Normalized text, or None when no group has usable text
    """
    for comments in comment_groups:
        normalized = [normalize_comment(comment) for comment in comments]
        text = "\n".join(block for block in normalized if block)
        if text:
            return text
    return None
