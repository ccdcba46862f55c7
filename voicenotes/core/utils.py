"""Shared text utility functions for Voice Notes."""

import re

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wrapping an LLM response."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```\w*\n?", "", text)
        text = re.sub(r"\n?```$", "", text)
    return text.strip()


def split_sentences(text: str) -> list[str]:
    """Split text into non-empty sentences on terminal punctuation."""
    parts = _SENTENCE_END.split(text.replace("\n", " "))
    return [p.strip() for p in parts if p.strip()]


def prettify_summary(text: str) -> str:
    """Normalize model output into the plain-text summary layout.

    Markdown headings become bold labels on their own line, list markers
    become ``• `` bullets, runs of blank lines collapse to one and trailing
    whitespace is trimmed.
    """
    text = strip_code_fences(text.replace("\r\n", "\n").replace("\r", "\n"))

    text = re.sub(r"(?m)^#{1,6}[ \t]*(.+?)[ \t]*$", r"**\1**", text)
    # Bold label followed by a single newline gets a blank line after it
    text = re.sub(r"(?m)^(\*\*[^*\n]+\*\*)[ \t]*\n(?!\n)", r"\1\n\n", text)

    text = re.sub(r"(?m)^[ \t]*[-*·][ \t]+", "• ", text)
    text = re.sub(r"(?<=\S)[ \t]+•[ \t]+", "\n• ", text)

    text = re.sub(r"[ \t]+$", "", text, flags=re.MULTILINE)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
