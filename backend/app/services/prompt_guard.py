"""Boundary markers for untrusted text placed in LLM prompts.

Scraped page content and user-supplied names are wrapped in
``<user_content>`` tags.  Angle brackets inside the text are escaped first,
so the text can never close the boundary or open a tag of its own.
"""

from __future__ import annotations

UNTRUSTED_OPEN = "<user_content>"
UNTRUSTED_CLOSE = "</user_content>"


def escape_tags(content: str) -> str:
    return content.replace("<", "&lt;").replace(">", "&gt;")


def wrap_untrusted(content: str | None) -> str:
    """Escape *content* and enclose it in the untrusted-content boundary."""
    return f"{UNTRUSTED_OPEN}\n{escape_tags(content or '')}\n{UNTRUSTED_CLOSE}"
