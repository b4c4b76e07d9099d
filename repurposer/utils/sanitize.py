"""Content sanitization utilities."""

import re

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_SCRIPT_HREF = re.compile(r"""href\s*=\s*["'](?:javascript|vbscript):""", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"""\s+on\w+\s*=\s*["'][^"']*["']""", re.IGNORECASE)


def sanitize_content(content: str) -> str:
    """Strip script tags, script hrefs and inline event handlers from generated text."""
    sanitized = _SCRIPT_TAG.sub("", content)
    sanitized = _SCRIPT_HREF.sub('href="#"', sanitized)
    return _EVENT_HANDLER.sub("", sanitized)


def truncate_at_word_boundary(text: str, max_length: int) -> tuple[str, bool]:
    """Truncate to ``max_length``, preferring the last space before the limit.

    Returns ``(text, truncated)``.
    """
    trimmed = text.strip()
    if len(trimmed) <= max_length:
        return trimmed, False
    head = trimmed[:max_length]
    last_space = head.rfind(" ")
    cut = last_space if last_space > max_length * 0.5 else max_length
    return trimmed[:cut].strip(), True
