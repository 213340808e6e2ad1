import re

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_text_field(text: str) -> str:
    """
    Clean a single-line text field submitted by an admin.

    Strips markup tags, turns control characters (including line breaks and
    tabs) into spaces, collapses whitespace runs and trims the result.
    Quotes, commas and other punctuation are preserved.
    """
    cleaned = _TAG_RE.sub("", text)
    cleaned = _CONTROL_RE.sub(" ", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    return cleaned.strip()
