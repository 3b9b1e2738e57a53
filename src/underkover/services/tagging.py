"""Tag name normalisation and hashtag extraction."""

from __future__ import annotations

import re
from collections.abc import Iterable

# ASCII word characters only, so "#café" yields "caf".
HASHTAG_PATTERN = re.compile(r"#(\w+)", re.ASCII)


def extract_hashtags(content: str | None) -> list[str]:
    """Return lowercased ``#word`` tokens from ``content`` in order of appearance."""
    if not content:
        return []
    return [match.lower() for match in HASHTAG_PATTERN.findall(content)]


def normalize_tags(manual: Iterable[str] | None, content: str | None) -> list[str]:
    """Merge manual tags and content hashtags into the stored tag list.

    Manual tags are trimmed and lowercased and empty ones dropped; hashtags
    follow. Duplicates keep their first position.
    """
    processed = [tag.strip().lower() for tag in manual or []]
    combined = [tag for tag in processed if tag] + extract_hashtags(content)
    return list(dict.fromkeys(combined))
