"""
Article Identity

Content-addressed article ids. The id depends only on the article's stable
natural keys, so re-ingesting an unchanged feed item upserts the same point
instead of adding a duplicate.
"""

import hashlib
from typing import Iterable, Optional


def derive_id(candidate_keys: Iterable[Optional[str]]) -> str:
    """
    Derive a stable id from the first non-empty candidate key.

    Callers pass keys in priority order: canonical link, feed guid, title.

    Args:
        candidate_keys: Ordered candidate keys; None and blank values are skipped

    Returns:
        32-character hexadecimal MD5 digest

    Raises:
        ValueError: If every candidate key is empty
    """
    for key in candidate_keys:
        if key and key.strip():
            return hashlib.md5(key.strip().encode('utf-8')).hexdigest()
    raise ValueError("Cannot derive an article id: all candidate keys are empty")
