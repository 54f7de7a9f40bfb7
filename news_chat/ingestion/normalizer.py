"""
Content Normalizer

Cleans raw feed and page text and enforces the content length bounds used
for embedding and prompting.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup

from ..errors import ContentInsufficientError

TRUNCATION_MARKER = "..."

# Unicode word characters (letters, digits, underscore), whitespace and basic
# punctuation survive cleaning
_DISALLOWED_CHARS = re.compile(r"[^\w\s.,!?;:()\-\"']")
_WHITESPACE = re.compile(r"\s+")
_TITLE_KEY_CHARS = re.compile(r"[^\w\s]")


class ContentNormalizer:
    """
    Normalizes article text.

    Cleaning strips markup, collapses whitespace and restricts the character
    set. Length checks guard against items with too little signal, and
    truncation bounds the cost of every downstream embedding and prompt.
    """

    def __init__(
        self,
        min_content_length: int = 100,
        max_content_length: int = 6000,
        truncation_marker: str = TRUNCATION_MARKER
    ):
        """
        Initialize the normalizer.

        Args:
            min_content_length: Minimum cleaned length for an acceptable article
            max_content_length: Maximum stored length before the marker is appended
            truncation_marker: Marker appended to clamped text
        """
        if min_content_length < 0 or max_content_length <= 0:
            raise ValueError("Content length bounds must be positive")
        self.min_content_length = min_content_length
        self.max_content_length = max_content_length
        self.truncation_marker = truncation_marker

    def normalize(self, raw_text: Optional[str]) -> str:
        """
        Clean raw text.

        Args:
            raw_text: Text that may contain HTML markup and entities

        Returns:
            Cleaned single-line text
        """
        if not raw_text:
            return ""

        text = raw_text
        if '<' in text or '&' in text:
            text = BeautifulSoup(text, 'html.parser').get_text(' ')

        text = _WHITESPACE.sub(' ', text)
        text = _DISALLOWED_CHARS.sub('', text)
        # Removing characters can leave doubled spaces behind
        text = _WHITESPACE.sub(' ', text)
        return text.strip()

    def is_acceptable(self, clean_text: str) -> bool:
        """Return True when the text meets the minimum content length."""
        return len(clean_text) >= self.min_content_length

    def require_acceptable(self, clean_text: str, title: str = "") -> str:
        """
        Return the text unchanged, or raise if it is too short.

        Raises:
            ContentInsufficientError: If the text is below the minimum length
        """
        if not self.is_acceptable(clean_text):
            raise ContentInsufficientError(len(clean_text), self.min_content_length, title)
        return clean_text

    def truncate(self, clean_text: str, max_length: Optional[int] = None) -> str:
        """
        Clamp text to a maximum length.

        Args:
            clean_text: Cleaned text
            max_length: Override for the configured maximum

        Returns:
            The text itself when short enough, otherwise exactly
            max_length characters followed by the truncation marker
        """
        limit = max_length if max_length is not None else self.max_content_length
        if len(clean_text) <= limit:
            return clean_text
        return clean_text[:limit] + self.truncation_marker

    def clean_and_bound(self, raw_text: Optional[str], title: str = "") -> str:
        """
        Normalize, check and truncate in one step.

        Raises:
            ContentInsufficientError: If the cleaned text is too short
        """
        text = self.require_acceptable(self.normalize(raw_text), title)
        return self.truncate(text)

    @staticmethod
    def title_key(title: str) -> str:
        """Build the normalized key used to detect duplicate titles."""
        key = _TITLE_KEY_CHARS.sub('', (title or '').lower())
        return _WHITESPACE.sub(' ', key).strip()
