"""
Article Page Extraction

Secondary full-text fetch for feed items whose summary is too short. The
article body is located by an ordered list of extraction strategies; the first
candidate that clears the minimum length wins. Strategies are plain objects so
new site layouts can be supported without touching the ingestion pipeline.
"""

import logging
from typing import List, Optional, Sequence

import requests
from bs4 import BeautifulSoup

from .normalizer import ContentNormalizer

logger = logging.getLogger(__name__)


UNWANTED_SELECTORS = (
    'script, style, nav, header, footer, aside, .advertisement, .ads, '
    '.social-share, .comments, .related-articles'
)

ARTICLE_PARAGRAPH_SELECTORS = [
    'article p',
    '.article-body p',
    '.story-body p',
    '.post-content p',
    '.entry-content p',
    '.content p',
    'main p',
    '[data-module="ArticleBody"] p',
    '.StandardArticleBody_body p',
    '.article-content p',
    '.story-content p',
    '.news-content p',
    '.body-content p',
]

CONTAINER_SELECTORS = [
    'article',
    '.article-body',
    '.story-body',
    '.post-content',
    '.entry-content',
    '.content',
    'main',
]


class ExtractionStrategy:
    """Locates article text in a parsed page."""

    name = "base"

    def extract(self, soup: BeautifulSoup, min_length: int) -> str:
        """
        Return the strategy's best text candidate, or "" if nothing matched.

        Args:
            soup: Parsed page with boilerplate already removed
            min_length: Length at which a candidate is good enough to stop
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _join_paragraphs(paragraphs, min_paragraph_length: int) -> str:
    texts = (p.get_text(' ', strip=True) for p in paragraphs)
    return ' '.join(t for t in texts if len(t) > min_paragraph_length)


class ParagraphSelectorStrategy(ExtractionStrategy):
    """Join the paragraphs found under structural article selectors."""

    name = "paragraph_selectors"

    def __init__(
        self,
        selectors: Optional[Sequence[str]] = None,
        min_paragraph_length: int = 20
    ):
        self.selectors = list(selectors or ARTICLE_PARAGRAPH_SELECTORS)
        self.min_paragraph_length = min_paragraph_length

    def extract(self, soup: BeautifulSoup, min_length: int) -> str:
        best = ""
        for selector in self.selectors:
            paragraphs = soup.select(selector)
            if not paragraphs:
                continue
            text = _join_paragraphs(paragraphs, self.min_paragraph_length)
            if len(text) >= min_length:
                return text
            if len(text) > len(best):
                best = text
        return best


class ContainerSelectorStrategy(ExtractionStrategy):
    """Take the full text of the first broad content container that matches."""

    name = "container_selectors"

    def __init__(self, selectors: Optional[Sequence[str]] = None):
        self.selectors = list(selectors or CONTAINER_SELECTORS)

    def extract(self, soup: BeautifulSoup, min_length: int) -> str:
        best = ""
        for selector in self.selectors:
            element = soup.select_one(selector)
            if element is None:
                continue
            text = element.get_text(' ', strip=True)
            if len(text) >= min_length:
                return text
            if len(text) > len(best):
                best = text
        return best


class AllParagraphsStrategy(ExtractionStrategy):
    """Last resort: every paragraph on the page."""

    name = "all_paragraphs"

    def __init__(self, min_paragraph_length: int = 20):
        self.min_paragraph_length = min_paragraph_length

    def extract(self, soup: BeautifulSoup, min_length: int) -> str:
        return _join_paragraphs(soup.find_all('p'), self.min_paragraph_length)


def default_strategies() -> List[ExtractionStrategy]:
    """Structural selectors, then broad containers, then all paragraphs."""
    return [
        ParagraphSelectorStrategy(),
        ContainerSelectorStrategy(),
        AllParagraphsStrategy(),
    ]


class PageFetcher:
    """Fetches article pages over HTTP with rotating user agents."""

    def __init__(self, timeout: int = 15, session: Optional[requests.Session] = None):
        """
        Initialize the page fetcher.

        Args:
            timeout: Request timeout in seconds
            session: Optional requests session (one is created if omitted)
        """
        self.timeout = timeout
        self.session = session or requests.Session()

        # User agents for rotation
        self.user_agents = [
            'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
            'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
            'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
        ]
        self.current_user_agent_idx = 0

    def _get_user_agent(self) -> str:
        """Get next user agent from rotation."""
        user_agent = self.user_agents[self.current_user_agent_idx]
        self.current_user_agent_idx = (self.current_user_agent_idx + 1) % len(self.user_agents)
        return user_agent

    def fetch(self, url: str) -> str:
        """
        Fetch the HTML of a page.

        Raises:
            requests.RequestException: On network errors, timeouts and HTTP errors
        """
        response = self.session.get(
            url,
            timeout=self.timeout,
            allow_redirects=True,
            headers={
                'User-Agent': self._get_user_agent(),
                'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
                'Accept-Language': 'en-US,en;q=0.5',
            }
        )
        response.raise_for_status()
        return response.text


class ArticleContentExtractor:
    """
    Runs the extraction strategy cascade over an article page.

    The first strategy whose cleaned text reaches `min_extracted_length` wins.
    If none does, the longest candidate is used when it is longer than
    `min_accept_length`; otherwise nothing is returned.
    """

    def __init__(
        self,
        strategies: Optional[List[ExtractionStrategy]] = None,
        fetcher: Optional[PageFetcher] = None,
        normalizer: Optional[ContentNormalizer] = None,
        min_extracted_length: int = 300,
        min_accept_length: int = 200,
        max_length: int = 5000
    ):
        self.strategies = strategies if strategies is not None else default_strategies()
        self.fetcher = fetcher or PageFetcher()
        self.normalizer = normalizer or ContentNormalizer()
        self.min_extracted_length = min_extracted_length
        self.min_accept_length = min_accept_length
        self.max_length = max_length

    def extract_from_html(self, html: str) -> Optional[str]:
        """
        Extract the article body from raw HTML.

        Returns:
            Cleaned, length-bounded text, or None if no strategy found enough
        """
        if not html:
            return None

        soup = BeautifulSoup(html, 'html.parser')
        for element in soup.select(UNWANTED_SELECTORS):
            element.decompose()

        best = ""
        for strategy in self.strategies:
            candidate = self.normalizer.normalize(
                strategy.extract(soup, self.min_extracted_length)
            )
            if len(candidate) >= self.min_extracted_length:
                logger.debug(f"Extraction strategy {strategy.name} matched ({len(candidate)} chars)")
                best = candidate
                break
            if len(candidate) > len(best):
                best = candidate

        if len(best) <= self.min_accept_length:
            return None
        return self.normalizer.truncate(best, self.max_length)

    def fetch_and_extract(self, url: str) -> Optional[str]:
        """
        Fetch a page and extract its article body.

        Network and HTTP failures are logged and reported as None; the caller
        falls back to the feed's own content.
        """
        try:
            html = self.fetcher.fetch(url)
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            # 404s are common for syndicated links and not worth a warning
            if status == 404:
                logger.debug(f"Article page not found: {url}")
            else:
                logger.warning(f"Failed to fetch article page ({status}): {url}")
            return None
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to fetch article page {url}: {e}")
            return None

        return self.extract_from_html(html)
