"""
Web page parser for extracting metadata, body text and links.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup, Comment

from ..errors import ParseError
from ..extractor.text import element_text
from .url_utils import resolve_link


@dataclass
class ParsedPage:
    """Container for a parsed web page."""
    url: str
    soup: BeautifulSoup
    title: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    text: str = ""
    links: List[str] = field(default_factory=list)


class ContentParser:
    """
    Parses HTML into a BeautifulSoup tree and pulls out page metadata and
    normalized outgoing links.
    """

    def __init__(self, parser: str = 'lxml'):
        self.parser = parser
        self.logger = logging.getLogger(__name__)

        self.whitespace_pattern = re.compile(r'\s+')

    def parse(self, url: str, html_content: Optional[str]) -> ParsedPage:
        """
        Parse HTML content and extract structured data.

        Args:
            url: The URL the content was served from, used to resolve links
            html_content: Raw HTML content

        Returns:
            ParsedPage with the parsed tree and extracted data

        Raises:
            ParseError: if the content cannot be parsed
        """
        try:
            soup = BeautifulSoup(html_content or "", self.parser)

            # Remove comments
            for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
                comment.extract()

            page = ParsedPage(url=url, soup=soup)

            self._extract_title(soup, page)
            self._extract_meta_tags(soup, page)
            self._extract_language(soup, page)
            self._extract_body_text(soup, page)
            self._extract_links(soup, page, url)

        except Exception as e:
            self.logger.error(f"Error parsing content from {url}: {e}")
            raise ParseError(url, str(e)) from e

        self.logger.debug(f"Parsed {url}: {len(page.text)} chars, {len(page.links)} links")
        return page

    def _extract_title(self, soup: BeautifulSoup, page: ParsedPage):
        """Extract page title."""
        title_tag = soup.find('title')
        if title_tag:
            page.title = self._clean_text(title_tag.get_text())

    def _extract_meta_tags(self, soup: BeautifulSoup, page: ParsedPage):
        """Extract the meta description."""
        meta_desc = soup.find('meta', attrs={'name': 'description'}) or \
                   soup.find('meta', attrs={'property': 'og:description'})
        if meta_desc:
            description = self._clean_text(meta_desc.get('content', ''))
            page.description = description or None

    def _extract_language(self, soup: BeautifulSoup, page: ParsedPage):
        """Copy the declared page language."""
        html_tag = soup.find('html')
        if html_tag:
            page.language = html_tag.get('lang') or html_tag.get('xml:lang')

    def _extract_body_text(self, soup: BeautifulSoup, page: ParsedPage):
        """Extract the visible text of the body."""
        body = soup.body
        page.text = element_text(body) if body is not None else ""

    def _extract_links(self, soup: BeautifulSoup, page: ParsedPage, base_url: str):
        """Extract and normalize anchor targets, keeping document order."""
        links = []
        seen = set()

        for anchor in soup.find_all('a', href=True):
            normalized = resolve_link(base_url, anchor['href'])
            if normalized is None or normalized in seen:
                continue
            seen.add(normalized)
            links.append(normalized)

        page.links = links

    def _clean_text(self, text: str) -> str:
        """Collapse whitespace."""
        if not text:
            return ""
        return self.whitespace_pattern.sub(' ', text.strip())
