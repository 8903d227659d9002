"""
Rule-driven extraction of text segments from HTML.
"""

import logging
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

from .rules import AllOf, AnyOf, ContentRule
from .text import element_text


class ContentExtractor:
    """
    Extracts text segments from elements selected by content rules.

    An element is selected when it matches ANY of ``any_rules`` or ALL of
    ``all_rules``. Traversal is depth-first in document order starting at the
    body. A selected element contributes its whole visible text as one
    segment and its children are not visited, so nested matches are never
    captured twice.

    Every element below the root is a candidate, including ``script``,
    ``noscript`` and ``template``. A matched element whose content is code
    (script, style, template) has no visible text and yields no segment.
    """

    def __init__(self, parser: str = 'lxml'):
        self.parser = parser
        self.logger = logging.getLogger(__name__)

    def extract(self, html: Optional[str],
                any_rules: Optional[Iterable[ContentRule]] = None,
                all_rules: Optional[Iterable[ContentRule]] = None) -> List[str]:
        """
        Parse ``html`` and return the extracted segments in document order.

        Returns an empty list for blank HTML or when both rule sets are empty.
        """
        if html is None or not html.strip():
            return []
        any_rules = list(any_rules or [])
        all_rules = list(all_rules or [])
        if not any_rules and not all_rules:
            return []

        soup = BeautifulSoup(html, self.parser)
        return self.extract_from_soup(soup, any_rules, all_rules)

    def extract_from_soup(self, soup: Tag,
                          any_rules: Optional[Iterable[ContentRule]] = None,
                          all_rules: Optional[Iterable[ContentRule]] = None) -> List[str]:
        """Same as ``extract`` for an already parsed document or element."""
        any_match = AnyOf(any_rules or [])
        all_match = AllOf(all_rules or [])
        if not any_match.rules and not all_match.rules:
            return []

        root = soup.body if getattr(soup, 'body', None) is not None else soup
        segments: List[str] = []
        self._traverse(root, any_match, all_match, segments)
        self.logger.debug(f"Extracted {len(segments)} segments")
        return segments

    def _traverse(self, element: Tag, any_match: AnyOf, all_match: AllOf, out: List[str]):
        # iterative to stay clear of the recursion limit on deeply nested pages
        stack = [element]
        while stack:
            node = stack.pop()
            if any_match.matches(node) or all_match.matches(node):
                text = element_text(node)
                if text:
                    out.append(text)
                continue
            children = [child for child in node.children if isinstance(child, Tag)]
            stack.extend(reversed(children))
