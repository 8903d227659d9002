"""
Visible-text helpers for parsed HTML elements.
"""

from bs4 import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag
from bs4.element import Script, Stylesheet, TemplateString

NON_VISIBLE_TAGS = frozenset({'script', 'style', 'noscript', 'template', 'head'})

# Elements whose boundaries separate words even without whitespace in the source.
BLOCK_TAGS = frozenset({
    'address', 'article', 'aside', 'blockquote', 'br', 'dd', 'div', 'dl', 'dt',
    'fieldset', 'figcaption', 'figure', 'footer', 'form', 'h1', 'h2', 'h3', 'h4',
    'h5', 'h6', 'header', 'hr', 'li', 'main', 'nav', 'ol', 'p', 'pre', 'section',
    'table', 'tbody', 'td', 'tfoot', 'th', 'thead', 'tr', 'ul',
})

# script, style and template bodies are code, never visible text
_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction,
                    Script, Stylesheet, TemplateString)


def element_text(element) -> str:
    """
    Visible text of an element with whitespace collapsed and trimmed.

    Returns an empty string for None.
    """
    if element is None:
        return ""
    if isinstance(element, NavigableString):
        return " ".join(str(element).split())

    parts = []
    _collect(element, parts)
    return " ".join("".join(parts).split())


def _collect(tag: Tag, parts: list):
    for child in tag.children:
        if isinstance(child, NavigableString):
            if not isinstance(child, _SKIPPED_STRINGS):
                parts.append(str(child))
            continue
        if not isinstance(child, Tag) or child.name in NON_VISIBLE_TAGS:
            continue
        block = child.name in BLOCK_TAGS
        if block:
            parts.append(" ")
        _collect(child, parts)
        if block:
            parts.append(" ")
