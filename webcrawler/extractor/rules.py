"""
Content rules: pure predicates over parsed HTML elements.

Every rule exposes ``matches(element) -> bool`` and returns False for None.
Rules can be combined with ``any_of`` and ``all_of``.
"""

from typing import Callable, Iterable, Optional, Protocol, runtime_checkable

from bs4 import Tag

from .text import element_text


@runtime_checkable
class ContentRule(Protocol):
    """Anything with a ``matches(element) -> bool`` method."""

    def matches(self, element: Optional[Tag]) -> bool:
        ...


def _require_text(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{name} must not be empty")
    return value.strip()


class MinCharacterRule:
    """Matches elements whose trimmed visible text has at least ``min_chars`` characters."""

    def __init__(self, min_chars: int):
        self.min_chars = max(0, int(min_chars))

    def matches(self, element: Optional[Tag]) -> bool:
        if element is None:
            return False
        return len(element_text(element)) >= self.min_chars

    def __repr__(self):
        return f"MinCharacterRule({self.min_chars})"


class TagNameRule:
    """Matches elements by tag name, case-insensitively."""

    def __init__(self, tag_name: str):
        self.tag_name = _require_text(tag_name, "tag_name")
        self._tag_name_lower = self.tag_name.lower()

    def matches(self, element: Optional[Tag]) -> bool:
        if element is None or not getattr(element, 'name', None):
            return False
        return element.name.lower() == self._tag_name_lower

    def __repr__(self):
        return f"TagNameRule({self.tag_name!r})"


class ClassNameRule:
    """Matches elements carrying ``class_name`` as one of their class tokens (case-sensitive)."""

    def __init__(self, class_name: str):
        self.class_name = _require_text(class_name, "class_name")

    def matches(self, element: Optional[Tag]) -> bool:
        if element is None or not isinstance(element, Tag):
            return False
        classes = element.get('class') or []
        if isinstance(classes, str):
            classes = classes.split()
        return self.class_name in classes

    def __repr__(self):
        return f"ClassNameRule({self.class_name!r})"


class ElementStyleRule:
    """Matches elements whose inline ``style`` contains a fragment, case-insensitively."""

    def __init__(self, style_fragment: str):
        self.style_fragment = _require_text(style_fragment, "style_fragment")
        self._fragment_lower = self.style_fragment.lower()

    def matches(self, element: Optional[Tag]) -> bool:
        if element is None or not isinstance(element, Tag):
            return False
        style = element.get('style')
        if not style or not style.strip():
            return False
        return self._fragment_lower in style.lower()

    def __repr__(self):
        return f"ElementStyleRule({self.style_fragment!r})"


class PredicateRule:
    """Adapts a plain function into a rule."""

    def __init__(self, predicate: Callable[[Tag], bool]):
        self.predicate = predicate

    def matches(self, element: Optional[Tag]) -> bool:
        if element is None:
            return False
        return bool(self.predicate(element))


class AnyOf:
    """Matches when at least one child rule matches. Empty never matches."""

    def __init__(self, rules: Iterable[ContentRule]):
        self.rules = tuple(r for r in rules if r is not None)

    def matches(self, element: Optional[Tag]) -> bool:
        if element is None:
            return False
        return any(rule.matches(element) for rule in self.rules)


class AllOf:
    """Matches when every child rule matches. Empty never matches."""

    def __init__(self, rules: Iterable[ContentRule]):
        rules = list(rules)
        self.rules = tuple(rules)
        self._has_missing = any(r is None for r in rules)

    def matches(self, element: Optional[Tag]) -> bool:
        if element is None or not self.rules or self._has_missing:
            return False
        return all(rule.matches(element) for rule in self.rules)


def any_of(*rules: ContentRule) -> AnyOf:
    return AnyOf(rules)


def all_of(*rules: ContentRule) -> AllOf:
    return AllOf(rules)
