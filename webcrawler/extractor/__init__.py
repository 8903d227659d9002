"""
Rule-based content extraction.
"""

from .content_extractor import ContentExtractor
from .rules import (
    ContentRule, MinCharacterRule, TagNameRule, ClassNameRule, ElementStyleRule,
    PredicateRule, AnyOf, AllOf, any_of, all_of
)
from .text import element_text

__all__ = [
    'ContentExtractor',
    'ContentRule', 'MinCharacterRule', 'TagNameRule', 'ClassNameRule', 'ElementStyleRule',
    'PredicateRule', 'AnyOf', 'AllOf', 'any_of', 'all_of',
    'element_text'
]
