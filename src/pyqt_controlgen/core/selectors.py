"""
Simple selector matching shared by all render targets.

Supports compound selectors without combinators, which is what event
delegation and node queries need:

    button            tag
    #cart-body        id attribute
    .remove-item      class
    [data-index]      attribute presence
    [data-method=cash] attribute value (quotes optional)
    button.remove-item[data-index="2"], .tab-button   alternatives
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Mapping, Optional, Tuple

_TAG = re.compile(r"\*|[a-zA-Z][\w-]*")
_PART = re.compile(
    r"#(?P<id>[\w-]+)"
    r"|\.(?P<cls>[\w-]+)"
    r"|\[\s*(?P<attr>[\w-]+)\s*(?:=\s*(?P<val>\"[^\"]*\"|'[^']*'|[^\]\s]+)\s*)?\]"
)


@dataclass(frozen=True)
class CompoundSelector:
    """One parsed compound selector (no combinators)."""

    tag: Optional[str] = None
    id: Optional[str] = None
    classes: Tuple[str, ...] = ()
    attributes: Tuple[Tuple[str, Optional[str]], ...] = ()

    def matches(self, tag: str, attributes: Mapping[str, str], classes: Iterable[str]) -> bool:
        if self.tag not in (None, "*") and self.tag.lower() != (tag or "").lower():
            return False
        if self.id is not None and attributes.get("id") != self.id:
            return False
        if self.classes:
            node_classes = set(classes)
            if not all(cls in node_classes for cls in self.classes):
                return False
        for name, value in self.attributes:
            if name not in attributes:
                return False
            if value is not None and str(attributes[name]) != value:
                return False
        return True


def _parse_compound(text: str) -> CompoundSelector:
    pos = 0
    tag = None
    tag_match = _TAG.match(text)
    if tag_match:
        tag = tag_match.group(0)
        pos = tag_match.end()

    node_id = None
    classes = []
    attributes = []
    while pos < len(text):
        part = _PART.match(text, pos)
        if part is None:
            raise ValueError(f"Invalid selector: {text!r}")
        if part.group("id"):
            node_id = part.group("id")
        elif part.group("cls"):
            classes.append(part.group("cls"))
        else:
            value = part.group("val")
            if value is not None and value[:1] in ("'", '"'):
                value = value[1:-1]
            attributes.append((part.group("attr"), value))
        pos = part.end()

    if tag is None and node_id is None and not classes and not attributes:
        raise ValueError(f"Invalid selector: {text!r}")
    return CompoundSelector(tag, node_id, tuple(classes), tuple(attributes))


@lru_cache(maxsize=256)
def parse_selector(selector: str) -> Tuple[CompoundSelector, ...]:
    """
    Parse a selector group into compound selectors.

    Raises:
        ValueError: If the selector is empty or uses unsupported syntax
    """
    parts = [part.strip() for part in selector.split(",")]
    if not selector.strip() or not all(parts):
        raise ValueError(f"Invalid selector: {selector!r}")
    return tuple(_parse_compound(part) for part in parts)


def matches_selector(selector: str, tag: str, attributes: Mapping[str, str],
                     classes: Iterable[str]) -> bool:
    """Return True if a node described by tag/attributes/classes matches selector."""
    classes = tuple(classes)
    return any(compound.matches(tag, attributes, classes) for compound in parse_selector(selector))
