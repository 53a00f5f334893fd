"""
Backend-neutral query description.

A :class:`DocumentQuery` is interpreted by both backends: ``filters`` are
ANDed equality matches, ``any_of`` is a disjunction of equality groups and
``text`` is a keyword search over the entity's searchable fields.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class DocumentQuery:
    filters: Dict[str, Any] = field(default_factory=dict)
    any_of: List[Dict[str, Any]] = field(default_factory=list)
    text: Optional[str] = None

    def matches(self, document: Dict[str, Any], text_fields: Iterable[str] = ()) -> bool:
        """Evaluate the query against an in-memory document."""
        for key, expected in self.filters.items():
            if document.get(key) != expected:
                return False

        if self.any_of and not any(
            all(document.get(key) == expected for key, expected in group.items())
            for group in self.any_of
        ):
            return False

        if self.text:
            return _text_matches(document, self.text, text_fields)
        return True


@dataclass
class FindOptions:
    sort_by: Optional[str] = None
    descending: bool = False
    skip: int = 0
    limit: Optional[int] = None


def _text_matches(document: Dict[str, Any], text: str, text_fields: Iterable[str]) -> bool:
    needle = text.strip().lower()
    if not needle:
        return True
    for name in text_fields:
        value = document.get(name)
        candidates = value if isinstance(value, list) else [value]
        for candidate in candidates:
            if isinstance(candidate, str) and needle in candidate.lower():
                return True
    return False
