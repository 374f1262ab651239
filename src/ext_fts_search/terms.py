"""Query term compilation and whole-word term matching.

A query term is literal text where ``*`` stands for any sequence of
characters. Every term also ends with an implicit ``*``, so a bare term
matches as a prefix: ``fo*`` and ``fo`` both match ``foobar``.
"""

import re
from dataclasses import dataclass, field
from typing import List, Tuple

WILDCARD = "*"

# Characters that need escaping in the index's regex dialect
_REGEX_META = re.compile(r"([\\.+*?()|\[\]{}^$])")


@dataclass(frozen=True)
class QueryTerm:
    """One whitespace-delimited token of a search string."""

    text: str
    segments: Tuple[str, ...] = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        text = self.text.lower()
        object.__setattr__(self, "text", text)
        object.__setattr__(self, "segments", tuple(text.split(WILDCARD)))

    @property
    def prefix(self) -> str:
        """Literal text before the first wildcard."""
        return self.segments[0]

    @property
    def regex(self) -> str:
        """Equivalent anchored pattern over lower-cased index words."""
        literals = [_REGEX_META.sub(r"\\\1", s) for s in self.segments]
        return ".*".join(literals) + ".*"

    def matches_word(self, word: str) -> bool:
        """True if the whole lower-cased ``word`` matches this term."""
        word = word.lower()
        if not word.startswith(self.prefix):
            return False
        position = len(self.prefix)
        for segment in self.segments[1:]:
            found = word.find(segment, position)
            if found < 0:
                return False
            position = found + len(segment)
        return True

    def matches(self, field_value: str) -> bool:
        """True if any whitespace-separated word of ``field_value`` matches."""
        return any(self.matches_word(word) for word in field_value.split())

    def __str__(self) -> str:
        return self.text


def split_search_term(search_term: str) -> List[str]:
    """Split a raw search string into its whitespace-delimited tokens."""
    return (search_term or "").split()


def parse_query_terms(search_term: str) -> List[QueryTerm]:
    """Compile a raw search string into distinct query terms, in query order."""
    terms = (QueryTerm(token) for token in split_search_term(search_term))
    return list(dict.fromkeys(terms))
