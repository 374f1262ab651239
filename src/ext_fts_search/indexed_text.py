"""
Indexed Text Format

The index stores, per entity, the text it was built from as a sequence of
field name/value pairs:

    ^^fieldName fieldValue ^^fieldName fieldValue ^^fieldName fieldValue

Field names are ``\\w+`` tokens. A value runs until the next ``^^`` marker or
the end of the string and keeps its trailing whitespace.
"""

import re
from typing import Iterable, Iterator, Mapping, Optional, Tuple, Union

FIELD_MARKER = "^^"

FIELD_VALUE_PATTERN = re.compile(r"\^\^(\w+)\s+((?:[^^]|\^(?!\^))+)")


def parse_indexed_text(text: Optional[str]) -> Iterator[Tuple[str, str]]:
    """Yield ``(field_name, field_value)`` pairs found in indexed text.

    Empty or malformed text yields nothing.
    """
    if not text:
        return
    for match in FIELD_VALUE_PATTERN.finditer(text):
        yield match.group(1), match.group(2)


def format_indexed_text(
    fields: Union[Mapping[str, str], Iterable[Tuple[str, str]]]
) -> str:
    """Build indexed text from field name/value pairs.

    Values containing the field marker are split on it, since the marker
    would otherwise start a new field.
    """
    pairs = fields.items() if isinstance(fields, Mapping) else fields
    parts = []
    for name, value in pairs:
        value = " ".join(str(value).replace(FIELD_MARKER, " ").split())
        if not value:
            continue
        parts.append(f"{FIELD_MARKER}{name} {value} ")
    return "".join(parts)
