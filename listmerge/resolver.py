# listmerge/resolver.py

"""
Header resolution: decide which template describes a file, based on its first
row and its last non-blank row.
"""
import logging
from typing import Iterable, List, Optional, Sequence

from .models import HeaderDefinition, HeaderPosition
from .utils import last_non_blank_index, normalize_row

logger = logging.getLogger(__name__)

UNKNOWN_PREFIX = "Unknown_"
EMPTY_HEADER_NAME = "Empty"


def _candidate(definition: HeaderDefinition, first: List[str], last: List[str]) -> List[str]:
    return last if definition.header_position is HeaderPosition.LAST else first


def unknown_header(length: int) -> HeaderDefinition:
    # Files of equal width with no matching template share this bucket.
    return HeaderDefinition.placeholder(f"{UNKNOWN_PREFIX}{length}")


def empty_header() -> HeaderDefinition:
    return HeaderDefinition.placeholder(EMPTY_HEADER_NAME)


def choose_header(
    first_row: Optional[Sequence[str]],
    last_row: Optional[Sequence[str]],
    headers: Iterable[HeaderDefinition],
) -> HeaderDefinition:
    """
    Pick the template for a file. First match wins:

    1. exact match of the template labels against its candidate row
       (first row for FIRST templates, last row for LAST templates)
    2. match against one of the template's alias label sets
    3. the only template whose label count equals its candidate row's length
    4. an ``Unknown_<n>`` placeholder, n being the first row's length

    All comparisons use normalized rows (trimmed, lower-cased, trailing blanks dropped).
    """
    headers = list(headers)
    first = normalize_row(first_row)
    last = normalize_row(last_row)

    for definition in headers:
        if normalize_row(definition.headers) == _candidate(definition, first, last):
            logger.debug("Header '%s' matched exactly", definition.name)
            return definition

    for definition in headers:
        if not definition.header_aliases:
            continue
        candidate = _candidate(definition, first, last)
        if any(normalize_row(alias) == candidate for alias in definition.header_aliases):
            logger.debug("Header '%s' matched via alias", definition.name)
            return definition

    same_length = [
        d for d in headers
        if len(normalize_row(d.headers)) == len(_candidate(d, first, last))
    ]
    if len(same_length) == 1:
        logger.info("Header '%s' chosen by unique column count %d",
                    same_length[0].name, len(normalize_row(same_length[0].headers)))
        return same_length[0]

    logger.warning("No header template matches a row of %d columns; using '%s%d'",
                   len(first), UNKNOWN_PREFIX, len(first))
    return unknown_header(len(first))


def resolve_rows(rows: Sequence[Sequence[str]], headers: Iterable[HeaderDefinition]):
    """
    Resolve the template of a whole file.

    Returns:
        (definition, header_index, last_index). header_index is the row to skip
        as the header (-1 for an empty file); last_index is the last non-blank row.
    """
    last_index = last_non_blank_index(rows)
    if last_index < 0:
        return empty_header(), -1, -1

    definition = choose_header(rows[0], rows[last_index], headers)
    header_index = last_index if definition.header_position is HeaderPosition.LAST else 0
    return definition, header_index, last_index
