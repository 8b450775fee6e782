"""
Single-field extraction from free text.

Each field is described by a priority-ordered table of rules. A rule is a
regex plus a converter; the converter may reject a match (return None), in
which case the next rule is tried. Extractors never raise: they return a
value or None. New patterns are added to the tables, not to the control flow.
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from core.config import KNOWN_VENUES, MAX_PARTY_SIZE, MIN_PARTY_SIZE

T = TypeVar("T")


@dataclass(frozen=True)
class Rule(Generic[T]):
    """One extraction pattern and how to turn its match into a value."""

    pattern: re.Pattern
    convert: Callable[[re.Match], T | None]


def first_match(rules: Iterable[Rule[T]], text: str | None) -> T | None:
    """Evaluate rules in order; the first match whose converter accepts it wins."""
    if not text:
        return None
    for rule in rules:
        match = rule.pattern.search(text)
        if match:
            value = rule.convert(match)
            if value is not None:
                return value
    return None


def _stripped_group(match: re.Match) -> str | None:
    value = match.group(1).strip()
    return value or None


# =============================================================================
# PARTY SIZE
# =============================================================================


def _party_size(match: re.Match) -> int | None:
    size = int(match.group(1))
    if MIN_PARTY_SIZE <= size <= MAX_PARTY_SIZE:
        return size
    return None


# e.g. "Smith Party - 6 guests", "Johnson (4 pax)", "Party of 8", "Tour: Davis, 5"
PARTY_SIZE_RULES = [
    Rule(re.compile(r"(\d+)\s*(?:guests?|pax|people|persons?)", re.I), _party_size),
    Rule(re.compile(r"party\s*(?:of|-)?\s*(\d+)", re.I), _party_size),
    Rule(re.compile(r",\s*(\d+)\s*$", re.M), _party_size),
    Rule(re.compile(r"\((\d+)\)"), _party_size),
    Rule(re.compile(r"for\s+(\d+)", re.I), _party_size),
]


def extract_party_size(text: str | None) -> int | None:
    """Extract a party size in [1, 50]; out-of-range matches fall through."""
    return first_match(PARTY_SIZE_RULES, text)


# =============================================================================
# CUSTOMER NAME
# =============================================================================

TITLE_PREFIX_PATTERN = re.compile(r"^(?:Wine Tour|Tour|WT|Trip)[\s:-]*", re.I)
TITLE_COUNT_SUFFIX_PATTERN = re.compile(r"\s*-\s*\d+\s*(?:guests?|pax|people)?\s*$", re.I)
FIRST_WORD_SPLIT = re.compile(r"[\s\-(\[,]")
CAPITALIZED_WORD = re.compile(r"^[A-Z][a-z]+$")


def is_known_venue(text: str) -> bool:
    """
    Check if text names a gazetteer venue: it contains a full venue name, or
    is a venue's leading word(s) ("Amavi" for "Amavi Cellars").
    """
    lower = text.lower().strip()
    for venue in KNOWN_VENUES:
        venue_lower = venue.lower()
        if venue_lower in lower or venue_lower.startswith(lower + " "):
            return True
    return False


def _customer_name(match: re.Match) -> str | None:
    name = match.group(1).strip()
    if len(name) >= 2 and not is_known_venue(name):
        return name
    return None


NAME_RULES = [
    Rule(
        re.compile(r"^([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\s*(?:Party|Family|Group)", re.I),
        _customer_name,
    ),
    Rule(
        re.compile(r"^(?:Tour|Wine Tour|WT|Trip)[\s:-]*([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)", re.I),
        _customer_name,
    ),
    # Case-sensitive: a lowercase title carries no name
    Rule(re.compile(r"^([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\s*[(\[\-,]"), _customer_name),
    Rule(re.compile(r"^([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"), _customer_name),
]


def clean_title(title: str) -> str:
    """Strip tour prefixes ("Tour:", "WT -") and trailing head counts from a title."""
    cleaned = TITLE_PREFIX_PATTERN.sub("", title)
    cleaned = TITLE_COUNT_SUFFIX_PATTERN.sub("", cleaned)
    return cleaned.strip()


def title_name_prefix(title: str) -> str:
    """First word of the cleaned title, used as the duplicate-check key."""
    cleaned = clean_title(title)
    return FIRST_WORD_SPLIT.split(cleaned, maxsplit=1)[0] if cleaned else ""


def extract_customer_name(title: str | None) -> str | None:
    """Extract the customer name from an event title."""
    if not title:
        return None
    cleaned = clean_title(title)

    name = first_match(NAME_RULES, cleaned)
    if name:
        return name

    # Fallback: a single capitalized first word
    first_word = title_name_prefix(title)
    if first_word and CAPITALIZED_WORD.match(first_word) and not is_known_venue(first_word):
        return first_word
    return None


# =============================================================================
# CONTACT DETAILS
# =============================================================================

PHONE_PATTERN = re.compile(r"(?:\+?1[-.\s]?)?\(?(\d{3})\)?[-.\s]?(\d{3})[-.\s]?(\d{4})")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

PHONE_RULES = [
    Rule(PHONE_PATTERN, lambda m: f"({m.group(1)}) {m.group(2)}-{m.group(3)}"),
]
EMAIL_RULES = [
    Rule(EMAIL_PATTERN, lambda m: m.group(0)),
]


def extract_phone(text: str | None) -> str | None:
    """Extract a North American phone number formatted as (509) 555-1234."""
    return first_match(PHONE_RULES, text)


def extract_email(text: str | None) -> str | None:
    return first_match(EMAIL_RULES, text)


# =============================================================================
# NOTES, REQUESTS, LOCATIONS
# =============================================================================

DRIVER_NOTE_RULES = [
    Rule(re.compile(r"driver\s*notes?[\s:-]*(.+?)(?:\n|$)", re.I), _stripped_group),
    Rule(re.compile(r"notes?\s*for\s*driver[\s:-]*(.+?)(?:\n|$)", re.I), _stripped_group),
    Rule(re.compile(r"special\s*instructions?[\s:-]*(.+?)(?:\n|$)", re.I), _stripped_group),
]

# Every matching rule contributes; these are combined rather than first-wins
SPECIAL_REQUEST_PATTERNS = [
    re.compile(r"special\s*requests?[\s:-]*(.+?)(?:\n|$)", re.I),
    re.compile(r"\brequests?\b[\s:-]*(.+?)(?:\n|$)", re.I),
    re.compile(r"accessibility[\s:-]*(.+?)(?:\n|$)", re.I),
    re.compile(r"dietary[\s:-]*(.+?)(?:\n|$)", re.I),
]

PICKUP_RULES = [
    Rule(re.compile(r"pick[\s-]?up(?:\s+location)?\s*(?:at|from)?[\s:-]+(.+?)(?:\n|$)", re.I), _stripped_group),
]
DROPOFF_RULES = [
    Rule(re.compile(r"drop[\s-]?off(?:\s+location)?\s*(?:at)?[\s:-]+(.+?)(?:\n|$)", re.I), _stripped_group),
]


def extract_driver_notes(text: str | None) -> str | None:
    return first_match(DRIVER_NOTE_RULES, text)


def extract_special_requests(text: str | None) -> str | None:
    """Collect every request-like line, de-duplicated, joined with '; '."""
    if not text:
        return None
    requests: list[str] = []
    for pattern in SPECIAL_REQUEST_PATTERNS:
        match = pattern.search(text)
        if match:
            value = match.group(1).strip()
            if value and value not in requests:
                requests.append(value)
    return "; ".join(requests) if requests else None


def extract_pickup(text: str | None) -> str | None:
    return first_match(PICKUP_RULES, text)


def extract_dropoff(text: str | None) -> str | None:
    return first_match(DROPOFF_RULES, text)


# =============================================================================
# VENUES
# =============================================================================

STOP_PATTERN = re.compile(r"(?:stop|winery|visit)\s*\d+[ \t:-]*([A-Za-z'][A-Za-z' ]*)", re.I)


def extract_venues(text: str | None) -> list[str]:
    """
    Extract stops: gazetteer venues by case-insensitive substring, then
    unlisted venues written as "Stop N: <name>".
    """
    if not text:
        return []
    lower = text.lower()
    found = [venue for venue in KNOWN_VENUES if venue.lower() in lower]

    seen = {venue.lower() for venue in found}
    for match in STOP_PATTERN.finditer(text):
        name = match.group(1).strip()
        if name and name.lower() not in seen:
            found.append(name)
            seen.add(name.lower())
    return found
