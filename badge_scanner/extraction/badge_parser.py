"""Heuristic field extraction from raw badge OCR text.

The badge layout is only known approximately, so parsing works from
landmark lines (the ``AREA`` line and the ``PT ...`` company line) and
derives the other fields by relative position. Extraction never raises:
fields that cannot be resolved are left unresolved and render as their
sentinel value.

The access-area rule collects every capital letter between the area line
and the name line. Stray OCR capitals in that zone become false codes;
this over-collection is intentional and matches the badges it was tuned
on.
"""

import re

from badge_scanner.utils.logger import get_logger

from .landmarks import (
    DEFAULT_NAME_LOCATORS,
    NameLocator,
    find_first,
    is_authority_line,
    is_location_line,
    locate_landmarks,
)
from .record import (
    DEFAULT_AUTHORITY,
    DEFAULT_LOCATION,
    NO_EXPIRY,
    BadgeExtraction,
    BadgeField,
)

logger = get_logger(__name__)

MAX_LINE_LENGTH = 50
MAX_TOKEN_LENGTH = 8

# Known OCR misreads; a company containing the key is replaced outright.
COMPANY_CORRECTIONS: dict[str, str] = {
    "PT ANGKAS": "PT ANGKASA PURA",
    "ANGKASA PU": "PT ANGKASA PURA",
    "KANTOM": "KANTOR",
}
ID_PREFIX_FIX = ("BAPSTN", "B.AP.STN")

_EDGE_NOISE = re.compile(r"^[=:\-_\s]+|[=\-_\s]+$")
_AUTHORITY_GARBLE = re.compile(r"^(Co|Lo)\s", re.IGNORECASE)
_LOCATION_GARBLE = re.compile(r"^[/\s(0;):]+")
_EXPIRY_PATTERN = re.compile(
    r"\d{1,2}\s+(JAN|FEB|MAR|APR|MEI|JUN|JUL|AGU|SEP|OKT|NOV|DES)\s+\d{4}",
    re.IGNORECASE,
)
_ID_CANDIDATE = re.compile(r"\b([A-Z\s.]*\d[\d.]*)", re.IGNORECASE)
_ID_TRAILING_GARBAGE = re.compile(r"\s{2,}|[a-z]{3,}")
_ALPHA_TOKEN = re.compile(r"[A-Z]+", re.IGNORECASE)


def split_lines(text: str) -> list[str]:
    """Trimmed OCR lines, without empty or overlong (garbage) lines."""
    lines = (line.strip() for line in text.split("\n"))
    return [line for line in lines if 0 < len(line) < MAX_LINE_LENGTH]


def clean_line(line: str) -> str:
    """Strip separator noise (``=``, ``:``, ``-``, ``_``) from both ends."""
    return _EDGE_NOISE.sub("", line).strip()


def _is_garbage_token(token: str) -> bool:
    return not _ALPHA_TOKEN.fullmatch(token) or len(token) > MAX_TOKEN_LENGTH


def clean_trailing_tokens(value: str | None) -> str:
    """Drop trailing OCR garbage tokens, always keeping the first token.

    A token is garbage when it is not purely alphabetic or is longer than
    eight characters.
    """
    if not value:
        return ""
    words = value.split()
    while len(words) > 1 and _is_garbage_token(words[-1]):
        words.pop()
    return " ".join(words)


def extract_access_areas(lines: list[str]) -> tuple[str, ...]:
    """Distinct capital letters in first-appearance order."""
    areas: list[str] = []
    for line in lines:
        for char in line:
            if "A" <= char <= "Z" and char not in areas:
                areas.append(char)
    return tuple(areas)


def extract_expiry(line: str) -> str | None:
    match = _EXPIRY_PATTERN.search(line)
    return match.group(0).upper() if match else None


def extract_id_candidate(line: str) -> str | None:
    """Dot-segmented ID number on a line, or ``None``.

    The candidate is cut at the first double space or lowercase run, then
    all whitespace is removed. It must contain at least two periods and be
    longer than ten characters.
    """
    match = _ID_CANDIDATE.search(line)
    if not match:
        return None
    candidate = _ID_TRAILING_GARBAGE.split(match.group(0))[0]
    candidate = re.sub(r"\s", "", candidate)
    if candidate.count(".") >= 2 and len(candidate) > 10:
        return candidate
    return None


def correct_company(company: str) -> str:
    for misread, fixed in COMPANY_CORRECTIONS.items():
        if misread in company.upper():
            company = fixed
    return company


def correct_id_number(id_number: str) -> str:
    misread, fixed = ID_PREFIX_FIX
    if id_number.startswith(misread):
        return id_number.replace(misread, fixed, 1)
    return id_number


class BadgeParser:
    """Parses badge OCR text into structured fields.

    Args:
        name_locators: Strategies for finding the name line, tried in order.
    """

    def __init__(
        self, name_locators: tuple[NameLocator, ...] = DEFAULT_NAME_LOCATORS
    ) -> None:
        self.name_locators = name_locators

    def extract(self, text: str) -> BadgeExtraction:
        """Extract badge fields from raw OCR text.

        Args:
            text: Newline-separated OCR output.

        Returns:
            Badge extraction with every field either resolved or sentinel.
        """
        lines = split_lines(text)
        marks = locate_landmarks(lines, self.name_locators)

        access_areas = extract_access_areas([lines[i] for i in marks.access_zone()])

        authority = None
        index = find_first(lines, is_authority_line)
        if index is not None:
            authority = _AUTHORITY_GARBLE.sub("", clean_line(lines[index]), count=1)

        location = None
        index = find_first(lines, is_location_line)
        if index is not None:
            location = _LOCATION_GARBLE.sub("", clean_line(lines[index]), count=1)

        expiry = extract_expiry(lines[marks.area]) if marks.area is not None else None

        used: set[int] = set()
        company = position = name = None
        if marks.company is not None:
            company = clean_line(lines[marks.company])
            used.add(marks.company)
            above = marks.company - 1
            if above >= 0 and above not in used:
                position = clean_line(lines[above])
                used.add(above)
            above = marks.company - 2
            if above >= 0 and above not in used:
                name = clean_line(lines[above])
                used.add(above)

        id_number = None
        for i in range(len(lines) - 1, -1, -1):
            if i in used:
                continue
            id_number = extract_id_candidate(lines[i])
            if id_number:
                break

        name = clean_trailing_tokens(name)
        position = clean_trailing_tokens(position)
        company = clean_trailing_tokens(company)
        if company:
            company = correct_company(company)
        if id_number:
            id_number = correct_id_number(id_number)

        extraction = BadgeExtraction(
            issuing_authority=BadgeField.of(authority, DEFAULT_AUTHORITY),
            location=BadgeField.of(location, DEFAULT_LOCATION),
            expiry_date=BadgeField.of(expiry, NO_EXPIRY),
            access_areas=access_areas,
            name=BadgeField.of(name),
            position=BadgeField.of(position),
            company=BadgeField.of(company),
            id_number=BadgeField.of(id_number),
        )
        logger.info(
            "Parsed badge from %d lines: %d access areas, missing %s",
            len(lines),
            len(access_areas),
            extraction.missing_required() or "nothing",
        )
        return extraction


def parse_badge_text(text: str) -> BadgeExtraction:
    """Parse OCR text with the default layout strategies."""
    return BadgeParser().extract(text)
