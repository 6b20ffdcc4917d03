"""Landmark rules for locating badge fields in OCR lines.

Every rule that recognizes a line's role is a small named predicate.
The name line is found by a list of locator strategies tried in order,
so a new badge layout can add its own locator without touching the
others.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from badge_scanner.utils.logger import get_logger

logger = get_logger(__name__)

LinePredicate = Callable[[str], bool]

_NAME_EXCLUDED_WORDS = ("HEAD", "CENTER")


def is_area_line(line: str) -> bool:
    return "AREA" in line.upper()


def is_company_line(line: str) -> bool:
    return line.upper().startswith("PT")


def is_authority_line(line: str) -> bool:
    return "OTORITAS" in line.upper()


def is_location_line(line: str) -> bool:
    return "BANDAR UDARA" in line.upper()


def looks_like_name(line: str) -> bool:
    """Two to four words, at least one longer than two characters.

    Lines that read like a company or a job title (``PT ...``, ``HEAD``,
    ``CENTER``) are rejected, as are letter runs such as ``A B C``.
    """
    words = line.split()
    if not 2 <= len(words) <= 4:
        return False
    if not any(len(word) > 2 for word in words):
        return False
    upper = line.upper()
    if upper.startswith("PT"):
        return False
    return not any(excluded in upper for excluded in _NAME_EXCLUDED_WORDS)


def find_first(
    lines: Sequence[str], predicate: LinePredicate, start: int = 0
) -> int | None:
    """Index of the first line at or after ``start`` matching ``predicate``."""
    for index in range(max(start, 0), len(lines)):
        if predicate(lines[index]):
            return index
    return None


@dataclass(frozen=True)
class Landmarks:
    """Anchor line indices; ``None`` when the anchor was not found."""

    area: int | None
    company: int | None
    name: int | None

    def access_zone(self) -> range:
        """Line indices strictly between the area and name anchors."""
        if self.area is None or self.name is None or self.area >= self.name:
            return range(0)
        return range(self.area + 1, self.name)


class NameLocator(ABC):
    """Strategy for finding the name line once area and company are known."""

    @abstractmethod
    def locate(
        self, lines: Sequence[str], area: int | None, company: int | None
    ) -> int | None:
        """Index of the name line, or ``None`` if this layout does not apply."""


class CompanyOffsetNameLocator(NameLocator):
    """The name sits two lines above the company line."""

    def locate(
        self, lines: Sequence[str], area: int | None, company: int | None
    ) -> int | None:
        if company is not None and company > 1:
            return company - 2
        return None


class NameShapeLocator(NameLocator):
    """First name-shaped line below the area line (or anywhere, without one)."""

    def locate(
        self, lines: Sequence[str], area: int | None, company: int | None
    ) -> int | None:
        start = 0 if area is None else area + 1
        return find_first(lines, looks_like_name, start)


DEFAULT_NAME_LOCATORS: tuple[NameLocator, ...] = (
    CompanyOffsetNameLocator(),
    NameShapeLocator(),
)


def locate_landmarks(
    lines: Sequence[str],
    name_locators: Sequence[NameLocator] = DEFAULT_NAME_LOCATORS,
) -> Landmarks:
    """Find the area, company and name anchors in filtered OCR lines.

    Args:
        lines: Trimmed, non-empty OCR lines.
        name_locators: Name strategies, tried in order until one succeeds.

    Returns:
        Landmarks with the anchor indices.
    """
    area = find_first(lines, is_area_line)
    company = find_first(lines, is_company_line)

    name = None
    for locator in name_locators:
        name = locator.locate(lines, area, company)
        if name is not None:
            logger.debug("Name line %d found by %s", name, type(locator).__name__)
            break

    return Landmarks(area=area, company=company, name=name)
