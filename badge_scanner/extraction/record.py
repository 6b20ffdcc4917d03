"""Badge field types and the durable identity record.

The parser produces a :class:`BadgeExtraction` whose fields each know
whether they were actually read from the badge. Sentinel text only
appears when a record is rendered, so a badge that literally says
"Not Found" is still told apart from a missing field.
"""

from dataclasses import dataclass, field, fields

from pydantic import BaseModel, ConfigDict

NOT_FOUND = "Not Found"
NO_EXPIRY = "N/A"
DEFAULT_AUTHORITY = "KANTOR OTORITAS"
DEFAULT_LOCATION = "BANDAR UDARA"

REQUIRED_FIELDS = ("name", "id_number")


@dataclass(frozen=True)
class BadgeField:
    """A parsed value, or the sentinel shown when nothing was parsed."""

    value: str | None
    default: str = NOT_FOUND

    @property
    def resolved(self) -> bool:
        return self.value is not None

    @property
    def text(self) -> str:
        return self.value if self.value is not None else self.default

    @classmethod
    def of(cls, value: str | None, default: str = NOT_FOUND) -> "BadgeField":
        """Build a field, treating empty strings as unresolved."""
        return cls(value or None, default)


def _field(default: str = NOT_FOUND) -> BadgeField:
    return field(default_factory=lambda: BadgeField(None, default))


@dataclass(frozen=True)
class BadgeExtraction:
    """Structured fields parsed from one badge's OCR text."""

    issuing_authority: BadgeField = _field(DEFAULT_AUTHORITY)
    location: BadgeField = _field(DEFAULT_LOCATION)
    expiry_date: BadgeField = _field(NO_EXPIRY)
    access_areas: tuple[str, ...] = ()
    name: BadgeField = _field()
    position: BadgeField = _field()
    company: BadgeField = _field()
    id_number: BadgeField = _field()

    def missing_required(self) -> list[str]:
        """Names of required fields that were not resolved."""
        return [name for name in REQUIRED_FIELDS if not getattr(self, name).resolved]

    @property
    def is_complete(self) -> bool:
        return not self.missing_required()

    def to_dict(self) -> dict[str, object]:
        """Render every field, substituting sentinels for unresolved ones."""
        data: dict[str, object] = {}
        for item in fields(self):
            key, value = item.name, getattr(self, item.name)
            if key == "access_areas":
                data[key] = list(value)
            else:
                data[key] = value.text
        return data

    def to_record(self, scan_area: str, scan_timestamp: int) -> "IdentityRecord":
        """Attach scan metadata and freeze the result as an identity record.

        Args:
            scan_area: Checkpoint or area where the badge was scanned.
            scan_timestamp: Scan time in milliseconds since the epoch.
        """
        return IdentityRecord(
            **self.to_dict(), scan_area=scan_area, scan_timestamp=scan_timestamp
        )


class IdentityRecord(BaseModel):
    """A completed badge scan, as persisted and served over the API."""

    model_config = ConfigDict(frozen=True)

    issuing_authority: str = DEFAULT_AUTHORITY
    location: str = DEFAULT_LOCATION
    expiry_date: str = NO_EXPIRY
    access_areas: list[str] = []
    name: str = NOT_FOUND
    position: str = NOT_FOUND
    company: str = NOT_FOUND
    id_number: str = NOT_FOUND
    scan_area: str
    scan_timestamp: int
