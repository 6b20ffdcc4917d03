"""Day-keyed JSON storage for scanned identity records.

Each calendar day (local time of the scan) gets one file holding the
records of that day, newest first.
"""

from collections import Counter
from datetime import datetime
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from badge_scanner.extraction.record import IdentityRecord
from badge_scanner.utils.logger import get_logger

logger = get_logger(__name__)

STORAGE_PREFIX = "scan_data_"
UNKNOWN_AREA = "Unknown"

_RECORDS = TypeAdapter(list[IdentityRecord])


def day_key(scan_timestamp: int) -> str:
    """``YYYY-MM-DD`` of a millisecond timestamp in local time."""
    return datetime.fromtimestamp(scan_timestamp / 1000).strftime("%Y-%m-%d")


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _newest_first(records: list[IdentityRecord]) -> list[IdentityRecord]:
    return sorted(records, key=lambda r: r.scan_timestamp, reverse=True)


def count_by_area(records: list[IdentityRecord]) -> dict[str, int]:
    """Number of scans per scan area, busiest area first.

    Areas with equal counts keep the order in which they first appear.
    """
    counts = Counter(record.scan_area or UNKNOWN_AREA for record in records)
    return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))


class ScanStore:
    """File-backed store of identity records, one JSON file per day.

    Args:
        directory: Folder holding the day files. Created on first save.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path_for(self, scan_timestamp: int) -> Path:
        return self.directory / f"{STORAGE_PREFIX}{day_key(scan_timestamp)}.json"

    def _read(self, path: Path) -> list[IdentityRecord]:
        return _RECORDS.validate_json(path.read_bytes())

    def save(self, record: IdentityRecord) -> None:
        """Append a record to its day file, keeping the file sorted.

        Raises:
            OSError: If the day file cannot be written.
            pydantic.ValidationError: If the existing day file is corrupt.
        """
        path = self.path_for(record.scan_timestamp)
        records = self._read(path) if path.exists() else []
        records.append(record)

        self.directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(_RECORDS.dump_json(_newest_first(records), indent=2))
        logger.info("Saved scan of %s to %s", record.id_number, path.name)

    def load(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        scan_area: str | None = None,
    ) -> list[IdentityRecord]:
        """Load records from every day file, newest first.

        Args:
            start: Earliest scan time to include. Defaults to the epoch.
            end: Latest scan time to include. Defaults to now.
            scan_area: Only include scans from this area (exact match).

        Returns:
            Matching records sorted by scan time, descending.
        """
        records: list[IdentityRecord] = []
        if self.directory.is_dir():
            for path in sorted(self.directory.glob(f"{STORAGE_PREFIX}*.json")):
                try:
                    records.extend(self._read(path))
                except (OSError, ValidationError) as exc:
                    logger.error("Skipping unreadable scan file %s: %s", path, exc)

        if start is not None or end is not None:
            low = _to_ms(start) if start is not None else 0
            high = _to_ms(end) if end is not None else _to_ms(datetime.now())
            records = [r for r in records if low <= r.scan_timestamp <= high]

        if scan_area is not None:
            records = [r for r in records if r.scan_area == scan_area]

        return _newest_first(records)

    def area_counts(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> dict[str, int]:
        """Scans per area within an optional time range, busiest first."""
        return count_by_area(self.load(start, end))

