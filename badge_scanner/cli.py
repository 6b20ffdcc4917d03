"""Command-line interface for scanning badges and browsing scan history.

Provides subcommands for scanning a saved photo, watching a live camera
until a badge is held steady, and listing stored scans.
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

from badge_scanner.capture.session import CameraSource, CaptureSession
from badge_scanner.errors import BadgeScanError
from badge_scanner.extraction.record import IdentityRecord
from badge_scanner.ocr.badge_processor import BadgeProcessor
from badge_scanner.storage.scan_store import ScanStore, count_by_area
from badge_scanner.utils.config import AppConfig, load_config
from badge_scanner.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def scan_file(
    file_path: Path,
    scan_area: str,
    save: bool = True,
    config: AppConfig | None = None,
) -> dict[str, object]:
    """Scan a badge photo from disk.

    Args:
        file_path: Path to the badge photo.
        scan_area: Checkpoint where the badge was scanned.
        save: Whether to persist the record.
        config: Application configuration. Loaded from disk if omitted.

    Returns:
        Dictionary with the record and the raw OCR text.
    """
    config = config or load_config()
    processor = BadgeProcessor(config)

    result = asyncio.run(processor.scan(file_path.read_bytes(), scan_area))
    if save:
        ScanStore(config.storage.data_dir).save(result.record)

    return {
        "filename": file_path.name,
        "record": result.record.model_dump(),
        "raw_text": result.recognition.text,
    }


async def watch_camera(
    session: CaptureSession,
    processor: BadgeProcessor,
    scan_area: str,
    store: ScanStore | None = None,
    continuous: bool = False,
) -> list[IdentityRecord]:
    """Auto-capture badges from a live session and scan them.

    Each capture is scanned once. On failure the loop is re-armed for a
    fresh capture in continuous mode, otherwise the error propagates.

    Args:
        session: Open capture session.
        processor: Scan pipeline.
        scan_area: Checkpoint where badges are scanned.
        store: Record store, or ``None`` to skip saving.
        continuous: Keep capturing after each scan until cancelled.

    Returns:
        Records scanned before the session stopped.
    """
    records: list[IdentityRecord] = []

    while True:
        frame = await session.run()
        if frame is None:
            return records

        try:
            result = await processor.scan(frame, scan_area)
        except BadgeScanError as exc:
            if not continuous:
                raise
            logger.warning("Scan attempt failed: %s", exc)
            print(f"Scan failed: {exc}. Hold the next badge steady.", file=sys.stderr)
            session.rearm()
            continue

        if store is not None:
            store.save(result.record)
        records.append(result.record)
        print(json.dumps(result.record.model_dump(), indent=2))

        if not continuous:
            return records
        session.rearm()


async def _run_watch(config: AppConfig, scan_area: str, save: bool, continuous: bool):
    capture = config.capture
    source = CameraSource(capture.camera_index, capture.frame_width, capture.frame_height)
    store = ScanStore(config.storage.data_dir) if save else None
    async with CaptureSession(source, capture) as session:
        print("Align the badge inside the frame and hold it steady...")
        return await watch_camera(
            session, BadgeProcessor(config), scan_area, store, continuous
        )


def show_history(
    start: datetime | None = None,
    end: datetime | None = None,
    config: AppConfig | None = None,
    scan_area: str | None = None,
) -> list[IdentityRecord]:
    """Print stored scans, newest first.

    Args:
        start: Earliest scan time to include.
        end: Latest scan time to include.
        config: Application configuration. Loaded from disk if omitted.
        scan_area: Only list scans from this area.

    Returns:
        The listed records.
    """
    config = config or load_config()
    records = ScanStore(config.storage.data_dir).load(start, end, scan_area)

    for record in records:
        scanned = datetime.fromtimestamp(record.scan_timestamp / 1000)
        areas = ",".join(record.access_areas) or "-"
        print(
            f"{scanned:%Y-%m-%d %H:%M:%S}  {record.scan_area:<15} "
            f"{record.id_number:<20} {record.name:<25} {areas}"
        )
    print(f"\n{len(records)} scan(s)")
    return records


def show_stats(
    start: datetime | None = None,
    end: datetime | None = None,
    config: AppConfig | None = None,
) -> dict[str, int]:
    """Print the scan total, the last scan and the number of scans per area.

    Returns:
        Scan counts keyed by area, busiest first.
    """
    config = config or load_config()
    records = ScanStore(config.storage.data_dir).load(start, end)
    counts = count_by_area(records)

    print(f"Total scans: {len(records)}")
    if records:
        last = records[0]
        scanned = datetime.fromtimestamp(last.scan_timestamp / 1000)
        print(f"Last scan:   {last.name} at {last.scan_area}, {scanned:%Y-%m-%d %H:%M:%S}")
    for area, count in counts.items():
        print(f"  {area:<20} {count}")
    return counts


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Offline Identity Badge Scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan_parser = subparsers.add_parser("scan", help="Scan a badge photo")
    scan_parser.add_argument("file", type=Path, help="Badge photo to scan")
    scan_parser.add_argument(
        "-a", "--area", default="Main Gate", help="Scan area (default: Main Gate)"
    )
    scan_parser.add_argument(
        "--no-save", action="store_true", help="Do not store the record"
    )
    scan_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    watch_parser = subparsers.add_parser(
        "watch", help="Auto-capture a badge from the camera"
    )
    watch_parser.add_argument(
        "-a", "--area", default="Main Gate", help="Scan area (default: Main Gate)"
    )
    watch_parser.add_argument(
        "--no-save", action="store_true", help="Do not store records"
    )
    watch_parser.add_argument(
        "--continuous", action="store_true", help="Keep scanning until interrupted"
    )

    history_parser = subparsers.add_parser("history", help="List stored scans")
    history_parser.add_argument(
        "--start", type=datetime.fromisoformat, help="ISO start date/time"
    )
    history_parser.add_argument(
        "--end", type=datetime.fromisoformat, help="ISO end date/time"
    )
    history_parser.add_argument("-a", "--area", help="Only list scans from this area")
    history_parser.add_argument(
        "--stats", action="store_true", help="Show scan counts per area instead"
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    try:
        if args.command == "scan":
            if not args.file.exists():
                print(f"Error: {args.file} does not exist", file=sys.stderr)
                sys.exit(1)
            result = scan_file(args.file, args.area, not args.no_save, config)
            output_str = json.dumps(result, indent=2)
            if args.output:
                args.output.parent.mkdir(parents=True, exist_ok=True)
                args.output.write_text(output_str)
                print(f"Output written to {args.output}")
            else:
                print(output_str)
        elif args.command == "watch":
            try:
                asyncio.run(
                    _run_watch(config, args.area, not args.no_save, args.continuous)
                )
            except KeyboardInterrupt:
                print("\nCapture cancelled")
        elif args.command == "history":
            if args.stats:
                show_stats(args.start, args.end, config)
            else:
                show_history(args.start, args.end, config, args.area)
        else:
            parser.print_help()
            sys.exit(0)
    except BadgeScanError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
