"""Command line entry point for newestcheck."""

import argparse
import asyncio
import tempfile
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from newestcheck import __version__
from newestcheck.clients.browser import BrowserPageSource
from newestcheck.clients.http import HttpPageSource
from newestcheck.config import Settings
from newestcheck.errors import VerificationError
from newestcheck.models import VerificationResult
from newestcheck.services.verifier import ListingVerifier, Pacer
from newestcheck.utils.logging import get_logger, log_file_path, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _non_negative_int(value: str) -> int:
    parsed = int(value)
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must be >= 0")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="newestcheck",
        description="Verify that a newest-submissions listing is sorted newest first",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--count", type=_non_negative_int, default=None, help="Number of entries to verify")
    parser.add_argument("--url", type=str, default=None, help="Listing URL to start from")
    parser.add_argument("--source", choices=["browser", "http"], default=None, help="How pages are loaded")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--min-delay-ms", type=_non_negative_int, default=None, help="Minimum delay between pages")
    parser.add_argument("--max-delay-ms", type=_non_negative_int, default=None, help="Maximum delay between pages")
    parser.add_argument(
        "--duplicates",
        choices=["skip", "fail"],
        default=None,
        help="How to treat entries already verified earlier in the run",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    parser.add_argument("--log-format", choices=["console", "json"], default=None, help="Log renderer")
    parser.add_argument("--log-dir", type=Path, default=None, help="Also write logs to a timestamped file here")
    parser.add_argument("--dump-dir", type=Path, default=None, help="Where to write failing page content")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Build settings where command line flags take precedence over the environment."""
    overrides: dict[str, Any] = {
        "target_count": args.count,
        "listing_url": args.url,
        "source": args.source,
        "min_delay_ms": args.min_delay_ms,
        "max_delay_ms": args.max_delay_ms,
        "duplicate_policy": args.duplicates,
        "log_level": args.log_level,
        "log_format": args.log_format,
        "log_dir": args.log_dir,
        "dump_dir": args.dump_dir,
    }
    if args.headed:
        overrides["headless"] = False
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def create_source(settings: Settings) -> BrowserPageSource | HttpPageSource:
    """Create the page source selected in settings."""
    if settings.source == "http":
        return HttpPageSource(
            listing_url=settings.listing_url,
            timeout=settings.navigation_timeout_ms / 1000,
        )
    return BrowserPageSource(
        listing_url=settings.listing_url,
        headless=settings.headless,
        timeout_ms=settings.navigation_timeout_ms,
    )


async def run_verification(settings: Settings) -> VerificationResult:
    """Run one verification with the configured source.

    The source is closed on every exit path.

    Raises:
        VerificationError: If the listing fails verification.
    """
    pacer = Pacer(settings.min_delay_ms, settings.max_delay_ms)
    async with create_source(settings) as source:
        verifier = ListingVerifier(source, pacer, settings.duplicate_policy)
        return await verifier.run(
            settings.target_count,
            clock_skew=timedelta(seconds=settings.clock_skew_seconds),
        )


def write_failure_dump(content: str, dump_dir: Path | None = None) -> Path:
    """Write the content of the failing page to a file for inspection.

    Returns:
        Path to the written file.
    """
    if dump_dir is not None:
        dump_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        suffix=".html",
        prefix="newestcheck_failure_",
        dir=dump_dir,
        delete=False,
    ) as f:
        f.write(content)
        return Path(f.name)


def _report_failure(error: VerificationError, settings: Settings) -> None:
    logger.error("Verification failed", **error.context())
    if error.page_content:
        dump_path = write_failure_dump(error.page_content, settings.dump_dir)
        logger.error("Page content written to file", path=str(dump_path))
    print(f"FAIL: {error.reason}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}")
        return EXIT_USAGE

    log_file = log_file_path(settings.log_dir) if settings.log_dir else None
    setup_logging(settings.log_level, settings.log_format, log_file)
    logger.info(
        "newestcheck starting",
        version=__version__,
        url=settings.listing_url,
        source=settings.source,
        target=settings.target_count,
        log_file=str(log_file) if log_file else None,
    )

    try:
        result = asyncio.run(run_verification(settings))
    except VerificationError as e:
        _report_failure(e, settings)
        return EXIT_FAILED

    print(
        f"PASS: the first {result.verified} entries are sorted newest first "
        f"({result.pages_fetched} pages)"
    )
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
