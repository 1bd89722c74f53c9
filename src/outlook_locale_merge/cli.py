"""Command-line interface (CLI) entrypoint.

Objective:
    Provide a human-friendly CLI wrapper around
    :class:`outlook_locale_merge.orchestrator.LocaleMergeOrchestrator`.

Responsibilities:
    - Parse arguments (mailboxes, locales, numeric-suffix scanning, dry-run).
    - Configure logging (including suppressing noisy HTTP/MSAL logs).
    - Invoke the orchestrator and print a readable summary of results.
    - Map results to an exit status.

Exit status:
    - ``0``: every candidate folder was merged or absent.
    - ``1``: at least one candidate folder could not be fully merged.
    - ``2``: at least one mailbox could not be processed (locale or folder
      resolution failed). Takes precedence over ``1``.
    - ``3``: unexpected fatal error (e.g. authentication failure).

High-level call tree:
    - :func:`main`
        - :func:`setup_logging`
            - installs :class:`_HttpDebugNoiseFilter`
        - :func:`read_mailbox_file`
        - instantiate :class:`LocaleMergeOrchestrator`
        - :meth:`LocaleMergeOrchestrator.run`
        - :func:`print_results`
        - :func:`exit_code_for`

Operational notes:
    - This module supports being run both as a package module
      (``python -m outlook_locale_merge.cli``) and as a script
      (``python src/outlook_locale_merge/cli.py``). The import fallback handles
      the script case.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

try:
    from .auth import GraphAuthenticator
    from .orchestrator import LocaleMergeOrchestrator
    from .config import get_settings
    from .models import CandidateStatus, MailboxResult
except ImportError:  # pragma: no cover
    src_root = Path(__file__).resolve().parents[1]
    if str(src_root) not in sys.path:
        sys.path.insert(0, str(src_root))

    from outlook_locale_merge.auth import GraphAuthenticator
    from outlook_locale_merge.orchestrator import LocaleMergeOrchestrator
    from outlook_locale_merge.config import get_settings
    from outlook_locale_merge.models import CandidateStatus, MailboxResult

EXIT_OK = 0
EXIT_CANDIDATE_FAILED = 1
EXIT_RESOLUTION_FAILED = 2
EXIT_FATAL = 3

_NOISY_LOGGERS = ("urllib3", "msal")


class _HttpDebugNoiseFilter(logging.Filter):
    """Filter to suppress chatty urllib3/MSAL records below WARNING.

    Connection-pool and token-acquisition details are only shown when the root
    logger is in DEBUG mode.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(_NOISY_LOGGERS) and record.levelno < logging.WARNING:
            return logging.getLogger().isEnabledFor(logging.DEBUG)
        return True


def setup_logging(level: str = "INFO") -> None:
    """Log to stdout at ``level``, with HTTP/MSAL chatter filtered out."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    root_logger = logging.getLogger()
    noise_filter = _HttpDebugNoiseFilter()
    for handler in root_logger.handlers:
        handler.addFilter(noise_filter)


def read_mailbox_file(path: Path) -> list[str]:
    """Read mailbox addresses, one per line.

    Blank lines and lines starting with ``#`` are ignored.

    Args:
        path: Text file to read.

    Returns:
        list[str]: Mailbox addresses in file order.
    """
    mailboxes = []
    for line in path.read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if entry and not entry.startswith("#"):
            mailboxes.append(entry)
    return mailboxes


def print_results(results: list[MailboxResult], verbose: bool = False) -> None:
    """
    Print merge results to console.

    Output format:
        - One block per mailbox with its locale pair.
        - One line per merged or failed candidate folder (absent candidates
          are listed only with ``verbose=True``).

    Args:
        results: List of MailboxResult objects.
        verbose: Also list candidate names that were not found.
    """
    if not results:
        print("\nNo mailboxes processed.")
        return

    print(f"\n{'='*60}")
    print(f"MERGE RESULTS: {len(results)} mailbox(es)")
    print(f"{'='*60}")

    for result in results:
        name = result.mailbox or "(signed-in user)"
        if result.resolution_failed:
            print(f"\n❌ {name}")
            print("-" * 40)
            print(f"  Error: {result.error}")
            continue

        print(f"\n📁 {name} ({result.source_locale} → {result.target_locale})")
        print("-" * 40)

        shown = 0
        for outcome in result.outcomes:
            if outcome.status == CandidateStatus.NOT_FOUND:
                if verbose:
                    print(f"  · {outcome.role.value}: '{outcome.candidate}' not found")
                continue

            shown += 1
            stats = outcome.stats
            detail = (
                f"{stats.folders_moved} folders moved, {stats.items_moved} items moved, "
                f"{stats.folders_deleted} folders removed"
            )
            if outcome.status == CandidateStatus.MERGED:
                print(f"  ✅ {outcome.role.value}: {outcome.folder_path} ({detail})")
            else:
                print(f"  ❌ {outcome.role.value}: {outcome.folder_path or outcome.candidate} ({detail})")
                if outcome.error:
                    print(f"      Error: {outcome.error}")

        if not shown:
            print("  Nothing to merge")

    merged = sum(len(r.merged_candidates) for r in results)
    failed = sum(len(r.failed_candidates) for r in results)
    skipped = sum(1 for r in results if r.resolution_failed)

    print(f"\n{'='*60}")
    print(f"SUMMARY: ✅ {merged} merged, ❌ {failed} failed, {skipped} mailbox(es) skipped")
    print(f"{'='*60}\n")


def exit_code_for(results: list[MailboxResult]) -> int:
    """Map results to the process exit status.

    Args:
        results: Per-mailbox results.

    Returns:
        int: Exit code.
    """
    if any(r.resolution_failed for r in results):
        return EXIT_RESOLUTION_FAILED
    if any(r.failed_candidates for r in results):
        return EXIT_CANDIDATE_FAILED
    return EXIT_OK


def _positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def main(args: Optional[list[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Argument list; ``sys.argv`` is used when None.

    Returns:
        int: Exit code (see module docstring).
    """
    parser = argparse.ArgumentParser(
        description="Outlook Locale Merge - merge folders left behind by a mailbox language change",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --mailbox user@contoso.com --from-locale nl-NL --locale en-US
  %(prog)s --mailbox-file mailboxes.txt --scan-numericals
  %(prog)s --dry-run --verbose
        """,
    )

    parser.add_argument(
        "--mailbox",
        "-m",
        action="append",
        default=[],
        help="Mailbox address to process (repeatable; signed-in user if omitted)",
    )

    parser.add_argument(
        "--mailbox-file",
        type=Path,
        default=None,
        help="File with one mailbox address per line",
    )

    parser.add_argument(
        "--locale",
        "-l",
        type=str,
        default=None,
        help="Target locale whose folder names are kept (overrides TARGET_LOCALE)",
    )

    parser.add_argument(
        "--from-locale",
        type=str,
        default=None,
        help="Locale of the folders to merge away (default: mailbox's configured locale)",
    )

    parser.add_argument(
        "--scan-numericals",
        action="store_true",
        help="Also merge folders with numeric suffixes (e.g. 'Postvak IN1')",
    )

    parser.add_argument(
        "--numerical-max",
        type=_positive_int,
        default=None,
        help="Highest numeric suffix to scan for",
    )

    parser.add_argument(
        "--set-regional-config",
        action="store_true",
        help="Set the mailbox locale and date/time formats to the target locale first",
    )

    parser.add_argument(
        "--dry-run",
        "-d",
        action="store_true",
        help="Report what would be moved and deleted without changing the mailbox",
    )

    parser.add_argument(
        "--logout",
        action="store_true",
        help="Remove the cached device-code token and exit",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    parsed_args = parser.parse_args(args)

    log_level = "DEBUG" if parsed_args.verbose else parsed_args.log_level
    setup_logging(log_level)

    logger = logging.getLogger(__name__)

    try:
        print("\n🚀 Starting Outlook Locale Merge...\n")

        if parsed_args.dry_run:
            print("⚠️  DRY RUN MODE - Folders and items will not be changed\n")

        settings = get_settings()
        if parsed_args.logout:
            GraphAuthenticator(settings).logout()
            print("Signed out; token cache removed.")
            return EXIT_OK

        if parsed_args.locale:
            settings.target_locale = parsed_args.locale
        if parsed_args.from_locale:
            settings.source_locale = parsed_args.from_locale
        if parsed_args.scan_numericals:
            settings.scan_numericals = True
        if parsed_args.numerical_max is not None:
            settings.numerical_max = parsed_args.numerical_max
        if parsed_args.set_regional_config:
            settings.update_regional_configuration = True
        if parsed_args.dry_run:
            settings.dry_run = True

        mailboxes = list(parsed_args.mailbox)
        if parsed_args.mailbox_file:
            mailboxes.extend(read_mailbox_file(parsed_args.mailbox_file))

        orchestrator = LocaleMergeOrchestrator(settings=settings)
        results = orchestrator.run(mailboxes)

        print_results(results, verbose=parsed_args.verbose)

        return exit_code_for(results)

    except Exception as e:
        logger.exception("Fatal error")
        print(f"\n❌ Error: {e}\n")
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
