"""
Operator commands for access-token maintenance.

Usage:
    wateradmin-tokens cleanup                  # expired + unused for 7 days
    wateradmin-tokens cleanup --days 30
    wateradmin-tokens cleanup --expired-only
    wateradmin-tokens cleanup --dry-run
    wateradmin-tokens cleanup --yes            # skip the confirmation prompt
"""
import argparse
import logging
import sys
from typing import Callable, List, Optional

from wateradmin.config import settings
from wateradmin.core.database import SessionLocal
from wateradmin.core.exceptions import SweepOperationError
from wateradmin.services.token_service import SweepCandidate, token_service

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CANCELLED = 1
EXIT_FAILED = 2


def print_candidates(candidates: List[SweepCandidate]) -> None:
    print(f"\n=== {len(candidates)} token(s) eligible for deletion ===\n")
    for c in candidates:
        reference = c.reference_at.isoformat() if c.reference_at else "never"
        print(f"ID: {c.id}  user: {c.user_id}  name: {c.name}  reason: {c.reason}  since: {reference}")
    print()


def prompt_confirmation(candidates: List[SweepCandidate]) -> bool:
    answer = input(f"Delete {len(candidates)} token(s)? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def cleanup(
    days: Optional[int],
    dry_run: bool = False,
    assume_yes: bool = False,
    session_factory: Callable = SessionLocal,
    confirm: Callable[[List[SweepCandidate]], bool] = prompt_confirmation,
) -> int:
    """Run a sweep and report the outcome; returns the process exit code."""
    db = session_factory()
    try:
        def _confirm(candidates: List[SweepCandidate]) -> bool:
            print_candidates(candidates)
            return assume_yes or confirm(candidates)

        if dry_run:
            result = token_service.sweep(db, stale_days=days, dry_run=True)
            if not result.candidates:
                print("No tokens to clean up")
                return EXIT_OK
            print_candidates(result.candidates)
            print(f"Dry run: {len(result.candidates)} token(s) would be deleted")
            return EXIT_OK

        result = token_service.sweep(db, stale_days=days, confirm=_confirm)
        if not result.candidates:
            print("No tokens to clean up")
            return EXIT_OK
        if result.cancelled:
            print("Cleanup cancelled, nothing deleted")
            return EXIT_CANCELLED

        print(f"Deleted {result.deleted} token(s)")
        return EXIT_OK
    except SweepOperationError as exc:
        print(f"Cleanup failed after deleting {exc.deleted} token(s): {exc.message}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wateradmin-tokens", description="Manage access tokens")
    commands = parser.add_subparsers(dest="command")

    cleanup_parser = commands.add_parser("cleanup", help="Delete expired and stale tokens")
    cleanup_parser.add_argument(
        "--days",
        type=int,
        default=settings.TOKEN_STALE_DAYS,
        help="Delete tokens unused for more than N days (default: %(default)s)",
    )
    cleanup_parser.add_argument("--expired-only", action="store_true", help="Only delete expired tokens")
    cleanup_parser.add_argument("--dry-run", action="store_true", help="List candidates without deleting")
    cleanup_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "cleanup":
        if args.days is not None and args.days < 1:
            parser.error("--days must be at least 1")
        days = None if args.expired_only else args.days
        return cleanup(days, dry_run=args.dry_run, assume_yes=args.yes)

    parser.print_help()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
