"""
Shared flags and start-up for the operator scripts
"""
import argparse
from pathlib import Path

from loguru import logger

from ..config import configure_logging, settings
from ..exceptions import LabContentError
from ..utils.content_store import ContentStore


def build_parser(description: str, dry_run: bool = True, limit: bool = False, force: bool = False) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--content-dir", type=Path, default=settings.content_dir, help="Content root (default: %(default)s)")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level (default: %(default)s)")
    if dry_run:
        parser.add_argument("--dry-run", action="store_true", help="Report changes without writing or deleting files")
    if limit:
        parser.add_argument("--limit", type=int, default=None, help="Process at most N records")
    if force:
        parser.add_argument("--force", action="store_true", help="Redo work that is already done")
    return parser


def open_store(args) -> ContentStore:
    configure_logging(args.log_level)
    return ContentStore(args.content_dir)


def banner(title: str, dry_run: bool = False):
    logger.info("=" * 60)
    logger.info(f"{title}{' (DRY RUN)' if dry_run else ''}")
    logger.info("=" * 60)


def run(command, argv=None) -> int:
    """Exit status 1 for conditions the scripts report instead of crashing"""
    try:
        command(argv)
    except LabContentError as e:
        logger.error(f"❌ {e}")
        return 1
    return 0
