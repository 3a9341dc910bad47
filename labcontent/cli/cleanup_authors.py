"""labcontent-cleanup-authors: fix typos, strip roles, drop non-author entries"""
from loguru import logger

from ..services.author_cleanup import cleanup_authors
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    args = build_parser("Clean up author names in publication records").parse_args(argv)
    store = open_store(args)

    banner("Author Name Cleanup", args.dry_run)
    stats = cleanup_authors(store, dry_run=args.dry_run)

    logger.info(f"Files modified: {stats['files_modified']}")
    logger.info(f"Typos fixed: {stats['fixed']}")
    logger.info(f"Authors split: {stats['split']}")
    logger.info(f"Invalid entries removed: {stats['removed']}")


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
