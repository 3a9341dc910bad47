"""labcontent-dedup: merge records that share a normalized title key"""
from loguru import logger

from ..config import settings
from ..services.dedup import deduplicate
from ..utils.author_matching import AUTHOR_MATCHERS, get_author_matcher
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Merge duplicate publication records")
    parser.add_argument("--matcher", choices=sorted(AUTHOR_MATCHERS), default="substring",
                        help="Author name matching policy (default: %(default)s)")
    parser.add_argument("--key-length", type=int, default=settings.title_key_length,
                        help="Title key length (default: %(default)s)")
    args = parser.parse_args(argv)
    store = open_store(args)

    banner("Smart Publication Deduplication", args.dry_run)
    total = len(store.publication_files())
    outcomes = deduplicate(store, dry_run=args.dry_run, matcher=get_author_matcher(args.matcher), key_length=args.key_length)

    deleted = sum(len(o.deleted) for o in outcomes)
    logger.info(f"Duplicate groups: {len(outcomes)}")
    logger.info(f"Files kept (merged): {len(outcomes)}")
    logger.info(f"Files deleted: {deleted}")
    logger.info(f"Final file count: {total - deleted}")


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
