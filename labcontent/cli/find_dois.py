"""labcontent-find-dois: look up missing DOIs by title search, or by author + journal"""
from loguru import logger

from ..config import settings
from ..services.enrichment import DOI_STRATEGIES, DoiFinder, enrich_dois
from ..utils.lookup_cache import LookupCache
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Find DOIs for records that lack one", limit=True)
    parser.add_argument("--strategy", choices=sorted(DOI_STRATEGIES), default="title",
                        help="title: title word overlap; journal: first author + journal, for Japanese journal papers")
    parser.add_argument("--threshold", type=float, default=None,
                        help="Minimum title overlap (title) or author share (journal)")
    args = parser.parse_args(argv)
    store = open_store(args)

    finder = DoiFinder()
    if args.threshold is not None:
        if args.strategy == "journal":
            finder.author_threshold = args.threshold
        else:
            finder.threshold = args.threshold

    banner(f"DOI Finder ({args.strategy})", args.dry_run)
    cache = LookupCache.load(settings.lookup_cache_path)
    stats, cache = enrich_dois(store, finder, cache, dry_run=args.dry_run, limit=args.limit, strategy=args.strategy)
    cache.save(settings.lookup_cache_path)

    logger.info(f"Checked: {stats['checked']}, found: {stats['found']}, not found: {stats['not_found']}")
    logger.info(f"Cache: {cache.get_stats()}")


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
