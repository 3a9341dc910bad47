"""labcontent-fetch-abstracts: fill in abstracts for records with a DOI"""
from loguru import logger

from ..config import settings
from ..services.enrichment import enrich_abstracts
from ..utils.lookup_cache import LookupCache
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Fetch abstracts from OpenAlex, Semantic Scholar, CrossRef and PubMed", limit=True)
    args = parser.parse_args(argv)
    store = open_store(args)

    banner("Abstract Fetcher", args.dry_run)
    cache = LookupCache.load(settings.lookup_cache_path)
    stats, cache = enrich_abstracts(store, cache=cache, dry_run=args.dry_run, limit=args.limit)
    cache.save(settings.lookup_cache_path)

    for key, value in stats.items():
        logger.info(f"{key}: {value}")


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
