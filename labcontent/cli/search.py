"""labcontent-search: hybrid semantic/keyword search from the command line"""
from pathlib import Path

from loguru import logger

from ..config import settings
from ..scoring_config import SEARCH_CONFIG
from ..services.embeddings import EmbeddingGenerator, EmbeddingIndex, hybrid_search
from .common import build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Search publications", dry_run=False)
    parser.add_argument("query")
    parser.add_argument("--top", type=int, default=10)
    parser.add_argument("--threshold", type=float, default=SEARCH_CONFIG["semantic_threshold"])
    parser.add_argument("--keyword-only", action="store_true", help="Skip the query embedding")
    parser.add_argument("--embeddings", type=Path, default=settings.embeddings_path)
    args = parser.parse_args(argv)
    store = open_store(args)

    publications = [pub for _, pub in store.iter_publications()]
    index = EmbeddingIndex.load(args.embeddings)

    query_vector = None
    if not args.keyword_only:
        try:
            query_vector = EmbeddingGenerator().embed(args.query)
        except Exception as e:
            logger.warning(f"Query embedding unavailable, using keyword search only: {e}")

    results = hybrid_search(args.query, publications, query_vector, index, threshold=args.threshold)
    for result in results[: args.top]:
        publication = result["publication"]
        logger.info(f"[{result['score']:.3f} {result['match_type']}] {publication.year} {publication.title[:80]}")


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
