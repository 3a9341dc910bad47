"""labcontent-cluster: k-means over embeddings to suggest topic descriptions"""
from pathlib import Path

from loguru import logger

from ..config import settings
from ..scoring_config import CLUSTER_CONFIG
from ..services.embeddings import EmbeddingIndex
from ..services.labeling import cluster_report
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Cluster papers by embedding", dry_run=False)
    parser.add_argument("--clusters", type=int, default=CLUSTER_CONFIG["num_clusters"])
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--embeddings", type=Path, default=settings.embeddings_path)
    args = parser.parse_args(argv)
    store = open_store(args)

    banner("Paper Clustering")
    report = cluster_report(store, EmbeddingIndex.load(args.embeddings), k=args.clusters, seed=args.seed)

    for entry in report:
        logger.info(f"--- Cluster {entry['cluster'] + 1} ({entry['size']} papers) ---")
        logger.info(f"Keywords: {', '.join(entry['keywords'])}")
        logger.info(f"Types: {', '.join(f'{t}({n})' for t, n in entry['types'])}")
        for year, title in entry["samples"]:
            logger.info(f"  [{year or '?'}] {(title or '')[:70]}")

    logger.info("Suggested topic descriptions:")
    for entry in report[:10]:
        if entry["size"] >= 5:
            logger.info(f'- "{" ".join(entry["keywords"][:4])}"')


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
