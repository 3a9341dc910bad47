"""labcontent-label: tag records with their nearest topics"""
from pathlib import Path

from loguru import logger

from ..config import settings
from ..scoring_config import LABEL_CONFIG, LABEL_TOPICS
from ..services.embeddings import EmbeddingGenerator, EmbeddingIndex
from ..services.labeling import embed_topics, label_publications, top_matches
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Auto-label papers by embedding similarity")
    parser.add_argument("--embeddings", type=Path, default=settings.embeddings_path)
    args = parser.parse_args(argv)
    store = open_store(args)

    banner("Auto-Label Papers (Best Match)", args.dry_run)
    logger.info(f"Min threshold: {LABEL_CONFIG['min_threshold']}, 2nd place gap: {LABEL_CONFIG['second_place_gap']}")

    generator = EmbeddingGenerator()
    generator.check_available()
    index = EmbeddingIndex.load(args.embeddings)

    logger.info("Generating topic embeddings...")
    topic_vectors = embed_topics(generator)
    assignments = label_publications(store, index, topic_vectors, dry_run=args.dry_run)

    for category, topics in LABEL_TOPICS.items():
        for name in topics:
            for publication_id, score in top_matches(assignments, category, name):
                logger.info(f"{category}:{name} [{score:.2f}] {publication_id}")


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
