"""labcontent-embed: generate publication embeddings with a local Ollama model"""
from pathlib import Path

from loguru import logger

from ..config import settings
from ..services.embeddings import EmbeddingGenerator, EmbeddingIndex
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Generate publication embeddings", dry_run=False, force=True)
    parser.add_argument("--output", type=Path, default=settings.embeddings_path)
    args = parser.parse_args(argv)
    store = open_store(args)

    banner("Publication Embedding Generator")
    generator = EmbeddingGenerator()
    index = EmbeddingIndex.load(args.output)
    stats = generator.generate(store, index, force=args.force)

    if stats["generated"]:
        index.save(args.output)
    else:
        logger.info("All publications already have embeddings. Nothing to do.")


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
