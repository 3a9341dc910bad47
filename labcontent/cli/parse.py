"""labcontent-parse: scraped citation batches -> parsed batch JSON (resumable)"""
from pathlib import Path

from ..config import settings
from ..services.ingestion import BatchParser
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Parse scraped citation batches", dry_run=False, limit=True)
    parser.add_argument("--batches-dir", type=Path, default=settings.batches_dir)
    parser.add_argument("--parsed-dir", type=Path, default=settings.parsed_dir)
    args = parser.parse_args(argv)
    open_store(args)

    banner("Smart Publication Parser")
    BatchParser(batches_dir=args.batches_dir, parsed_dir=args.parsed_dir).run(limit=args.limit)


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
