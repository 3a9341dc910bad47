"""labcontent-convert: parsed batch JSON -> one YAML record per publication"""
from pathlib import Path

from ..config import settings
from ..services.ingestion import convert_to_records
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Convert parsed batches to publication records")
    parser.add_argument("--parsed-dir", type=Path, default=settings.parsed_dir)
    args = parser.parse_args(argv)
    store = open_store(args)

    banner("Parsed JSON → YAML", args.dry_run)
    convert_to_records(args.parsed_dir, store, dry_run=args.dry_run)


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
