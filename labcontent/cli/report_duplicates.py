"""labcontent-report-duplicates: list likely duplicates without changing anything"""
from loguru import logger

from ..scoring_config import TITLE_MATCH_CONFIG
from ..services.duplicate_report import find_doi_collisions, find_title_collisions, render_report
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Report potential duplicate publications", dry_run=False)
    parser.add_argument("--prefix", type=int, default=TITLE_MATCH_CONFIG["compare_prefix"],
                        help="Title key prefix compared (default: %(default)s)")
    args = parser.parse_args(argv)
    store = open_store(args)

    banner("Duplicate Report")
    records = store.load_publications()
    for line in render_report(find_title_collisions(records, args.prefix), find_doi_collisions(records)):
        logger.info(line)


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
