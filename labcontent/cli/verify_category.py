"""labcontent-verify-category: compare legacy page sections with the publication records"""
from pathlib import Path

from loguru import logger

from ..config import settings
from ..scoring_config import VERIFY_SECTIONS
from ..services.verify_category import (
    load_legacy_sections,
    render_section_report,
    render_summary,
    verify_sections,
)
from .common import banner, build_parser, open_store, run


def _main(argv=None):
    parser = build_parser("Verify legacy site sections against the publication records", dry_run=False)
    parser.add_argument("section", choices=list(VERIFY_SECTIONS) + ["all"],
                        help="Legacy section to check, or 'all'")
    parser.add_argument("--batches-dir", type=Path, default=settings.batches_dir,
                        help="Scraped batch-N.json files (default: %(default)s)")
    args = parser.parse_args(argv)
    store = open_store(args)

    legacy = load_legacy_sections(args.batches_dir)
    sections = list(VERIFY_SECTIONS) if args.section == "all" else [args.section]
    reports = verify_sections(sections, store.load_publications(), legacy)

    for report in reports:
        banner(f"VERIFYING: {report.section} ({report.header})")
        for line in render_section_report(report):
            logger.info(line)

    if len(reports) > 1:
        banner("SUMMARY")
        for line in render_summary(reports):
            logger.info(line)


def main(argv=None) -> int:
    return run(_main, argv)


if __name__ == "__main__":
    raise SystemExit(main())
