"""
Image Harvester command line.

Usage examples:
  # Inventory a page from its static HTML
  image-harvester https://example.com

  # Render the page in Chromium first (shadow roots, canvases, blob: images)
  image-harvester https://example.com --mode rendered

  # Largest first, as JSON
  image-harvester https://example.com --sort size-desc --json

  # Save everything into ./downloads
  image-harvester https://example.com --download downloads
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_env
from .errors import USER_FACING_ERRORS, HarvesterError
from .export import AssetExporter
from .harvester import MODES, ImageHarvester
from .logging_config import setup_logging
from .presentation import SortMode, format_count, render_table, sort_records


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='image-harvester',
        description='Inventory every image-like resource on a page',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('url', help='Page URL (or location of --html markup)')
    parser.add_argument('--mode', choices=MODES, default=None,
                        help='static: parse fetched HTML; rendered: snapshot a live page (default: from config)')
    parser.add_argument('--html', type=Path, default=None,
                        help='Read markup from this file instead of fetching URL')
    parser.add_argument('--sort', choices=[m.value for m in SortMode], default=SortMode.ORIGINAL.value,
                        help='Output order (default: original)')
    parser.add_argument('--json', action='store_true', help='Print records as JSON')
    parser.add_argument('--download', type=Path, default=None, metavar='DIR',
                        help='Save every record into DIR')
    parser.add_argument('--env-file', default=None, help='Load settings from this .env file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')
    parser.add_argument('--quiet', '-q', action='store_true', help='Only print errors and results')
    return parser


async def run(args: argparse.Namespace) -> int:
    config = load_env(args.env_file)
    if args.verbose:
        config.log_level = 'DEBUG'
    elif args.quiet:
        config.log_level = 'WARNING'
    setup_logging(config.service_name, config.log_level, config.log_format)

    try:
        async with ImageHarvester(config, mode=args.mode) as harvester:
            if args.html is not None:
                result = await harvester.harvest_html(args.html.read_text(encoding='utf-8'), args.url)
            else:
                result = await harvester.harvest(args.url)
    except USER_FACING_ERRORS as e:
        print(e.message, file=sys.stderr)
        return 1
    except HarvesterError as e:
        logging.getLogger(__name__).error(f"Harvest failed: {e.message}")
        return 2

    records = sort_records(result.records, SortMode(args.sort))

    if args.download is not None:
        async with AssetExporter(config, output_dir=args.download) as exporter:
            exported = await exporter.export_all(result.records)
        failed = [item for item in exported if not item.success]
        if failed and not args.quiet:
            print(f"{len(failed)} of {len(exported)} downloads failed", file=sys.stderr)

    if args.json:
        print(json.dumps([record.to_dict() for record in records], indent=2))
    else:
        print(render_table(records))
        if not args.quiet:
            print(f"\n{format_count(result.total)} across {result.surfaces_scanned} surfaces "
                  f"in {result.elapsed:.2f}s")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == '__main__':
    sys.exit(main())
