"""Command-line interface for the catalog and inventory data layer."""

import argparse
import json
import logging
import sys
from typing import List, Optional

__all__ = ["main", "parse_args", "show_stats"]

from stockroom import config
from stockroom.aggregation import build_style_inventory
from stockroom.inventory import InventoryFetchError
from stockroom.logging_config import setup_logging
from stockroom.products import get_product_catalog
from stockroom.styles import get_style_catalog


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Style/product catalog and S&S inventory lookups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show catalog statistics
  python -m stockroom.cli --stats

  # Search styles (all tokens must match brand/style/title)
  python -m stockroom.cli --search "gildan heavy" --limit 10

  # Aggregated inventory for a style, bypassing the cache
  python -m stockroom.cli --inventory 1001 --refresh
        """,
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show catalog statistics and exit",
    )
    parser.add_argument(
        "--search",
        metavar="QUERY",
        help="Search styles by brand, style name and title",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=config.DEFAULT_SEARCH_LIMIT,
        help=f"Maximum search results (default: {config.DEFAULT_SEARCH_LIMIT})",
    )
    parser.add_argument(
        "--inventory",
        metavar="STYLE_ID",
        help="Print the aggregated inventory view for a style as JSON",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Bypass the inventory cache (use with --inventory)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Force a re-read of both catalog files before running",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def show_stats() -> None:
    """Display catalog statistics."""
    styles = get_style_catalog()
    products = get_product_catalog()
    snapshot = products.snapshot()

    print(f"\n{'='*50}")
    print(f"Styles:   {styles.path}")
    print(f"Products: {products.path}")
    print(f"{'='*50}")

    print(f"\nStyles loaded: {len(styles)}")
    print(f"Product rows loaded: {len(snapshot.products)}")
    print(f"Styles with products: {len(snapshot.by_style)}")
    print(f"Product delimiter: {snapshot.delimiter!r}")
    print()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO, log_to_file=False)

    if args.reload:
        get_style_catalog().load(refresh=True)
        get_product_catalog().load(refresh=True)

    if args.stats:
        show_stats()
        return 0

    if args.search is not None:
        results = get_style_catalog().search(args.search, args.limit)
        for style in results:
            print(f"{style.style_id}\t{style.brand_name}\t{style.style_name}\t{style.title}")
        print(f"\n{len(results)} result(s)")
        return 0

    if args.inventory is not None:
        try:
            view = build_style_inventory(args.inventory, refresh=args.refresh)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2
        except InventoryFetchError as e:
            print(f"Inventory lookup failed: {e}", file=sys.stderr)
            return 1
        print(json.dumps(view.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print("Nothing to do. Use --stats, --search or --inventory (see --help).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
