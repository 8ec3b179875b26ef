#!/usr/bin/env python3
"""Command-line interface for production chain resolution."""

import argparse
import json
import logging
import sys

from buildings import Building, load_buildings_from_json
from chain_report import ChainSummary, load_prices_from_csv, summarize_tree
from parsing_utils import parse_building_spec
from resource_tree import DEFAULT_HORIZONTAL_SPACING, DEFAULT_VERTICAL_SPACING, LayoutSpacing, resolve
from tree_export import save_tree_to_json, tree_to_dict, tree_to_graphviz


def _load_registry(buildings_file: str | None, building_specs: list[str]) -> list[Building]:
    """Load the registry from a JSON file and inline building specs.

    Precondition:
        buildings_file is None or a readable JSON path
        building_specs is a list of "Name = Inputs -> Outputs" strings

    Postcondition:
        returns file buildings followed by inline buildings, in given order

    Raises:
        ValueError: if any source is invalid
    """
    buildings = load_buildings_from_json(buildings_file) if buildings_file else []
    buildings.extend(parse_building_spec(spec) for spec in building_specs)
    return buildings


def _format_summary(summary: ChainSummary) -> str:
    """Format a chain summary as indented text lines."""
    lines = [summary.chain_name]
    for resource, quantity in summary.market_inputs.items():
        lines.append(f"  buys  {resource}: {quantity:g}")
    for resource, quantity in summary.final_outputs.items():
        lines.append(f"  sells {resource}: {quantity:g}")
    for market, figures in summary.markets.items():
        lines.append(
            f"  {market}: cost {figures.cost:.2f}, revenue {figures.revenue:.2f}, profit {figures.profit:.2f}"
        )
    if summary.unpriced_resources:
        lines.append(f"  unpriced: {', '.join(summary.unpriced_resources)}")
    return "\n".join(lines)


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser.

    Postcondition:
        returns configured ArgumentParser with all CLI arguments defined
    """
    parser = argparse.ArgumentParser(
        description="Resolve production chains of a set of buildings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Resolve a saved building registry
  %(prog)s --buildings industry.json

  # Inline buildings
  %(prog)s -B "Iron Mine = -> Iron Ore:5" -B "Smelter = Iron Ore:2 -> Iron:1"

  # Profitability report and diagram
  %(prog)s -b industry.json --prices prices.csv --graphviz-file chains.gv
        """,
    )

    parser.add_argument("--buildings", "-b", help="JSON building registry")
    parser.add_argument(
        "--building",
        "-B",
        action="append",
        default=[],
        help='Inline building as "Name = In:Qty, ... -> Out:Qty, ..." (repeatable)',
    )
    parser.add_argument("--prices", "-p", help="CSV price table for the profitability report")
    parser.add_argument("--json-file", "-j", help="Write the resource tree as JSON instead of stdout")
    parser.add_argument("--graphviz-file", "-g", help="Write graphviz source of the resource tree")
    parser.add_argument(
        "--h-spacing",
        type=float,
        default=DEFAULT_HORIZONTAL_SPACING,
        help="Horizontal spacing between buildings of a level (default: %(default)s)",
    )
    parser.add_argument(
        "--v-spacing",
        type=float,
        default=DEFAULT_VERTICAL_SPACING,
        help="Vertical spacing between levels (default: %(default)s)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI function.

    Precondition:
        argv is None (use sys.argv) or a list of arguments

    Postcondition:
        resource tree is resolved and written to file or stdout
        profitability report is printed to stderr when prices are given
        returns 0 on success, 1 on error

    Returns:
        exit code (0=success, 1=error)
    """
    parser = _create_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        if not args.buildings and not args.building:
            print("Error: No buildings specified", file=sys.stderr)
            return 1

        buildings = _load_registry(args.buildings, args.building)
        tree = resolve(buildings, LayoutSpacing(args.h_spacing, args.v_spacing))

        if args.json_file:
            save_tree_to_json(args.json_file, tree)
        else:
            print(json.dumps(tree_to_dict(tree), indent=2))

        if args.graphviz_file:
            with open(args.graphviz_file, "w", encoding="utf-8") as f:
                f.write(tree_to_graphviz(tree).source)
            print(f"Graphviz written to {args.graphviz_file}", file=sys.stderr)

        if args.prices:
            prices = load_prices_from_csv(args.prices)
            for summary in summarize_tree(tree, prices):
                print(_format_summary(summary), file=sys.stderr)

        return 0

    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
