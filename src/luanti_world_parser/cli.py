"""
Command-line interface for Luanti World Parser
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import parse_list
from .errors import WorldParserError
from .models import Position, Region
from .pipeline import DEFAULT_QUEUE_SIZE, DEFAULT_WORKERS, count_nodes
from .stats import NodeStats
from .world import World

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def parse_int_list(value: str, count: int) -> List[int]:
    """Parse a comma-separated list of exactly count integers"""
    parts = [p.strip() for p in value.split(',')]
    if len(parts) != count:
        raise argparse.ArgumentTypeError(f"expected {count} comma-separated integers, got {value!r}")
    try:
        return [int(p) for p in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected integers, got {value!r}")


def parse_position(value: str) -> Position:
    return Position(*parse_int_list(value, 3))


def parse_region(value: str) -> Region:
    min_x, min_y, min_z, max_x, max_y, max_z = parse_int_list(value, 6)
    try:
        return Region(min_x, min_y, min_z, max_x, max_y, max_z)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {number}")
    return number


def format_report(stats: NodeStats, top: Optional[int] = None) -> str:
    """Format node counts as ranked ``name = count`` lines"""
    lines = [f"{name} = {count}" for name, count in stats.most_common(top)]
    remaining = len(stats.counts) - len(lines)
    if remaining > 0:
        lines.append(f"... and {remaining} more content types")
    return "\n".join(lines)


def report_failures(stats: NodeStats) -> None:
    if not stats.failures:
        return
    print(f"Warning: {len(stats.failures)} block(s) failed to decode", file=sys.stderr)
    for reason, count in sorted(stats.failure_reasons().items(), key=lambda item: -item[1]):
        print(f"  {count} x {reason}", file=sys.stderr)


def configure_logging(quiet: bool, verbose: bool) -> None:
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog='luanti-world-parser',
        description='Count node content types across a Luanti/Minetest world',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Rank every content type in a world
  luanti-world-parser ~/.minetest/worlds/myworld

  # Use 8 worker threads and only scan blocks around the origin
  luanti-world-parser myworld -j 8 --region=-4,-4,-4,4,4,4

  # Dump a single decoded block as JSON
  luanti-world-parser myworld --block 0,0,0
        """
    )

    parser.add_argument(
        'world_path',
        type=Path,
        help='Path to the world directory (containing world.mt)'
    )

    parser.add_argument(
        '--workers', '-j',
        type=positive_int,
        default=DEFAULT_WORKERS,
        metavar='N',
        help=f'Number of decoding threads (default: {DEFAULT_WORKERS})'
    )

    parser.add_argument(
        '--queue-size',
        type=positive_int,
        default=DEFAULT_QUEUE_SIZE,
        metavar='N',
        help=f'Maximum number of blocks waiting to be decoded (default: {DEFAULT_QUEUE_SIZE})'
    )

    parser.add_argument(
        '--region',
        type=parse_region,
        metavar='MINX,MINY,MINZ,MAXX,MAXY,MAXZ',
        help='Only scan blocks inside this inclusive region (block coordinates)'
    )

    parser.add_argument(
        '--block',
        type=parse_position,
        metavar='X,Y,Z',
        help='Decode a single block and print it as JSON'
    )

    parser.add_argument(
        '--top', '-n',
        type=positive_int,
        metavar='N',
        help='Only show the N most frequent content types'
    )

    parser.add_argument(
        '--aliases',
        type=Path,
        metavar='FILE',
        help='HJSON file mapping content names to the names they are counted as'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the report as JSON'
    )

    parser.add_argument(
        '--output', '-o',
        type=Path,
        metavar='FILE',
        help='Write the report to FILE instead of stdout'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress progress and status messages'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show debug messages'
    )

    parser.add_argument(
        '--version', '-V',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    args = parser.parse_args()
    configure_logging(args.quiet, args.verbose)

    if not args.world_path.exists():
        print(f"Error: Path not found: {args.world_path}", file=sys.stderr)
        return 1

    try:
        aliases = parse_list(args.aliases) if args.aliases else {}

        with World.open(args.world_path) as world:
            if args.block is not None:
                block = world.get_block(args.block)
                if block is None:
                    print(f"Error: No block stored at {args.block}", file=sys.stderr)
                    return 1
                output = json.dumps(block.to_dict(), indent=2)
            else:
                stats = count_nodes(
                    world.storage,
                    region=args.region,
                    workers=args.workers,
                    queue_size=args.queue_size,
                )
                if aliases:
                    stats = stats.apply_aliases(aliases)
                report_failures(stats)
                if args.json:
                    output = json.dumps(stats.to_dict(args.top), indent=2)
                else:
                    output = format_report(stats, args.top)

    except WorldParserError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.output:
        args.output.write_text(output + "\n", encoding='utf-8')
        if not args.quiet:
            print(f"Output written to {args.output}", file=sys.stderr)
    else:
        print(output)

    return 0


if __name__ == '__main__':
    sys.exit(main())
