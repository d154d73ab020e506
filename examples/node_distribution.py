#!/usr/bin/env python3
"""
Example: Node Distribution

This example counts every node content type in a world with a pool of worker
threads and prints the 30 most common ones with their share of all nodes.
"""

import os
import sys
from pathlib import Path

from luanti_world_parser import World, count_nodes


def main():
    # Update this path to point to your world directory
    world_path = Path(os.path.expanduser("~/.minetest/worlds/world"))
    if len(sys.argv) > 1:
        world_path = Path(sys.argv[1])

    if not (world_path / "world.mt").exists():
        print(f"Error: No world.mt found in {world_path}")
        print("Pass the path of a world directory as the first argument")
        return

    with World.open(world_path) as world:
        stats = count_nodes(world.storage, workers=4)

    ranked = stats.most_common()
    total_nodes = sum(count for _, count in ranked)

    print("=" * 60)
    print("NODE DISTRIBUTION (top 30 by count)")
    print("=" * 60)
    for name, count in ranked[:30]:
        percentage = (count / total_nodes) * 100 if total_nodes else 0.0
        print(f"  {name:40} {count:>12,} ({percentage:5.2f}%)")

    if len(ranked) > 30:
        print(f"  ... and {len(ranked) - 30} more content types")

    print("-" * 60)
    print(f"Blocks decoded: {stats.blocks:,}")
    print(f"Blocks failed: {len(stats.failures):,}")
    print(f"Total counted nodes: {total_nodes:,}")


if __name__ == "__main__":
    main()
