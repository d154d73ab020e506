#!/usr/bin/env python3
"""
Example: Iterating Over Blocks

This example walks the blocks around the world origin one at a time and
prints what each of them stores, without the worker pool.
"""

import os
import sys
from pathlib import Path

from luanti_world_parser import Region, World


def main():
    # Update this path to point to your world directory
    world_path = Path(os.path.expanduser("~/.minetest/worlds/world"))
    if len(sys.argv) > 1:
        world_path = Path(sys.argv[1])

    if not (world_path / "world.mt").exists():
        print(f"Error: No world.mt found in {world_path}")
        return

    region = Region(-2, -2, -2, 2, 2, 2)

    def show(position, block):
        print(f"Block {position}: version {block.version}")
        print(f"  Timestamp: {block.timestamp}")
        print(f"  Content types: {len(block.mappings)}")
        print(f"  Static objects: {len(block.static_objects)}")
        print(f"  Node timers: {len(block.node_timers)}")
        names = sorted(block.mappings.values())[:5]
        if names:
            print(f"  Sample content: {', '.join(names)}")
        print()

    with World.open(world_path) as world:
        count = world.scan_blocks(region, show)

    print(f"Done! {count} blocks shown")


if __name__ == "__main__":
    main()
