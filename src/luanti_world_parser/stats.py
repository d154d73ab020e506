"""
Per-content node statistics.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .models import Block, Position


@dataclass(frozen=True)
class BlockFailure:
    """A block that could not be decoded"""
    position: Position
    reason: str


@dataclass
class NodeStats:
    """
    Node counts by content name.

    Accumulators combine with merge(), which is associative and commutative
    with NodeStats() as identity, so per-worker results can be merged in any
    order.
    """
    counts: Counter = field(default_factory=Counter)
    blocks: int = 0
    failures: List[BlockFailure] = field(default_factory=list)

    def add_block(self, block: Block) -> int:
        """
        Count the nodes of one block by content name.

        Counting stops at the first content id missing from the block's own
        mapping; nodes counted before it are kept.

        Returns:
            Number of nodes counted
        """
        counted = 0
        mappings = block.mappings
        for content_id in block.content_ids():
            name = mappings.get(content_id)
            if name is None:
                break
            self.counts[name] += 1
            counted += 1
        self.blocks += 1
        return counted

    def add_failure(self, position: Position, reason: str) -> None:
        self.failures.append(BlockFailure(position, reason))

    def merge(self, other: "NodeStats") -> "NodeStats":
        """Return a new accumulator holding the sum of both"""
        counts = Counter(self.counts)
        counts.update(other.counts)
        return NodeStats(
            counts=counts,
            blocks=self.blocks + other.blocks,
            failures=sorted(self.failures + other.failures, key=lambda f: (f.position, f.reason)),
        )

    @classmethod
    def merge_all(cls, stats: Iterable["NodeStats"]) -> "NodeStats":
        result = cls()
        for item in stats:
            result = result.merge(item)
        return result

    def most_common(self, n: Optional[int] = None) -> List[Tuple[str, int]]:
        """Names ranked by count, ties broken by name"""
        ranked = sorted(self.counts.items(), key=lambda item: (-item[1], item[0]))
        return ranked if n is None else ranked[:n]

    def apply_aliases(self, aliases: Mapping[str, str]) -> "NodeStats":
        """Rename content names, summing the counts of names that collide"""
        counts: Counter = Counter()
        for name, count in self.counts.items():
            counts[aliases.get(name, name)] += count
        return NodeStats(counts=counts, blocks=self.blocks, failures=list(self.failures))

    def failure_reasons(self) -> Dict[str, int]:
        return dict(Counter(f.reason for f in self.failures))

    def to_dict(self, top: Optional[int] = None) -> Dict[str, Any]:
        return {
            "metadata": {
                "blocks": self.blocks,
                "failed_blocks": len(self.failures),
                "total_nodes": sum(self.counts.values()),
            },
            "node_counts": dict(self.most_common(top)),
            "failures": [
                {"position": (f.position.x, f.position.y, f.position.z), "reason": f.reason}
                for f in self.failures
            ],
        }
