"""
Position Assigner

Layered tree layout for shallow decision trees. Rows are evenly spaced by
depth; decision nodes spread their children left and right, everything
else continues straight down. No overlap resolution between unrelated
subtrees.
"""

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel

from schemas.process_graph import Layout, NodePosition, ProcessGraph, StepType, TreeNode
from services.graph_builder import MAX_TREE_NODES, build_forest

logger = logging.getLogger(__name__)


class LayoutConfig(BaseModel):
    root_x: float = 400
    level_spacing: float = 150
    top_margin: float = 50
    min_x: float = 50
    sibling_spacing: float = 300
    decision_spread: float = 200


def count_levels(roots: List[TreeNode]) -> Dict[int, int]:
    """Number of tree nodes at each depth across the whole forest."""
    level_counts: Dict[int, int] = {}
    for root in roots:
        for node in root.walk():
            level_counts[node.level] = level_counts.get(node.level, 0) + 1
    return level_counts


def assign_positions(roots: List[TreeNode], config: Optional[LayoutConfig] = None) -> Dict[str, NodePosition]:
    """
    Compute a position for every node in the forest, keyed by node key.

    The tree itself is left untouched.
    """
    config = config or LayoutConfig()
    level_counts = count_levels(roots)
    level_positions: Dict[int, int] = {}
    positions: Dict[str, NodePosition] = {}

    # Preorder with an explicit stack; children pushed right to left
    stack = [(root, 0.0) for root in reversed(roots)]
    while stack:
        node, parent_x = stack.pop()
        level = node.level
        level_pos = level_positions.get(level, 0)
        total_at_level = level_counts.get(level, 1)

        if level == 0:
            x = config.root_x
        elif node.step.step_type == StepType.DECISION and len(node.children) > 1:
            x = parent_x + (level_pos - total_at_level / 2) * config.decision_spread
        else:
            x = parent_x

        x = max(config.min_x, x)
        positions[node.key] = NodePosition(
            x=x,
            y=level * config.level_spacing + config.top_margin,
            level=level,
        )
        level_positions[level] = level_pos + 1

        child_count = len(node.children)
        for index in reversed(range(child_count)):
            if child_count > 1:
                child_x = x + (index - (child_count - 1) / 2) * config.sibling_spacing
            else:
                child_x = x
            stack.append((node.children[index], child_x))

    return positions


def layout_graph(graph: ProcessGraph, config: Optional[LayoutConfig] = None,
                 max_nodes: int = MAX_TREE_NODES) -> Layout:
    """Build the forest for a graph and position it."""
    roots = build_forest(graph, max_nodes)
    positions = assign_positions(roots, config)
    logger.debug(f"Laid out {len(positions)} nodes in {len(roots)} tree(s)")
    return Layout(roots=roots, positions=positions, step_count=len(graph.nodes))
