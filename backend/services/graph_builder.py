"""
Graph Builder

Turns a flat process graph (steps + prioritized edges) into a forest of
rooted trees for decision-tree display. Roots are steps without incoming
edges; children follow ascending edge priority.
"""

import logging
from typing import Dict, List, Set, Tuple

from schemas.process_graph import ProcessGraph, ProcessStep, ProcessStepEdge, TreeNode

logger = logging.getLogger(__name__)

MAX_TREE_NODES = 10000


class GraphCycleError(ValueError):
    """Raised when a step is reachable from itself."""

    def __init__(self, path: List[str]):
        self.path = path
        super().__init__(f"Process graph contains a cycle: {' -> '.join(path)}")


class TreeTooLargeError(ValueError):
    """Raised when expanding shared descendants exceeds the node limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Process graph expands to more than {limit} tree nodes")


def build_adjacency(graph: ProcessGraph) -> Dict[str, List[Tuple[ProcessStepEdge, ProcessStep]]]:
    """
    Map each source step id to its (edge, destination step) pairs, sorted by
    edge priority. Edges pointing at unknown steps are dropped.
    """
    steps_by_id = {step.id: step for step in graph.nodes}
    adjacency: Dict[str, List[Tuple[ProcessStepEdge, ProcessStep]]] = {}

    for edge in graph.edges:
        to_step = steps_by_id.get(edge.to_step_id)
        if edge.from_step_id not in steps_by_id or to_step is None:
            logger.debug(
                f"Dropping edge {edge.id}: {edge.from_step_id} -> {edge.to_step_id} references an unknown step"
            )
            continue
        adjacency.setdefault(edge.from_step_id, []).append((edge, to_step))

    # list.sort is stable, equal priorities keep input order
    for children in adjacency.values():
        children.sort(key=lambda pair: pair[0].priority)

    return adjacency


def find_root_steps(graph: ProcessGraph) -> List[ProcessStep]:
    """Steps that are never an edge destination, in input order."""
    incoming: Set[str] = {edge.to_step_id for edge in graph.edges}
    return [step for step in graph.nodes if step.id not in incoming]


def build_forest(graph: ProcessGraph, max_nodes: int = MAX_TREE_NODES) -> List[TreeNode]:
    """
    Build one tree per root step.

    A step reachable along several paths gets one TreeNode per path. A step
    that reappears on its own ancestor path raises GraphCycleError; a forest
    larger than max_nodes raises TreeTooLargeError.
    """
    if not graph.nodes:
        return []

    adjacency = build_adjacency(graph)
    node_count = 0

    def build_tree(root: ProcessStep, key: str) -> TreeNode:
        nonlocal node_count
        # Each frame: [step, key, level, next child index, children, edges]
        frames = [[root, key, 0, 0, [], []]]
        path = [root.id]
        on_path = {root.id}
        node_count += 1
        if node_count > max_nodes:
            raise TreeTooLargeError(max_nodes)

        while True:
            frame = frames[-1]
            step, node_key, level, index, children, edges = frame
            pairs = adjacency.get(step.id, [])

            if index < len(pairs):
                frame[3] = index + 1
                edge, child_step = pairs[index]
                if child_step.id in on_path:
                    raise GraphCycleError(path + [child_step.id])
                node_count += 1
                if node_count > max_nodes:
                    raise TreeTooLargeError(max_nodes)
                edges.append(edge)
                frames.append([child_step, f"{node_key}.{index}", level + 1, 0, [], []])
                path.append(child_step.id)
                on_path.add(child_step.id)
                continue

            node = TreeNode(key=node_key, step=step, level=level, children=children, edges=edges)
            frames.pop()
            on_path.discard(path.pop())
            if not frames:
                return node
            frames[-1][4].append(node)

    roots = [build_tree(step, str(index)) for index, step in enumerate(find_root_steps(graph))]
    logger.debug(f"Built forest with {len(roots)} root(s) and {node_count} nodes from {len(graph.nodes)} steps")
    return roots
