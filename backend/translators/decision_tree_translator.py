"""
Decision Tree Translator

Converts a positioned decision-tree Layout to display JSON for the canvas.
Zoom is applied here only; stored layout positions are never changed.
"""

from typing import Dict, List, Any, Optional
import math
from pydantic import BaseModel, ConfigDict, field_validator
from schemas.process_graph import Layout, NodePosition, StepType, TreeNode

MIN_ZOOM = 0.25
MAX_ZOOM = 2.0
ZOOM_STEP = 0.25

EMPTY_MESSAGE = "No decision tree data to display"
NO_START_MESSAGE = "Every step has an incoming edge, so there is no starting step to draw from"


class ViewState(BaseModel):
    """Per-view interactive state. Every change returns a new value."""
    model_config = ConfigDict(frozen=True)

    zoom: float = 1.0

    @field_validator("zoom")
    @classmethod
    def clamp_zoom(cls, value: float) -> float:
        return min(MAX_ZOOM, max(MIN_ZOOM, value))

    def zoom_in(self) -> "ViewState":
        return ViewState(zoom=self.zoom + ZOOM_STEP)

    def zoom_out(self) -> "ViewState":
        return ViewState(zoom=self.zoom - ZOOM_STEP)

    def reset(self) -> "ViewState":
        return ViewState()

    @property
    def percent(self) -> int:
        return round(self.zoom * 100)


class DecisionTreeTranslator:
    """
    Deterministic translator from a decision-tree Layout to canvas JSON.
    Handles zoom, styling, and container sizing.
    """

    def __init__(self):
        # Node box styling per step type
        self.node_styles = {
            StepType.START: {
                "width": 192,
                "border": "1px solid #86efac",
                "background": "#f0fdf4",
                "icon": "circle"
            },
            StepType.TASK: {
                "width": 192,
                "border": "1px solid #93c5fd",
                "background": "#eff6ff",
                "icon": "circle"
            },
            StepType.DECISION: {
                "width": 192,
                "border": "1px solid #fdba74",
                "background": "#fff7ed",
                "icon": "diamond"
            },
            StepType.END: {
                "width": 192,
                "border": "1px solid #fca5a5",
                "background": "#fef2f2",
                "icon": "circle"
            }
        }

        # Edge styling
        self.edge_style = {
            "strokeWidth": 2,
            "stroke": "#9ca3af"
        }

        # Room reserved right of and below the furthest node
        self.node_extent = {"x": 150, "y": 100}
        self.min_canvas = {"width": 800, "height": 600}

    def translate(self, layout: Layout, view_state: Optional[ViewState] = None) -> Dict[str, Any]:
        """
        Convert a Layout to canvas JSON.

        Args:
            layout: Positioned forest
            view_state: Current zoom; defaults to 100%

        Returns:
            Dict containing node boxes, edge lines, canvas size and zoom info
        """
        view_state = view_state or ViewState()
        zoom = view_state.zoom
        metadata = {"zoom": zoom, "zoomPercent": view_state.percent}

        if layout.is_empty:
            return {
                "empty": True,
                "message": EMPTY_MESSAGE if layout.step_count == 0 else NO_START_MESSAGE,
                "nodes": [],
                "edges": [],
                "canvas": dict(self.min_canvas),
                "metadata": metadata
            }

        nodes: List[Dict[str, Any]] = []
        edges: List[Dict[str, Any]] = []
        for root in layout.roots:
            for node in root.walk():
                position = layout.positions[node.key]
                nodes.append(self._convert_node(node, position, zoom))
                for child, edge in zip(node.children, node.edges):
                    edges.append(self._convert_edge(
                        node, child, edge.label, position, layout.positions[child.key], zoom
                    ))

        return {
            "empty": False,
            "message": None,
            "nodes": nodes,
            "edges": edges,
            "canvas": self._canvas_size(layout, zoom),
            "metadata": metadata
        }

    def _convert_node(self, node: TreeNode, position: NodePosition, zoom: float) -> Dict[str, Any]:
        """Convert a TreeNode to a node box"""
        step = node.step
        return {
            "id": node.key,
            "stepId": step.id,
            "type": step.step_type.value,
            "position": {"x": position.x * zoom, "y": position.y * zoom},
            "scale": zoom,
            "data": {
                "stepNumber": step.step_number,
                "stepName": step.step_name,
                "stepType": step.step_type.value,
                "stepDetails": step.step_details,
                "level": position.level
            },
            "style": self.node_styles[step.step_type].copy()
        }

    def _convert_edge(self, parent: TreeNode, child: TreeNode, label: Optional[str],
                      start: NodePosition, end: NodePosition, zoom: float) -> Dict[str, Any]:
        """Convert a parent -> child link to a rotated line segment"""
        dx = (end.x - start.x) * zoom
        dy = (end.y - start.y) * zoom

        return {
            "id": f"edge-{parent.key}-{child.key}",
            "source": parent.key,
            "target": child.key,
            "from": {"x": start.x * zoom, "y": start.y * zoom},
            "to": {"x": end.x * zoom, "y": end.y * zoom},
            "length": math.sqrt(dx * dx + dy * dy),
            "angle": math.degrees(math.atan2(dy, dx)),
            "label": label or None,
            "style": self.edge_style.copy()
        }

    def _canvas_size(self, layout: Layout, zoom: float) -> Dict[str, float]:
        max_x = max(p.x + self.node_extent["x"] for p in layout.positions.values())
        max_y = max(p.y + self.node_extent["y"] for p in layout.positions.values())
        return {
            "width": max(self.min_canvas["width"], max_x * zoom),
            "height": max(self.min_canvas["height"], max_y * zoom)
        }
