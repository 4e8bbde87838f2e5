# schemas/process_graph.py
from __future__ import annotations
from typing import List, Optional, Dict
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------- Core Enums ----------

class StepType(str, Enum):
    START = "start"
    TASK = "task"
    DECISION = "decision"
    END = "end"

# ---------- Graph Models ----------

class ProcessStep(BaseModel):
    id: str
    step_number: int
    step_type: StepType = Field(default=StepType.TASK)
    step_name: str
    step_details: Optional[str] = None

    # Optional metadata
    process_id: Optional[str] = None
    responsibilities: Optional[str] = None
    references: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("step_type", mode="before")
    @classmethod
    def default_step_type(cls, value):
        # Older rows carry no type at all
        if value is None or value == "":
            return StepType.TASK
        return value

class ProcessStepEdge(BaseModel):
    id: str
    from_step_id: str
    to_step_id: str
    label: Optional[str] = None
    priority: int = 0

    # Optional metadata
    process_id: Optional[str] = None
    created_at: Optional[str] = None

class ProcessGraph(BaseModel):
    nodes: List[ProcessStep] = Field(default_factory=list)
    edges: List[ProcessStepEdge] = Field(default_factory=list)

# ---------- Layout Models ----------

class NodePosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    level: int

class TreeNode(BaseModel):
    """One traversal-path instance of a step. Built once, never mutated."""
    model_config = ConfigDict(frozen=True)

    key: str
    step: ProcessStep
    level: int
    children: List[TreeNode] = Field(default_factory=list)
    edges: List[ProcessStepEdge] = Field(default_factory=list)

    def walk(self):
        """Yield this node and all descendants, depth-first in child order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

class Layout(BaseModel):
    model_config = ConfigDict(frozen=True)

    roots: List[TreeNode] = Field(default_factory=list)
    positions: Dict[str, NodePosition] = Field(default_factory=dict)
    # Steps in the source graph; a looped graph has steps but no roots
    step_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.roots

# ---------- Request Models ----------

class ProcessStepCreate(BaseModel):
    step_number: int
    step_name: str
    step_type: StepType = Field(default=StepType.TASK)
    step_details: Optional[str] = None
    responsibilities: Optional[str] = None
    references: Optional[str] = None

class ProcessStepUpdate(BaseModel):
    step_number: Optional[int] = None
    step_name: Optional[str] = None
    step_type: Optional[StepType] = None
    step_details: Optional[str] = None
    responsibilities: Optional[str] = None
    references: Optional[str] = None

class ProcessStepEdgeCreate(BaseModel):
    from_step_id: str
    to_step_id: str
    label: Optional[str] = None
    priority: int = 0

# ---------- Validation Helpers ----------

def validate_graph_references(graph: ProcessGraph) -> List[str]:
    """
    Report reference problems the layout engine tolerates silently:
    - duplicate step ids (the last one wins in lookups)
    - edges whose source or destination step does not exist
    """
    warnings: List[str] = []
    seen: Dict[str, int] = {}

    for step in graph.nodes:
        seen[step.id] = seen.get(step.id, 0) + 1
    for step_id, count in seen.items():
        if count > 1:
            warnings.append(f"Step '{step_id}' appears {count} times")

    for e in graph.edges:
        if e.from_step_id not in seen:
            warnings.append(f"Edge '{e.id}' source '{e.from_step_id}' not found")
        if e.to_step_id not in seen:
            warnings.append(f"Edge '{e.id}' destination '{e.to_step_id}' not found")

    return warnings
