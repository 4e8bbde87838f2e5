import aiosqlite
import logging
import os
import uuid
from typing import List, Optional, Any
from schemas.process_graph import (
    ProcessStep, ProcessStepCreate, ProcessStepUpdate,
    ProcessStepEdge, ProcessStepEdgeCreate, ProcessGraph
)

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "schemas", "schema.sql")

STEP_COLUMNS = """id, process_id, step_number, step_type, step_name, step_details,
    responsibilities, "references", created_at, updated_at"""

EDGE_COLUMNS = "id, process_id, from_step_id, to_step_id, label, priority, created_at"

REQUIRED_STEP_FIELDS = {"step_number", "step_name", "step_type"}


class ProcessGraphService:
    def __init__(self, database_path: str):
        self.database_path = database_path
        self.db: Optional[aiosqlite.Connection] = None

    async def connect(self):
        """Initialize database connection and make sure the tables exist"""
        self.db = await aiosqlite.connect(self.database_path)
        self.db.row_factory = aiosqlite.Row
        with open(SCHEMA_PATH, 'r') as f:
            await self.db.executescript(f.read())
        await self.db.commit()

    async def close(self):
        """Close database connection"""
        if self.db:
            await self.db.close()
            self.db = None

    # Process Step Methods
    async def get_process_steps(self, process_id: str) -> List[ProcessStep]:
        """Get all steps of a process ordered by step number"""
        query = f"SELECT {STEP_COLUMNS} FROM process_steps WHERE process_id = ? ORDER BY step_number, rowid"
        async with self.db.execute(query, (process_id,)) as cursor:
            rows = await cursor.fetchall()
        return [ProcessStep(**dict(row)) for row in rows]

    async def get_process_step(self, step_id: str) -> Optional[ProcessStep]:
        async with self.db.execute(
            f"SELECT {STEP_COLUMNS} FROM process_steps WHERE id = ?", (step_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return ProcessStep(**dict(row)) if row else None

    async def create_process_step(self, process_id: str, step_data: ProcessStepCreate) -> ProcessStep:
        """Create a new step in a process"""
        step_id = str(uuid.uuid4())
        await self.db.execute(
            """
            INSERT INTO process_steps (id, process_id, step_number, step_type, step_name, step_details,
                                       responsibilities, "references")
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (step_id, process_id, step_data.step_number, step_data.step_type.value, step_data.step_name,
             step_data.step_details, step_data.responsibilities, step_data.references)
        )
        await self.db.commit()
        return await self.get_process_step(step_id)

    async def update_process_step(self, step_id: str, step_data: ProcessStepUpdate) -> ProcessStep:
        """Update the given fields of a step"""
        existing = await self.get_process_step(step_id)
        if not existing:
            raise LookupError(f"Process step {step_id} not found")

        updates = []
        params: List[Any] = []
        for field, value in step_data.model_dump(exclude_unset=True, mode="json").items():
            if value is None and field in REQUIRED_STEP_FIELDS:
                continue
            updates.append(f'"{field}" = ?')
            params.append(value)

        if updates:
            updates.append("updated_at = CURRENT_TIMESTAMP")
            params.append(step_id)
            await self.db.execute(f"UPDATE process_steps SET {', '.join(updates)} WHERE id = ?", params)
            await self.db.commit()

        return await self.get_process_step(step_id)

    async def delete_process_step(self, step_id: str) -> bool:
        """Delete a step together with every edge touching it"""
        existing = await self.get_process_step(step_id)
        if not existing:
            raise LookupError(f"Process step {step_id} not found")

        await self.db.execute(
            "DELETE FROM process_step_edges WHERE from_step_id = ? OR to_step_id = ?", (step_id, step_id)
        )
        await self.db.execute("DELETE FROM process_steps WHERE id = ?", (step_id,))
        await self.db.commit()
        return True

    # Process Step Edge Methods
    async def get_process_step_edges(self, process_id: str) -> List[ProcessStepEdge]:
        """Get all edges of a process in insertion order"""
        query = f"SELECT {EDGE_COLUMNS} FROM process_step_edges WHERE process_id = ? ORDER BY rowid"
        async with self.db.execute(query, (process_id,)) as cursor:
            rows = await cursor.fetchall()
        return [ProcessStepEdge(**dict(row)) for row in rows]

    async def create_process_step_edge(self, process_id: str, edge_data: ProcessStepEdgeCreate) -> ProcessStepEdge:
        """Link two steps of the same process"""
        for step_id in (edge_data.from_step_id, edge_data.to_step_id):
            step = await self.get_process_step(step_id)
            if not step or step.process_id != process_id:
                raise ValueError(f"Step {step_id} does not belong to process {process_id}")

        edge_id = str(uuid.uuid4())
        await self.db.execute(
            """
            INSERT INTO process_step_edges (id, process_id, from_step_id, to_step_id, label, priority)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (edge_id, process_id, edge_data.from_step_id, edge_data.to_step_id,
             edge_data.label, edge_data.priority)
        )
        await self.db.commit()

        async with self.db.execute(
            f"SELECT {EDGE_COLUMNS} FROM process_step_edges WHERE id = ?", (edge_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return ProcessStepEdge(**dict(row))

    async def delete_process_step_edge(self, edge_id: str) -> bool:
        cursor = await self.db.execute("DELETE FROM process_step_edges WHERE id = ?", (edge_id,))
        await self.db.commit()
        if cursor.rowcount == 0:
            raise LookupError(f"Process step edge {edge_id} not found")
        return True

    # Graph
    async def get_process_graph(self, process_id: str) -> ProcessGraph:
        """Steps and edges of a process as one graph value"""
        steps = await self.get_process_steps(process_id)
        edges = await self.get_process_step_edges(process_id)
        logger.info(f"Loaded graph for process {process_id}: {len(steps)} steps, {len(edges)} edges")
        return ProcessGraph(nodes=steps, edges=edges)
