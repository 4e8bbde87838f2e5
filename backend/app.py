from fastapi import FastAPI, HTTPException, Query
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import run_in_threadpool
from typing import Dict, Any, List
import os
import logging
from dotenv import load_dotenv

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from services.graph_builder import GraphCycleError, TreeTooLargeError
from services.position_assigner import layout_graph
from services.process_graph_service import ProcessGraphService
from translators.decision_tree_translator import DecisionTreeTranslator, ViewState
from schemas.process_graph import (
    ProcessGraph, ProcessStep, ProcessStepCreate, ProcessStepUpdate,
    ProcessStepEdge, ProcessStepEdgeCreate, validate_graph_references
)

# Load environment variables
load_dotenv()

# Initialize services
decision_tree_translator = DecisionTreeTranslator()

# Database path (SQLite file)
database_path = os.getenv("DATABASE_PATH", "oe_manager.db")
if not os.path.isabs(database_path):
    # Make path relative to backend directory
    database_path = os.path.join(os.path.dirname(__file__), database_path)

logger.info(f"Using SQLite database at: {database_path}")

process_graph_service = ProcessGraphService(database_path)

# Upper bound on tree nodes after expanding shared descendants
max_tree_nodes = int(os.getenv("MAX_TREE_NODES", 10000))

# Lifespan event handler
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database connection on startup and close on shutdown"""
    # Startup
    logger.info("Starting up OE Manager API...")
    try:
        await process_graph_service.connect()
        logger.info("Database connection established successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down OE Manager API...")
    try:
        await process_graph_service.close()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.error(f"Error closing database connection: {e}")

app = FastAPI(
    title="OE Manager",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS - Simplified for local use
default_origins = "http://localhost:5000,http://localhost:5173,http://localhost:3000"
allowed_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", default_origins).split(",") if o.strip()]

logger.info(f"CORS enabled for origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    max_age=3600,
)


def render_decision_tree(graph: ProcessGraph, zoom: float) -> Dict[str, Any]:
    """Lay out a graph and translate it for the canvas at the given zoom."""
    for warning in validate_graph_references(graph):
        logger.debug(f"Decision tree input: {warning}")
    layout = layout_graph(graph, max_nodes=max_tree_nodes)
    return decision_tree_translator.translate(layout, ViewState(zoom=zoom))


@app.get("/")
async def root():
    return {"message": "OE Manager API"}

@app.get("/health")
async def health():
    return {"status": "healthy"}

# ============================================================================
# PROCESS STEP ENDPOINTS
# ============================================================================

@app.get("/api/oe-processes/{process_id}/steps", response_model=List[ProcessStep])
async def get_process_steps(process_id: str):
    """Get all steps of a process"""
    try:
        return await process_graph_service.get_process_steps(process_id)
    except Exception as e:
        logger.error(f"Error fetching process steps: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch process steps")

@app.post("/api/oe-processes/{process_id}/steps", response_model=ProcessStep, status_code=201)
async def create_process_step(process_id: str, step_data: ProcessStepCreate):
    """Create a new process step"""
    try:
        return await process_graph_service.create_process_step(process_id, step_data)
    except Exception as e:
        logger.error(f"Error creating process step: {e}")
        raise HTTPException(status_code=500, detail="Failed to create process step")

@app.put("/api/process-steps/{step_id}", response_model=ProcessStep)
async def update_process_step(step_id: str, step_data: ProcessStepUpdate):
    """Update a process step"""
    try:
        return await process_graph_service.update_process_step(step_id, step_data)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating process step: {e}")
        raise HTTPException(status_code=500, detail="Failed to update process step")

@app.delete("/api/process-steps/{step_id}")
async def delete_process_step(step_id: str):
    """Delete a process step and its edges"""
    try:
        await process_graph_service.delete_process_step(step_id)
        return {"message": "Process step deleted successfully"}
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error deleting process step: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete process step")

# ============================================================================
# PROCESS STEP EDGE ENDPOINTS
# ============================================================================

@app.get("/api/oe-processes/{process_id}/edges", response_model=List[ProcessStepEdge])
async def get_process_step_edges(process_id: str):
    """Get all edges between the steps of a process"""
    try:
        return await process_graph_service.get_process_step_edges(process_id)
    except Exception as e:
        logger.error(f"Error fetching process step edges: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch process step edges")

@app.post("/api/oe-processes/{process_id}/edges", response_model=ProcessStepEdge, status_code=201)
async def create_process_step_edge(process_id: str, edge_data: ProcessStepEdgeCreate):
    """Link two steps of a process"""
    try:
        return await process_graph_service.create_process_step_edge(process_id, edge_data)
    except ValueError as e:
        logger.warning(f"Rejected edge for process {process_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating process step edge: {e}")
        raise HTTPException(status_code=500, detail="Failed to create process step edge")

@app.delete("/api/process-step-edges/{edge_id}")
async def delete_process_step_edge(edge_id: str):
    """Delete an edge"""
    try:
        await process_graph_service.delete_process_step_edge(edge_id)
        return {"message": "Process step edge deleted successfully"}
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error deleting process step edge: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete process step edge")

# ============================================================================
# GRAPH & DECISION TREE ENDPOINTS
# ============================================================================

@app.get("/api/oe-processes/{process_id}/graph", response_model=ProcessGraph)
async def get_process_graph(process_id: str):
    """Get the steps and edges of a process"""
    try:
        return await process_graph_service.get_process_graph(process_id)
    except Exception as e:
        logger.error(f"Error fetching process graph: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch process graph")

@app.get("/api/oe-processes/{process_id}/decision-tree")
async def get_decision_tree(process_id: str, zoom: float = Query(1.0, gt=0)):
    """Get the laid-out decision tree of a process"""
    try:
        graph = await process_graph_service.get_process_graph(process_id)
        return await run_in_threadpool(render_decision_tree, graph, zoom)
    except (GraphCycleError, TreeTooLargeError) as e:
        logger.warning(f"Cannot lay out process {process_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error building decision tree: {e}")
        raise HTTPException(status_code=500, detail="Failed to build decision tree")

@app.post("/api/decision-tree/layout")
def layout_decision_tree(graph: ProcessGraph, zoom: float = Query(1.0, gt=0)):
    """Lay out a graph supplied by the client (runs in the threadpool)"""
    try:
        return render_decision_tree(graph, zoom)
    except (GraphCycleError, TreeTooLargeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error building decision tree: {e}")
        raise HTTPException(status_code=500, detail="Failed to build decision tree")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
