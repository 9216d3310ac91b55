"""HTTP endpoints exposing the allotment session to the map UI."""
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from configurations.config import Config
from core.errors import (
    AllotmentError,
    BackendError,
    DanglingReferenceError,
    EmptyInputError,
    NoCatchmentError,
    WorkflowPreconditionError,
)
from core.session import AllotmentSession
from models.entities import BoundingBox
from services.allotment_workflow import AllotmentWorkflow
from services.backend_client import AllotmentBackendClient
from visualization.export_to_geojson import AllotmentExporter


class CentreRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    max_capacity: int = Field(Config.DEFAULT_CENTRE_CAPACITY, ge=0)
    has_wheelchair_access: bool = False
    is_female_only: bool = False


class SimulateRequest(BaseModel):
    count: int = Field(Config.DEFAULT_STUDENT_COUNT, ge=0)
    seed: Optional[int] = None


class BuildGraphRequest(BaseModel):
    min_lat: Optional[float] = None
    min_lon: Optional[float] = None
    max_lat: Optional[float] = None
    max_lon: Optional[float] = None
    graph_detail: Optional[str] = None

    def bounds(self) -> Optional[BoundingBox]:
        values = [self.min_lat, self.min_lon, self.max_lat, self.max_lon]
        if any(v is None for v in values):
            return None
        return BoundingBox(*values)


_workflow = AllotmentWorkflow(AllotmentSession(), AllotmentBackendClient())
_exporter = None


def get_workflow() -> AllotmentWorkflow:
    return _workflow


def get_exporter() -> AllotmentExporter:
    global _exporter
    if _exporter is None:
        _exporter = AllotmentExporter(Config.EXPORT_DIR)
    return _exporter


def _to_http_exception(e: Exception) -> HTTPException:
    if isinstance(e, (WorkflowPreconditionError, NoCatchmentError, EmptyInputError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, DanglingReferenceError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, BackendError):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, (ValueError, AllotmentError)):
        return HTTPException(status_code=400, detail=str(e))
    logger.exception(e)
    return HTTPException(status_code=500, detail=f"Unexpected error: {e}")


router = APIRouter(tags=["allotment"])


@router.get("/state")
async def get_state(workflow: AllotmentWorkflow = Depends(get_workflow)):
    """Workflow guards and headline counts."""
    session = workflow.session
    return {
        "status": "success",
        "state": session.state.to_payload(),
        "stats": session.stats(),
    }


@router.get("/centres")
async def list_centres(workflow: AllotmentWorkflow = Depends(get_workflow)):
    centres = [centre.to_payload() for centre in workflow.session.centres]
    return {"status": "success", "count": len(centres), "centres": centres}


@router.post("/centres")
async def add_centre(request: CentreRequest, workflow: AllotmentWorkflow = Depends(get_workflow)):
    try:
        centre = workflow.session.add_centre(
            request.lat, request.lon, request.max_capacity,
            has_wheelchair_access=request.has_wheelchair_access,
            is_female_only=request.is_female_only,
        )
    except Exception as e:
        raise _to_http_exception(e)
    return {"status": "success", "centre": centre.to_payload()}


@router.delete("/centres")
async def clear_centres(workflow: AllotmentWorkflow = Depends(get_workflow)):
    workflow.session.clear_centres()
    return {"status": "success", "state": workflow.session.state.to_payload()}


@router.post("/simulate")
async def simulate_students(request: SimulateRequest, workflow: AllotmentWorkflow = Depends(get_workflow)):
    """Replace the student population with a fresh simulated one."""
    session = workflow.session
    try:
        if request.seed is not None:
            session.sampler.reseed(request.seed)
        result = session.simulate_students(request.count)
    except Exception as e:
        raise _to_http_exception(e)

    return {
        "status": "success",
        "generated": len(result.students),
        "requested": result.requested,
        "attempts": result.attempts,
        "termination": result.termination.value,
        "radius_meters": result.catchment.radius_meters,
        "centroid": list(result.catchment.centre),
        "stats": session.stats(),
    }


@router.get("/students")
async def list_students(workflow: AllotmentWorkflow = Depends(get_workflow)):
    students = [student.to_payload() for student in workflow.session.students]
    return {"status": "success", "count": len(students), "students": students}


@router.post("/build-graph")
async def build_graph(request: BuildGraphRequest, workflow: AllotmentWorkflow = Depends(get_workflow)):
    try:
        result = await workflow.build_graph(request.bounds(), request.graph_detail)
    except Exception as e:
        raise _to_http_exception(e)

    if result is None:
        return {"status": "superseded"}
    return {
        "status": "success",
        "nodes_count": result.nodes_count,
        "edges_count": result.edges_count,
        "timing": result.timing,
    }


@router.post("/run-allotment")
async def run_allotment(workflow: AllotmentWorkflow = Depends(get_workflow)):
    try:
        result = await workflow.run_allotment()
    except Exception as e:
        raise _to_http_exception(e)

    if result is None:
        return {"status": "superseded"}
    return {
        "status": "success",
        "assigned_count": result.assigned_count,
        "has_diagnostics": result.travel_matrix is not None,
        "timing": result.timing,
    }


@router.get("/students/views")
async def student_views(workflow: AllotmentWorkflow = Depends(get_workflow)):
    """Merged assignment and travel-time view for every student."""
    try:
        views = workflow.session.student_views()
    except Exception as e:
        raise _to_http_exception(e)
    return {"status": "success", "count": len(views), "students": [view.to_payload() for view in views]}


@router.get("/students/{student_id}/path")
async def student_path(student_id: str, workflow: AllotmentWorkflow = Depends(get_workflow)):
    try:
        path = await workflow.show_path(student_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Student {student_id} not found")
    except Exception as e:
        raise _to_http_exception(e)

    return {
        "status": "success",
        "student_id": path.student_id,
        "centre_id": path.centre_id,
        "path": [list(point) for point in path.points],
    }


@router.get("/summary")
async def summary(workflow: AllotmentWorkflow = Depends(get_workflow)):
    session = workflow.session
    try:
        views = session.student_views()
        summary_df = session.merger.summarize(views, session.centres)
        over_capacity = session.merger.over_capacity(views, session.centres)
    except Exception as e:
        raise _to_http_exception(e)

    return {
        "status": "success",
        "centres": summary_df.to_dict('records'),
        "unassigned": sum(1 for view in views if not view.is_assigned),
        "over_capacity": over_capacity,
    }


@router.get("/export-diagnostics")
async def export_diagnostics(workflow: AllotmentWorkflow = Depends(get_workflow),
                             exporter: AllotmentExporter = Depends(get_exporter)):
    try:
        report = await workflow.export_diagnostics()
        path = exporter.export_diagnostics_report(report)
    except Exception as e:
        raise _to_http_exception(e)
    return {"status": "success", "path": path}


app = FastAPI(
    title="Exam Centre Allotment Console",
    description="Centre placement, student simulation and allotment diagnostics",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
