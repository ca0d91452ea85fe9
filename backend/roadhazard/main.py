"""FastAPI backend for the Road Hazard Monitor."""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from .config import configure_logging
from .db import create_db_engine, init_db, make_session_factory, session_scope
from .geocoding import AddressResolver
from .ingest import IngestionPipeline, IngestKind, TelemetryReport
from .models import RoadEvent
from .realtime import broadcast_event, broadcaster

DASHBOARD_TABLE_LIMIT = 10

RESPONSE_MESSAGES = {
    IngestKind.CREATED: "Created new record",
    IngestKind.UPDATED: "Updated existing record",
}


# Pydantic models
class RoadEventInput(BaseModel):
    """Telemetry report posted by a vehicle."""
    event_type: str = Field(min_length=1)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    speed_kmph: Optional[float] = None
    accel_z: Optional[float] = None
    gyro_y: Optional[float] = None


class IngestResponse(BaseModel):
    message: str
    id: int


class RoadEventResponse(BaseModel):
    id: int
    event_type: str
    latitude: Optional[float]
    longitude: Optional[float]
    location: str
    speed_kmph: Optional[float]
    accel_z: Optional[float]
    gyro_y: Optional[float]
    severity: str
    status: str
    vehicle_count: int
    created_at: str


class DashboardResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    table: List[RoadEventResponse]
    # Key name kept from the original dashboard API
    map_points: List[RoadEventResponse] = Field(alias="mapPoints")


def get_db(request: Request):
    yield from session_scope(request.app.state.session_factory)


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


router = APIRouter()


@router.post(
    "/api/road-event",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": IngestResponse}},
)
async def create_road_event(
    event_input: RoadEventInput,
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Receive a hazard report, merge it into a nearby event of the same type or
    create a new one. Broadcasts the resulting event to SSE subscribers.
    """
    report = TelemetryReport(**event_input.model_dump())
    result = await run_in_threadpool(pipeline.ingest, report)

    broadcast_event(result.kind.value, result.event)

    status_code = (
        status.HTTP_201_CREATED if result.kind is IngestKind.CREATED else status.HTTP_200_OK
    )
    body = IngestResponse(message=RESPONSE_MESSAGES[result.kind], id=result.event_id)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.get("/api/road-events", response_model=List[RoadEventResponse])
def list_road_events(db: Session = Depends(get_db)):
    """All events, most recently observed first."""
    events = db.query(RoadEvent).order_by(RoadEvent.created_at.desc()).all()
    return [RoadEventResponse(**event.to_dict()) for event in events]


@router.get("/api/dashboard", response_model=DashboardResponse)
def dashboard(db: Session = Depends(get_db)):
    """Latest events for the table view and every located event for the map."""
    table = (
        db.query(RoadEvent)
        .order_by(RoadEvent.created_at.desc())
        .limit(DASHBOARD_TABLE_LIMIT)
        .all()
    )
    map_points = (
        db.query(RoadEvent)
        .filter(RoadEvent.latitude.isnot(None), RoadEvent.longitude.isnot(None))
        .order_by(RoadEvent.created_at.desc())
        .all()
    )
    return DashboardResponse(
        table=[RoadEventResponse(**event.to_dict()) for event in table],
        map_points=[RoadEventResponse(**event.to_dict()) for event in map_points],
    )


@router.get("/stream")
async def stream_events():
    """
    SSE endpoint for real-time catalog updates.
    """
    queue = broadcaster.subscribe()

    async def event_generator():
        try:
            async for message in broadcaster.stream(queue):
                yield message
        finally:
            broadcaster.unsubscribe(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/health")
async def health_check():
    return {"status": "healthy"}


async def handle_store_error(request: Request, exc: SQLAlchemyError):
    logger.opt(exception=exc).error("{} {} failed", request.method, request.url.path)
    return PlainTextResponse("Server Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(
    engine: Optional[Engine] = None,
    resolver: Optional[AddressResolver] = None,
) -> FastAPI:
    """Build the application around an explicitly owned engine."""
    configure_logging()
    engine = engine or create_db_engine()
    session_factory = make_session_factory(engine)
    write_session_factory = make_session_factory(engine, write_lock=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        logger.info("Database ready at {}", engine.url.render_as_string(hide_password=True))
        yield
        engine.dispose()

    app = FastAPI(
        title="Road Hazard Monitor",
        description="Deduplicated, severity-classified catalog of road hazards reported by vehicles",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.pipeline = IngestionPipeline(write_session_factory, resolver or AddressResolver())

    app.add_exception_handler(SQLAlchemyError, handle_store_error)
    app.include_router(router)
    return app


app = create_app()
