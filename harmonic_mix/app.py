"""
FastAPI Web Application for Harmonic Mix

Endpoints:
  GET    /api/state                 - Full session snapshot
  GET    /api/library/tracks        - Filtered + sorted library view
  POST   /api/library/files         - Analyze and add files
  POST   /api/library/demo          - Load the demo library
  PUT    /api/library/filter        - Replace the filter
  DELETE /api/library/filter        - Reset the filter
  POST   /api/library/sort          - Sort by a column (repeat toggles direction)
  POST   /api/select                - Select a track, request suggestions
  POST   /api/select/suggestion     - Select the track a suggestion points at
  GET    /api/suggestions           - Current suggestions (optionally wait)
  POST   /api/edit/start            - Start editing a cell
  POST   /api/edit/commit           - Commit the open edit
  POST   /api/edit/cancel           - Cancel the open edit
  POST   /api/setlist               - Add a track to the set-list
  DELETE /api/setlist/{track_id}    - Remove a track from the set-list
  GET    /api/export                - CSV of the library view or set-list
  POST   /api/error/dismiss         - Clear the advisory error
"""

from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import BaseModel

from .config import Settings
from .demo import DEMO_TRACKS
from .export import EXPORT_FILENAME
from .models import EditableField, FilterCriteria, SortField, Suggestion
from .session import ExportView, MixSession


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class FilesRequest(BaseModel):
    filenames: List[str]


class SortRequest(BaseModel):
    field: SortField


class SelectRequest(BaseModel):
    track_id: str


class EditStartRequest(BaseModel):
    track_id: str
    field: EditableField


class EditCommitRequest(BaseModel):
    value: str


class SetlistRequest(BaseModel):
    track_id: str


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

router = APIRouter(prefix="/api")


def _session(request: Request) -> MixSession:
    session = request.app.state.session
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized")
    return session


def _state(session: MixSession, **extra) -> JSONResponse:
    body = {"state": session.snapshot().model_dump(mode="json")}
    body.update(extra)
    return JSONResponse(body)


@router.get("/state")
async def get_state(request: Request):
    return JSONResponse(_session(request).snapshot().model_dump(mode="json"))


@router.get("/library/tracks")
async def library_tracks(request: Request):
    return JSONResponse([t.model_dump(mode="json") for t in _session(request).view()])


@router.post("/library/files")
async def add_files(body: FilesRequest, request: Request):
    session = _session(request)
    report = await session.add_files(body.filenames)
    return _state(session, report=report.model_dump(mode="json"))


@router.post("/library/demo")
async def load_demo(request: Request):
    session = _session(request)
    added = session.seed(DEMO_TRACKS)
    return _state(session, added=len(added))


@router.put("/library/filter")
async def set_filter(criteria: FilterCriteria, request: Request):
    session = _session(request)
    session.set_filter(criteria)
    return _state(session)


@router.delete("/library/filter")
async def reset_filter(request: Request):
    session = _session(request)
    session.reset_filter()
    return _state(session)


@router.post("/library/sort")
async def set_sort(body: SortRequest, request: Request):
    session = _session(request)
    session.set_sort(body.field)
    return _state(session)


@router.post("/select")
async def select_track(body: SelectRequest, request: Request):
    session = _session(request)
    if body.track_id not in session.store:
        raise HTTPException(status_code=404, detail=f"Track not found: {body.track_id}")
    accepted = session.select(body.track_id) is not None
    return _state(session, accepted=accepted)


@router.post("/select/suggestion")
async def select_suggestion(suggestion: Suggestion, request: Request):
    session = _session(request)
    accepted = session.select_suggestion(suggestion) is not None
    return _state(session, accepted=accepted)


@router.get("/suggestions")
async def get_suggestions(request: Request, wait: bool = False):
    session = _session(request)
    if wait:
        await session.wait_for_suggestions()
    return _state(session)


@router.post("/edit/start")
async def start_edit(body: EditStartRequest, request: Request):
    session = _session(request)
    accepted = session.start_edit(body.track_id, body.field)
    return _state(session, accepted=accepted)


@router.post("/edit/commit")
async def commit_edit(body: EditCommitRequest, request: Request):
    session = _session(request)
    updated = session.commit_edit(body.value)
    return _state(session, updated=updated is not None)


@router.post("/edit/cancel")
async def cancel_edit(request: Request):
    session = _session(request)
    session.cancel_edit()
    return _state(session)


@router.post("/setlist")
async def add_to_setlist(body: SetlistRequest, request: Request):
    session = _session(request)
    if body.track_id not in session.store:
        raise HTTPException(status_code=404, detail=f"Track not found: {body.track_id}")
    added = session.add_to_setlist(body.track_id)
    return _state(session, added=added)


@router.delete("/setlist/{track_id}")
async def remove_from_setlist(track_id: str, request: Request):
    session = _session(request)
    removed = session.remove_from_setlist(track_id)
    return _state(session, removed=removed)


@router.get("/export")
async def export_csv(request: Request, view: ExportView = "setlist"):
    session = _session(request)
    return Response(
        content=session.export(view),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post("/error/dismiss")
async def dismiss_error(request: Request):
    session = _session(request)
    session.dismiss_error()
    return _state(session)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(session: Optional[MixSession] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the app. A prebuilt session is used as-is; otherwise one is wired from settings."""

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        if app_instance.state.session is None:
            app_instance.state.session = MixSession.from_settings(settings)
        logger.info("Harmonic Mix ready.")
        yield

    app_instance = FastAPI(title="Harmonic Mix", lifespan=lifespan)
    app_instance.state.session = session
    app_instance.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app_instance.include_router(router)
    return app_instance


app = create_app()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    settings = Settings.from_env()
    logger.info(f"Starting Harmonic Mix on port {settings.port}")
    uvicorn.run(
        "harmonic_mix.app:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
