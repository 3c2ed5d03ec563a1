# backend/app.py
import os
from typing import Set, Optional, List
from fastapi import FastAPI, WebSocket, WebSocketDisconnect # type: ignore
from fastapi.middleware.cors import CORSMiddleware # type: ignore
from fastapi.responses import HTMLResponse, Response # type: ignore
from fastapi.staticfiles import StaticFiles # type: ignore
from pydantic import BaseModel # type: ignore

from . import camera
from . import coaching
from . import config
from . import database
from . import frames
from . import pages
from .metrics import compute_metrics
from .session_manager import SessionManager
from .state import Shot, Metrics


app = FastAPI(title="Range Dashboard")

# Mount static file serving for annotated frames
frames_dir = frames.frames_dir()
os.makedirs(frames_dir, exist_ok=True)
app.mount("/frames", StaticFiles(directory=frames_dir), name="frames")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],          # dev: allow everything
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

clients: Set[WebSocket] = set()

# Session manager for the live session
session_manager = SessionManager()


async def _broadcast(event: dict):
    dead = []
    for ws in list(clients):
        try:
            await ws.send_json(event)
        except Exception as e:
            print(f"[APP] Failed to send to client: {e}")
            dead.append(ws)
    for ws in dead:
        clients.discard(ws)

session_manager.add_listener(_broadcast)


@app.on_event("startup")
async def startup():
    await database.init_db()
    print(f"[APP] Camera server: {config.CAMERA_SERVER_URL}")
    if not config.ROBOFLOW_API_KEY:
        print("[APP] ROBOFLOW_API_KEY not set - live sessions will not detect shots")


@app.on_event("shutdown")
async def shutdown():
    if session_manager.has_active_session():
        await session_manager.cancel()


class LiveStartRequest(BaseModel):
    skill_level: Optional[str] = None


class LiveEndRequest(BaseModel):
    skill_level: Optional[str] = None


class ShotIn(BaseModel):
    x: float
    y: float
    timestamp: float = 0.0
    detection_id: Optional[str] = None


class PointIn(BaseModel):
    x: float
    y: float


class MetricsRequest(BaseModel):
    shots: List[ShotIn]
    reference: Optional[PointIn] = None
    elapsed: float = 0.0


# ========== Pages ==========

@app.get("/", response_class=HTMLResponse)
def landing():
    return pages.landing_page()


@app.get("/dashboard", response_class=HTMLResponse)
async def dashboard(limit: int = 50, offset: int = 0):
    result = await database.list_sessions(limit=limit, offset=offset)
    return pages.dashboard_page(result["sessions"], result["total"])


@app.get("/session/live", response_class=HTMLResponse)
def live():
    return pages.live_page()


@app.get("/session/{session_id}", response_class=HTMLResponse)
async def report(session_id: int):
    session = await database.get_session(session_id)
    if session is None:
        return HTMLResponse(pages.not_found_page(), status_code=404)
    return pages.report_page(session, session["advice"])


# ========== Live Session Endpoints ==========

@app.get("/api/live")
def get_live():
    """Get the current live session state"""
    info = session_manager.get_session_info()
    if info is None:
        return {"ok": False, "message": "No active session"}
    return {"ok": True, "live": info}


@app.post("/api/live/start")
async def start_live(payload: Optional[LiveStartRequest] = None):
    skill_level = payload.skill_level if payload else None
    if skill_level and skill_level not in config.SKILL_LEVELS:
        return {"ok": False, "error": f"skill_level must be one of {', '.join(config.SKILL_LEVELS)}"}
    return await session_manager.start(skill_level=skill_level)


@app.post("/api/live/pause")
async def pause_live():
    return await session_manager.pause()


@app.post("/api/live/resume")
async def resume_live():
    return await session_manager.resume()


@app.post("/api/live/poll")
async def poll_live():
    """Run one poll iteration now (no-op while paused or while a poll is in flight)"""
    if not session_manager.has_active_session():
        return {"ok": False, "error": "No active session"}
    processed = await session_manager.poll_once()
    return {"ok": True, "processed": processed, "live": session_manager.get_session_info()}


@app.post("/api/live/end")
async def end_live(payload: Optional[LiveEndRequest] = None):
    return await session_manager.end(skill_level=payload.skill_level if payload else None)


@app.post("/api/live/cancel")
async def cancel_live():
    return await session_manager.cancel()


@app.get("/api/live/frame")
async def live_frame():
    """Proxy the camera server's latest frame for the live page"""
    data = await camera.latest_frame()
    if data is None:
        cached = camera.get_latest_frame()
        data = cached.data if cached else None
    if data is None:
        return Response(content=b"No frame available", status_code=503, media_type="text/plain")
    return Response(content=data, media_type="image/jpeg", headers={"Cache-Control": "no-cache"})


@app.websocket("/ws")
async def ws_endpoint(ws: WebSocket):
    await ws.accept()
    clients.add(ws)

    # send current state immediately
    await ws.send_json({"type": "state", "live": session_manager.get_session_info()})

    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        clients.discard(ws)


# ========== Metrics & Session History ==========

@app.post("/api/metrics")
def post_metrics(payload: MetricsRequest):
    """Compute group metrics for an arbitrary list of shots"""
    shots = [Shot(x=s.x, y=s.y, timestamp=s.timestamp, detection_id=s.detection_id) for s in payload.shots]
    reference = (payload.reference.x, payload.reference.y) if payload.reference else None
    metrics = compute_metrics(shots, reference=reference, elapsed=payload.elapsed)
    return {"ok": True, "metrics": metrics.to_dict()}


@app.get("/api/sessions")
async def list_sessions(limit: int = 50, offset: int = 0):
    """List saved sessions, newest first"""
    return await database.list_sessions(limit=limit, offset=offset)


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: int):
    """Get full details of a specific session"""
    session = await database.get_session(session_id)
    if session is None:
        return {"ok": False, "error": "Session not found"}
    return {"ok": True, "session": session}


@app.get("/api/sessions/{session_id}/advice")
async def get_session_advice(session_id: int, skill_level: Optional[str] = None):
    """Generate fresh coaching advice for a saved session (not stored)"""
    session = await database.get_session(session_id)
    if session is None:
        return {"ok": False, "error": "Session not found"}
    skill_level = skill_level or session.get("skill_level") or config.DEFAULT_SKILL_LEVEL
    shots = [Shot.from_dict(s) for s in session["shots"]]
    metrics = Metrics.from_dict(session["metrics"])
    advice = await coaching.generate_advice(shots, metrics, skill_level)
    return {"ok": True, "skill_level": skill_level, "advice": advice}
