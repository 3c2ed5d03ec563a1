# backend/camera.py
"""
Client for the remote camera server.
Handles the camera session lifecycle and frame retrieval (long-poll and latest).
"""
import asyncio
from dataclasses import dataclass
from typing import Optional, Dict, Any

import aiohttp # type: ignore
from . import config

# Most recent frame pulled through next_frame(), for the live page preview
_latest_frame: Optional["Frame"] = None


@dataclass
class Frame:
    frame_id: int
    session_id: Optional[str]
    data: bytes
    content_type: str = "image/jpeg"


def get_latest_frame() -> Optional[Frame]:
    """Get the last frame returned by next_frame()."""
    return _latest_frame


def _set_latest_frame(frame: Frame) -> None:
    global _latest_frame
    _latest_frame = frame


def _url(path: str) -> str:
    return f"{config.CAMERA_SERVER_URL}{path}"


def _timeout(extra: float = 0) -> aiohttp.ClientTimeout:
    return aiohttp.ClientTimeout(total=config.HTTP_TIMEOUT_S + extra)


async def start_session(fps: int = None) -> Dict[str, Any]:
    """
    Ask the camera server to start capturing.

    Returns {"success": bool, "session_id": str|None, "status": str}.
    """
    fps = fps or config.CAMERA_FPS
    try:
        async with aiohttp.ClientSession(timeout=_timeout()) as session:
            async with session.post(
                _url("/session/start"),
                json={"fps": fps, "force": True},
                headers=config.CAMERA_HEADERS,
            ) as resp:
                if resp.status != 200:
                    print(f"[CAMERA] Failed to start camera session: HTTP {resp.status} {await resp.text()}")
                    return {"success": False, "session_id": None, "status": "Failed to start session"}
                data = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        print(f"[CAMERA] Error starting camera session: {e}")
        return {"success": False, "session_id": None, "status": "Error starting session"}

    session_id = data.get("session_id")
    print(f"[CAMERA] Camera session started: {session_id} @ {fps} fps")
    return {"success": True, "session_id": session_id, "status": data.get("status", "started")}


async def close_session() -> Dict[str, Any]:
    """Stop the camera server session."""
    try:
        async with aiohttp.ClientSession(timeout=_timeout()) as session:
            async with session.post(_url("/session/close"), headers=config.CAMERA_HEADERS) as resp:
                if resp.status != 200:
                    print(f"[CAMERA] Failed to stop camera session: HTTP {resp.status}")
                    return {"success": False, "status": "Failed to stop session"}
                data = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        print(f"[CAMERA] Error stopping camera session: {e}")
        return {"success": False, "status": "Error stopping session"}

    print("[CAMERA] Camera session stopped")
    return {"success": True, "status": "stopped" if data.get("stopped") else "error"}


async def next_frame(since: Optional[int] = None, timeout: int = None) -> Optional[Frame]:
    """
    Long-poll the camera server for the first frame newer than `since`.

    Returns None when the server has nothing new (204) or the request fails.
    """
    timeout = timeout or config.CAMERA_NEXT_FRAME_TIMEOUT
    params = {"timeout": str(timeout)}
    if since:
        params["since"] = str(since)

    try:
        # leave room for the server-side long poll
        async with aiohttp.ClientSession(timeout=_timeout(extra=timeout)) as session:
            async with session.get(_url("/frame/next"), params=params, headers=config.CAMERA_HEADERS) as resp:
                if resp.status == 204:
                    return None
                if resp.status != 200:
                    print(f"[CAMERA] Failed to fetch frame: HTTP {resp.status}")
                    return None
                data = await resp.read()
                frame = Frame(
                    frame_id=int(resp.headers.get("X-Frame-Id", "0") or 0),
                    session_id=resp.headers.get("X-Session-Id"),
                    data=data,
                    content_type=resp.headers.get("Content-Type", "image/jpeg"),
                )
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        print(f"[CAMERA] Error fetching next frame: {e}")
        return None

    if not frame.data:
        return None
    _set_latest_frame(frame)
    return frame


async def latest_frame() -> Optional[bytes]:
    """Fetch the camera server's most recent frame as raw image bytes."""
    try:
        async with aiohttp.ClientSession(timeout=_timeout()) as session:
            async with session.get(_url("/frame/latest"), headers=config.CAMERA_HEADERS) as resp:
                if resp.status != 200:
                    return None
                return await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        print(f"[CAMERA] Failed to fetch latest frame: {e}")
        return None
