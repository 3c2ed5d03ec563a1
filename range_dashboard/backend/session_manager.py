# backend/session_manager.py
import asyncio
import time
from typing import Optional, Dict, Any, List, Callable, Awaitable

import aiosqlite # type: ignore
from .state import LiveSessionState, Metrics, Shot
from .metrics import compute_metrics
from .camera import Frame
from . import camera
from . import coaching
from . import config
from . import database
from . import detection
from . import frames

Listener = Callable[[Dict[str, Any]], Awaitable[None]]


class SessionManager:
    """
    Manages the lifecycle of a live shooting session.

    Responsibilities:
    - Start/close the remote camera session
    - Poll for new frames and run shot detection on them
    - Keep the shot list (deduplicated) and live metrics current
    - Persist the session with coaching advice when it ends
    """

    def __init__(self):
        self.state: Optional[LiveSessionState] = None
        self.metrics = Metrics()
        self._task: Optional[asyncio.Task] = None
        self._polling = False
        self._autopoll = False
        self._busy: Optional[str] = None  # start/end/cancel in progress
        self._listeners: List[Listener] = []

    def has_active_session(self) -> bool:
        """Check if there's an active live session"""
        return self.state is not None

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _broadcast(self, event: Dict[str, Any]):
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                print(f"[SESSION] Listener failed: {e}")

    async def start(self, skill_level: Optional[str] = None, poll: bool = True) -> Dict[str, Any]:
        """
        Start a live session.

        Args:
            skill_level: Shooter level used for coaching at the end
            poll: Launch the background poll loop (tests drive poll_once() by hand)
        """
        if self._busy:
            return self._busy_error()
        if self.has_active_session():
            return {"ok": False, "error": "A live session is already running"}

        self._busy = "starting"
        try:
            result = await camera.start_session(config.CAMERA_FPS)
        finally:
            self._busy = None
        if not result.get("success"):
            return {"ok": False, "error": "Failed to start camera session"}

        self.state = LiveSessionState(
            skill_level=skill_level or config.DEFAULT_SKILL_LEVEL,
            camera_session_id=result.get("session_id"),
        )
        self.state.start()
        self.metrics = Metrics()
        self._polling = False
        self._autopoll = poll
        self._start_polling()

        print(f"[SESSION] Live session started (camera session {self.state.camera_session_id})")
        await self._broadcast({"type": "state", "live": self.get_session_info()})
        return {"ok": True, "camera_session_id": self.state.camera_session_id}

    def _busy_error(self) -> Dict[str, Any]:
        return {"ok": False, "error": f"Live session is busy ({self._busy}), try again shortly"}

    def _start_polling(self):
        """Launch the poll loop unless it is disabled or already running"""
        if not self._autopoll or not self.has_active_session():
            return
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self):
        while self.has_active_session():
            try:
                await self.poll_once()
            except Exception as e:
                print(f"[SESSION] Poll iteration failed: {e}")
            await asyncio.sleep(config.POLL_INTERVAL_S)

    async def poll_once(self) -> bool:
        """
        Fetch and analyze the next frame since the last one seen.

        Skipped while paused or while another poll is still in flight.
        Returns True if a frame was processed.
        """
        if not self.has_active_session() or not self.state.running or self._polling:
            return False

        self._polling = True
        try:
            frame = await camera.next_frame(since=self.state.last_frame_id)
            if frame is None or not self.has_active_session():
                return False
            self.state.last_frame_id = frame.frame_id
            await self.handle_frame(frame)
            return True
        finally:
            self._polling = False

    async def handle_frame(self, frame: Frame) -> List[Shot]:
        """Run detection on a frame and record any shots not seen before"""
        result = await detection.detect_shots(frame.data, frame_timestamp=time.time())
        state = self.state
        if state is None:
            return []

        if result.center is not None:
            state.reference = result.center
        elif state.reference is None:
            size = frames.image_size(frame.data)
            if size:
                state.reference = (size[0] / 2.0, size[1] / 2.0)

        new_shots = state.add_shots(result.shots)
        self.recompute()
        if not new_shots:
            return []

        print(f"[SESSION] {len(new_shots)} new shot(s) detected, total {len(state.shots)}")

        if config.SAVE_FRAMES:
            annotated = frames.annotate_frame(frame.data, state.shots, self.metrics.group_center)
            rel_path = f"live_{int(state.started_at)}/frame_{frame.frame_id}.jpg"
            if annotated and frames.save_frame(rel_path, annotated):
                state.last_frame_path = rel_path

        await self._broadcast({
            "type": "shots",
            "new": [s.to_dict() for s in new_shots],
            "live": self.get_session_info(),
        })
        return new_shots

    def recompute(self) -> Metrics:
        """Metrics are re-derived from the full shot list on every change"""
        if self.state is None:
            self.metrics = Metrics()
        else:
            self.metrics = compute_metrics(self.state.shots, self.state.reference, self.state.elapsed())
        return self.metrics

    async def pause(self) -> Dict[str, Any]:
        if not self.has_active_session():
            return {"ok": False, "error": "No active session"}
        if self._busy:
            return self._busy_error()
        self.state.pause()
        await self._broadcast({"type": "state", "live": self.get_session_info()})
        return {"ok": True, "running": False}

    async def resume(self) -> Dict[str, Any]:
        if not self.has_active_session():
            return {"ok": False, "error": "No active session"}
        if self._busy:
            return self._busy_error()
        self.state.resume()
        self._start_polling()
        await self._broadcast({"type": "state", "live": self.get_session_info()})
        return {"ok": True, "running": True}

    async def _stop_polling(self):
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def end(self, skill_level: Optional[str] = None) -> Dict[str, Any]:
        """
        Finish the live session: persist it with coaching advice.

        An empty session is refused and stays active.
        """
        if not self.has_active_session():
            return {"ok": False, "error": "No active session"}
        if self._busy:
            return self._busy_error()
        if not self.state.shots:
            return {"ok": False, "error": "Session cannot be empty: capture at least one shot before ending the session"}

        state = self.state
        was_running = state.running
        self._busy = "ending"
        try:
            state.pause()
            await self._stop_polling()

            skill_level = skill_level or state.skill_level
            final = compute_metrics(state.shots, state.reference, state.elapsed())
            advice = await coaching.generate_advice(state.shots, final, skill_level)

            try:
                session_id = await database.create_session(
                    shots=state.shots,
                    metrics=final,
                    advice=advice,
                    skill_level=skill_level,
                    camera_session_id=state.camera_session_id,
                )
            except aiosqlite.Error as e:
                print(f"[SESSION] Error saving session: {e}")
                # Session stays live as it was before end() was called
                if was_running:
                    state.resume()
                self._start_polling()
                return {"ok": False, "error": "Could not save your session. Please try again."}

            await camera.close_session()
            self.state = None
            self.metrics = Metrics()
        finally:
            self._busy = None

        print(f"[SESSION] Session {session_id} saved: {len(state.shots)} shots, "
              f"group {final.group_size:.1f}px, {final.time:.0f}s")
        await self._broadcast({"type": "ended", "session_id": session_id})
        return {"ok": True, "session_id": session_id}

    async def cancel(self) -> Dict[str, Any]:
        """Abandon the live session without saving it"""
        if not self.has_active_session():
            return {"ok": False, "error": "No active session"}
        if self._busy:
            return self._busy_error()
        self._busy = "cancelling"
        try:
            await self._stop_polling()
            await camera.close_session()
            self.state = None
            self.metrics = Metrics()
        finally:
            self._busy = None
        print("[SESSION] Live session cancelled")
        await self._broadcast({"type": "ended", "session_id": None})
        return {"ok": True}

    def get_session_info(self) -> Optional[Dict[str, Any]]:
        """Get current live session information"""
        if not self.has_active_session():
            return None
        self.recompute()
        return self.state.to_payload(self.metrics)
