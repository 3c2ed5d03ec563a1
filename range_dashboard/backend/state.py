# backend/state.py
from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any, Optional, Set, Tuple
import time


@dataclass(frozen=True)
class Shot:
    x: float
    y: float
    timestamp: float
    detection_id: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    confidence: Optional[float] = None
    class_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Shot":
        return cls(
            x=float(d["x"]),
            y=float(d["y"]),
            timestamp=float(d.get("timestamp") or 0.0),
            detection_id=d.get("detection_id"),
            width=d.get("width"),
            height=d.get("height"),
            confidence=d.get("confidence"),
            class_name=d.get("class_name"),
        )


@dataclass
class Metrics:
    group_size: float = 0.0
    group_center: Tuple[float, float] = (0.0, 0.0)
    group_offset: float = 0.0
    consistency: float = 0.0
    time: float = 0.0
    cadence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_size": self.group_size,
            "group_center": {"x": self.group_center[0], "y": self.group_center[1]},
            "group_offset": self.group_offset,
            "consistency": self.consistency,
            "time": self.time,
            "cadence": self.cadence,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Metrics":
        center = d.get("group_center") or {}
        return cls(
            group_size=float(d.get("group_size", 0.0)),
            group_center=(float(center.get("x", 0.0)), float(center.get("y", 0.0))),
            group_offset=float(d.get("group_offset", 0.0)),
            consistency=float(d.get("consistency", 0.0)),
            time=float(d.get("time", 0.0)),
            cadence=float(d.get("cadence", 0.0)),
        )


@dataclass
class LiveSessionState:
    """In-progress live session: shots seen so far plus poll/timer bookkeeping."""
    shots: List[Shot] = field(default_factory=list)
    seen_ids: Set[str] = field(default_factory=set)
    skill_level: str = "intermediate"
    camera_session_id: Optional[str] = None
    last_frame_id: Optional[int] = None
    reference: Optional[Tuple[float, float]] = None
    running: bool = False
    started_at: Optional[float] = None
    last_frame_path: Optional[str] = None
    _elapsed: float = 0.0
    _resumed_at: Optional[float] = None

    def add_shot(self, shot: Shot) -> bool:
        """Append a shot unless its detection id was already recorded."""
        if shot.detection_id is not None:
            if shot.detection_id in self.seen_ids:
                return False
            self.seen_ids.add(shot.detection_id)
        self.shots.append(shot)
        return True

    def add_shots(self, shots: List[Shot]) -> List[Shot]:
        return [s for s in shots if self.add_shot(s)]

    def start(self, now: Optional[float] = None):
        now = time.time() if now is None else now
        self.started_at = now
        self.resume(now)

    def pause(self, now: Optional[float] = None):
        if not self.running:
            return
        now = time.time() if now is None else now
        self._elapsed += now - self._resumed_at
        self._resumed_at = None
        self.running = False

    def resume(self, now: Optional[float] = None):
        if self.running:
            return
        self._resumed_at = time.time() if now is None else now
        self.running = True

    def elapsed(self, now: Optional[float] = None) -> float:
        """Seconds spent running; paused stretches do not count."""
        total = self._elapsed
        if self.running and self._resumed_at is not None:
            now = time.time() if now is None else now
            total += now - self._resumed_at
        return total

    def to_payload(self, metrics: Metrics) -> Dict[str, Any]:
        return {
            "running": self.running,
            "skill_level": self.skill_level,
            "camera_session_id": self.camera_session_id,
            "last_frame_id": self.last_frame_id,
            "started_at": self.started_at,
            "elapsed": round(self.elapsed(), 1),
            "shot_count": len(self.shots),
            "shots": [s.to_dict() for s in self.shots],
            "metrics": metrics.to_dict(),
            "last_frame": self.last_frame_path,
        }
