# backend/detection.py
"""
Shot detection through the Roboflow hosted inference API.

Frames are posted as base64 and the predictions are turned into Shot records.
Responses come back in a few shapes depending on whether a plain model or a
workflow is deployed, parse_detection() accepts all of them.
"""
import asyncio
import base64
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import aiohttp # type: ignore
from . import config
from .state import Shot


@dataclass
class Detection:
    shots: List[Shot] = field(default_factory=list)
    image_width: Optional[float] = None
    image_height: Optional[float] = None
    frame_timestamp: Optional[float] = None

    @property
    def center(self) -> Optional[Tuple[float, float]]:
        """Image center, used as the reference point for group offset."""
        if not self.image_width or not self.image_height:
            return None
        return (self.image_width / 2.0, self.image_height / 2.0)


def parse_timestamp(value: Any) -> Optional[float]:
    """ISO-8601 string or epoch number (s or ms) -> epoch seconds."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        v = float(value)
        return v / 1000.0 if v > 1e12 else v
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


def _unwrap(payload: Any) -> Dict[str, Any]:
    # workflow endpoints answer with a list of per-image results
    if isinstance(payload, list):
        payload = payload[0] if payload else {}
    if isinstance(payload, dict) and isinstance(payload.get("outputs"), list):
        outputs = payload["outputs"]
        payload = outputs[0] if outputs else {}
    return payload if isinstance(payload, dict) else {}


def parse_detection(payload: Any, default_timestamp: Optional[float] = None) -> Detection:
    """Convert an inference response into a Detection."""
    data = _unwrap(payload)
    preds = data.get("predictions", [])
    image = data.get("image") or {}
    frame_ts = None

    if isinstance(preds, dict):
        frame_ts = parse_timestamp(preds.get("frame_timestamp"))
        image = preds.get("image") or image
        preds = preds.get("predictions", [])

    ts = frame_ts or parse_timestamp(data.get("frame_timestamp")) or default_timestamp or time.time()

    shots = []
    for p in preds or []:
        try:
            x = float(p["x"])
            y = float(p["y"])
            conf = p.get("confidence")
            conf = float(conf) if conf is not None else None
        except (KeyError, TypeError, ValueError):
            continue
        if conf is not None and conf < config.DETECTION_CONFIDENCE_MIN:
            continue
        # without a tracker id, the same hole on the next frame keeps the same key
        det_id = p.get("detection_id") or p.get("tracker_id")
        det_id = str(det_id) if det_id is not None else f"xy:{round(x)}:{round(y)}"
        shots.append(Shot(
            x=x,
            y=y,
            timestamp=ts,
            detection_id=det_id,
            width=p.get("width"),
            height=p.get("height"),
            confidence=conf,
            class_name=p.get("class"),
        ))

    width = image.get("width") if isinstance(image, dict) else None
    height = image.get("height") if isinstance(image, dict) else None
    return Detection(
        shots=shots,
        image_width=float(width) if width else None,
        image_height=float(height) if height else None,
        frame_timestamp=ts,
    )


async def detect_shots(image_bytes: bytes, frame_timestamp: Optional[float] = None) -> Detection:
    """
    Run shot detection on one frame.

    Returns an empty Detection when detection is not configured or the call fails.
    """
    if not config.ROBOFLOW_API_KEY or not config.ROBOFLOW_MODEL_ID:
        print("[DETECT] ROBOFLOW_API_KEY / ROBOFLOW_MODEL_ID not set - skipping detection")
        return Detection()

    url = f"{config.ROBOFLOW_API_URL}/{config.ROBOFLOW_MODEL_ID}"
    body = base64.b64encode(image_bytes).decode("ascii")

    try:
        timeout = aiohttp.ClientTimeout(total=config.HTTP_TIMEOUT_S)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(
                url,
                params={"api_key": config.ROBOFLOW_API_KEY},
                data=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            ) as resp:
                if resp.status != 200:
                    print(f"[DETECT] Roboflow API error: HTTP {resp.status} {await resp.text()}")
                    return Detection()
                payload = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        print(f"[DETECT] Roboflow request failed: {e}")
        return Detection()

    detection = parse_detection(payload, default_timestamp=frame_timestamp)
    print(f"[DETECT] {len(detection.shots)} shot(s) in frame")
    return detection
