# backend/frames.py
import os
from typing import Optional, Sequence, Tuple

import numpy as np # type: ignore
import cv2 # type: ignore
from . import config
from .state import Shot

MARKER_COLOR = (0, 0, 255)  # BGR
CENTER_COLOR = (0, 200, 0)


def frames_dir() -> str:
    return os.path.join(os.path.dirname(__file__), config.FRAMES_DIR)


def _decode(image_bytes: bytes):
    if not image_bytes:
        return None
    buf = np.frombuffer(image_bytes, dtype=np.uint8)
    try:
        return cv2.imdecode(buf, cv2.IMREAD_COLOR)
    except cv2.error:
        return None


def image_size(image_bytes: bytes) -> Optional[Tuple[int, int]]:
    """(width, height) of an encoded image, or None if it can't be decoded."""
    img = _decode(image_bytes)
    if img is None:
        return None
    h, w = img.shape[:2]
    return w, h


def annotate_frame(
    image_bytes: bytes,
    shots: Sequence[Shot],
    center: Optional[Tuple[float, float]] = None,
) -> Optional[bytes]:
    """Draw every shot (and the group center, if given) onto the frame."""
    img = _decode(image_bytes)
    if img is None:
        print("[FRAMES] Could not decode frame for annotation")
        return None

    for i, shot in enumerate(shots, start=1):
        pt = (int(round(shot.x)), int(round(shot.y)))
        radius = int(max(shot.width or 0, shot.height or 0) / 2) or 8
        cv2.circle(img, pt, radius, MARKER_COLOR, 2)
        cv2.putText(img, str(i), (pt[0] + radius + 2, pt[1] - radius),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, MARKER_COLOR, 1, cv2.LINE_AA)

    if center is not None:
        c = (int(round(center[0])), int(round(center[1])))
        cv2.drawMarker(img, c, CENTER_COLOR, cv2.MARKER_CROSS, 16, 2)

    ok, jpg = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), 80])
    if not ok:
        return None
    return jpg.tobytes()


def save_frame(output_path: str, data: bytes) -> bool:
    """
    Write a JPEG under FRAMES_DIR.

    Args:
        output_path: Relative path (e.g., "live_1712345678/frame_42.jpg")
        data: Encoded image bytes

    Returns:
        True if successful, False otherwise
    """
    try:
        full_path = os.path.join(frames_dir(), output_path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(data)
        print(f"[FRAMES] Saved frame to {output_path} ({len(data)} bytes)")
        return True
    except OSError as e:
        print(f"[FRAMES] File I/O error: {e}")
        return False
