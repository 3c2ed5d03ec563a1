import os

import cv2
import numpy as np

from range_dashboard.backend import frames
from range_dashboard.backend.state import Shot


def _jpeg(width=64, height=48):
    ok, buf = cv2.imencode(".jpg", np.full((height, width, 3), 255, dtype=np.uint8))
    assert ok
    return buf.tobytes()


def test_image_size():
    assert frames.image_size(_jpeg(64, 48)) == (64, 48)
    assert frames.image_size(b"not an image") is None
    assert frames.image_size(b"") is None


def test_annotate_frame_draws_markers():
    original = _jpeg()
    out = frames.annotate_frame(original, [Shot(x=10, y=10, timestamp=0.0)], center=(10.0, 10.0))
    assert out is not None
    img = cv2.imdecode(np.frombuffer(out, dtype=np.uint8), cv2.IMREAD_COLOR)
    assert img.shape[:2] == (48, 64)
    # white background now has colored pixels around the marker
    assert (img < 200).any()


def test_annotate_undecodable_frame():
    assert frames.annotate_frame(b"garbage", []) is None


def test_save_frame_under_frames_dir():
    assert frames.save_frame("live_1/frame_3.jpg", b"data")
    path = os.path.join(frames.frames_dir(), "live_1", "frame_3.jpg")
    with open(path, "rb") as f:
        assert f.read() == b"data"
