# backend/metrics.py
from typing import Iterable, Optional, Tuple

import numpy as np # type: ignore

from . import config
from .state import Shot, Metrics


def compute_metrics(
    shots: Iterable[Shot],
    reference: Optional[Tuple[float, float]] = None,
    elapsed: float = 0.0,
) -> Metrics:
    """
    Recompute group statistics from scratch for a list of shots.

    group_size   - largest distance between any two shots
    group_center - mean point of impact
    group_offset - distance from the group center to `reference` (default origin)
    consistency  - population std-dev of each shot's distance from the center
    cadence      - shots/minute from the mean gap between consecutive shots
    """
    shots = list(shots)
    if not shots:
        return Metrics(time=float(elapsed))

    pts = np.array([(s.x, s.y) for s in shots], dtype=np.float64)
    center = pts.mean(axis=0)
    ref = np.array(reference if reference is not None else (0.0, 0.0), dtype=np.float64)
    offset = float(np.linalg.norm(center - ref))

    if len(shots) < 2:
        return Metrics(
            group_center=(float(center[0]), float(center[1])),
            group_offset=offset,
            time=float(elapsed),
        )

    # O(n^2) pairwise distances; sessions are tens of shots
    diff = pts[:, None, :] - pts[None, :, :]
    group_size = float(np.sqrt((diff ** 2).sum(axis=-1)).max())

    from_center = np.linalg.norm(pts - center, axis=1)
    consistency = float(from_center.std())

    return Metrics(
        group_size=group_size,
        group_center=(float(center[0]), float(center[1])),
        group_offset=offset,
        consistency=consistency,
        time=float(elapsed),
        cadence=cadence_from_shots(shots),
    )


def cadence_from_shots(shots: Iterable[Shot]) -> float:
    ts = sorted(s.timestamp for s in shots)
    if len(ts) < 2:
        return 0.0
    mean_split = float(np.diff(np.array(ts, dtype=np.float64)).mean())
    if mean_split <= 0:
        return 0.0
    return 60.0 / mean_split


def score_band(metrics: Metrics, shot_count: int) -> str:
    """Dashboard badge for a session, judged on group size."""
    if shot_count < 2:
        return "Needs Improvement"
    if metrics.group_size <= config.GROUP_EXCELLENT_PX:
        return "Excellent"
    if metrics.group_size <= config.GROUP_GOOD_PX:
        return "Good"
    return "Needs Improvement"
