import math

import pytest

from range_dashboard.backend import config
from range_dashboard.backend.metrics import compute_metrics, cadence_from_shots, score_band
from range_dashboard.backend.state import Shot, Metrics


def _shot(x, y, ts=0.0, det=None):
    return Shot(x=x, y=y, timestamp=ts, detection_id=det)


def test_no_shots_is_all_zero():
    m = compute_metrics([])
    assert m.group_size == 0
    assert m.consistency == 0
    assert m.cadence == 0
    assert m.group_center == (0.0, 0.0)


def test_single_shot_center_is_the_shot():
    m = compute_metrics([_shot(4.0, -2.0)])
    assert m.group_center == (4.0, -2.0)
    assert m.group_size == 0
    assert m.consistency == 0
    assert m.cadence == 0
    assert m.group_offset == pytest.approx(math.hypot(4.0, -2.0))


def test_center_is_componentwise_mean():
    m = compute_metrics([_shot(0, 0), _shot(10, 0)])
    assert m.group_center == (5.0, 0.0)


def test_group_size_is_max_pairwise_distance():
    m = compute_metrics([_shot(0, 0), _shot(3, 4)])
    assert m.group_size == pytest.approx(5.0)

    m = compute_metrics([_shot(0, 0), _shot(1, 1), _shot(-3, 0), _shot(3, 0)])
    assert m.group_size == pytest.approx(6.0)


def test_two_shots_one_second_apart_is_60_spm():
    m = compute_metrics([_shot(0, 0, ts=100.0), _shot(1, 1, ts=101.0)])
    assert m.cadence == pytest.approx(60.0)


def test_cadence_sorts_by_timestamp():
    shots = [_shot(0, 0, ts=104.0), _shot(0, 0, ts=100.0), _shot(0, 0, ts=102.0)]
    assert cadence_from_shots(shots) == pytest.approx(30.0)


def test_cadence_zero_when_timestamps_equal():
    assert cadence_from_shots([_shot(0, 0, ts=5.0), _shot(1, 0, ts=5.0)]) == 0.0


def test_consistency_is_population_std_of_distances():
    # distances from center (0,0): 1, 1, 3, 3 -> mean 2, population std 1
    shots = [_shot(1, 0), _shot(-1, 0), _shot(0, 3), _shot(0, -3)]
    m = compute_metrics(shots)
    assert m.group_center == (0.0, 0.0)
    assert m.consistency == pytest.approx(1.0)


def test_offset_uses_reference_point():
    m = compute_metrics([_shot(10, 10), _shot(14, 10)], reference=(12, 13))
    assert m.group_offset == pytest.approx(3.0)


def test_elapsed_time_is_carried():
    assert compute_metrics([], elapsed=42).time == 42.0


def test_score_band(monkeypatch):
    monkeypatch.setattr(config, "GROUP_EXCELLENT_PX", 10.0)
    monkeypatch.setattr(config, "GROUP_GOOD_PX", 20.0)
    assert score_band(Metrics(group_size=5.0), 5) == "Excellent"
    assert score_band(Metrics(group_size=15.0), 5) == "Good"
    assert score_band(Metrics(group_size=25.0), 5) == "Needs Improvement"
    assert score_band(Metrics(group_size=0.0), 1) == "Needs Improvement"
