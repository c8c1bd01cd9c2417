import pytest

from flightwall.domain.geo import (
    angle_delta,
    bbox_radius_nm,
    bearing_deg,
    haversine_km,
    is_approaching,
    quantize,
)


def test_haversine_one_degree_at_equator():
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.195, rel=1e-4)
    assert haversine_km(39.8, -104.8, 39.8, -104.8) == 0


def test_bearing_cardinal_directions():
    assert bearing_deg(0.0, 0.0, 1.0, 0.0) == pytest.approx(0.0)
    assert bearing_deg(0.0, 0.0, 0.0, 1.0) == pytest.approx(90.0)
    assert bearing_deg(0.0, 0.0, -1.0, 0.0) == pytest.approx(180.0)
    assert bearing_deg(0.0, 0.0, 0.0, -1.0) == pytest.approx(270.0)


def test_angle_delta_wraps_around_north():
    assert angle_delta(350, 10) == pytest.approx(20)
    assert angle_delta(10, 350) == pytest.approx(20)
    assert angle_delta(0, 180) == pytest.approx(180)


def test_quantize_produces_stable_bucket_keys():
    assert quantize(39.7449, 0.01) == "39.74"
    assert quantize(39.7451, 0.01) == "39.75"
    assert quantize(39.741, 0.01) == quantize(39.739, 0.01)
    assert quantize(-104.995, 0.01) == "-105.00"
    assert quantize(-0.001, 0.01) == "0.00"
    assert quantize(12.3, 0.5) == "12.5"


def test_quantize_rejects_non_positive_step():
    with pytest.raises(ValueError):
        quantize(1.0, 0)


def test_bbox_radius_is_half_diagonal_rounded_up_and_clamped():
    # 111.195 km diagonal -> 55.6 km -> 30.02 nm
    assert bbox_radius_nm(0.0, 0.0, 0.0, 1.0) == 31
    assert bbox_radius_nm(39.8, -104.8, 39.8, -104.8) == 1
    assert bbox_radius_nm(-60.0, -170.0, 60.0, 170.0) == 250


def test_is_approaching_uses_track_towards_observer():
    observer = (0.0, 0.0)
    east_of_observer = (0.0, 1.0)

    assert is_approaching(observer, east_of_observer, 270.0)
    assert is_approaching(observer, east_of_observer, 200.0)
    assert not is_approaching(observer, east_of_observer, 90.0)
    assert is_approaching(observer, east_of_observer, None)
