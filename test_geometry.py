"""
Tests for the geometry resolver, volume integrator and TVD sampler.
Builds a casing + open hole well with a tapered drill string and checks
slice coverage, flags and volume integrals against hand calculations.
"""

import sys
import os
import math

# Add the project root to the Python path
sys.path.append(os.path.abspath('.'))

import pytest

from app.schemas.geometry import GeometrySection, SliceFlag, SurveyStation, ResolutionStatus
from app.services.geometry import (
    TvdSampler,
    VolumeMeasure,
    depth_for_volume,
    depths_for_volumes,
    pipe_in_length_for_open_hole_volume,
    resolve_geometry,
    resolve_slices,
    slice_at,
    volume_of,
    volumes_between,
)
from app.services.geometry.resolver import hang_string, unique_boundaries


def create_test_sections():
    """Casing to 1000 m, open hole to 2500 m, 5" DP to 2000 m and 6-1/2" collars to 2200 m."""
    annulus = [
        GeometrySection(kind="annulus", name="Casing", top_md=0.0, bottom_md=1000.0, inner_diameter=0.2205),
        GeometrySection(kind="annulus", name="Open hole", top_md=1000.0, bottom_md=2500.0, inner_diameter=0.2159),
    ]
    string = [
        GeometrySection(kind="string", name="DP", top_md=0.0, bottom_md=2000.0,
                        inner_diameter=0.1086, outer_diameter=0.127),
        GeometrySection(kind="string", name="DC", top_md=2000.0, bottom_md=2200.0,
                        inner_diameter=0.0714, outer_diameter=0.1651),
    ]
    return annulus, string


def test_slices_cover_surface_to_deepest_boundary():
    annulus, string = create_test_sections()
    slices = resolve_slices(annulus, string)

    assert slices[0].top == 0.0
    assert slices[-1].bottom == pytest.approx(2500.0)
    for upper, lower in zip(slices[:-1], slices[1:]):
        assert upper.bottom == pytest.approx(lower.top)
    assert [round(s.top) for s in slices] == [0, 1000, 2000, 2200]


def test_slice_below_string_is_flagged_gap_string():
    annulus, string = create_test_sections()
    slices = resolve_slices(annulus, string)

    last = slices[-1]
    assert last.string is None
    assert SliceFlag.GAP_STRING in last.flags
    assert last.annular_area == pytest.approx(math.pi * 0.2159 ** 2 / 4.0)


def test_interference_is_flagged_not_rejected():
    annulus = [GeometrySection(kind="annulus", top_md=0.0, bottom_md=100.0, inner_diameter=0.1)]
    string = [GeometrySection(kind="string", top_md=0.0, bottom_md=100.0, inner_diameter=0.08, outer_diameter=0.127)]

    resolution = resolve_geometry(annulus, string)

    assert resolution.status == ResolutionStatus.WARNING
    assert SliceFlag.INTERFERENCE in resolution.slices[0].flags
    assert resolution.slices[0].annular_area == 0.0


def test_slices_with_the_same_sections_are_merged():
    annulus, string = create_test_sections()
    # a float sub inside the drill pipe interval adds boundaries but is shadowed by the DP
    string.append(GeometrySection(kind="string", name="Float sub", top_md=800.0, bottom_md=801.0,
                                  inner_diameter=0.07, outer_diameter=0.127))

    slices = resolve_slices(annulus, string)

    assert [round(s.top) for s in slices] == [0, 1000, 2000, 2200]
    assert slices[0].bottom == pytest.approx(1000.0)
    assert slices[0].string.name == "DP"


def test_string_without_annulus_is_flagged_gap_annulus():
    annulus = [GeometrySection(kind="annulus", name="Casing", top_md=0.0, bottom_md=1000.0, inner_diameter=0.2205)]
    string = [GeometrySection(kind="string", name="DP", top_md=0.0, bottom_md=1500.0,
                              inner_diameter=0.1086, outer_diameter=0.127)]

    resolution = resolve_geometry(annulus, string)

    last = resolution.slices[-1]
    assert (last.top, last.bottom) == (1000.0, 1500.0)
    assert last.annulus is None
    assert SliceFlag.GAP_ANNULUS in last.flags
    assert SliceFlag.GAP_ANNULUS not in resolution.slices[0].flags
    assert resolution.status == ResolutionStatus.WARNING
    assert any("No annulus section covers" in w for w in resolution.warnings)


def test_no_sections_is_undefined():
    resolution = resolve_geometry([], [])
    assert resolution.status == ResolutionStatus.UNDEFINED
    assert resolution.slices == []


def test_boundaries_within_tolerance_collapse():
    annulus = [
        GeometrySection(kind="annulus", top_md=0.0, bottom_md=500.0, inner_diameter=0.2),
        GeometrySection(kind="annulus", top_md=500.0000001, bottom_md=900.0, inner_diameter=0.2),
    ]
    assert unique_boundaries(annulus, []) == [0.0, 500.0, 900.0]


def test_volumes_match_hand_calculation():
    annulus, string = create_test_sections()
    slices = resolve_slices(annulus, string)

    summary = volumes_between(slices, 0.0, 1000.0)

    expected_annular = math.pi * (0.2205 ** 2 - 0.127 ** 2) / 4.0 * 1000.0
    assert summary.annular_volume == pytest.approx(expected_annular)
    assert summary.string_capacity == pytest.approx(math.pi * 0.1086 ** 2 / 4.0 * 1000.0)
    assert summary.string_displacement == pytest.approx(math.pi * 0.127 ** 2 / 4.0 * 1000.0)
    assert summary.open_hole_volume == pytest.approx(math.pi * 0.2205 ** 2 / 4.0 * 1000.0)
    assert summary.annular_capacity_per_m == pytest.approx(expected_annular / 1000.0)


def test_volumes_are_additive():
    annulus, string = create_test_sections()
    slices = resolve_slices(annulus, string)

    whole = volumes_between(slices, 300.0, 2400.0)
    upper = volumes_between(slices, 300.0, 1700.0)
    lower = volumes_between(slices, 1700.0, 2400.0)

    assert whole.annular_volume == pytest.approx(upper.annular_volume + lower.annular_volume)
    assert whole.string_capacity == pytest.approx(upper.string_capacity + lower.string_capacity)
    assert whole.string_displacement == pytest.approx(upper.string_displacement + lower.string_displacement)
    assert whole.open_hole_volume == pytest.approx(upper.open_hole_volume + lower.open_hole_volume)


def test_zero_length_interval_returns_zeros():
    annulus, string = create_test_sections()
    slices = resolve_slices(annulus, string)

    summary = volumes_between(slices, 800.0, 800.0)

    assert summary.length == 0.0
    assert summary.annular_volume == 0.0
    assert summary.annular_capacity_per_m == 0.0


def test_depth_for_volume_inverts_volume_of():
    annulus, string = create_test_sections()
    slices = resolve_slices(annulus, string)
    target = volume_of(slices, 0.0, 1500.0, VolumeMeasure.ANNULAR)

    depth = depth_for_volume(slices, target, 0.0, 2500.0, VolumeMeasure.ANNULAR)
    assert depth == pytest.approx(1500.0, abs=1e-3)

    top = depth_for_volume(slices, target, 2500.0, 0.0, VolumeMeasure.ANNULAR, downward=False)
    assert volume_of(slices, top, 2500.0, VolumeMeasure.ANNULAR) == pytest.approx(target, rel=1e-6)


def test_depths_for_volumes_walks_once_and_matches_bisection():
    annulus, string = create_test_sections()
    slices = resolve_slices(annulus, string)
    volumes = [5.0, 20.0, 40.0, 1e6]

    downward = depths_for_volumes(slices, volumes, 0.0, 2500.0, VolumeMeasure.ANNULAR)
    for volume, depth in zip(volumes, downward):
        assert depth == pytest.approx(depth_for_volume(slices, volume, 0.0, 2500.0, VolumeMeasure.ANNULAR), abs=1e-3)
    assert downward[-1] == 2500.0

    upward = depths_for_volumes(slices, volumes[:3], 2500.0, 0.0, VolumeMeasure.ANNULAR, downward=False)
    for volume, top in zip(volumes, upward):
        assert volume_of(slices, top, 2500.0, VolumeMeasure.ANNULAR) == pytest.approx(volume, rel=1e-9)

    assert depths_for_volumes(slices, [0.0], 100.0, 2500.0, VolumeMeasure.ANNULAR) == [100.0]


def test_depth_for_volume_clamps_to_limit():
    annulus, string = create_test_sections()
    slices = resolve_slices(annulus, string)

    assert depth_for_volume(slices, 1e6, 0.0, 2500.0, VolumeMeasure.ANNULAR) == 2500.0


def test_pipe_in_length_is_longer_than_open_hole_interval():
    annulus = [GeometrySection(kind="annulus", top_md=0.0, bottom_md=2000.0, inner_diameter=0.2159)]
    string = [GeometrySection(kind="string", top_md=0.0, bottom_md=2000.0, inner_diameter=0.1086, outer_diameter=0.127)]
    slices = resolve_slices(annulus, string)

    result = pipe_in_length_for_open_hole_volume(slices, 1800.0, 2000.0)

    open_hole = math.pi * 0.2159 ** 2 / 4.0 * 200.0
    assert result.length > 200.0
    assert result.total_volume == pytest.approx(open_hole, rel=1e-4)
    assert result.top_with_pipe == pytest.approx(2000.0 - result.length)


def test_hang_string_runs_to_bit():
    annulus, _ = create_test_sections()
    slices = hang_string(annulus, 1500.0, 0.127, 0.1086)

    assert slice_at(slices, 1499.0).string is not None
    assert slice_at(slices, 1600.0).string is None
    assert slice_at(slices, 2500.0) is slices[-1]


def test_tvd_sampler_interpolates_and_clamps():
    stations = [
        SurveyStation(md=0.0, tvd=0.0),
        SurveyStation(md=1000.0, tvd=1000.0),
        SurveyStation(md=2000.0, tvd=1800.0),
        SurveyStation(md=2000.0, tvd=1900.0),  # duplicate md, first wins
    ]
    sampler = TvdSampler(stations)

    assert sampler.tvd(500.0) == pytest.approx(500.0)
    assert sampler.tvd(1500.0) == pytest.approx(1400.0)
    assert sampler.tvd(2000.0) == pytest.approx(1800.0)
    assert sampler.tvd(2500.0) == pytest.approx(1800.0)
    assert list(sampler.tvd_many([0.0, 1000.0])) == pytest.approx([0.0, 1000.0])


def test_tvd_sampler_without_stations_is_vertical():
    sampler = TvdSampler([])
    assert sampler.is_vertical
    assert sampler(1234.5) == 1234.5


if __name__ == "__main__":
    test_slices_cover_surface_to_deepest_boundary()
    test_volumes_are_additive()
    test_tvd_sampler_interpolates_and_clamps()
    print("Geometry tests completed")
