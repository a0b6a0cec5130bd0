"""
Tests for the fluid layer store, hydrostatics and mixing helpers.
"""

import sys
import os

# Add the project root to the Python path
sys.path.append(os.path.abspath('.'))

import pytest

from app.schemas.fluids import FluidDomain, FluidLayer, Placement, PlacementStep
from app.schemas.geometry import SurveyStation
from app.services.fluids import (
    build_final_layers,
    coverage_gaps,
    equivalent_static_density,
    esd_at_depth,
    hydrostatic_pressure,
    overlay,
    required_choke_pressure,
    truncate,
)
from app.services.fluids.hydrostatics import G, pressure_profile
from app.services.fluids.layers import density_at, merge_adjacent, slice_layers, with_domain
from app.services.fluids.mixing import barite_mass_for_target, blend_density, solve_volume_for_target
from app.services.geometry import TvdSampler


def create_test_layers():
    """Base mud 0-3000 m with a pill painted over 1000-1500 m."""
    base = FluidLayer(top_md=0.0, bottom_md=3000.0, density=1200.0, name="Mud")
    pill = FluidLayer(top_md=1000.0, bottom_md=1500.0, density=1800.0, name="Pill")
    return overlay([base], pill)


def _spans(layers):
    return [(layer.top_md, layer.bottom_md, layer.density) for layer in layers]


def test_overlay_splits_covered_layer():
    layers = create_test_layers()
    assert _spans(layers) == [
        (0.0, 1000.0, 1200.0),
        (1000.0, 1500.0, 1800.0),
        (1500.0, 3000.0, 1200.0),
    ]


def test_overlay_is_idempotent():
    layers = create_test_layers()
    pill = FluidLayer(top_md=1000.0, bottom_md=1500.0, density=1800.0, name="Pill")
    assert _spans(overlay(layers, pill)) == _spans(layers)


def test_overlay_never_overlaps_and_keeps_union():
    layers = create_test_layers()
    layers = overlay(layers, FluidLayer(top_md=1400.0, bottom_md=3500.0, density=1000.0))

    for upper, lower in zip(layers[:-1], layers[1:]):
        assert upper.bottom_md <= lower.top_md + 1e-9
    assert layers[0].top_md == 0.0
    assert layers[-1].bottom_md == 3500.0
    assert coverage_gaps(layers, 0.0, 3500.0) == []


def test_zero_height_overlay_is_noop():
    layers = create_test_layers()
    assert _spans(overlay(layers, FluidLayer(top_md=500.0, bottom_md=500.0, density=2000.0))) == _spans(layers)


def test_overlay_does_not_mutate_input():
    base = [FluidLayer(top_md=0.0, bottom_md=100.0, density=1000.0)]
    overlay(base, FluidLayer(top_md=20.0, bottom_md=40.0, density=1500.0))
    assert _spans(base) == [(0.0, 100.0, 1000.0)]


def test_truncate_and_merge():
    layers = create_test_layers()
    clipped = truncate(layers, 500.0, 1200.0)
    assert _spans(clipped) == [(500.0, 1000.0, 1200.0), (1000.0, 1200.0, 1800.0)]

    same = [
        FluidLayer(top_md=0.0, bottom_md=10.0, density=1100.0),
        FluidLayer(top_md=10.0, bottom_md=30.0, density=1100.0),
    ]
    assert _spans(merge_adjacent(same)) == [(0.0, 30.0, 1100.0)]


def test_slice_layers_clips_and_joins_equal_densities():
    layers = create_test_layers() + [FluidLayer(top_md=3000.0, bottom_md=3200.0, density=1200.0, name="Mud")]

    assert _spans(slice_layers(layers, 1200.0, 3100.0)) == [
        (1200.0, 1500.0, 1800.0),
        (1500.0, 3100.0, 1200.0),
    ]
    assert slice_layers(layers, 500.0, 500.0) == []


def test_density_at():
    layers = create_test_layers()

    assert density_at(layers, 0.0) == 1200.0
    assert density_at(layers, 1000.0) == 1800.0
    assert density_at(layers, 1499.9) == 1800.0
    assert density_at(layers, 1500.0) == 1200.0
    assert density_at(layers, 3000.0) is None
    assert density_at([], 10.0) is None


def test_with_domain_returns_independent_copies():
    layer = FluidLayer(domain=FluidDomain.ANNULUS, top_md=0.0, bottom_md=10.0, density=1000.0,
                       metadata={"tag": "a"})
    copies = with_domain([layer], FluidDomain.ANNULUS)

    copies[0].metadata["tag"] = "b"
    assert layer.metadata == {"tag": "a"}
    assert layer.with_bounds(0.0, 5.0).metadata is not layer.metadata


def test_coverage_gaps_report_undefined_intervals():
    layers = [FluidLayer(top_md=100.0, bottom_md=200.0, density=1000.0)]
    assert coverage_gaps(layers, 0.0, 300.0) == [(0.0, 100.0), (200.0, 300.0)]


def test_final_layers_later_steps_win():
    steps = [
        PlacementStep(top_md=1000.0, bottom_md=2000.0, density=1500.0, name="Spacer", placement=Placement.BOTH),
        PlacementStep(top_md=1500.0, bottom_md=2500.0, density=1900.0, name="Cement", placement=Placement.ANNULUS),
    ]
    final = build_final_layers(1200.0, 2500.0, 2000.0, steps)

    assert _spans(final.annulus) == [
        (0.0, 1000.0, 1200.0),
        (1000.0, 1500.0, 1500.0),
        (1500.0, 2500.0, 1900.0),
    ]
    assert _spans(final.string) == [(0.0, 1000.0, 1200.0), (1000.0, 2000.0, 1500.0)]
    assert all(layer.domain == FluidDomain.STRING for layer in final.string)


def test_end_to_end_uniform_column():
    layer = FluidLayer(top_md=0.0, bottom_md=3000.0, density=1200.0)

    pressure = hydrostatic_pressure([layer], 3000.0)
    assert pressure == pytest.approx(1200.0 * 9.80665 * 3000.0 / 1000.0)
    assert pressure == pytest.approx(35303.94, abs=0.01)

    esd = esd_at_depth([layer], 3000.0)
    assert esd == pytest.approx(1200.0)
    assert required_choke_pressure(esd, 1200.0, 3000.0) == pytest.approx(0.0, abs=1e-6)


def test_choke_pressure_example():
    choke = required_choke_pressure(1100.0, 1200.0, 1500.0)
    assert choke == pytest.approx(1471.5, abs=1.0)
    assert required_choke_pressure(1250.0, 1200.0, 1500.0) == 0.0


def test_hydrostatic_is_monotonic_in_depth():
    layers = create_test_layers()
    profile = pressure_profile(layers, range(0, 3001, 50))
    assert all(b >= a for a, b in zip(profile[:-1], profile[1:]))


def test_hydrostatic_uses_vertical_height():
    stations = [SurveyStation(md=0.0, tvd=0.0), SurveyStation(md=2000.0, tvd=1000.0)]
    sampler = TvdSampler(stations)
    layer = FluidLayer(top_md=0.0, bottom_md=2000.0, density=1000.0)

    assert hydrostatic_pressure([layer], 2000.0, sampler) == pytest.approx(1000.0 * G * 1000.0 / 1000.0)
    assert esd_at_depth([layer], 2000.0, sampler) == pytest.approx(1000.0)


def test_undefined_intervals_contribute_nothing():
    layers = [FluidLayer(top_md=500.0, bottom_md=1000.0, density=1000.0)]
    assert hydrostatic_pressure(layers, 1000.0) == pytest.approx(1000.0 * G * 500.0 / 1000.0)
    assert equivalent_static_density(100.0, 0.0) == 0.0


def test_mixing_helpers():
    assert blend_density(1000.0, 1.0, 2000.0, 1.0) == pytest.approx(1500.0)
    assert blend_density(1100.0, 0.0, 1500.0, 0.0) == 1100.0

    volume = solve_volume_for_target(1000.0, 10.0, 2000.0, 1500.0)
    assert volume == pytest.approx(10.0)
    assert solve_volume_for_target(1500.0, 10.0, 2000.0, 1200.0) is None

    mass = barite_mass_for_target(1200.0, 10.0, 1300.0)
    assert mass == pytest.approx(100.0 * 10.0 / (1.0 - 1300.0 / 4200.0))
    assert barite_mass_for_target(1300.0, 10.0, 1200.0) is None


if __name__ == "__main__":
    test_overlay_is_idempotent()
    test_end_to_end_uniform_column()
    test_choke_pressure_example()
    print("Fluid tests completed")
