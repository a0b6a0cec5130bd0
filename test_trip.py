"""
Tests for the trip-in engine: column displacement, ESD and choke per step,
fill and displacement volumes, float states and the run limits.
"""

import sys
import os
import math
import threading
import importlib

# Add the project root to the Python path
sys.path.append(os.path.abspath('.'))

import pytest

from app.schemas.fluids import FluidDomain, FluidLayer
from app.schemas.geometry import GeometrySection
from app.schemas.trip import FloatState, TripInput, TripResult
from app.services.trip import displace_column, expansion_factor, run_trip_in, summarize, trip_depths, trip_service

G = 9.80665
HOLE_ID = 0.216
PIPE_OD = 0.127
PIPE_ID = 0.1086


def create_test_trip(**overrides):
    """Vertical 0-3000 m hole of uniform 1200 kg/m³ mud, 5" pipe run from surface."""
    params = dict(
        annulus_sections=[
            GeometrySection(kind="annulus", name="Hole", top_md=0.0, bottom_md=3000.0, inner_diameter=HOLE_ID)
        ],
        start_md=0.0,
        end_md=3000.0,
        step=500.0,
        control_md=3000.0,
        pipe_od=PIPE_OD,
        pipe_id=PIPE_ID,
        active_mud_density=1200.0,
        base_mud_density=1200.0,
        target_esd=1200.0,
    )
    params.update(overrides)
    return TripInput(**params)


def test_trip_depths_include_end():
    assert trip_depths(0.0, 1000.0, 300.0) == [0.0, 300.0, 600.0, 900.0, 1000.0]
    assert trip_depths(0.0, 900.0, 300.0) == [0.0, 300.0, 600.0, 900.0]
    assert trip_depths(1000.0, 500.0, 100.0) == []


def test_uniform_column_needs_no_choke():
    result = run_trip_in(create_test_trip())

    assert [s.bit_md for s in result.steps] == [0.0, 500.0, 1000.0, 1500.0, 2000.0, 2500.0, 3000.0]
    for step in result.steps:
        assert step.esd_at_control == pytest.approx(1200.0)
        assert step.required_choke_pressure == pytest.approx(0.0, abs=1e-6)
        assert not step.is_below_target
        assert step.float_state == FloatState.FULL

    last = result.steps[-1]
    assert last.annulus_pressure_at_bit == pytest.approx(1200.0 * G * 3000.0 / 1000.0)
    assert last.differential_pressure == pytest.approx(0.0, abs=1e-6)
    assert result.summary.max_choke_pressure == pytest.approx(0.0, abs=1e-6)
    assert result.summary.depth_below_target_from is None


def test_layers_split_at_the_bit():
    result = run_trip_in(create_test_trip())
    step = result.steps[2]

    assert step.bit_md == 1000.0
    assert all(l.domain == FluidDomain.ANNULUS and l.bottom_md <= 1000.0 for l in step.layers_annulus)
    assert all(l.domain == FluidDomain.POCKET and l.top_md >= 1000.0 for l in step.layers_pocket)
    assert step.layers_string[0].bottom_md == pytest.approx(1000.0)
    assert result.final_layers == result.steps[-1].layers_annulus + result.steps[-1].layers_pocket


def test_fill_and_displacement_volumes():
    result = run_trip_in(create_test_trip())

    capacity_per_m = math.pi / 4.0 * PIPE_ID ** 2
    displacement_per_m = math.pi / 4.0 * PIPE_OD ** 2

    fills = [s.cumulative_fill_volume for s in result.steps]
    returns = [s.cumulative_displacement_return for s in result.steps]
    assert fills[0] == 0.0
    assert all(b >= a for a, b in zip(fills[:-1], fills[1:]))
    assert all(b >= a for a, b in zip(returns[:-1], returns[1:]))

    last = result.steps[-1]
    assert last.step_fill_volume == pytest.approx(capacity_per_m * 500.0)
    assert last.cumulative_fill_volume == pytest.approx(capacity_per_m * 3000.0)
    assert last.cumulative_fill_volume == pytest.approx(last.expected_fill_closed)
    assert last.cumulative_displacement_return == pytest.approx(displacement_per_m * 3000.0)
    assert result.summary.total_fill_volume == pytest.approx(last.cumulative_fill_volume)


def test_displaced_mud_overflows_at_surface():
    result = run_trip_in(create_test_trip())
    step = result.steps[1]

    # closed-end steel volume of the pipe in the hole leaves the well
    assert step.overflow_volume == pytest.approx(math.pi / 4.0 * PIPE_OD ** 2 * 500.0, rel=1e-6)


def test_expansion_factor():
    sections = [GeometrySection(kind="annulus", name="Hole", top_md=0.0, bottom_md=3000.0, inner_diameter=HOLE_ID)]
    factor = expansion_factor(sections, 100.0, PIPE_OD)
    assert factor == pytest.approx(HOLE_ID ** 2 / (HOLE_ID ** 2 - PIPE_OD ** 2))
    assert expansion_factor(sections, 100.0, HOLE_ID) == 1.0


def test_displace_column_keeps_layer_order():
    sections = [GeometrySection(kind="annulus", name="Hole", top_md=0.0, bottom_md=3000.0, inner_diameter=HOLE_ID)]
    column = [
        FluidLayer(domain=FluidDomain.POCKET, top_md=0.0, bottom_md=2500.0, density=1200.0, name="Mud"),
        FluidLayer(domain=FluidDomain.POCKET, top_md=2500.0, bottom_md=3000.0, density=1500.0, name="Pill"),
    ]

    displaced, overflow = displace_column(column, 2800.0, sections, PIPE_OD)

    assert [l.name for l in displaced] == ["Mud", "Pill"]
    assert displaced[0].top_md == 0.0
    assert displaced[-1].bottom_md == 3000.0
    # the pill rises: its top moves up by the expansion of the 300 m the pipe entered
    factor = expansion_factor(sections, 2650.0, PIPE_OD)
    assert displaced[1].top_md == pytest.approx(3000.0 - (200.0 + 300.0 * factor))
    assert overflow > 0
    # input layers are left untouched
    assert column[1].top_md == 2500.0


def test_light_pocket_requires_choke():
    pocket = [
        FluidLayer(domain=FluidDomain.POCKET, top_md=0.0, bottom_md=2000.0, density=1200.0, name="Mud"),
        FluidLayer(domain=FluidDomain.POCKET, top_md=2000.0, bottom_md=3000.0, density=1000.0, name="Gas-cut mud"),
    ]
    result = run_trip_in(create_test_trip(pocket_layers=pocket, step=1000.0))

    first = result.steps[0]
    expected_esd = (1200.0 * 2000.0 + 1000.0 * 1000.0) / 3000.0
    assert first.esd_at_control == pytest.approx(expected_esd)
    assert first.is_below_target
    assert first.required_choke_pressure == pytest.approx((1200.0 - expected_esd) * G / 1000.0 * 3000.0)
    assert result.summary.depth_below_target_from == 0.0
    assert result.summary.max_choke_pressure >= first.required_choke_pressure


def test_incomplete_pocket_is_reported():
    pocket = [FluidLayer(domain=FluidDomain.POCKET, top_md=0.0, bottom_md=1000.0, density=1200.0)]
    result = run_trip_in(create_test_trip(pocket_layers=pocket, end_md=0.0))
    assert any("undefined" in w for w in result.warnings)


def test_floated_casing_float_states():
    result = run_trip_in(create_test_trip(end_md=1000.0, step=100.0, is_floated_casing=True, float_sub_md=0.0))

    # nothing is filled below the float sub
    assert result.summary.total_fill_volume == 0.0
    assert all(not s.layers_string for s in result.steps)

    states = [s.float_state for s in result.steps]
    assert states[0] == FloatState.CLOSED
    assert states[-1] == FloatState.OPEN
    for s in result.steps:
        assert s.float_differential == pytest.approx(s.annulus_pressure_at_bit + s.required_choke_pressure)
        expected = FloatState.OPEN if s.float_differential > 2100.0 else FloatState.CLOSED
        assert s.float_state == expected


def test_floated_casing_partial_fill():
    result = run_trip_in(create_test_trip(end_md=1000.0, step=100.0, is_floated_casing=True, float_sub_md=500.0))

    capacity_per_m = math.pi / 4.0 * PIPE_ID ** 2
    assert result.summary.total_fill_volume == pytest.approx(capacity_per_m * 500.0)
    last = result.steps[-1]
    assert last.layers_string[0].bottom_md == pytest.approx(500.0)


def test_end_above_start_returns_no_steps():
    result = run_trip_in(create_test_trip(start_md=2000.0, end_md=1000.0))
    assert result.steps == []
    assert result.warnings


def test_step_limits():
    clamped = run_trip_in(create_test_trip(end_md=10.0, step=0.1), min_step=0.5)
    assert clamped.effective_step == 0.5
    assert len(clamped.steps) == 21
    assert clamped.warnings

    widened = run_trip_in(create_test_trip(end_md=1000.0, step=1.0), max_steps=11)
    assert widened.effective_step == pytest.approx(100.0)
    assert len(widened.steps) == 11
    assert any("widened" in w for w in widened.warnings)


def test_cancelled_run_returns_no_steps():
    event = threading.Event()
    event.set()
    result = run_trip_in(create_test_trip(), cancel_event=event)
    assert result.cancelled
    assert result.steps == []


def test_progress_callback():
    calls = []
    run_trip_in(create_test_trip(), progress=lambda done, total: calls.append((done, total)))
    assert calls[-1] == (7, 7)
    assert len(calls) == 7


def test_surge_adds_to_esd():
    result = run_trip_in(create_test_trip(trip_speed=20.0))

    assert result.steps[0].surge_pressure == 0.0
    for step in result.steps[1:]:
        assert step.surge_pressure > 0
        assert step.dynamic_esd > step.esd_at_control
    assert result.summary.max_surge_pressure == pytest.approx(max(s.surge_pressure for s in result.steps))


def test_summarize_empty():
    summary = summarize([])
    assert summary.step_count == 0
    assert summary.min_esd is None


def test_trip_service():
    result = trip_service.simulate(create_test_trip(step=1000.0), job_id="job-1")
    assert len(result.steps) == 4
    assert trip_service.running_jobs() == []
    assert not trip_service.cancel("job-1")


def test_trip_service_cancels_a_running_job(monkeypatch):
    service_module = importlib.import_module("app.services.trip.trip_service")
    started = threading.Event()

    def blocking_run(data, tvd=None, cancel_event=None, **kwargs):
        started.set()
        cancel_event.wait(5.0)
        return TripResult(cancelled=cancel_event.is_set())

    monkeypatch.setattr(service_module, "run_trip_in", blocking_run)
    results = []
    worker = threading.Thread(
        target=lambda: results.append(trip_service.simulate(create_test_trip(), job_id="job-2"))
    )
    worker.start()

    assert started.wait(5.0)
    assert trip_service.running_jobs() == ["job-2"]
    assert trip_service.cancel("job-2")
    worker.join(5.0)

    assert results[0].cancelled
    assert trip_service.running_jobs() == []


def test_steps_do_not_share_layer_state():
    pocket = [FluidLayer(domain=FluidDomain.POCKET, top_md=0.0, bottom_md=3000.0, density=1200.0,
                         metadata={"tag": "original"})]
    result = run_trip_in(create_test_trip(pocket_layers=pocket))

    first = result.steps[0].layers_pocket[0]
    second = result.steps[1].layers_pocket[0]
    assert first.metadata is not second.metadata
    assert result.final_layers[0].metadata is not result.steps[-1].layers_annulus[0].metadata

    first.metadata["tag"] = "changed"
    assert second.metadata == {"tag": "original"}
    assert pocket[0].metadata == {"tag": "original"}
    assert all(l.metadata == {"tag": "original"} for l in result.steps[-1].layers_annulus)


def test_default_column_above_the_start_is_already_displaced():
    result = run_trip_in(create_test_trip(start_md=1500.0, end_md=1500.0))
    step = result.steps[0]

    assert step.step_displacement_return == 0.0
    assert step.overflow_volume == 0.0
    assert [(l.top_md, l.bottom_md) for l in step.layers_annulus] == [(0.0, 1500.0)]
    assert step.esd_at_control == pytest.approx(1200.0)

    # only pipe run past the start depth pushes mud out at surface
    result = run_trip_in(create_test_trip(start_md=1500.0, end_md=2000.0))
    assert result.steps[0].overflow_volume == 0.0
    assert result.steps[-1].overflow_volume == pytest.approx(math.pi / 4.0 * PIPE_OD ** 2 * 500.0, rel=1e-6)


def test_missing_annulus_geometry_is_reported():
    result = run_trip_in(create_test_trip(end_md=3500.0))

    assert [s.bit_md for s in result.steps][-1] == 3500.0
    assert any(w.startswith("No annulus geometry at 1 step(s) from 3500.0 m") for w in result.warnings)

    complete = run_trip_in(create_test_trip())
    assert not any("No annulus geometry" in w for w in complete.warnings)


if __name__ == "__main__":
    test_uniform_column_needs_no_choke()
    test_fill_and_displacement_volumes()
    test_floated_casing_float_states()
    print("Trip tests completed")
