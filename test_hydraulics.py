"""
Tests for the rheology models, pressure-loss engine, circulation, swab/surge
and Fann viscometer fitting.
"""

import sys
import os
import math
import importlib

# Add the project root to the Python path
sys.path.append(os.path.abspath('.'))

import pytest

from app.schemas.fluids import FluidLayer
from app.schemas.geometry import GeometrySection
from app.schemas.hydraulics import (
    CirculationInput,
    ConduitKind,
    FlowConduit,
    FlowRegime,
    PipeEndType,
    PressureLossInput,
    PressureWindow,
    SwabSurgeInput,
)
from app.schemas.rheology import (
    BinghamRheology,
    HerschelBulkleyRheology,
    NewtonianRheology,
    PowerLawRheology,
)
from app.services.hydraulics import build_rheology_model, calculate_circulation, calculate_swab_surge, fit_fann
from app.services.hydraulics.engine import calculate_pressure_loss_from_input
from app.services.hydraulics.hydraulics_service import hydraulics_service
from app.services.hydraulics.swab_surge import clinging_constant
from app.utils.error_handling import CalculationError, ValidationError


def create_test_geometry():
    """8-1/2" hole to 2000 m with 5" drill pipe to 2000 m."""
    annulus = [GeometrySection(kind="annulus", name="Open hole", top_md=0.0, bottom_md=2000.0, inner_diameter=0.2159)]
    string = [GeometrySection(kind="string", name="DP", top_md=0.0, bottom_md=2000.0,
                              inner_diameter=0.1086, outer_diameter=0.127)]
    return annulus, string


def create_test_models():
    return [
        NewtonianRheology(viscosity=0.02),
        BinghamRheology(plastic_viscosity=0.02, yield_point=7.0),
        PowerLawRheology(flow_index=0.6, consistency=0.5),
        HerschelBulkleyRheology(yield_stress=3.0, flow_index=0.7, consistency=0.3),
    ]


def test_newtonian_laminar_pipe_matches_poiseuille():
    model = build_rheology_model(NewtonianRheology(viscosity=0.05), 1000.0)
    conduit = FlowConduit(kind=ConduitKind.PIPE, outer_diameter=0.1)

    friction = model.pressure_gradient(0.3, conduit)

    velocity = 0.3 / 60.0 / (math.pi * 0.1 ** 2 / 4.0)
    assert friction.regime == FlowRegime.LAMINAR
    assert friction.velocity == pytest.approx(velocity)
    assert friction.gradient == pytest.approx(32.0 * 0.05 * velocity / 0.1 ** 2 / 1000.0)


def test_no_flow_is_static():
    conduit = FlowConduit(kind=ConduitKind.ANNULUS, outer_diameter=0.2159, inner_diameter=0.127)
    for rheology in create_test_models():
        friction = build_rheology_model(rheology, 1200.0).pressure_gradient(0.0005, conduit)
        assert friction.gradient == 0.0
        assert friction.regime == FlowRegime.STATIC


def test_gradient_increases_with_flow_rate():
    conduit = FlowConduit(kind=ConduitKind.ANNULUS, outer_diameter=0.2159, inner_diameter=0.127)
    for rheology in create_test_models():
        model = build_rheology_model(rheology, 1200.0)
        gradients = [model.pressure_gradient(q, conduit).gradient for q in (0.5, 1.0, 2.0, 4.0)]
        assert all(g > 0 for g in gradients)
        assert all(b > a for a, b in zip(gradients[:-1], gradients[1:]))


def test_bingham_goes_turbulent_at_high_rate():
    model = build_rheology_model(BinghamRheology(plastic_viscosity=0.005, yield_point=1.0), 1100.0)
    conduit = FlowConduit(kind=ConduitKind.PIPE, outer_diameter=0.1086)

    friction = model.pressure_gradient(5.0, conduit)

    assert friction.reynolds > friction.critical_reynolds
    assert friction.regime == FlowRegime.TURBULENT


def test_pressure_loss_sums_segments_and_uses_layer_density():
    annulus, string = create_test_geometry()
    layers = [
        FluidLayer(top_md=0.0, bottom_md=1000.0, density=1200.0),
        FluidLayer(top_md=1000.0, bottom_md=2000.0, density=1500.0),
    ]
    data = PressureLossInput(
        annulus_sections=annulus,
        string_sections=string,
        layers=layers,
        rheology=BinghamRheology(plastic_viscosity=0.02, yield_point=7.0),
        flow_rate=1.5,
        bottom_md=2000.0,
    )

    result = calculate_pressure_loss_from_input(data)

    assert len(result.segments) == 2
    assert [s.density for s in result.segments] == [1200.0, 1500.0]
    assert result.total_pressure_loss == pytest.approx(sum(s.pressure_loss for s in result.segments))
    assert result.average_gradient == pytest.approx(result.total_pressure_loss / 2000.0)


def test_pressure_loss_reports_missing_geometry():
    annulus, string = create_test_geometry()
    data = PressureLossInput(
        annulus_sections=annulus,
        string_sections=string,
        rheology=NewtonianRheology(viscosity=0.001),
        flow_rate=1.0,
        bottom_md=2500.0,
    )

    result = hydraulics_service.calculate_pressure_loss(data)

    assert result.warnings
    assert result.segments[-1].bottom_md == pytest.approx(2000.0)


def test_arithmetic_failure_becomes_calculation_error(monkeypatch):
    service_module = importlib.import_module("app.services.hydraulics.hydraulics_service")

    def failing_engine(data):
        raise ZeroDivisionError("float division by zero")

    monkeypatch.setattr(service_module, "engine_calculate_pressure_loss", failing_engine)
    annulus, string = create_test_geometry()
    data = PressureLossInput(
        annulus_sections=annulus,
        string_sections=string,
        rheology=NewtonianRheology(viscosity=0.001),
        flow_rate=1.0,
        bottom_md=2000.0,
    )

    with pytest.raises(CalculationError) as excinfo:
        hydraulics_service.calculate_pressure_loss(data)
    assert excinfo.value.status_code == 500
    assert excinfo.value.error_code == "calculation_error"


def test_circulation_bhp_and_required_sbp():
    annulus, string = create_test_geometry()
    data = CirculationInput(
        annulus_sections=annulus,
        string_sections=string,
        rheology=BinghamRheology(plastic_viscosity=0.02, yield_point=7.0),
        density=1200.0,
        flow_rate=1.5,
        bottom_md=2000.0,
        surface_back_pressure=500.0,
        target_bhp=26000.0,
        window=PressureWindow(pore_gradient=10.0, frac_gradient=15.0),
    )

    result = calculate_circulation(data)

    hydrostatic = 1200.0 * 9.80665 * 2000.0 / 1000.0
    assert result.hydrostatic_pressure == pytest.approx(hydrostatic)
    assert result.bottomhole_pressure == pytest.approx(500.0 + hydrostatic + result.friction_pressure)
    assert result.ecd > 1200.0
    assert result.required_sbp == pytest.approx(max(26000.0 - hydrostatic - result.friction_pressure, 0.0))
    assert result.within_window


def test_clinging_constant():
    assert clinging_constant(0.127, 0.2159) == pytest.approx(0.45 + 0.45 * (0.127 / 0.2159) ** 2)
    assert clinging_constant(0.3, 0.2) == 0.45


def test_swab_surge_closed_end_exceeds_open_end():
    annulus, string = create_test_geometry()
    base = dict(annulus_sections=annulus, string_sections=string, trip_speed=30.0, bit_md=2000.0, density=1200.0)

    closed = calculate_swab_surge(SwabSurgeInput(pipe_end=PipeEndType.CLOSED, **base))
    opened = calculate_swab_surge(SwabSurgeInput(pipe_end=PipeEndType.OPEN, **base))

    surge = closed.points[0].surge_pressure
    assert surge > opened.points[0].surge_pressure > 0
    assert closed.points[0].swab_pressure == pytest.approx(-surge)
    assert closed.points[0].recommended_sabp == pytest.approx(surge * 1.15)
    assert closed.max_swab_pressure == pytest.approx(-surge)


def test_swab_surge_grows_with_speed_and_profile():
    annulus, string = create_test_geometry()
    slow = calculate_swab_surge(SwabSurgeInput(annulus_sections=annulus, string_sections=string,
                                               trip_speed=10.0, bit_md=2000.0))
    fast = calculate_swab_surge(SwabSurgeInput(annulus_sections=annulus, string_sections=string,
                                               trip_speed=40.0, bit_md=2000.0))
    assert fast.max_surge_pressure > slow.max_surge_pressure

    profile = calculate_swab_surge(SwabSurgeInput(annulus_sections=annulus, string_sections=string,
                                                  trip_speed=30.0, bit_md=500.0, end_md=2000.0, depth_step=500.0))
    assert [p.bit_md for p in profile.points] == [500.0, 1000.0, 1500.0, 2000.0]
    surges = [p.surge_pressure for p in profile.points]
    assert all(b > a for a, b in zip(surges[:-1], surges[1:]))


def test_zero_trip_speed_is_static():
    annulus, string = create_test_geometry()
    result = calculate_swab_surge(SwabSurgeInput(annulus_sections=annulus, string_sections=string,
                                                 trip_speed=0.0, bit_md=2000.0))
    assert result.points[0].surge_pressure == 0.0
    assert result.warnings


def test_fann_fit():
    fit = fit_fann(60.0, 40.0, 5.0)

    assert fit.bingham.plastic_viscosity == pytest.approx(0.02)
    assert fit.bingham.yield_point == pytest.approx(20.0 * 0.478802)
    assert fit.power_law.flow_index == pytest.approx(math.log2(1.5))
    assert fit.power_law.consistency == pytest.approx(60.0 * 0.478802 / 1022.0 ** math.log2(1.5))
    assert fit.herschel_bulkley.yield_stress == pytest.approx(5.0 * 0.478802)
    assert fit.herschel_bulkley.flow_index == pytest.approx(math.log2(55.0 / 35.0))


def test_fann_fit_rejects_bad_readings():
    with pytest.raises(ValidationError):
        fit_fann(40.0, 60.0)
    with pytest.raises(ValidationError):
        fit_fann(60.0, 40.0, 45.0)


def test_available_models():
    ids = [m["id"] for m in hydraulics_service.get_available_models()]
    assert ids == ["newtonian", "bingham", "power_law", "herschel_bulkley"]


if __name__ == "__main__":
    test_newtonian_laminar_pipe_matches_poiseuille()
    test_swab_surge_closed_end_exceeds_open_end()
    test_fann_fit()
    print("Hydraulics tests completed")
