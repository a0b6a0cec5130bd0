import math
from abc import ABC, abstractmethod
from typing import Tuple

from app.schemas.hydraulics import ConduitKind, FlowConduit, FlowRegime, FrictionGradient
from app.utils.conversions import m3_per_min_to_m3_per_s


class RheologyModelBase(ABC):
    """
    Base class for all rheological pressure-loss models.

    The base class handles conduit geometry, the flow-rate threshold, the
    Reynolds number built from the apparent viscosity at the wall, and the
    turbulent branch. Subclasses describe the fluid: how wall shear stress
    depends on shear rate and how the nominal shear rate is corrected for the
    fluid's non-Newtonian profile.

    All gradients are returned in kPa/m; flow rates are taken in m³/min.
    """
    PI = math.pi
    LAMINAR_REYNOLDS = 2100.0
    MIN_FLOW_RATE = 0.001  # m³/min, below this the fluid is treated as static
    name = "base"

    def __init__(self, density: float):
        self.density = density

    @abstractmethod
    def wall_shear_stress(self, shear_rate: float) -> float:
        """Wall shear stress (Pa) at the given wall shear rate (1/s)."""

    def shear_rate_correction(self, kind: ConduitKind) -> float:
        """Multiplier on the Newtonian wall shear rate (1.0 for Newtonian/Bingham)."""
        return 1.0

    def critical_reynolds(self, hydraulic_diameter: float) -> float:
        return self.LAMINAR_REYNOLDS

    def _geometry(self, conduit: FlowConduit) -> Tuple[float, float]:
        """Flow area (m²) and hydraulic diameter (m) of the conduit."""
        if conduit.kind == ConduitKind.PIPE:
            d = conduit.outer_diameter
            return self.PI * d * d / 4.0, d
        area = self.PI * (conduit.outer_diameter ** 2 - conduit.inner_diameter ** 2) / 4.0
        return max(area, 0.0), max(conduit.outer_diameter - conduit.inner_diameter, 0.0)

    def _nominal_shear_rate(self, velocity: float, hydraulic_diameter: float, kind: ConduitKind) -> float:
        # 8v/D for a pipe, 12v/De for the slot approximation of an annulus
        factor = 8.0 if kind == ConduitKind.PIPE else 12.0
        return factor * velocity / hydraulic_diameter

    def _turbulent_gradient(self, velocity: float, hydraulic_diameter: float, reynolds: float, roughness: float) -> float:
        """Darcy-Weisbach with the Swamee-Jain friction factor, Pa/m."""
        relative = roughness / (3.7 * hydraulic_diameter)
        f = 0.25 / (math.log10(relative + 5.74 / reynolds ** 0.9)) ** 2
        return f * self.density * velocity ** 2 / (2.0 * hydraulic_diameter)

    def pressure_gradient(self, flow_rate: float, conduit: FlowConduit) -> FrictionGradient:
        """
        Frictional pressure gradient for `flow_rate` (m³/min) through `conduit`.

        Laminar flow uses dP/dL = 4·τw/D with τw from the model's constitutive
        law. Above the critical Reynolds number the larger of the laminar and
        turbulent gradients is used.
        """
        area, dh = self._geometry(conduit)
        if abs(flow_rate) < self.MIN_FLOW_RATE or area <= 0 or dh <= 0:
            return FrictionGradient()

        velocity = m3_per_min_to_m3_per_s(abs(flow_rate)) / area
        gamma = self._nominal_shear_rate(velocity, dh, conduit.kind) * self.shear_rate_correction(conduit.kind)
        gamma = max(gamma, 0.01)
        tau = self.wall_shear_stress(gamma)
        laminar = 4.0 * tau / dh

        apparent_viscosity = tau / gamma
        reynolds = self.density * velocity * dh / max(apparent_viscosity, 1e-9)
        critical = self.critical_reynolds(dh)

        gradient = laminar
        regime = FlowRegime.LAMINAR
        if reynolds >= critical:
            turbulent = self._turbulent_gradient(velocity, dh, reynolds, conduit.roughness)
            if turbulent > laminar:
                gradient = turbulent
                regime = FlowRegime.TURBULENT

        return FrictionGradient(
            gradient=gradient / 1000.0,
            velocity=velocity,
            reynolds=reynolds,
            critical_reynolds=critical,
            wall_shear_rate=gamma,
            wall_shear_stress=tau,
            regime=regime,
        )
