from app.schemas.rheology import BinghamRheology
from .base import RheologyModelBase


class BinghamPlasticModel(RheologyModelBase):
    """
    Bingham plastic: τ = YP + PV·γ.

    The laminar/turbulent transition is raised with the Hedström number,
    Re_crit = 2100·(1 + 0.05·He^0.3), He = ρ·YP·D²/PV².
    """
    name = "bingham"

    def __init__(self, density: float, plastic_viscosity: float, yield_point: float):
        super().__init__(density)
        self.plastic_viscosity = plastic_viscosity
        self.yield_point = yield_point

    def wall_shear_stress(self, shear_rate: float) -> float:
        return self.yield_point + self.plastic_viscosity * shear_rate

    def critical_reynolds(self, hydraulic_diameter: float) -> float:
        hedstrom = self.density * self.yield_point * hydraulic_diameter ** 2 / self.plastic_viscosity ** 2
        return self.LAMINAR_REYNOLDS * (1.0 + 0.05 * hedstrom ** 0.3)


def build_bingham(rheology: BinghamRheology, density: float) -> BinghamPlasticModel:
    return BinghamPlasticModel(density, rheology.plastic_viscosity, rheology.yield_point)
