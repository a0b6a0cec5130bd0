from app.schemas.rheology import NewtonianRheology
from .base import RheologyModelBase


class NewtonianModel(RheologyModelBase):
    """Constant-viscosity fluid (water, brine, base oil)."""
    name = "newtonian"

    def __init__(self, density: float, viscosity: float):
        super().__init__(density)
        self.viscosity = viscosity

    def wall_shear_stress(self, shear_rate: float) -> float:
        return self.viscosity * shear_rate


def build_newtonian(rheology: NewtonianRheology, density: float) -> NewtonianModel:
    return NewtonianModel(density, rheology.viscosity)
