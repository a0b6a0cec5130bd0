from app.schemas.hydraulics import ConduitKind
from app.schemas.rheology import PowerLawRheology
from .base import RheologyModelBase


class PowerLawModel(RheologyModelBase):
    """
    Ostwald-de Waele fluid: τ = K·γ^n.

    The wall shear rate carries the Mooney-Rabinowitsch correction,
    (3n+1)/(4n) in a pipe and (2n+1)/(3n) in the slot approximation of an
    annulus.
    """
    name = "power_law"

    def __init__(self, density: float, flow_index: float, consistency: float):
        super().__init__(density)
        self.flow_index = flow_index
        self.consistency = consistency

    def shear_rate_correction(self, kind: ConduitKind) -> float:
        n = self.flow_index
        if kind == ConduitKind.PIPE:
            return (3.0 * n + 1.0) / (4.0 * n)
        return (2.0 * n + 1.0) / (3.0 * n)

    def wall_shear_stress(self, shear_rate: float) -> float:
        return self.consistency * shear_rate ** self.flow_index


def build_power_law(rheology: PowerLawRheology, density: float) -> PowerLawModel:
    return PowerLawModel(density, rheology.flow_index, rheology.consistency)
