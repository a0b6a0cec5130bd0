from app.schemas.rheology import HerschelBulkleyRheology
from .power_law import PowerLawModel


class HerschelBulkleyModel(PowerLawModel):
    """Yield-power-law fluid: τ = τ0 + K·γ^n (power-law shear-rate correction)."""
    name = "herschel_bulkley"

    def __init__(self, density: float, yield_stress: float, flow_index: float, consistency: float):
        super().__init__(density, flow_index, consistency)
        self.yield_stress = yield_stress

    def wall_shear_stress(self, shear_rate: float) -> float:
        return self.yield_stress + super().wall_shear_stress(shear_rate)


def build_herschel_bulkley(rheology: HerschelBulkleyRheology, density: float) -> HerschelBulkleyModel:
    return HerschelBulkleyModel(density, rheology.yield_stress, rheology.flow_index, rheology.consistency)
