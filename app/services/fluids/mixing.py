# app/services/fluids/mixing.py
from typing import Optional


def blend_density(rho1: float, v1: float, rho2: float, v2: float) -> float:
    """Density of two volumes mixed together; rho1 when there is nothing to mix."""
    if v1 + v2 <= 0:
        return rho1
    return (rho1 * v1 + rho2 * v2) / (v1 + v2)


def solve_volume_for_target(rho1: float, v1: float, rho2: float, rho_target: float) -> Optional[float]:
    """
    Volume of fluid 2 to add to v1 of fluid 1 to reach rho_target.

    None when the target cannot be reached by adding fluid 2 (it would need
    removal, or rho2 equals the target).
    """
    denom = rho_target - rho2
    if abs(denom) < 1e-12:
        return None
    v2 = (rho1 - rho_target) * v1 / denom
    if v2 < 0:
        return None
    return v2


def barite_mass_for_target(rho_mud: float, volume: float, rho_target: float, rho_barite: float = 4200.0) -> Optional[float]:
    """Barite (kg) to weight `volume` m³ of mud from rho_mud up to rho_target."""
    if not (rho_mud < rho_target < rho_barite) or volume <= 0:
        return None
    denom = 1.0 - rho_target / rho_barite
    if abs(denom) <= 1e-12:
        return None
    return (rho_target - rho_mud) * volume / denom
