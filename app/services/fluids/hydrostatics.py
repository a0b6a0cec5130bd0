# app/services/fluids/hydrostatics.py
import logging
from typing import Callable, Optional, Sequence

import numpy as np

from app.schemas.fluids import FluidLayer

logger = logging.getLogger(__name__)

G = 9.80665  # Standard gravity, m/s²
KPA_PER_M_PER_KGM3 = G / 1000.0  # hydrostatic gradient of 1 kg/m³ over 1 m, kPa


def hydrostatic_pressure(
    layers: Sequence[FluidLayer],
    to_depth: float,
    tvd: Optional[Callable[[float], float]] = None,
) -> float:
    """
    Hydrostatic pressure (kPa) of a layered column at `to_depth` (MD).

    Each layer contributes density · g · height / 1000 for its overlap with
    [0, to_depth]. Heights are vertical when a TVD sampler is given, otherwise
    measured depth is used. Uncovered depths contribute nothing.
    """
    if to_depth <= 0:
        return 0.0
    pressure = 0.0
    for layer in layers:
        top = max(layer.top_md, 0.0)
        bottom = min(layer.bottom_md, to_depth)
        if bottom <= top:
            continue
        height = (tvd(bottom) - tvd(top)) if tvd else (bottom - top)
        pressure += layer.density * G * height / 1000.0
    return pressure


def pressure_profile(
    layers: Sequence[FluidLayer],
    depths,
    tvd: Optional[Callable[[float], float]] = None,
) -> np.ndarray:
    return np.array([hydrostatic_pressure(layers, float(d), tvd) for d in depths])


def equivalent_static_density(pressure: float, tvd: float) -> float:
    """ESD (kg/m³) producing `pressure` (kPa) at `tvd` (m); 0 at or above surface."""
    if tvd <= 0:
        return 0.0
    return pressure / (KPA_PER_M_PER_KGM3 * tvd)


def esd_at_depth(
    layers: Sequence[FluidLayer],
    control_md: float,
    tvd: Optional[Callable[[float], float]] = None,
) -> float:
    control_tvd = tvd(control_md) if tvd else control_md
    return equivalent_static_density(hydrostatic_pressure(layers, control_md, tvd), control_tvd)


def required_choke_pressure(esd: float, target_esd: float, control_tvd: float) -> float:
    """Smallest non-negative surface back pressure lifting `esd` to `target_esd` at `control_tvd`."""
    if control_tvd <= 0:
        return 0.0
    return max(0.0, (target_esd - esd) * KPA_PER_M_PER_KGM3 * control_tvd)


def density_contribution(pressure: float, tvd: float) -> float:
    """Equivalent density increment for a pressure applied at surface."""
    return equivalent_static_density(pressure, tvd)
