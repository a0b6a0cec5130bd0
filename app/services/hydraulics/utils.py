# app/services/hydraulics/utils.py
import logging
import math
from typing import Optional

from app.schemas.hydraulics import FannFitResult
from app.schemas.rheology import BinghamRheology, HerschelBulkleyRheology, PowerLawRheology
from app.utils.conversions import cp_to_pa_s, fann_dial_to_pa
from app.utils.error_handling import ValidationError

logger = logging.getLogger(__name__)

SHEAR_RATE_600 = 1022.0  # 1/s at 600 rpm
SHEAR_RATE_300 = 511.0   # 1/s at 300 rpm


def bingham_from_fann(theta600: float, theta300: float) -> BinghamRheology:
    """PV = θ600 - θ300 (cP), YP = (θ300 - PV) lbf/100ft² converted to Pa."""
    pv_cp = theta600 - theta300
    if pv_cp <= 0:
        raise ValidationError(
            "θ600 must exceed θ300 to fit a Bingham plastic",
            details={"theta600": theta600, "theta300": theta300},
        )
    yield_point = fann_dial_to_pa(theta300 - pv_cp)
    if yield_point < 0:
        logger.warning(f"Negative Bingham yield point from θ600={theta600}, θ300={theta300}; clamped to 0")
        yield_point = 0.0
    return BinghamRheology(plastic_viscosity=cp_to_pa_s(pv_cp), yield_point=yield_point)


def _check_flow_index(n: float, details: dict) -> None:
    if not (0.0 < n <= 2.0) or math.isnan(n):
        raise ValidationError(f"Flow behaviour index {n:.3f} is outside (0, 2]", details=details)


def power_law_from_fann(theta600: float, theta300: float) -> PowerLawRheology:
    """n = log2(θ600/θ300), K = 0.478802·θ600 / 1022^n."""
    details = {"theta600": theta600, "theta300": theta300}
    if theta600 <= theta300:
        raise ValidationError("θ600 must exceed θ300 to fit a power law", details=details)
    n = math.log(theta600 / theta300) / math.log(2.0)
    _check_flow_index(n, details)
    k = fann_dial_to_pa(theta600) / SHEAR_RATE_600 ** n
    return PowerLawRheology(flow_index=n, consistency=k)


def herschel_bulkley_from_fann(theta600: float, theta300: float, theta3: float) -> HerschelBulkleyRheology:
    """Yield stress from θ3, then a power law through the readings above it."""
    details = {"theta600": theta600, "theta300": theta300, "theta3": theta3}
    if not (theta3 < theta300 < theta600):
        raise ValidationError("Readings must satisfy θ3 < θ300 < θ600", details=details)
    n = math.log((theta600 - theta3) / (theta300 - theta3)) / math.log(2.0)
    _check_flow_index(n, details)
    k = fann_dial_to_pa(theta300 - theta3) / SHEAR_RATE_300 ** n
    return HerschelBulkleyRheology(yield_stress=fann_dial_to_pa(theta3), flow_index=n, consistency=k)


def fit_fann(theta600: float, theta300: float, theta3: Optional[float] = None) -> FannFitResult:
    return FannFitResult(
        bingham=bingham_from_fann(theta600, theta300),
        power_law=power_law_from_fann(theta600, theta300),
        herschel_bulkley=herschel_bulkley_from_fann(theta600, theta300, theta3) if theta3 is not None else None,
    )
