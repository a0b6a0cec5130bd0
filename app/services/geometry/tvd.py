# app/services/geometry/tvd.py
import logging
from typing import Iterable, List, Optional

import numpy as np

from app.schemas.geometry import SurveyStation

logger = logging.getLogger(__name__)


class TvdSampler:
    """
    Depth -> true-vertical-depth lookup built from survey stations.

    Stations are sorted by MD and de-duplicated (first station wins). Between
    stations the TVD is interpolated linearly; outside the surveyed range it is
    clamped to the first/last station. With no stations the well is treated as
    vertical (tvd == md).
    """

    def __init__(self, stations: Optional[Iterable[SurveyStation]] = None):
        md: List[float] = []
        tvd: List[float] = []
        for station in sorted(stations or [], key=lambda s: s.md):
            if md and station.md <= md[-1]:
                continue
            md.append(station.md)
            tvd.append(station.tvd if station.tvd is not None else station.md)
        self.md = np.asarray(md, dtype=float)
        self.tvd_values = np.asarray(tvd, dtype=float)
        if len(md) == 0:
            logger.debug("No survey stations supplied, TVD sampler is vertical")

    @property
    def is_vertical(self) -> bool:
        return self.md.size == 0

    def tvd(self, md: float) -> float:
        if self.is_vertical:
            return float(md)
        return float(np.interp(md, self.md, self.tvd_values))

    def tvd_many(self, mds) -> np.ndarray:
        mds = np.asarray(mds, dtype=float)
        if self.is_vertical:
            return mds.copy()
        return np.interp(mds, self.md, self.tvd_values)

    def __call__(self, md: float) -> float:
        return self.tvd(md)
