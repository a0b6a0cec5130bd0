# app/services/geometry/__init__.py
# Export main functions to simplify imports
from app.services.geometry.resolver import resolve_geometry, resolve_slices, slice_at
from app.services.geometry.tvd import TvdSampler
from app.services.geometry.volumes import (
    VolumeMeasure,
    depth_for_volume,
    depths_for_volumes,
    pipe_in_length_for_open_hole_volume,
    volume_of,
    volumes_between,
)
