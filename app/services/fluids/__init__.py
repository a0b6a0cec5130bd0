# app/services/fluids/__init__.py
# Export main functions to simplify imports
from app.services.fluids.hydrostatics import (
    G,
    equivalent_static_density,
    esd_at_depth,
    hydrostatic_pressure,
    required_choke_pressure,
)
from app.services.fluids.layers import (
    build_final_layers,
    coverage_gaps,
    merge_adjacent,
    overlay,
    slice_layers,
    truncate,
)
