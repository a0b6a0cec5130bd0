# app/services/hydraulics/__init__.py

"""
Hydraulics module for the well control engine - rheology models and the
frictional pressure calculations built on them.

This module includes:
- Newtonian, Bingham, power-law and Herschel-Bulkley pressure-loss models
- Annular / string pressure loss and circulating BHP
- Swab and surge pressures from pipe movement
- Fann viscometer fitting
"""

from .engine import (
    build_rheology_model,
    calculate_circulation,
    calculate_pressure_loss,
)
from .swab_surge import calculate_swab_surge, swab_surge_at_depth, swab_surge_profile
from .utils import fit_fann

__version__ = "1.0.0"
