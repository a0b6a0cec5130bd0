# app/services/hydraulics/rheology/__init__.py
# Export model classes to simplify imports
from app.services.hydraulics.rheology.base import RheologyModelBase
from app.services.hydraulics.rheology.bingham import BinghamPlasticModel, build_bingham
from app.services.hydraulics.rheology.herschel_bulkley import HerschelBulkleyModel, build_herschel_bulkley
from app.services.hydraulics.rheology.newtonian import NewtonianModel, build_newtonian
from app.services.hydraulics.rheology.power_law import PowerLawModel, build_power_law

__all__ = [
    'RheologyModelBase',
    'NewtonianModel',
    'BinghamPlasticModel',
    'PowerLawModel',
    'HerschelBulkleyModel',
    'build_newtonian',
    'build_bingham',
    'build_power_law',
    'build_herschel_bulkley',
]
