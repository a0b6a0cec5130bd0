# app/services/cement/__init__.py
from .cement_service import cement_service
from .fluid_stack import FluidParcel, annulus_layers, push_into_annulus, push_into_string, string_layers
from .simulator import CementJobSimulator
