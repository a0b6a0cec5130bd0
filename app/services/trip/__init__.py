# app/services/trip/__init__.py
from .displacement import displace_column, expansion_factor
from .engine import run_trip_in, summarize, trip_depths
from .trip_service import trip_service
