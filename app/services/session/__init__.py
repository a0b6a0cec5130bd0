# app/services/session/__init__.py
from .workspace import ProjectSession, WellWorkspace, geometry_fingerprint
