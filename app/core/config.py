import os
from typing import List, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()



class Settings(BaseSettings):
    # CORE SETTINGS
    ENV: str = os.getenv("ENV", "development")
    DEBUG: bool = ENV == "development"
    API_V1_STR: str = "/api"
    PROJECT_NAME: str = "Well Control Engine"

    # CORS SETTINGS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # GEOMETRY SETTINGS
    GEOMETRY_TOLERANCE_M: float = float(os.getenv("GEOMETRY_TOLERANCE_M", "1e-6"))

    # TRIP SIMULATION SETTINGS
    TRIP_MIN_STEP_M: float = float(os.getenv("TRIP_MIN_STEP_M", "0.5"))
    TRIP_MAX_STEPS: int = int(os.getenv("TRIP_MAX_STEPS", "20000"))
    TRIP_DEFAULT_CRACK_PRESSURE_KPA: float = float(os.getenv("TRIP_DEFAULT_CRACK_PRESSURE_KPA", "2100"))

    # SWAB / SURGE SETTINGS
    SWAB_SAFETY_FACTOR: float = float(os.getenv("SWAB_SAFETY_FACTOR", "1.15"))
    DEFAULT_ECCENTRICITY: float = float(os.getenv("DEFAULT_ECCENTRICITY", "1.2"))

    # CEMENT JOB SETTINGS
    CEMENT_VOLUME_INCREMENT_M3: float = float(os.getenv("CEMENT_VOLUME_INCREMENT_M3", "0.5"))
    CEMENT_MIN_SEGMENT_HEIGHT_M: float = float(os.getenv("CEMENT_MIN_SEGMENT_HEIGHT_M", "0.5"))

    # WORKSPACE SETTINGS
    WORKSPACE_MAX_PROJECTS: int = int(os.getenv("WORKSPACE_MAX_PROJECTS", "100"))
    WORKSPACE_TTL_SECONDS: int = int(os.getenv("WORKSPACE_TTL_SECONDS", "86400"))

    # LOGGING SETTINGS
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @field_validator("TRIP_MIN_STEP_M", "CEMENT_VOLUME_INCREMENT_M3")
    def positive_step(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("step sizes must be positive")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
