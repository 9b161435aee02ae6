import json
import logging
import os
import sys
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_DATASET_PATH = DATA_DIR / "speed_limits.json"

# Environment variable -> config field
ENV_OVERRIDES = {
    "SPEED_LIMIT_DATASET_PATH": "dataset_path",
    "SPEED_LIMIT_DEFAULT_KMH": "default_speed_limit_kmh",
    "SPEED_LIMIT_FALLBACK_KMH": "fallback_speed_limit_kmh",
    "SPEED_LIMIT_MAX_DISTANCE_KM": "max_distance_km",
    "SPEED_LIMIT_LOG_LEVEL": "log_level",
}


class SpeedLimitConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    dataset_path: Path = DEFAULT_DATASET_PATH
    default_speed_limit_kmh: float = Field(default=10.0, gt=0)  # returned when nothing matches
    fallback_speed_limit_kmh: float = Field(default=60.0, gt=0)  # records with no usable limit
    max_distance_km: float = Field(default=0.015, ge=0)  # 15 meters
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v


def load_config(path=None, env: Optional[dict] = None) -> SpeedLimitConfig:
    """
    Build the configuration from defaults, an optional JSON file and
    SPEED_LIMIT_* environment variables (later sources win).

    :param path: Optional path to a JSON object with SpeedLimitConfig fields.
    :param env: Mapping used for overrides, defaults to os.environ.
    :return: A validated SpeedLimitConfig.
    """
    values = {}
    if path is not None:
        with open(path, "r") as file:
            values.update(json.load(file))

    env = os.environ if env is None else env
    for var, field in ENV_OVERRIDES.items():
        if env.get(var):
            values[field] = env[var]

    return SpeedLimitConfig(**values)


def configure_logging(level="INFO"):
    logger = logging.getLogger()
    if not any(getattr(h, "_speed_limit_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handler._speed_limit_handler = True
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
