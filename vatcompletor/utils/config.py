# vatcompletor/utils/config.py
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Define the base directory (root of the project)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

CONFIG_ENV_VAR = "VATCOMPLETOR_CONFIG"

# Tolerances and search limits used by the completor strategies
COMPLETOR_DEFAULTS = {
    "default_epsilon": 0.005,
    # Sums of computed vat amounts: rounding errors add up.
    "same_rate_epsilon": 0.04,
    "permutation_epsilon": 0.005,
    "split_sign_epsilon": 0.005,
    "max_permutation_nodes": 250000,
    "max_permutation_seconds": 5.0,
}


class CompletorConfig(BaseModel):
    """
    Tolerances and limits for one completion run.
    """

    model_config = ConfigDict(extra="forbid")

    default_epsilon: float = Field(
        COMPLETOR_DEFAULTS["default_epsilon"],
        gt=0,
        description="Allowed difference when comparing entered amounts",
    )
    same_rate_epsilon: float = Field(
        COMPLETOR_DEFAULTS["same_rate_epsilon"],
        gt=0,
        description="Allowed difference for ApplySameVatRate vat totals",
    )
    permutation_epsilon: float = Field(
        COMPLETOR_DEFAULTS["permutation_epsilon"],
        gt=0,
        description="Allowed difference for TryAllVatRatePermutations vat totals",
    )
    split_sign_epsilon: float = Field(
        COMPLETOR_DEFAULTS["split_sign_epsilon"],
        gt=0,
        description="Split amounts closer to 0 than this are not considered a valid split",
    )
    max_permutation_nodes: int = Field(
        COMPLETOR_DEFAULTS["max_permutation_nodes"],
        ge=1,
        description="Maximum number of search nodes TryAllVatRatePermutations may visit",
    )
    max_permutation_seconds: Optional[float] = Field(
        COMPLETOR_DEFAULTS["max_permutation_seconds"],
        gt=0,
        description="Wall clock limit for TryAllVatRatePermutations, None for no limit",
    )


def load_config(path: Optional[str] = None) -> CompletorConfig:
    """
    Loads the completor configuration from a YAML file.

    If no path is given, the path is taken from the VATCOMPLETOR_CONFIG
    environment variable (a .env file is honoured). Without a path, or if the
    file does not exist, the defaults are returned.
    """
    if path is None:
        load_dotenv()
        path = os.getenv(CONFIG_ENV_VAR)
    settings: Dict[str, Any] = {}
    if path:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                settings = yaml.safe_load(f) or {}
            logger.debug(f"Loaded completor config from {path}: {settings}")
        else:
            logger.warning(f"Config file {path} not found, using defaults")
    return CompletorConfig(**settings)


_config: Optional[CompletorConfig] = None


def get_config() -> CompletorConfig:
    """Returns the (cached) process wide configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
