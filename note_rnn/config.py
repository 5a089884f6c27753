"""
Configuration models for training runs.

All hyperparameters live in pydantic models so a run is reproducible and
tests can use tiny values. Defaults reproduce the long-running setup
(50 cycles of 10000 Adam steps each).

Example:
    from note_rnn.config import RunConfig, load_config

    config = load_config("configs/default.yaml")
    config.training.cycles = 2
"""

from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from note_rnn.errors import ConfigError


# =============================================================================
# DEFAULTS
# =============================================================================

TRAINING_CONFIG = {
    # Outer loop: number of train/evaluate cycles
    "cycles": 50,

    # Optimizer run per cycle
    "iterations_per_cycle": 10000,
    "step_size": 5e-20,
    "batch_size": 5,
    # Small enough that the iteration count is what actually stops a cycle
    "tolerance": 1e-8,
    "shuffle": False,

    # Adam update
    "beta1": 0.9,
    "beta2": 0.999,
    "epsilon": 1e-8,

    # Keep Adam moment estimates between cycles
    "warm_restart": True,

    # "channel" or "argmax", see note_rnn.evaluation.metrics
    "accuracy_metric": "channel",

    # "mse" or "nll"
    "loss": "mse",

    "seed": None,
    "verbose": True,
}


# =============================================================================
# TRAINING CONFIG
# =============================================================================

class TrainingConfig(BaseModel):
    """
    Hyperparameters consumed by the training driver.

    Attributes:
        cycles: Number of train/evaluate cycles (0 means no training)
        iterations_per_cycle: Max optimizer steps per cycle
        step_size: Adam learning rate
        batch_size: Windows consumed per gradient step
        tolerance: Stop a cycle early when the pass objective changes less
        shuffle: Visit windows in a seeded random order
        beta1, beta2, epsilon: Adam update parameters
        warm_restart: Keep optimizer state across cycles after the first
        accuracy_metric: "channel" (last predicted step of feature 0 vs
            first ground-truth step) or "argmax" (class with highest score)
        loss: "mse" or "nll"
        seed: Seed for weight init and shuffling
        verbose: Print per-cycle progress
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    cycles: int = Field(default=TRAINING_CONFIG["cycles"], ge=0)
    iterations_per_cycle: int = Field(default=TRAINING_CONFIG["iterations_per_cycle"], ge=0)
    step_size: float = Field(default=TRAINING_CONFIG["step_size"], ge=0.0)
    batch_size: int = Field(default=TRAINING_CONFIG["batch_size"], ge=1)
    tolerance: float = Field(default=TRAINING_CONFIG["tolerance"], ge=0.0)
    shuffle: bool = TRAINING_CONFIG["shuffle"]
    beta1: float = Field(default=TRAINING_CONFIG["beta1"], ge=0.0, lt=1.0)
    beta2: float = Field(default=TRAINING_CONFIG["beta2"], ge=0.0, lt=1.0)
    epsilon: float = Field(default=TRAINING_CONFIG["epsilon"], gt=0.0)
    warm_restart: bool = TRAINING_CONFIG["warm_restart"]
    accuracy_metric: Literal["channel", "argmax"] = TRAINING_CONFIG["accuracy_metric"]
    loss: Literal["mse", "nll"] = TRAINING_CONFIG["loss"]
    seed: Optional[int] = TRAINING_CONFIG["seed"]
    verbose: bool = TRAINING_CONFIG["verbose"]


# =============================================================================
# RUN CONFIG
# =============================================================================

class RunConfig(BaseModel):
    """
    Everything needed for one end-to-end run: input files, windowing and
    the nested training hyperparameters.

    The training CSV holds one note index per row. With ``header=True``
    the first row is treated as a header (or count) row and skipped.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    train_path: Optional[Path] = None
    test_path: Optional[Path] = None
    output_path: Path = Path("results.csv")
    log_path: Optional[Path] = None

    window_length: int = Field(default=3, ge=1)
    # Unrolled length of the recurrent layer (also its input width)
    rho: int = Field(default=8, ge=1)
    # Time steps of the held-out inference tensor; None follows rho
    inference_length: Optional[int] = Field(default=None, ge=1)
    header: bool = True

    training: TrainingConfig = Field(default_factory=TrainingConfig)

    @field_validator("train_path", "test_path", "output_path", "log_path", mode="before")
    @classmethod
    def expand_user(cls, v):
        """Allow ~ in paths coming from YAML or the command line."""
        if v is None:
            return v
        return Path(v).expanduser()

    @property
    def effective_inference_length(self) -> int:
        """Inference length to use: the explicit value, otherwise the current rho."""
        if self.inference_length is None:
            return self.rho
        return self.inference_length


def load_config(path: Union[str, Path]) -> RunConfig:
    """
    Load a RunConfig from a YAML file.

    Args:
        path: YAML file with top-level run keys and an optional
              ``training:`` mapping

    Returns:
        Validated RunConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the YAML is malformed or a value is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")

    return build_config(raw)


def build_config(values: dict) -> RunConfig:
    """Validate a plain dict into a RunConfig, raising ConfigError on failure."""
    try:
        return RunConfig(**values)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
