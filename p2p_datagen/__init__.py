"""
P2P Synthetic Data Generator

Builds a deterministic procure-to-pay dataset, plants labeled anomalies
into it and records a ground-truth row for every anomaly, for testing
audit and compliance detection tools.
"""

__version__ = "0.1.0"

from .config import ConfigError, GeneratorConfig, apply_preset
from .pipeline import GenerationResult, generate, run_generation
from .rng import SeededRandom

__all__ = [
    "__version__",
    "ConfigError",
    "GeneratorConfig",
    "apply_preset",
    "GenerationResult",
    "generate",
    "run_generation",
    "SeededRandom",
]
