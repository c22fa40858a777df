"""
Parameter bundles for fusion and clustering runs.

Every routine in the package also accepts its parameters as keyword
arguments; these frozen dataclasses only group them so a run can be
described, validated, and written next to its results as ``config.json``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import numpy as np

from .exceptions import ConfigurationError


__all__ = ["SNFConfig", "PAMConfig", "PipelineConfig", "load_config", "save_config"]

PathLike = Union[str, Path]


def _require_positive_int(name: str, value: Any, *, allow_zero: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}.")
    if value < 0 or (value == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise ConfigurationError(f"{name} must be {qualifier}, got {value}.")


@dataclass(frozen=True)
class SNFConfig:
    """
    Similarity Network Fusion parameters.

    Attributes
    ----------
    n_neighbors:
        Neighbourhood size K (affinity scale and local kernel support).
    mu:
        Affinity bandwidth hyperparameter.
    n_iter:
        Number of diffusion iterations t.
    tol:
        Optional early-stopping threshold on the relative change of the
        consensus. ``None`` runs exactly ``n_iter`` iterations.
    n_jobs:
        Optional joblib worker count for building view kernels.
    """

    n_neighbors: int = 20
    mu: float = 0.5
    n_iter: int = 20
    tol: Optional[float] = None
    n_jobs: Optional[int] = None

    def __post_init__(self) -> None:
        _require_positive_int("n_neighbors", self.n_neighbors)
        _require_positive_int("n_iter", self.n_iter)
        if (
            isinstance(self.mu, bool)
            or not isinstance(self.mu, (int, float, np.integer, np.floating))
            or not self.mu > 0
        ):
            raise ConfigurationError(f"mu must be positive, got {self.mu!r}.")
        if self.tol is not None and not self.tol >= 0:
            raise ConfigurationError(f"tol must be non-negative, got {self.tol!r}.")
        # store builtins so to_dict() stays json-serialisable
        object.__setattr__(self, "n_neighbors", int(self.n_neighbors))
        object.__setattr__(self, "n_iter", int(self.n_iter))
        object.__setattr__(self, "mu", float(self.mu))
        if self.tol is not None:
            object.__setattr__(self, "tol", float(self.tol))


@dataclass(frozen=True)
class PAMConfig:
    """PAM parameters: cluster count and swap cap."""

    n_clusters: int
    max_swaps: int = 100

    def __post_init__(self) -> None:
        _require_positive_int("n_clusters", self.n_clusters)
        _require_positive_int("max_swaps", self.max_swaps, allow_zero=True)
        object.__setattr__(self, "n_clusters", int(self.n_clusters))
        object.__setattr__(self, "max_swaps", int(self.max_swaps))


@dataclass(frozen=True)
class PipelineConfig:
    """
    Full SNF + PAM run description.

    ``standardize`` z-scores every view before fusion.
    """

    pam: PAMConfig
    snf: SNFConfig = field(default_factory=SNFConfig)
    standardize: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.standardize, (bool, np.bool_)):
            raise ConfigurationError(
                f"standardize must be a boolean, got {self.standardize!r}."
            )
        object.__setattr__(self, "standardize", bool(self.standardize))

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PipelineConfig":
        if "pam" not in payload:
            raise ConfigurationError("Configuration requires a 'pam' section.")
        try:
            snf = SNFConfig(**dict(payload.get("snf", {})))
            pam = PAMConfig(**dict(payload["pam"]))
        except TypeError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc
        return cls(pam=pam, snf=snf, standardize=payload.get("standardize", True))

    def to_dict(self) -> dict:
        return {
            "snf": asdict(self.snf),
            "pam": asdict(self.pam),
            "standardize": self.standardize,
        }


def load_config(path: PathLike) -> PipelineConfig:
    """Read a ``PipelineConfig`` from a JSON file."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc
    return PipelineConfig.from_dict(payload)


def save_config(config: PipelineConfig, path: PathLike) -> Path:
    """Write ``config`` as indented JSON and return the path."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2))
    return path
