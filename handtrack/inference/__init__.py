"""Inference backends for the detector and landmark networks."""

from .backend import (
    InferenceModel,
    CvDnnModel,
    load_model,
    run_forward,
    resolve_backend,
    resolve_target,
)

__all__ = [
    "InferenceModel",
    "CvDnnModel",
    "load_model",
    "run_forward",
    "resolve_backend",
    "resolve_target",
]
