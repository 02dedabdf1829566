"""Fetch a random image and classify it with an on-device TFLite model."""

from .models import MODEL_SPECS, ModelSpec, ModelType, TFLiteModel, load_model
from .pipeline import (
    DEFAULT_INPUT,
    ClassifierPipeline,
    InputSpec,
    Prediction,
    ShapeMismatchError,
    arg_max,
    infer,
    normalize,
)
from .session import ClassificationSession, Outcome

__all__ = [
    "DEFAULT_INPUT",
    "MODEL_SPECS",
    "ClassificationSession",
    "ClassifierPipeline",
    "InputSpec",
    "ModelSpec",
    "ModelType",
    "Outcome",
    "Prediction",
    "ShapeMismatchError",
    "TFLiteModel",
    "arg_max",
    "infer",
    "load_model",
    "normalize",
]
