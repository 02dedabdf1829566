"""
pipeline.py
-----------
Image -> tensor -> probabilities -> class index.

The pipeline is deliberately small and stateless:

- ``normalize`` turns a fixed-size RGB image into a flat float32 buffer,
  row-major and channel-interleaved (R, G, B per pixel), with every channel
  mapped through ``(v - mean) / std``.
- ``infer`` hands that buffer, shaped ``[1, H, W, 3]``, to an opaque model and
  returns the ``[numClasses]`` probability row.
- ``arg_max`` picks the winning class, first occurrence on ties.

Input shape mismatches raise :class:`ShapeMismatchError`. They are contract
violations and are never resized, padded or truncated away.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np
from PIL import Image

ImageLike = Union[Image.Image, np.ndarray]


class ShapeMismatchError(ValueError):
    """Image, tensor or output shape does not match the model's input spec."""


@dataclass(frozen=True)
class InputSpec:
    """Fixed input contract of a classification model."""

    width: int = 128
    height: int = 128
    channels: int = 3
    mean: float = 127.5
    std: float = 127.5
    num_classes: int = 1001

    @property
    def tensor_size(self) -> int:
        return self.width * self.height * self.channels

    @property
    def batch_shape(self) -> Tuple[int, int, int, int]:
        return (1, self.height, self.width, self.channels)


DEFAULT_INPUT = InputSpec()


class InferenceModel(Protocol):
    def run(self, batch: np.ndarray) -> np.ndarray: ...


@dataclass(frozen=True)
class Prediction:
    index: int
    probability: float
    label: Optional[str] = None


def _as_rgb_array(image: ImageLike) -> np.ndarray:
    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGB"), dtype=np.uint8)
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[-1] not in (3, 4):
        raise ShapeMismatchError(f"Expected an RGB image array of shape (H, W, 3), got {arr.shape}.")
    if arr.dtype != np.uint8:
        raise ShapeMismatchError(f"Expected 8-bit channels, got dtype {arr.dtype}.")
    # alpha is ignored
    return arr[..., :3]


def normalize(image: ImageLike, spec: InputSpec = DEFAULT_INPUT) -> np.ndarray:
    """Return the flat float32 tensor buffer for ``image``.

    The image must be exactly ``spec.width x spec.height``.
    """
    arr = _as_rgb_array(image)
    expected = (spec.height, spec.width, spec.channels)
    if arr.shape != expected:
        raise ShapeMismatchError(
            f"Image is {arr.shape[1]}x{arr.shape[0]}, model expects {spec.width}x{spec.height}."
        )
    mean = np.float32(spec.mean)
    std = np.float32(spec.std)
    buf = (arr.astype(np.float32) - mean) / std
    return np.ascontiguousarray(buf.reshape(-1), dtype=np.float32)


def infer(tensor: np.ndarray, model: InferenceModel, spec: InputSpec = DEFAULT_INPUT) -> np.ndarray:
    """Run ``model`` once on ``tensor`` and return its probability vector."""
    flat = np.asarray(tensor, dtype=np.float32)
    if flat.ndim != 1 or flat.size != spec.tensor_size:
        raise ShapeMismatchError(
            f"Tensor buffer has shape {flat.shape}, expected ({spec.tensor_size},)."
        )
    batch = flat.reshape(spec.batch_shape)
    out = np.asarray(model.run(batch))
    if out.size != spec.num_classes:
        raise ShapeMismatchError(
            f"Model returned output of shape {out.shape}, expected (1, {spec.num_classes})."
        )
    probs = out.reshape(-1)
    probs.setflags(write=False)
    return probs


def arg_max(probabilities: Sequence[float]) -> int:
    """Index of the largest value; the first one wins on ties."""
    values = np.asarray(probabilities, dtype=float)
    if values.size == 0:
        raise ValueError("arg_max of an empty probability vector.")
    if np.isnan(values).any():
        raise ValueError("arg_max of a probability vector containing NaN.")
    return int(np.argmax(values))


class ClassifierPipeline:
    """Bundle a loaded model with its input spec and optional labels."""

    def __init__(
        self,
        model: InferenceModel,
        spec: InputSpec = DEFAULT_INPUT,
        labels: Optional[List[str]] = None,
    ) -> None:
        self.model = model
        self.spec = spec
        self.labels = labels

    def probabilities(self, image: ImageLike) -> np.ndarray:
        return infer(normalize(image, self.spec), self.model, self.spec)

    def classify(self, image: ImageLike) -> Prediction:
        probs = self.probabilities(image)
        idx = arg_max(probs)
        label = None
        if self.labels is not None and idx < len(self.labels):
            label = self.labels[idx]
        return Prediction(index=idx, probability=float(probs[idx]), label=label)
