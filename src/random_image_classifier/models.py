"""Model registry and TFLite loading."""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from .pipeline import DEFAULT_INPUT, InputSpec, ShapeMismatchError

logger = logging.getLogger(__name__)


class ModelType(enum.Enum):
    MOBILENET_V1 = "mobilenet_v1"
    EFFICIENTNET_V0 = "efficientnet_v0"
    EFFICIENTNET_V1 = "efficientnet_v1"
    EFFICIENTNET_V2 = "efficientnet_v2"

    @classmethod
    def from_name(cls, name: str) -> "ModelType":
        key = name.strip()
        for member in cls:
            if key.lower() == member.value or key.upper() == member.name:
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown model '{name}'. Choose one of: {choices}.")


@dataclass(frozen=True)
class ModelSpec:
    artifact: str
    input: InputSpec = field(default=DEFAULT_INPUT)


# Every variant currently ships as the same artifact.
MODEL_SPECS: Dict[ModelType, ModelSpec] = {
    ModelType.MOBILENET_V1: ModelSpec("1.tflite"),
    ModelType.EFFICIENTNET_V0: ModelSpec("1.tflite"),
    ModelType.EFFICIENTNET_V1: ModelSpec("1.tflite"),
    ModelType.EFFICIENTNET_V2: ModelSpec("1.tflite"),
}

DEFAULT_MODEL = ModelType.MOBILENET_V1


class TFLiteModel:
    """
    Read-only handle around a ``tf.lite.Interpreter``.
    ``run`` is serialized with a lock; the interpreter is not re-entrant.
    """

    def __init__(self, interpreter, spec: ModelSpec) -> None:
        self.interpreter = interpreter
        self.spec = spec
        self._lock = threading.Lock()
        self._input = interpreter.get_input_details()[0]
        self._output = interpreter.get_output_details()[0]

    @property
    def input_shape(self) -> tuple:
        return tuple(int(d) for d in self._input["shape"])

    @property
    def input_dtype(self) -> np.dtype:
        return np.dtype(self._input["dtype"])

    @property
    def output_dtype(self) -> np.dtype:
        return np.dtype(self._output["dtype"])

    def run(self, batch: np.ndarray) -> np.ndarray:
        x = np.asarray(batch)
        if x.dtype != self.input_dtype:
            raise ShapeMismatchError(f"Model input is {self.input_dtype}, got a {x.dtype} batch.")
        with self._lock:
            self.interpreter.set_tensor(self._input["index"], x)
            self.interpreter.invoke()
            # get_tensor returns a copy, safe to hand out after the lock
            return self.interpreter.get_tensor(self._output["index"])


def _make_interpreter(content: bytes):
    import tensorflow as tf  # local import, heavy

    interpreter = tf.lite.Interpreter(model_content=content)
    interpreter.allocate_tensors()
    return interpreter


def load_model(
    model_type: ModelType = DEFAULT_MODEL,
    assets_dir: Union[str, Path] = "assets",
) -> Optional[TFLiteModel]:
    """Load ``model_type`` from ``assets_dir``; ``None`` if it cannot be loaded."""
    spec = MODEL_SPECS[model_type]
    path = Path(assets_dir) / spec.artifact
    try:
        content = path.read_bytes()
        model = TFLiteModel(_make_interpreter(content), spec)
    except Exception:
        logger.exception("Failed to load model %s from %s", model_type.value, path)
        return None
    if model.input_shape != spec.input.batch_shape:
        raise ShapeMismatchError(
            f"Model {model_type.value} expects input {model.input_shape}, configured for {spec.input.batch_shape}."
        )
    # float models only; quantized artifacts are not supported
    if model.input_dtype != np.float32 or model.output_dtype != np.float32:
        raise ShapeMismatchError(
            f"Model {model_type.value} has {model.input_dtype} input and {model.output_dtype} output, expected float32."
        )
    logger.info("Loaded model %s (%d bytes, input %s)", model_type.value, len(content), model.input_shape)
    return model
