from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest

from random_image_classifier import models
from random_image_classifier.models import MODEL_SPECS, ModelType, TFLiteModel, load_model
from random_image_classifier.pipeline import DEFAULT_INPUT, ShapeMismatchError, infer, normalize


class _FakeInterpreter:
    def __init__(
        self,
        input_shape=(1, 128, 128, 3),
        num_classes: int = 1001,
        input_dtype=np.float32,
        output_dtype=np.float32,
    ) -> None:
        self.input_dtype = input_dtype
        self.output_dtype = output_dtype
        self.input_shape = np.array(input_shape, dtype=np.int32)
        self.num_classes = num_classes
        self.inputs: list[np.ndarray] = []
        self.invocations = 0

    def get_input_details(self):
        return [{"index": 0, "shape": self.input_shape, "dtype": self.input_dtype}]

    def get_output_details(self):
        return [{"index": 1, "shape": np.array([1, self.num_classes]), "dtype": self.output_dtype}]

    def set_tensor(self, index: int, value: np.ndarray) -> None:
        assert index == 0
        self.inputs.append(value)

    def invoke(self) -> None:
        self.invocations += 1

    def get_tensor(self, index: int) -> np.ndarray:
        assert index == 1
        out = np.zeros((1, self.num_classes), dtype=self.output_dtype)
        out[0, 3] = 1.0
        return out


def test_model_type_from_name() -> None:
    assert ModelType.from_name("mobilenet_v1") is ModelType.MOBILENET_V1
    assert ModelType.from_name("EFFICIENTNET_V2") is ModelType.EFFICIENTNET_V2
    with pytest.raises(ValueError):
        ModelType.from_name("resnet")


def test_every_model_type_has_a_table_entry() -> None:
    assert set(MODEL_SPECS) == set(ModelType)
    for spec in MODEL_SPECS.values():
        assert spec.artifact == "1.tflite"
        assert spec.input == DEFAULT_INPUT


def test_load_model_missing_artifact_returns_none(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.ERROR):
        assert load_model(ModelType.MOBILENET_V1, tmp_path) is None
    assert "Failed to load model" in caplog.text


def test_load_model_invalid_artifact_returns_none(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "1.tflite").write_bytes(b"not a model")

    def _reject(content: bytes):
        raise ValueError("Model provided has model identifier 'not ', should be 'TFL3'")

    monkeypatch.setattr(models, "_make_interpreter", _reject)
    assert load_model(ModelType.EFFICIENTNET_V0, tmp_path) is None


def test_load_model_reads_artifact_bytes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "1.tflite").write_bytes(b"TFL3-model-bytes")
    seen: list[bytes] = []

    def _fake(content: bytes):
        seen.append(content)
        return _FakeInterpreter()

    monkeypatch.setattr(models, "_make_interpreter", _fake)
    model = load_model(ModelType.MOBILENET_V1, tmp_path)
    assert isinstance(model, TFLiteModel)
    assert seen == [b"TFL3-model-bytes"]
    assert model.input_shape == (1, 128, 128, 3)


def test_load_model_input_shape_mismatch_is_fatal(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "1.tflite").write_bytes(b"TFL3")
    monkeypatch.setattr(models, "_make_interpreter", lambda content: _FakeInterpreter((1, 224, 224, 3)))
    with pytest.raises(ShapeMismatchError):
        load_model(ModelType.MOBILENET_V1, tmp_path)


def test_tflite_model_run_sets_input_and_returns_output() -> None:
    interp = _FakeInterpreter()
    model = TFLiteModel(interp, MODEL_SPECS[ModelType.MOBILENET_V1])
    batch = np.zeros((1, 128, 128, 3), dtype=np.float32)
    out = model.run(batch)
    assert interp.invocations == 1
    assert interp.inputs[0].dtype == np.float32
    assert out.shape == (1, 1001)
    assert int(np.argmax(out)) == 3


@pytest.mark.parametrize(
    "input_dtype, output_dtype",
    [(np.uint8, np.float32), (np.float32, np.uint8), (np.int8, np.int8)],
)
def test_load_model_rejects_quantized_tensors(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, input_dtype, output_dtype
) -> None:
    (tmp_path / "1.tflite").write_bytes(b"TFL3")
    monkeypatch.setattr(
        models,
        "_make_interpreter",
        lambda content: _FakeInterpreter(input_dtype=input_dtype, output_dtype=output_dtype),
    )
    with pytest.raises(ShapeMismatchError, match="float32"):
        load_model(ModelType.MOBILENET_V1, tmp_path)


def test_tflite_model_run_rejects_non_float32_batch() -> None:
    interp = _FakeInterpreter(input_dtype=np.uint8)
    model = TFLiteModel(interp, MODEL_SPECS[ModelType.MOBILENET_V1])
    black = normalize(np.zeros((128, 128, 3), dtype=np.uint8))
    with pytest.raises(ShapeMismatchError):
        infer(black, model)
    assert interp.inputs == []
    assert interp.invocations == 0
