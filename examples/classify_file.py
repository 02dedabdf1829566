# examples/classify_file.py
# Classify a local 128x128 image instead of a random download.
import logging
import os
import sys
from pathlib import Path

from PIL import Image

from random_image_classifier import ClassifierPipeline, ModelType, MODEL_SPECS, load_model
from random_image_classifier.config import load_labels

logging.basicConfig(level=logging.INFO)

ASSETS_DIR = os.environ.get("RIC_ASSETS_DIR", "assets")
MODEL = ModelType.from_name(os.environ.get("RIC_MODEL", "mobilenet_v1"))
labels = load_labels(Path(__file__).with_name("labels.txt"))

model = load_model(MODEL, ASSETS_DIR)
if model is None:
    sys.exit("Error loading model")

pipeline = ClassifierPipeline(model, MODEL_SPECS[MODEL].input, labels=labels)
pred = pipeline.classify(Image.open(sys.argv[1]))
print(f"Max Probability Index: {pred.index} p={pred.probability:.3f} {pred.label or ''}")
