"""
app.py
------
The classifier screen: one image area, one "Classify Image" button and one
result label. Built with Gradio so it works from a phone browser with
``launch(share=True)``.

Pressing the button fetches a random image, classifies it and shows the
index of the most probable class. While a request is running further presses
are ignored; a failed request leaves the previous image and result on screen.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import gradio as gr
import numpy as np

from .config import AppConfig, load_labels
from .fetch import FetchError, fetch_random_image
from .models import MODEL_SPECS, load_model
from .pipeline import ClassifierPipeline, Prediction
from .session import ClassificationSession

logger = logging.getLogger(__name__)

MODEL_ERROR_TEXT = "Error loading model"


def format_prediction(prediction: Prediction) -> str:
    text = f"Max Probability Index: {prediction.index}"
    if prediction.label:
        text += f" ({prediction.label})"
    return text


class ClassifierScreen:
    """Gradio front end for a :class:`ClassificationSession`."""

    def __init__(self, session: ClassificationSession) -> None:
        self.session = session

    # ---------- Gradio Handlers ----------
    def classify_gr(
        self,
        current_image: Optional[np.ndarray],
        current_result: str,
    ) -> Tuple[Optional[np.ndarray], str, str]:
        try:
            outcome = self.session.run_once()
        except FetchError as e:
            logger.warning("Image fetch failed: %s", e)
            return current_image, current_result, f"Fetch error: {e}"
        if outcome is None:
            return current_image, current_result, "Busy: a classification is already running."
        image = np.asarray(outcome.image)
        pred = outcome.prediction
        return image, format_prediction(pred), f"p={pred.probability:.4f}"

    # ---------- Build UI ----------
    def build_demo(self) -> gr.Blocks:
        with gr.Blocks(title="Random Image Classifier") as demo:
            gr.Markdown("## Random Image Classifier")
            with gr.Column():
                img_out = gr.Image(label="Image", interactive=False, height=128, width=128)
                btn = gr.Button("Classify Image")
                out_result = gr.Textbox(label="Result", interactive=False)
                out_msg = gr.Textbox(label="Log", interactive=False)

            btn.click(
                self.classify_gr,
                inputs=[img_out, out_result],
                outputs=[img_out, out_result, out_msg],
            )
        return demo

    def launch(self, **kwargs):
        demo = self.build_demo()
        return demo.launch(**kwargs)


def build_error_demo(message: str = MODEL_ERROR_TEXT) -> gr.Blocks:
    with gr.Blocks(title="Random Image Classifier") as demo:
        gr.Markdown(message)
    return demo


def build_session(config: AppConfig) -> Optional[ClassificationSession]:
    """Load the configured model and wire up a session; ``None`` without a model."""
    model = load_model(config.model, config.assets_dir)
    if model is None:
        return None
    spec = MODEL_SPECS[config.model].input
    pipeline = ClassifierPipeline(model, spec, labels=load_labels(config.labels_path))

    def fetcher():
        return fetch_random_image(
            config.image_url, spec.width, spec.height, timeout=config.fetch_timeout
        )

    return ClassificationSession(pipeline, fetcher)


def build_app(config: AppConfig) -> gr.Blocks:
    session = build_session(config)
    if session is None:
        return build_error_demo()
    return ClassifierScreen(session).build_demo()
