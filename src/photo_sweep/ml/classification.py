"""Composition and face-quality classifiers used by the best-photo scorer."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import torch
from PIL import Image
from torch import Tensor

from photo_sweep.config import FaceModelConfig, ModelsConfig
from photo_sweep.ml.models import get_owlvit_model, get_siglip_model
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "classification"})


@dataclass(frozen=True)
class FaceBox:
    """Face detection in pixel coordinates."""

    x_min: int
    y_min: int
    x_max: int
    y_max: int
    score: float


def laplacian_variance(image: Image.Image) -> float:
    """Variance of the 4-neighbour Laplacian of the grayscale image."""

    gray = np.asarray(image.convert("L"), dtype=np.float64)
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return 0.0
    lap = (
        gray[:-2, 1:-1]
        + gray[2:, 1:-1]
        + gray[1:-1, :-2]
        + gray[1:-1, 2:]
        - 4.0 * gray[1:-1, 1:-1]
    )
    return float(lap.var())


def face_capture_quality(image: Image.Image, face: FaceBox, sharpness_normalizer: float) -> float:
    """Estimate capture quality of one face in [0, 1].

    Combines detector confidence with the sharpness of the face crop.
    """

    crop = image.crop((face.x_min, face.y_min, face.x_max, face.y_max))
    sharpness = min(1.0, laplacian_variance(crop) / sharpness_normalizer)
    return max(0.0, min(1.0, face.score * sharpness))


class VisionClassificationService:
    """SigLIP zero-shot composition labels plus OWL-ViT face quality."""

    def __init__(self, config: ModelsConfig | None = None) -> None:
        self._config = config or ModelsConfig()
        self._siglip_processor, self._siglip_model, self._siglip_device = get_siglip_model(self._config.embedding)
        self._owl_processor, self._owl_model, self._owl_device = get_owlvit_model(self._config.face)

    async def classify_composition(self, image: Image.Image) -> dict[str, float]:
        return await asyncio.to_thread(self.composition_scores, image, list(self._config.composition_labels))

    async def detect_face_quality(self, image: Image.Image) -> list[float]:
        return await asyncio.to_thread(self.face_qualities, image)

    def composition_scores(self, image: Image.Image, labels: list[str]) -> dict[str, float]:
        """Compute independent zero-shot label probabilities via SigLIP.

        Cosine similarities are mapped through the model's learned
        ``logit_scale`` and ``logit_bias`` and a sigmoid, as SigLIP is trained.
        """

        if not labels:
            return {}

        image_inputs = self._siglip_processor(images=image, return_tensors="pt").to(self._siglip_device)
        text_inputs = self._siglip_processor(text=labels, padding="max_length", return_tensors="pt").to(
            self._siglip_device
        )

        with torch.no_grad():
            image_emb: Tensor = self._siglip_model.get_image_features(**image_inputs)
            text_emb: Tensor = self._siglip_model.get_text_features(**text_inputs)

        image_emb = image_emb / image_emb.norm(dim=-1, keepdim=True)
        text_emb = text_emb / text_emb.norm(dim=-1, keepdim=True)

        logits = image_emb @ text_emb.T
        logits = logits * self._siglip_model.logit_scale.exp() + self._siglip_model.logit_bias
        probs = torch.sigmoid(logits[0]).detach().cpu().numpy().tolist()
        return {label: float(prob) for label, prob in zip(labels, probs, strict=True)}

    def face_qualities(self, image: Image.Image) -> list[float]:
        face_cfg: FaceModelConfig = self._config.face
        faces = self.detect_faces(image, face_cfg.prompts)
        return [face_capture_quality(image, face, face_cfg.sharpness_normalizer) for face in faces]

    def detect_faces(self, image: Image.Image, prompts: Sequence[str]) -> list[FaceBox]:
        """Run OWL-ViT with face prompts and return boxes above the score threshold."""

        if not prompts:
            return []

        inputs = self._owl_processor(text=[list(prompts)], images=[image], return_tensors="pt").to(self._owl_device)
        with torch.no_grad():
            outputs = self._owl_model(**inputs)

        width, height = image.size
        target_sizes = torch.tensor([[height, width]], device=self._owl_device)
        result = self._owl_processor.post_process_grounded_object_detection(
            outputs=outputs,
            target_sizes=target_sizes,
            threshold=float(self._config.face.score_threshold),
        )[0]

        faces: list[FaceBox] = []
        for box, score in zip(result["boxes"], result["scores"]):
            x_min, y_min, x_max, y_max = box.tolist()
            left = max(0, min(width, int(x_min)))
            top = max(0, min(height, int(y_min)))
            right = max(0, min(width, int(round(x_max))))
            bottom = max(0, min(height, int(round(y_max))))
            if right - left < 3 or bottom - top < 3:
                continue
            faces.append(FaceBox(left, top, right, bottom, float(score)))

        LOGGER.debug("faces_detected", extra={"count": len(faces)})
        return faces


__all__ = ["FaceBox", "laplacian_variance", "face_capture_quality", "VisionClassificationService"]
