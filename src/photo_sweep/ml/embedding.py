"""SigLIP image embeddings for near-duplicate comparison."""

from __future__ import annotations

import asyncio
from typing import cast

import numpy as np
import torch
from PIL import Image
from torch import Tensor

from photo_sweep.assets import Embedding
from photo_sweep.clustering import cosine_distance, euclidean_distance
from photo_sweep.config import EmbeddingModelConfig
from photo_sweep.ml.models import get_siglip_model

DISTANCE_METRICS = ("euclidean", "cosine")


class SiglipEmbeddingService:
    """Embedding service returning L2-normalised SigLIP image features.

    Model inference runs in a worker thread so the event loop stays free for
    the timeout timer and the other in-flight extractions.
    """

    def __init__(self, config: EmbeddingModelConfig | None = None) -> None:
        self._config = config or EmbeddingModelConfig()
        if self._config.distance_metric not in DISTANCE_METRICS:
            raise ValueError(f"Unsupported distance metric: {self._config.distance_metric!r}")
        self._processor, self._model, self._device = get_siglip_model(self._config)

    async def extract_feature_vector(self, image: Image.Image) -> Embedding:
        return await asyncio.to_thread(self.embed_image, image)

    def embed_image(self, image: Image.Image) -> Embedding:
        """Return a normalized SigLIP embedding for a single image."""

        image_inputs = self._processor(images=image, return_tensors="pt")
        image_inputs = image_inputs.to(self._device)

        with torch.no_grad():
            image_emb: Tensor = self._model.get_image_features(**image_inputs)

        emb = image_emb[0]
        emb = emb / emb.norm(dim=-1, keepdim=True)
        return cast(Embedding, emb.detach().cpu().numpy().astype(np.float32))

    def distance(self, lhs: Embedding, rhs: Embedding) -> float:
        if self._config.distance_metric == "cosine":
            return cosine_distance(lhs, rhs)
        return euclidean_distance(lhs, rhs)


__all__ = ["DISTANCE_METRICS", "SiglipEmbeddingService"]
