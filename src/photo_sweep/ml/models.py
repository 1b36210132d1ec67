"""Shared model loaders and singletons for SigLIP and OWL-ViT.

These helpers ensure that heavy models are loaded once per process and
configured according to :mod:`photo_sweep.config` settings.
"""

from __future__ import annotations

import threading

import torch
from torch import device as TorchDevice
from transformers import AutoModel, AutoProcessor, OwlViTForObjectDetection, OwlViTProcessor, PreTrainedModel

from photo_sweep.config import EmbeddingModelConfig, FaceModelConfig
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "models"})


def select_device(config_device: str = "auto") -> TorchDevice:
    """Select a torch device based on configuration, preferring CPU-safe fallbacks.

    The resolution strategy is:

    - ``auto``: CUDA → MPS → CPU.
    - Explicit values (``cuda``, ``mps``, ``cpu``): use when available, otherwise fall back to CPU.
    """

    normalized = (config_device or "auto").lower()
    mps_available = getattr(torch.backends, "mps", None) is not None and torch.backends.mps.is_available()

    if normalized == "auto":
        if torch.cuda.is_available():
            return torch.device("cuda")
        if mps_available:
            return torch.device("mps")
        return torch.device("cpu")

    if normalized == "cuda" and torch.cuda.is_available():
        return torch.device("cuda")
    if normalized == "mps" and mps_available:
        return torch.device("mps")
    return torch.device("cpu")


# Worker threads may request a model concurrently on first use.
_LOAD_LOCK = threading.Lock()

_SIGLIP_PROCESSOR: AutoProcessor | None = None
_SIGLIP_MODEL: PreTrainedModel | None = None
_SIGLIP_DEVICE: TorchDevice | None = None
_SIGLIP_MODEL_NAME: str | None = None

_OWL_PROCESSOR: OwlViTProcessor | None = None
_OWL_MODEL: OwlViTForObjectDetection | None = None
_OWL_DEVICE: TorchDevice | None = None
_OWL_MODEL_NAME: str | None = None


def get_siglip_model(config: EmbeddingModelConfig) -> tuple[AutoProcessor, PreTrainedModel, TorchDevice]:
    """Return the shared SigLIP processor, model and device."""

    model_name = config.resolved_model_name()
    device = select_device(config.device)

    global _SIGLIP_PROCESSOR, _SIGLIP_MODEL, _SIGLIP_DEVICE, _SIGLIP_MODEL_NAME
    with _LOAD_LOCK:
        if (
            _SIGLIP_PROCESSOR is not None
            and _SIGLIP_MODEL is not None
            and _SIGLIP_MODEL_NAME == model_name
            and _SIGLIP_DEVICE == device
        ):
            return _SIGLIP_PROCESSOR, _SIGLIP_MODEL, _SIGLIP_DEVICE

        processor = AutoProcessor.from_pretrained(model_name, use_fast=True)
        model = AutoModel.from_pretrained(model_name).to(device)
        model.eval()

        _SIGLIP_PROCESSOR = processor
        _SIGLIP_MODEL = model
        _SIGLIP_DEVICE = device
        _SIGLIP_MODEL_NAME = model_name

    LOGGER.info("siglip_model_loaded", extra={"model_name": model_name, "device": str(device)})
    return processor, model, device


def get_owlvit_model(config: FaceModelConfig) -> tuple[OwlViTProcessor, OwlViTForObjectDetection, TorchDevice]:
    """Return the shared OWL-ViT processor, model and device."""

    model_name = config.resolved_model_name()
    device = select_device(config.device)

    global _OWL_PROCESSOR, _OWL_MODEL, _OWL_DEVICE, _OWL_MODEL_NAME
    with _LOAD_LOCK:
        if (
            _OWL_PROCESSOR is not None
            and _OWL_MODEL is not None
            and _OWL_MODEL_NAME == model_name
            and _OWL_DEVICE == device
        ):
            return _OWL_PROCESSOR, _OWL_MODEL, _OWL_DEVICE

        processor = OwlViTProcessor.from_pretrained(model_name)
        model = OwlViTForObjectDetection.from_pretrained(model_name).to(device)
        model.eval()

        _OWL_PROCESSOR = processor
        _OWL_MODEL = model
        _OWL_DEVICE = device
        _OWL_MODEL_NAME = model_name

    LOGGER.info("owlvit_model_loaded", extra={"model_name": model_name, "device": str(device)})
    return processor, model, device


__all__ = ["select_device", "get_siglip_model", "get_owlvit_model"]
