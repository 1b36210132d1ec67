"""Canonical model identifiers and presets used by the ML services.

These constants centralize the Hugging Face model names and provide
named presets so that configuration files do not need to repeat raw
checkpoint identifiers everywhere.
"""

from __future__ import annotations

SIGLIP2_BASE_PATCH16_224 = "google/siglip2-base-patch16-224"
SIGLIP2_LARGE_PATCH16_384 = "google/siglip2-large-patch16-384"

OWLVIT_BASE_PATCH32 = "google/owlvit-base-patch32"
OWLVIT_BASE_PATCH16 = "google/owlvit-base-patch16"

SIGLIP_PRESETS: dict[str, str] = {
    # Default embedding model; fast enough for CPU-only scans.
    "default": SIGLIP2_BASE_PATCH16_224,
    # Higher-quality, higher-cost variant for capable hardware.
    "hq_384": SIGLIP2_LARGE_PATCH16_384,
}

OWLVIT_PRESETS: dict[str, str] = {
    "default": OWLVIT_BASE_PATCH32,
    "fine": OWLVIT_BASE_PATCH16,
}

__all__ = [
    "SIGLIP2_BASE_PATCH16_224",
    "SIGLIP2_LARGE_PATCH16_384",
    "OWLVIT_BASE_PATCH32",
    "OWLVIT_BASE_PATCH16",
    "SIGLIP_PRESETS",
    "OWLVIT_PRESETS",
]
