"""Model-backed embedding and classification services.

Submodules import ``torch`` and ``transformers``; import them directly
(``photo_sweep.ml.embedding``, ``photo_sweep.ml.classification``) so that
the pipeline core stays importable without the model stack loaded.
"""
