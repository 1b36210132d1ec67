"""Command-line entrypoint: scan a local library, recommend, and delete."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from photo_sweep.assets import SimilarPhotoGroup
from photo_sweep.cleaner import PhotoCleaner
from photo_sweep.config import Settings, load_settings
from photo_sweep.errors import PhotoCleanerError
from photo_sweep.library import FilesystemAssetStore
from utils.logging import get_logger

LOGGER = get_logger(__name__)

app = typer.Typer(add_completion=False, help="Find near-duplicate photos and pick the ones to keep.")

_ROOT_OPTION = typer.Option(
    None,
    "--root",
    file_okay=False,
    dir_okay=True,
    help="Album root directory. May be specified multiple times; defaults to library.roots in settings.yaml.",
)
_SETTINGS_OPTION = typer.Option(
    None,
    "--settings",
    file_okay=True,
    dir_okay=False,
    help="Settings YAML file. Defaults to $PHOTO_SWEEP_SETTINGS or config/settings.yaml.",
)
_DEVICE_OPTION = typer.Option(
    None,
    "--device",
    help="Override the model device from settings.yaml, for example cpu, cuda, or mps.",
)


def _apply_cli_overrides(settings: Settings, device: Optional[str]) -> Settings:
    if device:
        settings.models.embedding.device = device
        settings.models.face.device = device
    return settings


def _build_cleaner(settings: Settings, roots: list[Path] | None, *, with_classifier: bool = True) -> PhotoCleaner:
    """Wire the filesystem store with the SigLIP / OWL-ViT services."""

    # Deferred so ``--help`` and argument errors do not pay for loading torch.
    from photo_sweep.ml.classification import VisionClassificationService
    from photo_sweep.ml.embedding import SiglipEmbeddingService

    store = FilesystemAssetStore.from_settings(settings, roots)
    embedding_service = SiglipEmbeddingService(settings.models.embedding)
    classifier = VisionClassificationService(settings.models) if with_classifier else None
    return PhotoCleaner(store, embedding_service, classifier, settings)


def _fail(exc: PhotoCleanerError) -> typer.Exit:
    typer.echo(f"{exc.code}: {exc.message}", err=True)
    return typer.Exit(code=1)


async def _scan(cleaner: PhotoCleaner, recommend: bool) -> list[SimilarPhotoGroup]:
    groups = await cleaner.scan()
    if not recommend:
        return groups
    return [await cleaner.recommend_for_group(group) for group in groups]


@app.command("scan")
def scan(
    root: Optional[list[Path]] = _ROOT_OPTION,
    settings_path: Optional[Path] = _SETTINGS_OPTION,
    device: Optional[str] = _DEVICE_OPTION,
    recommend: bool = typer.Option(
        False,
        "--recommend/--no-recommend",
        help="Also pick the best photo for every group found.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        dir_okay=False,
        help="Write the JSON result to this file instead of stdout.",
    ),
) -> None:
    """Scan the library and print near-duplicate groups as JSON."""

    settings = _apply_cli_overrides(load_settings(settings_path), device)
    cleaner = _build_cleaner(settings, root, with_classifier=recommend)

    try:
        groups = asyncio.run(_scan(cleaner, recommend))
    except PhotoCleanerError as exc:
        raise _fail(exc) from exc

    payload = json.dumps([group.to_payload() for group in groups], indent=2, ensure_ascii=False)
    if output is None:
        typer.echo(payload)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload + "\n", encoding="utf-8")
        LOGGER.info("scan_result_written", extra={"path": str(output), "groups": len(groups)})


@app.command("recommend")
def recommend(
    identifiers: list[str] = typer.Argument(..., help="Asset identifiers (file paths) to choose from."),
    root: Optional[list[Path]] = _ROOT_OPTION,
    settings_path: Optional[Path] = _SETTINGS_OPTION,
    device: Optional[str] = _DEVICE_OPTION,
) -> None:
    """Print the identifier of the photo to keep."""

    settings = _apply_cli_overrides(load_settings(settings_path), device)
    cleaner = _build_cleaner(settings, root)

    try:
        best = asyncio.run(cleaner.recommend_best(identifiers))
    except PhotoCleanerError as exc:
        raise _fail(exc) from exc
    typer.echo(best)


@app.command("delete")
def delete(
    identifiers: list[str] = typer.Argument(..., help="Asset identifiers (file paths) to delete."),
    root: Optional[list[Path]] = _ROOT_OPTION,
    settings_path: Optional[Path] = _SETTINGS_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete photos, or move them to library.trash_dir when configured."""

    settings = load_settings(settings_path)
    if not yes:
        typer.confirm(f"Delete {len(identifiers)} photo(s)?", abort=True)

    # Deletion never touches the models.
    cleaner = PhotoCleaner(FilesystemAssetStore.from_settings(settings, root), settings=settings)
    try:
        asyncio.run(cleaner.delete(identifiers))
    except PhotoCleanerError as exc:
        raise _fail(exc) from exc
    typer.echo(f"Deleted {len(identifiers)} photo(s).")


def main() -> None:
    """Entrypoint used by the ``photo-sweep`` console script."""

    app()


if __name__ == "__main__":
    main()


__all__ = ["app", "main"]
