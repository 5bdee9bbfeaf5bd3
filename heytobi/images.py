"""Image processing for heytobi.

Thin layer over Pillow shared by the Markdown image plugin, the manifest
icon generator and the template image helper.

Key functions:
- image_size: Read the pixel dimensions of an image.
- resize_image: Write a resized (and optimized) copy of an image.
- copy_static_file: Copy a file into the digest-keyed static directory.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from .utils import file_digest

RESIZABLE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}


def is_resizable(path: Path) -> bool:
    """Check if Pillow should resize this file (raster formats only)."""
    return path.suffix.lower() in RESIZABLE_EXTENSIONS


def image_size(path: Path) -> tuple[int, int]:
    """Return ``(width, height)`` of an image file.

    Raises:
        OSError: If the file cannot be read as an image.
    """
    with Image.open(path) as img:
        return img.size


def resize_image(
    source: Path,
    dest: Path,
    width: int,
    height: int | None = None,
) -> tuple[int, int]:
    """Write a resized copy of ``source`` to ``dest``.

    With only ``width``, the aspect ratio is kept and the image is never
    upscaled. With both ``width`` and ``height`` the image is scaled and
    center-cropped to exactly that size.

    Args:
        source: Source image.
        dest: Destination path; parent directories are created.
        width: Target width in pixels.
        height: Optional target height in pixels.

    Returns:
        Final ``(width, height)`` of the written image.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    with Image.open(source) as img:
        if height is not None:
            result = ImageOps.fit(img, (width, height), Image.Resampling.LANCZOS)
        elif img.width > width:
            ratio = width / img.width
            new_size = (width, max(1, round(img.height * ratio)))
            result = img.resize(new_size, Image.Resampling.LANCZOS)
        else:
            result = img.copy()
        if dest.suffix.lower() in (".jpg", ".jpeg") and result.mode not in ("RGB", "L"):
            result = result.convert("RGB")
        result.save(dest, optimize=True)
        return result.size


def copy_static_file(source: Path, static_dir: Path, subdir: str = "") -> str:
    """Copy a file under ``static/<digest>/`` and return its URL path.

    Args:
        source: File to copy.
        static_dir: The output ``static`` directory.
        subdir: Optional extra path segment (e.g. a width).

    Returns:
        Root-relative URL of the copy.
    """
    digest = file_digest(source)
    parts = [digest, subdir, source.name] if subdir else [digest, source.name]
    dest = static_dir.joinpath(*parts)
    if not dest.exists():
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
    return "/static/" + "/".join(parts)


def resized_static_url(
    source: Path,
    static_dir: Path,
    width: int,
    height: int | None = None,
) -> tuple[str, tuple[int, int]]:
    """Resize ``source`` into the static directory, keyed by digest and size.

    Falls back to a plain copy when Pillow cannot read the file.

    Returns:
        Tuple of (root-relative URL, final size).
    """
    digest = file_digest(source)
    size_key = f"{width}x{height}" if height is not None else str(width)
    dest = static_dir / digest / size_key / source.name
    url = f"/static/{digest}/{size_key}/{source.name}"
    try:
        if dest.exists():
            return url, image_size(dest)
        return url, resize_image(source, dest, width, height)
    except (OSError, UnidentifiedImageError) as exc:
        print(f"Could not resize {source.name} ({exc}); copying original.")
        return copy_static_file(source, static_dir), (width, height or width)
