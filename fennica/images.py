"""Responsive image variants.

Every image under the content dir (outside the static dir) is copied to the
build dir along with ``.1x``, ``.2x`` and ``.t`` (thumbnail) variants.
Variants which would be the same size as the original are symlinks to it.
"""
from __future__ import annotations

import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from .cache import list_files
from .errors import MissingImageError

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png")
IMAGE_SIZE = 677
THUMB_SIZE = 100
VARIANTS = ("1x", "2x", "t")


@dataclass(frozen=True)
class ImageSources:
    src_orig: str
    src_1x: str
    src_2x: str
    src_thumb: str
    width_1x: int
    height_1x: int


def is_image(path: Path) -> bool:
    return path.name.lower().endswith(IMAGE_SUFFIXES)


def variant_path(path: Path, variant: str) -> Path:
    return path.with_name(f"{path.stem}.{variant}{path.suffix}")


def scaled_size(width: int, height: int, limit: int) -> tuple[int, int]:
    """Scale so that the shorter side fits the limit; small images are left alone."""
    shorter = height if width > height else width
    scale = 1.0 if shorter < limit else limit / shorter
    return int(width * scale), int(height * scale)


def _link_or_resize(source: Path, out_path: Path, original: Path, size: tuple[int, int], real: tuple[int, int]) -> None:
    if out_path.exists() or out_path.is_symlink():
        out_path.unlink()
    if size == real:
        try:
            out_path.symlink_to(original.name)
        except OSError:
            shutil.copy2(original, out_path)
        return
    with Image.open(source) as img:
        img.resize(size, Image.Resampling.LANCZOS).save(out_path)


class ImageStore:
    def __init__(self, content_dir: Path, build_dir: Path, static_dir: Path) -> None:
        self.content_dir = content_dir.resolve()
        self.build_dir = build_dir.resolve()
        self.static_dir = static_dir.resolve()

    def output_path(self, image_path: Path) -> Path:
        return self.build_dir / image_path.resolve().relative_to(self.content_dir)

    def web_path(self, path: Path) -> str:
        return "/" + path.relative_to(self.build_dir).as_posix()

    def process(self, image_path: Path, force: bool = False) -> bool:
        out_path = self.output_path(image_path)
        outputs = [out_path] + [variant_path(out_path, variant) for variant in VARIANTS]
        if not force and all(path.exists() for path in outputs):
            return False
        out_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(image_path, out_path)
        with Image.open(image_path) as img:
            real = img.size
        if not real[0] or not real[1]:
            raise MissingImageError(f"Failed to get image size for {image_path}, corrupted file?")

        size_1x = scaled_size(*real, IMAGE_SIZE)
        size_2x = real
        if size_1x[0] < real[0] / 2:
            size_2x = (size_1x[0] * 2, size_1x[1] * 2)
        size_thumb = scaled_size(*real, THUMB_SIZE)

        for variant, size in zip(VARIANTS, (size_1x, size_2x, size_thumb)):
            _link_or_resize(image_path, variant_path(out_path, variant), out_path, size, real)
        return True

    def init_images(self) -> int:
        print("Initializing step: copying/resizing images")
        processed = 0
        for image_path in list_files(self.content_dir, IMAGE_SUFFIXES, skip=self.static_dir):
            if self.process(image_path):
                print(f"New image: {image_path}")
                processed += 1
        if processed:
            print(f"{processed} image(s) processed.")
        return processed

    def resolve(self, src: str, base_path: Path) -> ImageSources:
        if src.startswith("/"):
            source = (self.content_dir / src.lstrip("/")).resolve()
        else:
            source = (base_path / src).resolve()
        if not source.is_file():
            raise MissingImageError(f"Could not resolve image {src}, not found file {source}")
        out_path = self.output_path(source)
        out_1x = variant_path(out_path, "1x")
        if not out_1x.exists():
            self.process(source)
        with Image.open(out_1x) as img:
            width, height = img.size
        return ImageSources(
            src_orig=self.web_path(out_path),
            src_1x=self.web_path(out_1x),
            src_2x=self.web_path(variant_path(out_path, "2x")),
            src_thumb=self.web_path(variant_path(out_path, "t")),
            width_1x=width,
            height_1x=height,
        )

    def handle_modify(self, path: Path, is_add: bool) -> bool:
        if not is_image(path) or path.resolve().is_relative_to(self.static_dir):
            return False
        if not is_add:
            print(
                "CONTENT POSSIBLY INVALIDATED: Existing image changed. If its dimensions are changed, old content "
                "pages might still include it with old dimensions. Consider full regeneration (devserver restart)",
                file=sys.stderr,
            )
        print(f"Image change: {path} - copying/generating in different sizes")
        self.process(path, force=True)
        return True

    def handle_remove(self, path: Path) -> bool:
        if not is_image(path) or path.resolve().is_relative_to(self.static_dir):
            return False
        print(
            "CONTENT POSSIBLY INVALIDATED: Existing image deleted. If it was used in any content, it is broken now "
            "but not detected yet. Consider full regeneration (devserver restart)",
            file=sys.stderr,
        )
        print(f"Image remove: {path} - not removing")
        return True
