"""OpenCV preprocessing that turns one screenshot into normal and inverted OCR inputs.

Game UIs usually render the selected row in inverted contrast relative to the
rest of the table, so OCR runs on both variants and the passes are merged
afterwards.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Iterator, List, Optional, Tuple

import cv2
import numpy as np


logger = logging.getLogger(__name__)

MAX_SKEW_DEGREES = 10.0
MIN_SKEW_DEGREES = 0.1

NORMAL_VARIANT = "normal"
INVERTED_VARIANT = "inverted"


@dataclass
class PreprocessedImage:
    source: Path
    normal: Path
    inverted: Optional[Path] = None
    workdir: Optional[Path] = None
    skew_angle: float = 0.0
    artifacts: List[Path] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.inverted is None

    def variants(self) -> List[Tuple[str, Path]]:
        variants = [(NORMAL_VARIANT, self.normal)]
        if self.inverted is not None:
            variants.append((INVERTED_VARIANT, self.inverted))
        return variants

    def cleanup(self) -> None:
        for path in self.artifacts:
            path.unlink(missing_ok=True)
        if self.workdir is not None:
            shutil.rmtree(self.workdir, ignore_errors=True)
        self.artifacts = []


def estimate_skew(gray: np.ndarray) -> float:
    """Estimate the rotation of the text block in degrees.

    Uses the minimum-area rectangle around the foreground pixels of an Otsu
    threshold. Angles beyond ``MAX_SKEW_DEGREES`` are treated as layout, not
    skew, and reported as zero.
    """

    _, bw = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    if bw.mean() > 127:
        bw = 255 - bw
    coords = cv2.findNonZero(bw)
    if coords is None or len(coords) < 10:
        return 0.0
    angle = float(cv2.minAreaRect(coords)[-1])
    if angle > 45:
        angle -= 90
    elif angle < -45:
        angle += 90
    if abs(angle) > MAX_SKEW_DEGREES or abs(angle) < MIN_SKEW_DEGREES:
        return 0.0
    return angle


def deskew(gray: np.ndarray, angle: float) -> np.ndarray:
    if angle == 0.0:
        return gray
    h, w = gray.shape[:2]
    matrix = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), angle, 1.0)
    return cv2.warpAffine(
        gray, matrix, (w, h), flags=cv2.INTER_CUBIC, borderMode=cv2.BORDER_REPLICATE
    )


def enhance(gray: np.ndarray) -> np.ndarray:
    """Stretch intensities to the full range and apply an unsharp mask."""

    normalized = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)
    blurred = cv2.GaussianBlur(normalized, (0, 0), 1.0)
    return cv2.addWeighted(normalized, 1.5, blurred, -0.5, 0)


def preprocess_image(image_path: Path, workdir: Path) -> PreprocessedImage:
    """Write normal and inverted variants of *image_path* into *workdir*.

    When the image cannot be decoded the original path is returned as the
    normal variant and no inverted variant is produced.
    """

    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None:
        logger.warning("Unable to decode %s; using the original image only", image_path)
        return PreprocessedImage(source=image_path, normal=image_path)

    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    angle = estimate_skew(gray)
    gray = deskew(gray, angle)

    normal = enhance(gray)
    inverted = enhance(cv2.bitwise_not(gray))

    stem = image_path.stem
    normal_path = workdir / f"{stem}_{NORMAL_VARIANT}.png"
    inverted_path = workdir / f"{stem}_{INVERTED_VARIANT}.png"
    if not cv2.imwrite(str(normal_path), normal):
        logger.warning("Unable to write preprocessed image for %s; using the original", image_path)
        return PreprocessedImage(source=image_path, normal=image_path)
    artifacts = [normal_path]
    inverted_written: Optional[Path] = None
    if cv2.imwrite(str(inverted_path), inverted):
        inverted_written = inverted_path
        artifacts.append(inverted_path)
    else:
        logger.warning("Unable to write inverted variant for %s", image_path)

    logger.debug("Preprocessed %s (skew %.2f deg)", image_path, angle)
    return PreprocessedImage(
        source=image_path,
        normal=normal_path,
        inverted=inverted_written,
        skew_angle=angle,
        artifacts=artifacts,
    )


@contextmanager
def preprocessed_variants(image_path: Path) -> Iterator[PreprocessedImage]:
    """Preprocess *image_path* into a private directory removed on exit."""

    workdir = Path(tempfile.mkdtemp(prefix="rosterocr-"))
    result: Optional[PreprocessedImage] = None
    try:
        result = preprocess_image(Path(image_path), workdir)
        result.workdir = workdir
        yield result
    finally:
        if result is not None:
            result.cleanup()
        shutil.rmtree(workdir, ignore_errors=True)


@asynccontextmanager
async def preprocessed_variants_async(image_path: Path) -> AsyncIterator[PreprocessedImage]:
    """Like :func:`preprocessed_variants`, with the OpenCV work in a worker thread."""

    workdir = Path(tempfile.mkdtemp(prefix="rosterocr-"))
    result: Optional[PreprocessedImage] = None
    try:
        result = await asyncio.to_thread(preprocess_image, Path(image_path), workdir)
        result.workdir = workdir
        yield result
    finally:
        if result is not None:
            result.cleanup()
        shutil.rmtree(workdir, ignore_errors=True)
