import cv2
import numpy as np
import pytest

from rosterocr.imaging.preprocess import (
    estimate_skew,
    preprocess_image,
    preprocessed_variants,
    preprocessed_variants_async,
)


def _write_roster_image(path, angle=0.0):
    image = np.full((200, 600, 3), 255, dtype=np.uint8)
    for row, text in enumerate(["12 QB John Smith 85", "55 DT Jake Kilgore 82"]):
        cv2.putText(image, text, (20, 60 + row * 60), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 0), 2)
    if angle:
        matrix = cv2.getRotationMatrix2D((300, 100), angle, 1.0)
        image = cv2.warpAffine(image, matrix, (600, 200), borderValue=(255, 255, 255))
    assert cv2.imwrite(str(path), image)
    return path


def test_produces_normal_and_inverted_variants(tmp_path):
    source = _write_roster_image(tmp_path / "roster.png")
    with preprocessed_variants(source) as prepared:
        assert not prepared.degraded
        assert [name for name, _ in prepared.variants()] == ["normal", "inverted"]
        normal = cv2.imread(str(prepared.normal), cv2.IMREAD_GRAYSCALE)
        inverted = cv2.imread(str(prepared.inverted), cv2.IMREAD_GRAYSCALE)
        assert normal.shape == inverted.shape == (200, 600)
        # Background is light in the normal variant and dark in the inverted one.
        assert normal.mean() > 127 > inverted.mean()
        workdir = prepared.workdir
    assert not workdir.exists()
    assert source.exists()


def test_undecodable_image_degrades_to_original(tmp_path):
    source = tmp_path / "broken.png"
    source.write_bytes(b"definitely not a png")
    with preprocessed_variants(source) as prepared:
        assert prepared.degraded
        assert prepared.normal == source
        assert prepared.variants() == [("normal", source)]
    assert source.exists()


def test_artifacts_removed_when_body_raises(tmp_path):
    source = _write_roster_image(tmp_path / "roster.png")
    with pytest.raises(RuntimeError):
        with preprocessed_variants(source) as prepared:
            workdir = prepared.workdir
            raise RuntimeError("boom")
    assert not workdir.exists()


def test_skew_estimate_ignores_blank_images():
    blank = np.full((100, 100), 255, dtype=np.uint8)
    assert estimate_skew(blank) == 0.0


def test_skewed_image_is_processed(tmp_path):
    source = _write_roster_image(tmp_path / "tilted.png", angle=4.0)
    result = preprocess_image(source, tmp_path)
    assert abs(result.skew_angle) <= 10.0
    assert result.normal.exists()
    result.cleanup()
    assert not result.normal.exists()


@pytest.mark.anyio
async def test_async_variants_are_written_and_removed(tmp_path):
    source = _write_roster_image(tmp_path / "roster.png")
    async with preprocessed_variants_async(source) as prepared:
        assert [name for name, _ in prepared.variants()] == ["normal", "inverted"]
        assert prepared.inverted.exists()
        workdir = prepared.workdir
    assert not workdir.exists()
    assert source.exists()
