import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

# Ensure the repository 'src' directory is on sys.path so tests can import `docverify`.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from docverify.models import ImageFile
from docverify.services.ocr_engine import OcrResult


LICENSE_TEXT = "\n".join([
    "MALTA POLICE",
    "POLICE GENERAL HEADQUARTERS",
    "FIREARMS LICENSE No. 4521",
    "JOHN SMITH",
    "Isem u Kunjom / Name and Surname",
    "TARGET SHOOTER A LONG/SHORT FIREARM",
    "Valida sa: 15/06/2099",
])

ID_CARD_TEXT = "\n".join([
    "REPUBBLIKA TA' MALTA",
    "KARTA TAL-IDENTITA IDENTITY CARD",
    "ISEM / NAME",
    "BORG",
    "MARIA",
    "NAZZJONALITA / NATIONALITY MLT",
])


def make_marker_image(width=100, height=60, fmt=".png"):
    """A dark landscape image with a white block in the top-left corner."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[0:20, 0:20] = 255
    ok, buf = cv2.imencode(fmt, img)
    assert ok
    return buf.tobytes()


def is_upright(image_bytes):
    img = cv2.imdecode(np.frombuffer(image_bytes, np.uint8), cv2.IMREAD_COLOR)
    height, width = img.shape[:2]
    return width > height and img[0:10, 0:10].mean() > 200


class FakeEngine:
    """Stands in for Tesseract: reads `text` only when the marker image is upright."""

    def __init__(self, text, upright_confidence=85.0, rotated_confidence=30.0, fail=False):
        self.text = text
        self.upright_confidence = upright_confidence
        self.rotated_confidence = rotated_confidence
        self.fail = fail
        self.terminated = False
        self.calls = 0
        self.images = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.terminate()

    def recognize(self, image_bytes):
        assert not self.terminated
        self.calls += 1
        self.images.append(image_bytes)
        if self.fail:
            raise RuntimeError("engine exploded")
        if is_upright(image_bytes):
            return OcrResult(text=self.text, confidence=self.upright_confidence)
        return OcrResult(text="~ ,. ;", confidence=self.rotated_confidence)

    def terminate(self):
        self.terminated = True


class FakeEngineFactory:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.engines = []

    def __call__(self):
        engine = FakeEngine(**self.kwargs)
        self.engines.append(engine)
        return engine


class MemoryStorage:
    def __init__(self, fail=False):
        self.fail = fail
        self.objects = {}

    def upload_object(self, file_obj, key, mime_type):
        if self.fail:
            return False
        self.objects[key] = (file_obj.read(), mime_type)
        return True

    def public_url(self, key, expiration=None):
        return f"https://files.test/{key}"


@pytest.fixture
def marker_png():
    return make_marker_image()


@pytest.fixture
def license_file(marker_png):
    return ImageFile(filename="license.png", content_type="image/png", data=marker_png)


@pytest.fixture
def license_engine():
    return FakeEngineFactory(text=LICENSE_TEXT)


@pytest.fixture
def id_card_engine():
    return FakeEngineFactory(text=ID_CARD_TEXT)


@pytest.fixture
def storage():
    return MemoryStorage()
