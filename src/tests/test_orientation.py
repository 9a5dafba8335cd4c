import threading

import cv2
import numpy as np
import pytest

from docverify.models import ImageFile
from docverify.services.ocr_engine import OcrResult
from docverify.services.orientation import ROTATION_ANGLES, find_best_orientation, keyword_score
from docverify.utils.exceptions import VerificationCancelled

from conftest import LICENSE_TEXT, FakeEngineFactory, is_upright, make_marker_image


class ConstantEngine:
    """Returns the same reading at every angle."""

    def __init__(self):
        self.calls = 0
        self.terminated = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.terminated = True

    def recognize(self, image_bytes):
        self.calls += 1
        return OcrResult(text="MALTA", confidence=50.0)


def _rotated(image_bytes, code):
    img = cv2.imdecode(np.frombuffer(image_bytes, np.uint8), cv2.IMREAD_COLOR)
    ok, buf = cv2.imencode(".png", cv2.rotate(img, code))
    assert ok
    return buf.tobytes()


def test_keyword_score_counts_each_keyword_once():
    assert keyword_score("POLICE police Police") == 5
    assert keyword_score("Malta Police General Headquarters") == 15
    assert keyword_score("") == 0
    assert keyword_score(None) == 0


def test_upright_image_wins_at_zero(license_file, license_engine):
    result = find_best_orientation(license_file, engine_factory=license_engine)

    assert result.angle == 0
    assert result.text == LICENSE_TEXT
    assert result.confidence == 85.0
    assert result.score == 85.0 + keyword_score(LICENSE_TEXT)
    assert is_upright(result.image)


def test_every_angle_is_tried_once(license_file, license_engine):
    find_best_orientation(license_file, engine_factory=license_engine)

    assert len(license_engine.engines) == 1
    engine = license_engine.engines[0]
    assert engine.calls == len(ROTATION_ANGLES)
    assert engine.terminated


@pytest.mark.parametrize("code, expected_angle", [
    (cv2.ROTATE_180, 180),
    (cv2.ROTATE_90_COUNTERCLOCKWISE, 90),
    (cv2.ROTATE_90_CLOCKWISE, 270),
])
def test_recovers_rotated_photo(code, expected_angle, license_engine):
    data = _rotated(make_marker_image(), code)
    file = ImageFile(filename="sideways.png", content_type="image/png", data=data)

    result = find_best_orientation(file, engine_factory=license_engine)

    assert result.angle == expected_angle
    assert result.text == LICENSE_TEXT
    assert is_upright(result.image)


def test_ties_keep_the_first_angle(license_file):
    engine = ConstantEngine()
    result = find_best_orientation(license_file, engine_factory=lambda: engine)

    assert result.angle == 0
    assert engine.calls == 4
    assert result.angle in ROTATION_ANGLES


def test_progress_milestones(license_file, license_engine):
    seen = []
    find_best_orientation(license_file, engine_factory=license_engine, on_progress=seen.append)
    assert seen == [48, 53, 58, 63, 68]


def test_engine_is_terminated_when_recognition_fails(license_file):
    factory = FakeEngineFactory(text=LICENSE_TEXT, fail=True)
    with pytest.raises(RuntimeError):
        find_best_orientation(license_file, engine_factory=factory)
    assert factory.engines[0].terminated


def test_cancel_stops_before_the_next_pass(license_file, license_engine):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(VerificationCancelled):
        find_best_orientation(license_file, engine_factory=license_engine, cancel_event=cancel)

    engine = license_engine.engines[0]
    assert engine.calls == 0
    assert engine.terminated


def test_cancel_mid_search(license_file, license_engine):
    cancel = threading.Event()

    def on_progress(value):
        if value == 58:
            cancel.set()

    # the event is checked before progress is reported, so the third pass still runs
    with pytest.raises(VerificationCancelled):
        find_best_orientation(
            license_file,
            engine_factory=license_engine,
            on_progress=on_progress,
            cancel_event=cancel,
        )
    assert license_engine.engines[0].calls == 3


def test_upright_pass_reads_the_input_unchanged(license_file, license_engine):
    result = find_best_orientation(license_file, engine_factory=license_engine)

    images = license_engine.engines[0].images
    assert images[0] == license_file.data
    assert all(image[:2] == b"\xff\xd8" for image in images[1:])
    assert result.image == license_file.data
    assert result.content_type == "image/png"


def test_rotated_winner_is_jpeg(license_engine):
    data = _rotated(make_marker_image(), cv2.ROTATE_180)
    file = ImageFile(filename="upside-down.png", content_type="image/png", data=data)

    result = find_best_orientation(file, engine_factory=license_engine)

    assert result.angle == 180
    assert result.content_type == "image/jpeg"
    assert result.image[:2] == b"\xff\xd8"
