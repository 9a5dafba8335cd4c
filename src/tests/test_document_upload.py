from unittest import mock

import pytest

from docverify.models import ImageFile, LicenseTypes, LicenseVerificationResult
from docverify.services import document_upload
from docverify.services.document_upload import (
    detected_licenses_message,
    license_verification_issues,
    upload_and_verify_id_card,
    upload_and_verify_license,
)
from docverify.utils.storage import LocalStorage

from conftest import ID_CARD_TEXT, LICENSE_TEXT, FakeEngineFactory, MemoryStorage


def _monotonic(values):
    return all(a <= b for a, b in zip(values, values[1:]))


@pytest.fixture
def id_card_file(marker_png):
    return ImageFile(filename="id.png", content_type="image/png", data=marker_png)


# ------------------------------------------------------------
# Messages
# ------------------------------------------------------------

def test_detected_licenses_message():
    assert detected_licenses_message(LicenseTypes(tsl_a=True, hunting=True)) == "Detected licenses: TSL-A, Hunting"
    assert detected_licenses_message(LicenseTypes()) == "No license types detected. Please contact support."


def test_license_issues_for_expired_unknown_document():
    result = LicenseVerificationResult(is_expired=True, expiry_date="2024-01-31", has_header=False, name_match=True)
    issues = license_verification_issues(result, "John", "Smith")
    assert issues == [
        "• License expired on 2024-01-31",
        "• Not recognized as a valid Malta firearms license",
    ]


def test_license_issues_for_name_mismatch():
    result = LicenseVerificationResult(
        is_expired=False, has_header=True, name_match=False, extracted_name="JOHN CAMILLERI",
    )
    issues = license_verification_issues(result, "John", "Smith")
    assert len(issues) == 1
    assert issues[0].startswith("• Name mismatch")
    assert '"John Smith"' in issues[0]


def test_failed_verification_without_date_has_no_expiry_issue():
    issues = license_verification_issues(LicenseVerificationResult.failed(), "John", "Smith")
    assert issues == ["• Not recognized as a valid Malta firearms license"]


# ------------------------------------------------------------
# License upload
# ------------------------------------------------------------

def test_verified_license_upload(license_file, license_engine, storage):
    seen = []

    result = upload_and_verify_license(
        license_file, "John", "Smith", storage, on_progress=seen.append, engine_factory=license_engine,
    )

    assert result.success
    assert result.is_verified
    assert not result.has_verification_issues
    assert result.expiry_date == "2099-06-15"
    assert result.license_types == LicenseTypes(tsl_a=True)
    assert result.notice.variant == "success"
    assert result.notice.title == "License uploaded and verified"
    assert "Detected licenses: TSL-A" in result.notice.messages
    assert not result.needs_manual_review

    key = next(iter(storage.objects))
    assert key.startswith("licenses/license-")
    assert key.endswith(".png")
    assert result.public_url == f"https://files.test/{key}"
    assert storage.objects[key] == (license_file.data, "image/png")

    assert seen == [0, 10, 30, 70, 80, 95, 100]


def test_unverified_license_is_still_stored(license_file, storage):
    factory = FakeEngineFactory(text=LICENSE_TEXT.replace("POLICE GENERAL HEADQUARTERS", "GENERAL OFFICE"))

    result = upload_and_verify_license(license_file, "John", "Smith", storage, engine_factory=factory)

    assert result.success
    assert not result.is_verified
    assert result.has_verification_issues
    assert "• Not recognized as a valid Malta firearms license" in result.verification_issues
    assert result.notice.variant == "warning"
    assert result.notice.duration == 20000
    assert result.needs_manual_review
    assert len(storage.objects) == 1


def test_license_with_ocr_failure_goes_to_manual_review(license_file, storage):
    factory = FakeEngineFactory(text=LICENSE_TEXT, fail=True)
    result = upload_and_verify_license(license_file, "John", "Smith", storage, engine_factory=factory)

    assert result.success
    assert not result.is_verified
    assert result.needs_manual_review
    assert "No license types detected. Please contact support." in result.notice.messages


def test_invalid_license_file_is_rejected(storage, license_engine):
    seen = []
    file = ImageFile(filename="license.pdf", content_type="application/pdf", data=b"%PDF")

    result = upload_and_verify_license(file, "John", "Smith", storage, on_progress=seen.append,
                                       engine_factory=license_engine)

    assert not result.success
    assert result.notice.variant == "destructive"
    assert result.notice.messages == ["Please upload an image file (JPEG, PNG, or HEIC)."]
    assert storage.objects == {}
    assert license_engine.engines == []
    assert seen == [0]


def test_oversized_license_is_rejected(storage, license_engine):
    file = ImageFile(filename="license.png", content_type="image/png", data=b"x" * 1000)
    result = upload_and_verify_license(file, "John", "Smith", storage,
                                       engine_factory=license_engine, max_size_mb=0.0001)
    assert not result.success
    assert "MB" in result.notice.messages[0]


def test_storage_failure_fails_the_upload(license_file, license_engine):
    result = upload_and_verify_license(license_file, "John", "Smith", MemoryStorage(fail=True),
                                       engine_factory=license_engine)
    assert not result.success
    assert result.notice.messages == ["Failed to store the uploaded image."]


def test_broken_heic_is_reported(storage, license_engine):
    file = ImageFile(filename="license.heic", content_type="image/heic", data=b"garbage")
    result = upload_and_verify_license(file, "John", "Smith", storage, engine_factory=license_engine)
    assert not result.success
    assert result.notice.messages == ["Failed to convert HEIC image. Please try JPEG or PNG instead."]


def test_unexpected_error_uses_generic_message(license_file, license_engine):
    storage = mock.Mock()
    storage.upload_object.return_value = True
    storage.public_url.side_effect = RuntimeError("boom")

    result = upload_and_verify_license(license_file, "John", "Smith", storage, engine_factory=license_engine)

    assert not result.success
    assert result.notice.messages == ["Failed to upload license."]


def test_license_upload_to_dict(license_file, license_engine, storage):
    data = upload_and_verify_license(license_file, None, None, storage, engine_factory=license_engine).to_dict()
    assert data["success"] is True
    assert data["publicUrl"].startswith("https://files.test/licenses/")
    assert set(data["licenseTypes"]) == {"tslA", "tslASpecial", "tslB", "hunting", "collectorsA", "collectorsASpecial"}
    assert data["notice"]["variant"] in ("success", "warning")


# ------------------------------------------------------------
# ID card upload
# ------------------------------------------------------------

def test_verified_id_card_upload(id_card_file, id_card_engine, storage):
    seen = []
    result = upload_and_verify_id_card(
        id_card_file, "Maria", "Borg", storage, on_progress=seen.append, engine_factory=id_card_engine,
    )

    assert result.success
    assert result.is_verified
    assert result.verification_issues == []
    assert result.notice.title == "ID card verified & uploaded"
    assert next(iter(storage.objects)).startswith("id-cards/id-card-")
    assert seen == [0, 10, 30, 40, 42, 45, 48, 53, 58, 63, 68, 70, 80, 95, 100]
    assert _monotonic(seen)


def test_id_card_name_mismatch_is_stored_for_review(id_card_file, id_card_engine, storage):
    result = upload_and_verify_id_card(id_card_file, "John", "Smith", storage, engine_factory=id_card_engine)

    assert result.success
    assert not result.is_verified
    assert result.needs_manual_review
    assert result.verification_issues[0].startswith("Name mismatch")
    assert result.notice.messages[0].startswith("• Name mismatch")
    assert len(storage.objects) == 1


def test_unreadable_name_on_id_card(id_card_file, storage):
    factory = FakeEngineFactory(text="KARTA TAL-IDENTITA\nIDENTITY CARD\nMLT")
    result = upload_and_verify_id_card(id_card_file, "Maria", "Borg", storage, engine_factory=factory)
    assert result.success
    assert result.verification_issues == ["The name on the ID card could not be read"]


def test_not_an_id_card_upload(id_card_file, storage):
    factory = FakeEngineFactory(text="SHOPPING LIST")
    result = upload_and_verify_id_card(id_card_file, "Maria", "Borg", storage, engine_factory=factory)
    assert result.success
    assert result.verification_issues == [
        "Not recognized as a valid Malta ID card - missing required text or format",
    ]


def test_id_card_verification_error_stops_the_upload(id_card_file, storage):
    factory = FakeEngineFactory(text=ID_CARD_TEXT, fail=True)
    seen = []

    result = upload_and_verify_id_card(id_card_file, "Maria", "Borg", storage,
                                       on_progress=seen.append, engine_factory=factory)

    assert not result.success
    assert result.notice.variant == "destructive"
    assert result.notice.messages == ["Failed to verify ID card. Please try again."]
    assert storage.objects == {}
    assert 100 not in seen
    assert _monotonic(seen)


def test_id_card_upload_to_dict(id_card_file, id_card_engine, storage):
    data = upload_and_verify_id_card(id_card_file, "Maria", "Borg", storage, engine_factory=id_card_engine).to_dict()
    assert data["isVerified"] is True
    assert data["verificationIssues"] == []
    assert data["publicUrl"].startswith("https://files.test/id-cards/")


def test_progress_reporter_drops_regressions():
    seen = []
    report = document_upload._reporter(seen.append)
    for value in (0, 10, 5, 30, 30, 20, 100):
        report(value)
    assert seen == [0, 10, 30, 30, 100]


@pytest.mark.parametrize("filename", ["x.a/../../evil", "..\\..\\scan.png", "../../etc/passwd"])
def test_object_key_ignores_path_tricks_in_filename(filename, marker_png, license_engine, tmp_path):
    storage = LocalStorage(str(tmp_path))
    file = ImageFile(filename=filename, content_type="image/png", data=marker_png)

    result = upload_and_verify_license(file, "John", "Smith", storage, engine_factory=license_engine)

    assert result.success
    key = result.public_url[len("/uploads/"):]
    assert key.startswith("licenses/license-")
    assert key.count("/") == 1
    assert ".." not in key
    assert (tmp_path / key).is_file()


def test_object_key_defaults_to_jpg_without_extension(marker_png, license_engine, storage):
    file = ImageFile(filename="scan", content_type="image/png", data=marker_png)
    upload_and_verify_license(file, "John", "Smith", storage, engine_factory=license_engine)
    assert next(iter(storage.objects)).endswith(".jpg")
