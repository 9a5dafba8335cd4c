import pytest

from docverify.models import LicenseTypes
from docverify.services.license_categories import (
    AUTOMATIC,
    REPLICA,
    SHOTGUNS,
    can_view_seller_info,
    detect_license_types,
    format_license_name,
    get_active_licenses,
    get_allowed_categories,
    get_required_licenses,
)

from conftest import LICENSE_TEXT


def test_detects_tsl_a_from_license_text():
    types = detect_license_types(LICENSE_TEXT)
    assert types == LicenseTypes(tsl_a=True)


@pytest.mark.parametrize("text", [
    "TSL-A TARGET SHOOTER SPECIAL",
    "TARGET SHOOTER A SPECIAL",
    "LICENZJA SPECJALI",
])
def test_special_tsl_a_suppresses_base(text):
    types = detect_license_types(text)
    assert types.tsl_a_special
    assert not types.tsl_a


def test_special_collectors_suppresses_base():
    types = detect_license_types("COLLECTOR LICENSE A SPECIAL")
    assert types.collectors_a_special
    assert not types.collectors_a


def test_categories_can_coexist():
    types = detect_license_types("COLLECTOR LICENSE A\nHUNTING\nTARGET SHOOTER B")
    assert types == LicenseTypes(tsl_b=True, hunting=True, collectors_a=True)


@pytest.mark.parametrize("text, field", [
    ("LICENZA TAL-KACCA", "hunting"),
    ("GHAZ-ZAMMA", "collectors_a"),
    ("KOLLEZZJONI", "collectors_a"),
    ("S/GUN", "tsl_b"),
])
def test_maltese_and_abbreviated_wording(text, field):
    assert getattr(detect_license_types(text), field)


def test_nothing_detected():
    types = detect_license_types("")
    assert not types.has_any()
    assert detect_license_types(None) == LicenseTypes()


def test_allowed_categories_without_license():
    assert get_allowed_categories(None) == [REPLICA]
    assert get_allowed_categories(LicenseTypes()) == []


def test_allowed_categories_are_merged_and_sorted():
    allowed = get_allowed_categories(LicenseTypes(tsl_b=True, hunting=True))
    assert allowed == ["Airguns", "Black powder", "Crossbow", REPLICA, SHOTGUNS]


def test_only_special_collectors_allows_automatic():
    assert AUTOMATIC in get_allowed_categories(LicenseTypes(collectors_a_special=True))
    assert AUTOMATIC not in get_allowed_categories(LicenseTypes(collectors_a=True))


def test_can_view_seller_info():
    hunter = LicenseTypes(hunting=True)
    assert can_view_seller_info(hunter, SHOTGUNS)
    assert can_view_seller_info(hunter, REPLICA)
    assert not can_view_seller_info(hunter, "Pistols")
    assert not can_view_seller_info(None, REPLICA)
    assert not can_view_seller_info(LicenseTypes(), REPLICA)


def test_required_licenses():
    assert get_required_licenses(REPLICA) == ["Any firearms license"]
    assert get_required_licenses(AUTOMATIC) == ["Collectors - A (special)"]
    assert get_required_licenses(SHOTGUNS) == [
        "TSL - B", "Hunting", "Collectors - A", "Collectors - A (special)",
    ]


def test_active_licenses():
    types = LicenseTypes(tsl_a=True, collectors_a_special=True)
    assert get_active_licenses(types) == ["TSL - A", "Collectors - A (special)"]
    assert get_active_licenses(None) == []
    assert format_license_name("tsl_a_special") == "TSL - A (special)"


def test_license_types_dict_round_trip():
    types = LicenseTypes(tsl_a=True, hunting=True)
    data = types.to_dict()
    assert data["tslA"] is True
    assert data["collectorsASpecial"] is False
    assert LicenseTypes.from_dict(data) == types
    assert LicenseTypes.from_dict({"tslB": "true", "hunting": "0"}) == LicenseTypes(tsl_b=True)
