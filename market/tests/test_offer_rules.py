"""
오퍼 입력 규칙 단위 테스트
"""
import pytest
from fastapi import HTTPException

from schemas.offer import OfferFields
from service.offer_service import (
    build_details, clamp_description, clamp_title, ensure_offer_id, parse_delete_images, parse_price,
)


def test_제목_trim_후_자름():
    assert clamp_title("  Sac à main  ") == "Sac à main"
    assert clamp_title("x" * 80) == "x" * 50


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_빈_제목은_400(raw):
    with pytest.raises(HTTPException) as exc:
        clamp_title(raw)
    assert exc.value.status_code == 400


def test_설명은_선택():
    assert clamp_description(None) == ""
    assert len(clamp_description("y" * 501)) == 500


@pytest.mark.parametrize("raw,expected", [("0", 0), ("100000", 100000), ("19.99", 19.99), (" 7 ", 7)])
def test_가격_변환(raw, expected):
    assert parse_price(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "-0.01", "100000.01", "1e309", "dix"])
def test_가격_거부(raw):
    with pytest.raises(HTTPException) as exc:
        parse_price(raw)
    assert exc.value.status_code == 400


def test_상세_라벨_순서와_생략():
    fields = OfferFields(city="Lyon", brand="Adidas", condition="", color=None)
    assert build_details(fields) == [{"MARQUE": "Adidas"}, {"EMPLACEMENT": "Lyon"}]
    assert build_details(OfferFields()) == []


def test_deleteImages_해석():
    assert parse_delete_images(None) is None
    assert parse_delete_images("") is None
    assert parse_delete_images('["a", "b"]') == ["a", "b"]
    assert parse_delete_images(["a", "b"]) == ["a", "b"]
    assert parse_delete_images(["a"]) == ["a"]
    assert parse_delete_images("[]") == []


@pytest.mark.parametrize("raw", ["a", '"a"', "{}", "[1]", [1, "a"], {"a": 1}])
def test_deleteImages_형식_오류(raw):
    with pytest.raises(HTTPException) as exc:
        parse_delete_images(raw)
    assert exc.value.status_code == 400


def test_오퍼_id_형식():
    assert ensure_offer_id("00000000-0000-4000-8000-000000000000")
    with pytest.raises(HTTPException):
        ensure_offer_id("64b7f0c2e1a2b3c4d5e6f7a8")


def test_JSON_숫자_값_변환():
    fields = OfferFields.model_validate({"size": 42, "price": 40})
    assert fields.size == "42"
    assert parse_price(fields.price) == 40
    assert build_details(fields) == [{"TAILLE": "42"}]
