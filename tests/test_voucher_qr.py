from __future__ import annotations

import json
from io import BytesIO
from types import SimpleNamespace

import pytest
from PIL import Image

from utils.qr_generator import generate_qr_png
from utils.voucher_errors import BusinessMismatchError, MalformedPayloadError, WrongTypeError
from utils.voucher_qr import QRPayload, decode, encode, payload_for_voucher, render_voucher_qr, validate


def sample_payload(**overrides) -> QRPayload:
    fields = {"type": "voucher", "code": "AB12CD34", "voucher_id": "v-1", "business_id": "b-1"}
    fields.update(overrides)
    return QRPayload(**fields)


def test_decode_reads_snake_case_keys():
    raw = json.dumps({"type": "voucher", "code": "X1", "voucher_id": "v-9", "business_id": "b-3"})
    assert decode(raw) == QRPayload(type="voucher", code="X1", voucher_id="v-9", business_id="b-3")


def test_encode_decode_round_trip():
    payload = sample_payload(code="ÄÖ-ü")
    assert decode(encode(payload)) == payload


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "",
        "[1, 2]",
        json.dumps({"type": "voucher", "code": "X"}),
        json.dumps({"type": "voucher", "code": "X", "voucher_id": 5, "business_id": "b"}),
    ],
)
def test_decode_rejects_malformed_payloads(raw):
    with pytest.raises(MalformedPayloadError):
        decode(raw)


def test_validate_rejects_other_payload_types():
    with pytest.raises(WrongTypeError):
        validate(sample_payload(type="member_card"), "b-1")


def test_validate_rejects_other_business():
    with pytest.raises(BusinessMismatchError):
        validate(sample_payload(), "b-2")


def test_validate_accepts_matching_business():
    validate(sample_payload(), "b-1")


def test_render_voucher_qr_returns_png():
    voucher = SimpleNamespace(id="v-1", business_id="b-1", code="AB12CD34")
    assert payload_for_voucher(voucher) == sample_payload()
    png = render_voucher_qr(voucher, size=200)
    assert png.startswith(b"\x89PNG")


def test_caption_extends_image_below_code():
    plain = Image.open(BytesIO(generate_qr_png("hello", size=200)))
    captioned = Image.open(BytesIO(generate_qr_png("hello", size=200, caption="AB12CD34")))
    assert plain.size == (216, 216)
    assert captioned.size == (216, 276)
