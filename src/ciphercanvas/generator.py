"""Wi-Fi payload construction and QR matrix encoding."""

from __future__ import annotations

import logging
from enum import Enum

import qrcode
from qrcode.constants import ERROR_CORRECT_H
from qrcode.exceptions import DataOverflowError

from .errors import EncodingError
from .matrix import QrMatrix

logger = logging.getLogger(__name__)


class Encryption(str, Enum):
    WPA = "WPA"
    WEP = "WEP"
    NONE = "nopass"

    @classmethod
    def parse(cls, value: str) -> "Encryption":
        normalized = value.strip().lower()
        if normalized in ("none", "nopass"):
            return cls.NONE
        if normalized == "wpa":
            return cls.WPA
        if normalized == "wep":
            return cls.WEP
        raise ValueError(f"unknown encryption type: {value!r} (expected WPA, WEP or None)")

    def __str__(self) -> str:
        return self.value


def build_wifi_payload(ssid: str, password: str = "", encryption: Encryption = Encryption.WPA) -> str:
    """Return the Wi-Fi QR payload string.

    Field values are interpolated as-is: ``;``, ``:``, ``,`` and ``\\`` in the
    SSID or password are not escaped.
    """
    return f"WIFI:S:{ssid};T:{encryption};P:{password};;"


def encode_matrix(payload: str) -> QrMatrix:
    """Encode ``payload`` at error correction level H, picking the smallest version."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_H,
        box_size=1,
        border=0,
    )
    qr.add_data(payload)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        # qrcode 8 reports overflow as an out-of-range version instead
        raise EncodingError(
            f"Failed to generate the QR code: payload of {len(payload.encode('utf-8'))} bytes "
            "exceeds the capacity of error correction level H"
        ) from exc
    matrix = QrMatrix.from_rows(qr.get_matrix(), qr.version)
    logger.info("QR code generated successfully (version %d, %dx%d modules)", matrix.version, matrix.size, matrix.size)
    return matrix


def encode_wifi(ssid: str, password: str = "", encryption: Encryption = Encryption.WPA) -> QrMatrix:
    return encode_matrix(build_wifi_payload(ssid, password, encryption))
