"""Tests for QR code generation and rendering."""

import base64
import re

from shared.utils.qr_generator import generate_qr_code, render_qr_data_url

QR_CODE_PATTERN = re.compile(r"^[0-9a-z]+-[0-9a-f]{8}$")


class TestGenerateQrCode:
    def test_format(self) -> None:
        assert QR_CODE_PATTERN.match(generate_qr_code())

    def test_codes_are_unique(self) -> None:
        codes = {generate_qr_code() for _ in range(2000)}
        assert len(codes) == 2000


class TestRenderQrDataUrl:
    def test_returns_png_data_url(self) -> None:
        data_url = render_qr_data_url("mgw3k2x1-9f8a7b6c")

        prefix = "data:image/png;base64,"
        assert data_url.startswith(prefix)
        png_bytes = base64.b64decode(data_url[len(prefix):])
        assert png_bytes[:8] == b"\x89PNG\r\n\x1a\n"
