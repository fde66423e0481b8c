import base64
import logging
import uuid
from io import BytesIO
from pathlib import Path

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from qrlinks.errors import StorageUnavailable

logger = logging.getLogger("qrlinks.qr")

QR_BOX_SIZE = 10
QR_BORDER = 4


def generate_qr_png(data: str) -> bytes:
    """PNG bytes of a QR code for ``data``, sized to fit."""
    code = qrcode.QRCode(error_correction=ERROR_CORRECT_H, box_size=QR_BOX_SIZE, border=QR_BORDER)
    code.add_data(data)
    image = code.make_image()
    with BytesIO() as stream:
        image.save(stream, format="PNG")
        return stream.getvalue()


def generate_qr_base64(data: str) -> str:
    return base64.b64encode(generate_qr_png(data)).decode()


class QrStorage:
    """QR images on disk, named after the short code."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def save(self, code: str, url: str) -> str:
        """Write a fresh artifact; every call gets its own file name."""
        path = self.directory / f"{code}-{uuid.uuid4().hex[:12]}.png"
        png = generate_qr_png(url)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(png)
        except OSError as exc:
            logger.error("Failed to write QR for %s to %s: %s", code, path, exc)
            raise StorageUnavailable(f"Could not write QR code for '{code}'") from exc
        return str(path)

    def read_base64(self, path: str, url: str) -> str:
        try:
            return base64.b64encode(Path(path).read_bytes()).decode()
        except FileNotFoundError:
            logger.warning("QR file %s missing, rendering in memory", path)
            return generate_qr_base64(url)
        except OSError as exc:
            raise StorageUnavailable(f"Could not read QR code at '{path}'") from exc

    def remove(self, path: str | None) -> None:
        if not path:
            return
        try:
            Path(path).unlink(missing_ok=True)
        except OSError:
            logger.exception("Failed to remove stale QR file %s", path)
