"""Contract PDF and signature helpers"""

import base64
import binascii
import io
import logging
import re
from typing import Optional
from urllib.parse import quote

from PIL import Image, UnidentifiedImageError

from ...errors import EmptySignature

logger = logging.getLogger(__name__)

FILENAME_PATTERN = re.compile(r"filename[^;=\n]*=(?:([\"'])([^\"'\n]*)\1|([^;\n]*))")


class ContractPDFService:
    """Filename resolution for contract previews and signature payload checks"""

    @staticmethod
    def default_filename(contract_id: str) -> str:
        return f"contract_{contract_id}.pdf"

    @staticmethod
    def filename_from_disposition(header: Optional[str], contract_id: str) -> str:
        """
        Resolve the download name from a content-disposition header.

        The quoted capture wins over the bare one; both empty or no header
        falls back to contract_<id>.pdf.
        """
        fallback = ContractPDFService.default_filename(contract_id)
        if not header:
            return fallback

        match = FILENAME_PATTERN.search(header)
        if not match:
            return fallback

        quoted, bare = match.group(2), match.group(3)
        if quoted:
            return quoted
        if bare and bare.strip():
            return bare.strip()
        return fallback

    @staticmethod
    def content_disposition(filename: str, disposition: str = "attachment") -> str:
        """Header value safe for latin-1 transport, keeping the UTF-8 name in filename*"""
        ascii_name = filename.encode("ascii", "ignore").decode("ascii").replace('"', "") or "contract.pdf"
        return f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"

    @staticmethod
    def signature_payload(signature: Optional[str]) -> str:
        """
        Return the base64 payload to transmit for a signature data URI.

        Only the part after the first comma is sent. Blank canvases are
        rejected here, before any request is built.

        Raises:
            EmptySignature: nothing drawn, or not a decodable image
        """
        if not signature or not signature.strip():
            raise EmptySignature()

        signature = signature.strip()
        if "," in signature:
            _header, encoded = signature.split(",", 1)
        else:
            encoded = signature
        if not encoded:
            raise EmptySignature()

        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("⚠️ Signature payload is not valid base64")
            raise EmptySignature("Chữ ký không hợp lệ, vui lòng ký lại")

        if ContractPDFService.is_blank_image(raw):
            raise EmptySignature()
        return encoded

    @staticmethod
    def is_blank_image(raw: bytes) -> bool:
        """True when the canvas image has no drawn pixels"""
        try:
            with Image.open(io.BytesIO(raw)) as img:
                img.load()
                if img.mode in ("RGBA", "LA") or "transparency" in img.info:
                    return img.convert("RGBA").getchannel("A").getbbox() is None
                low, high = img.convert("L").getextrema()
                return low == high
        except (UnidentifiedImageError, OSError):
            logger.warning("⚠️ Signature payload is not an image")
            return True
