import base64
import binascii
import logging
import re
from typing import Optional

from storage.models import Attachment, generate_id

logger = logging.getLogger(__name__)

_DATA_URI = re.compile(r'^data:(?P<type>[^;,]*)(?P<params>(;[^;,]*)*?);base64,(?P<payload>.*)$', re.DOTALL)


class AttachmentError(ValueError):
    """Base class for rejected uploads."""


class AttachmentTooLarge(AttachmentError):
    def __init__(self, name: str, size: int, max_bytes: int):
        self.name = name
        self.size = size
        self.max_bytes = max_bytes
        super().__init__(f"File size must be less than {max_bytes // (1024 * 1024)}MB ({name})")


class UnsupportedAttachmentType(AttachmentError):
    def __init__(self, name: str, content_type: str):
        self.name = name
        self.content_type = content_type
        super().__init__(f"Please select an image file ({name} is {content_type or 'unknown'})")


def encode_attachment(name: str, content_type: Optional[str], payload: bytes, max_bytes: int,
                      image_only: bool = False, with_id: bool = True) -> Attachment:
    """Validate an upload and embed it as a base64 data URI.

    Size and type are checked before anything is encoded.
    """
    content_type = content_type or 'application/octet-stream'
    if image_only and not content_type.startswith('image/'):
        raise UnsupportedAttachmentType(name, content_type)
    if len(payload) > max_bytes:
        raise AttachmentTooLarge(name, len(payload), max_bytes)

    encoded = base64.b64encode(payload).decode('ascii')
    return Attachment(
        id=generate_id('file-', 9, alphabet='abcdefghijklmnopqrstuvwxyz0123456789') if with_id else None,
        name=name,
        type=content_type,
        size=len(payload),
        data=f"data:{content_type};base64,{encoded}",
    )


def decode_attachment(attachment: Attachment) -> bytes:
    match = _DATA_URI.match(attachment.data)
    if not match:
        raise AttachmentError(f"Attachment {attachment.name} is not a base64 data URI")
    try:
        return base64.b64decode(match.group('payload'), validate=True)
    except (binascii.Error, ValueError) as e:
        raise AttachmentError(f"Attachment {attachment.name} has invalid base64 data") from e


def try_decode_attachment(attachment: Attachment) -> Optional[bytes]:
    """decode_attachment for display paths: logs and returns None on bad data"""
    try:
        return decode_attachment(attachment)
    except AttachmentError as e:
        logger.warning(f"Unreadable attachment {attachment.id or attachment.name}: {e}")
        return None
