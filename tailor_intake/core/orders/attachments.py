"""
Design attachments: reference images, fabric images and freehand drawings.

An attachment is held in exactly one of three forms:

* ``UnsentAttachment``   - raw bytes picked up from an upload, not yet transmitted
* ``EmbeddedAttachment`` - an inline ``data:`` URL raster (e.g. a canvas export)
* ``RemoteAttachment``   - a resolved URL echoed back by the order service
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional, Union

from tailor_intake.exceptions import AttachmentDecodeError


ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png"}
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB

MAX_REFERENCE_IMAGES = 5
MAX_FABRIC_IMAGES = 3

_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?P<params>(;[^,;]+)*),(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class UnsentAttachment:
    """Binary upload kept in memory until submission."""
    data: bytes
    filename: str
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class EmbeddedAttachment:
    """Raster held as a data URL."""
    data_url: str

    def decode(self) -> tuple[bytes, str]:
        """Decode into (bytes, content_type). Raises AttachmentDecodeError."""
        match = _DATA_URL_PATTERN.match(self.data_url or "")
        if not match or not (match.group("mime") or "").startswith("image/"):
            raise AttachmentDecodeError("Not an image data URL")
        if ";base64" not in (match.group("params") or ""):
            raise AttachmentDecodeError("Only base64 data URLs are supported")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as e:
            raise AttachmentDecodeError(f"Invalid base64 payload: {e}") from e
        return data, match.group("mime")

    @property
    def approximate_size(self) -> int:
        """Rough byte size of the decoded raster."""
        payload = self.data_url.split(",", 1)[-1]
        return (len(payload) * 3) // 4


@dataclass(frozen=True)
class RemoteAttachment:
    """Attachment already stored by the order service."""
    url: str
    original_name: Optional[str] = None


Attachment = Union[UnsentAttachment, EmbeddedAttachment, RemoteAttachment]


@dataclass(frozen=True)
class FilePart:
    """One binary part of a multipart submission."""
    name: str
    filename: str
    content_type: str
    data: bytes


def validate_upload(data: bytes, content_type: str) -> tuple[bool, Optional[str]]:
    """
    Check an incoming upload against the accepted types and size.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if content_type not in ALLOWED_CONTENT_TYPES:
        return False, "Only JPG and PNG images are accepted."
    if len(data) > MAX_FILE_SIZE:
        return False, "Images must be 5MB or smaller."
    if not data:
        return False, "The uploaded file is empty."
    return True, None


def to_file_part(attachment: Attachment, name: str, default_filename: str) -> Optional[FilePart]:
    """
    Normalize an attachment into its transmittable form.

    Remote attachments are already stored server-side and yield None; they travel
    in the JSON body as URLs. Embedded rasters are decoded here, so this may raise
    AttachmentDecodeError.
    """
    if isinstance(attachment, UnsentAttachment):
        return FilePart(
            name=name,
            filename=attachment.filename or default_filename,
            content_type=attachment.content_type,
            data=attachment.data,
        )
    if isinstance(attachment, EmbeddedAttachment):
        data, content_type = attachment.decode()
        return FilePart(name=name, filename=default_filename, content_type=content_type, data=data)
    return None


def byte_size(attachment: Attachment) -> int:
    """Bytes this attachment adds to a submission (0 when already remote)."""
    if isinstance(attachment, UnsentAttachment):
        return attachment.size
    if isinstance(attachment, EmbeddedAttachment):
        return attachment.approximate_size
    return 0


def attachment_to_dict(attachment: Attachment) -> dict:
    """Serialize for snapshots; unsent bytes travel as base64."""
    if isinstance(attachment, UnsentAttachment):
        return {
            "kind": "unsent",
            "filename": attachment.filename,
            "contentType": attachment.content_type,
            "data": base64.b64encode(attachment.data).decode("ascii"),
        }
    if isinstance(attachment, EmbeddedAttachment):
        return {"kind": "embedded", "dataUrl": attachment.data_url}
    return {"kind": "remote", "url": attachment.url, "originalname": attachment.original_name}


def attachment_from_dict(data) -> Optional[Attachment]:
    """
    Rebuild an attachment from a snapshot record, an echoed server record
    ({url, originalname}) or a bare string (URL or data URL).
    Unreadable records yield None.
    """
    if isinstance(data, str):
        if data.startswith("data:"):
            return EmbeddedAttachment(data_url=data)
        return RemoteAttachment(url=data) if data else None

    if not isinstance(data, dict):
        return None

    kind = data.get("kind")
    if kind == "unsent":
        try:
            raw = base64.b64decode(data.get("data", ""), validate=True)
        except (binascii.Error, ValueError):
            return None
        return UnsentAttachment(
            data=raw,
            filename=data.get("filename") or "upload",
            content_type=data.get("contentType") or "image/jpeg",
        )
    if kind == "embedded" and data.get("dataUrl"):
        return EmbeddedAttachment(data_url=data["dataUrl"])
    if data.get("url"):
        return RemoteAttachment(url=data["url"], original_name=data.get("originalname"))
    return None


def attachments_from_list(items) -> list[Attachment]:
    """Rebuild a list of attachments, skipping unreadable entries."""
    if not isinstance(items, list):
        return []
    result = []
    for item in items:
        attachment = attachment_from_dict(item)
        if attachment is not None:
            result.append(attachment)
    return result
