"""
Profile image validation and the image hosts avatars are uploaded to.

Cloudinary is the production host; an S3-compatible bucket and an in-memory
double implement the same ``MediaHost`` protocol.
"""

from __future__ import annotations

import hashlib
import io
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

import boto3
import requests
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError
from urllib3 import encode_multipart_formdata

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
MAX_IMAGE_BYTES = 5 * 1024 * 1024
MIN_IMAGE_DIMENSION = 100
DEFAULT_UPLOAD_TIMEOUT = 30.0

AVATAR_COLORS = (
    "#7823E1",
    "#3B82F6",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#06B6D4",
    "#F97316",
)

ProgressCallback = Callable[[int], None]


class UploadError(Exception):
    """Raised when an image host rejects or fails an upload."""

    def __init__(self, message: str, code: Optional[str] = None, details=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


@dataclass
class UploadResult:
    secure_url: str
    public_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    bytes: Optional[int] = None


@dataclass
class ImageValidation:
    valid: bool
    error: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


def _image_info(content: bytes) -> tuple[int, int, Optional[str]]:
    with Image.open(io.BytesIO(content)) as image:
        width, height = image.size
        fmt = image.format.lower() if image.format else None
    return width, height, fmt


def validate_image(content: Optional[bytes], content_type: Optional[str]) -> ImageValidation:
    if not content:
        return ImageValidation(valid=False, error="No file selected")
    if content_type not in ALLOWED_CONTENT_TYPES:
        return ImageValidation(
            valid=False, error="Please select a JPEG, PNG, or WebP image"
        )
    if len(content) > MAX_IMAGE_BYTES:
        return ImageValidation(valid=False, error="Image must be smaller than 5MB")
    try:
        width, height, _ = _image_info(content)
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        return ImageValidation(valid=False, error="Invalid image file")
    if width < MIN_IMAGE_DIMENSION or height < MIN_IMAGE_DIMENSION:
        return ImageValidation(
            valid=False,
            error="Image must be at least 100x100 pixels",
            width=width,
            height=height,
        )
    return ImageValidation(valid=True, width=width, height=height)


class MediaHost(Protocol):
    """Defines the operations the API needs from an image host."""

    def upload_image(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        public_id: Optional[str] = None,
        folder: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        ...

    def delete_image(self, public_id: str) -> bool:
        ...


@dataclass
class InMemoryMediaHost:
    """Test double for image host interactions."""

    base_url: str = "https://example.test/media"
    stored_images: dict = field(default_factory=dict)

    def upload_image(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        public_id: Optional[str] = None,
        folder: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        key = public_id or uuid.uuid4().hex
        if folder:
            key = f"{folder}/{key}"
        self.stored_images[key] = {
            "content": content,
            "filename": filename,
            "content_type": content_type,
            "tags": list(tags or []),
        }
        if on_progress:
            on_progress(100)
        try:
            width, height, fmt = _image_info(content)
        except (UnidentifiedImageError, OSError):
            width = height = fmt = None
        return UploadResult(
            secure_url=f"{self.base_url}/{key}",
            public_id=key,
            width=width,
            height=height,
            format=fmt,
            bytes=len(content),
        )

    def delete_image(self, public_id: str) -> bool:
        return self.stored_images.pop(public_id, None) is not None

    def reset(self) -> None:
        self.stored_images.clear()


class _ProgressBody:
    """Multipart body that reports how much of itself has been read."""

    chunk_size = 64 * 1024

    def __init__(self, body: bytes, on_progress: Optional[ProgressCallback]):
        self._stream = io.BytesIO(body)
        self._total = len(body)
        self._on_progress = on_progress
        self._last = -1

    def __len__(self) -> int:
        return self._total

    def __iter__(self):
        while True:
            chunk = self.read(self.chunk_size)
            if not chunk:
                break
            yield chunk

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        if self._on_progress and self._total:
            percent = round(self._stream.tell() / self._total * 100)
            if percent != self._last:
                self._last = percent
                self._on_progress(percent)
        return chunk


@dataclass
class CloudinaryMediaHost:
    """
    Unsigned uploads through a Cloudinary upload preset, signed deletes through
    the destroy API (which needs the API key and secret).
    """

    cloud_name: str
    upload_preset: str = "profile_pictures"
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    timeout: float = DEFAULT_UPLOAD_TIMEOUT

    @property
    def api_url(self) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloud_name}/image"

    def upload_image(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        public_id: Optional[str] = None,
        folder: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        fields = [
            ("file", (filename, content, content_type)),
            ("upload_preset", self.upload_preset),
        ]
        if folder:
            fields.append(("folder", folder))
        if tags:
            fields.append(("tags", ",".join(tags)))
        if public_id:
            fields.append(("public_id", public_id))
        body, multipart_type = encode_multipart_formdata(fields)

        try:
            response = requests.post(
                f"{self.api_url}/upload",
                data=_ProgressBody(body, on_progress),
                headers={
                    "Content-Type": multipart_type,
                    "Content-Length": str(len(body)),
                },
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise UploadError("Upload timeout", "TIMEOUT_ERROR", exc) from exc
        except requests.RequestException as exc:
            raise UploadError("Network error during upload", "NETWORK_ERROR", exc) from exc

        if response.status_code != 200:
            try:
                payload = response.json()
            except ValueError:
                raise UploadError("Upload failed", "NETWORK_ERROR")
            error = payload.get("error") if isinstance(payload, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            message = message or "Upload failed"
            raise UploadError(message, "UPLOAD_ERROR", payload)

        try:
            payload = response.json()
            return UploadResult(
                secure_url=payload["secure_url"],
                public_id=payload["public_id"],
                width=payload.get("width"),
                height=payload.get("height"),
                format=payload.get("format"),
                bytes=payload.get("bytes"),
            )
        except (ValueError, KeyError) as exc:
            raise UploadError("Invalid response from server", "PARSE_ERROR", exc) from exc

    def _signature(self, params: dict) -> str:
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def delete_image(self, public_id: str) -> bool:
        if not (self.api_key and self.api_secret):
            logger.warning("Cloudinary API credentials missing; cannot delete %s", public_id)
            return False
        params = {"public_id": public_id, "timestamp": int(time.time())}
        data = dict(params, api_key=self.api_key, signature=self._signature(params))
        try:
            response = requests.post(
                f"{self.api_url}/destroy", data=data, timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json().get("result")
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Error deleting image %s: %s", public_id, exc)
            return False
        if result != "ok":
            logger.warning("Image host refused to delete %s: %s", public_id, result)
            return False
        return True


_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


@dataclass
class S3MediaHost:
    """
    S3-compatible bucket used as an image host. The object key doubles as the
    public id.
    """

    bucket: str
    region: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    public_base_url: Optional[str] = None

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def _public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region or 'us-east-1'}.amazonaws.com/{key}"

    def upload_image(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        public_id: Optional[str] = None,
        folder: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        name = public_id or uuid.uuid4().hex
        extension = _EXTENSIONS.get(content_type)
        if extension:
            name = f"{name}.{extension}"
        key = f"{folder}/{name}" if folder else name

        total = len(content)
        sent = 0

        def _callback(transferred: int) -> None:
            nonlocal sent
            sent += transferred
            if on_progress and total:
                on_progress(min(100, round(sent / total * 100)))

        extra_args = {"ContentType": content_type}
        if tags:
            extra_args["Tagging"] = "&".join(f"tag{i}={tag}" for i, tag in enumerate(tags))
        try:
            self._client.upload_fileobj(
                io.BytesIO(content),
                self.bucket,
                key,
                ExtraArgs=extra_args,
                Callback=_callback,
            )
        except (BotoCoreError, ClientError) as exc:
            raise UploadError(str(exc) or "Upload failed", "UPLOAD_ERROR", exc) from exc

        try:
            width, height, fmt = _image_info(content)
        except (UnidentifiedImageError, OSError):
            width = height = fmt = None
        return UploadResult(
            secure_url=self._public_url(key),
            public_id=key,
            width=width,
            height=height,
            format=fmt,
            bytes=total,
        )

    def delete_image(self, public_id: str) -> bool:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=public_id)
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Error deleting image %s: %s", public_id, exc)
            return False
        return True


def build_profile_image_url(
    cloud_name: str,
    public_id: str,
    width: int = 200,
    height: int = 200,
    crop: str = "fill",
    quality: str = "auto",
    fmt: str = "webp",
) -> str:
    if not cloud_name:
        raise ValueError("Cloudinary cloud name not configured")
    transformations = ",".join(
        [f"w_{width}", f"h_{height}", f"c_{crop}", f"q_{quality}", f"f_{fmt}", "g_face"]
    )
    return f"https://res.cloudinary.com/{cloud_name}/image/upload/{transformations}/{public_id}"


def generate_initials(name: Optional[str]) -> str:
    if not name or not name.strip():
        return "?"
    words = name.strip().split()
    if len(words) == 1:
        return words[0][0].upper()
    return "".join(word[0].upper() for word in words[:2])


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >= 1 << 31 else value


def generate_avatar_color(name: Optional[str]) -> str:
    """Pick a stable background colour for a user's initials."""
    value = 0
    for char in name or "":
        value = ord(char) + _int32(_int32(value) << 5) - value
    return AVATAR_COLORS[abs(value) % len(AVATAR_COLORS)]
