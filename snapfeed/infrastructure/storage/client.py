"""
Object storage client for uploaded media.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
Using R2 instead of S3 because:
- No egress fees (media is served straight from the bucket)
- Same S3 API means we could swap to actual S3 or MinIO if needed

The storage client is the only place that knows how media gets into the
bucket. It hands back a BlobReference once the object is fully written,
or raises StorageError. It never retries; that decision belongs to the
caller.

Mock mode stores media in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from typing import BinaryIO, Optional, Protocol, Union
from uuid import uuid4

from ...core.feed.ingestion import payload_size
from ...core.feed.models import BlobReference, MediaKind

logger = logging.getLogger(__name__)

# Enough of the file for libmagic to recognise every format we accept
SNIFF_BYTES = 2048

# What libmagic reports when it can't identify the content
UNDETECTED_MIME_TYPE = "application/octet-stream"

DeclaredKind = Union[MediaKind, str]


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for R2/S3-compatible storage.

    `public_base_url` is where the bucket is publicly readable (an R2
    custom domain or r2.dev url). Without it, urls fall back to the
    path-style endpoint url.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    public_base_url: Optional[str] = None
    region: str = "auto"  # R2 uses 'auto' for region
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 60.0


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    async def upload_media(
        self,
        payload: BinaryIO,
        content_type: Optional[str] = None,
        declared_kind: DeclaredKind = "auto",
    ) -> BlobReference:
        """Upload media and return a durable reference."""
        ...


def build_storage_key(kind: MediaKind, content_type: Optional[str]) -> str:
    """
    Build a fresh object key for an upload.

    Path structure: media/{kind}/{random hex}{ext}
    Every call gets a new key, so uploading the same bytes twice
    produces two independent objects.
    """
    ext = ""
    if content_type:
        ext = mimetypes.guess_extension(content_type.split(";", 1)[0].strip()) or ""
    return f"media/{kind.value}/{uuid4().hex}{ext}"


def _resolve_declared_kind(declared_kind: DeclaredKind) -> Optional[MediaKind]:
    """Return the declared MediaKind, or None when detection should run."""
    if isinstance(declared_kind, MediaKind):
        return declared_kind
    if declared_kind == "auto":
        return None
    try:
        return MediaKind(declared_kind)
    except ValueError:
        raise StorageError(f"Unknown media kind: {declared_kind}")


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. boto3 is synchronous, so
    every call runs in a worker thread to keep the event loop free while
    a large upload is in flight. The payload is streamed with
    upload_fileobj rather than read into memory.
    """

    def __init__(
        self,
        config: StorageConfig,
        s3_client=None,
        mime_detector=None,
    ) -> None:
        """
        Initialize R2 client with boto3.

        We import boto3 and magic here (not at module level) because
        mock mode needs neither, and python-magic needs the libmagic
        shared library at import time. Tests pass their own s3_client
        and mime_detector (anything with `from_buffer(bytes) -> str`).
        """
        self._config = config

        if mime_detector is None:
            try:
                import magic
            except ImportError:
                raise ImportError(
                    "python-magic is required for media type detection. "
                    "Install with: pip install python-magic"
                )
            mime_detector = magic.Magic(mime=True)
        self._magic = mime_detector

        if s3_client is None:
            s3_client = self._build_s3_client(config)
        self._s3_client = s3_client

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    @staticmethod
    def _build_s3_client(config: StorageConfig):
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for R2 storage. Install with: pip install boto3"
            )

        # R2 requires v4 signatures. Retries are disabled: the ingestion
        # flow reports failures instead of retrying them.
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
            connect_timeout=config.connect_timeout_seconds,
            read_timeout=config.read_timeout_seconds,
            retries={'max_attempts': 1, 'mode': 'standard'},
        )

        return boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

    async def upload_media(
        self,
        payload: BinaryIO,
        content_type: Optional[str] = None,
        declared_kind: DeclaredKind = "auto",
    ) -> BlobReference:
        """
        Upload media to R2 storage.

        The content type is sniffed from the payload itself; the
        client-supplied content type is only a fallback when libmagic
        can't tell. Measuring and sniffing touch the file, which may
        already have spilled to disk, so they run off the event loop too.
        """
        size, detected_type = await asyncio.to_thread(self._inspect, payload)
        media_type = detected_type or content_type
        kind = _resolve_declared_kind(declared_kind) or MediaKind.from_mime(media_type)
        storage_key = build_storage_key(kind, media_type)

        extra_args = {'Metadata': {'media-kind': kind.value}}
        if media_type:
            extra_args['ContentType'] = media_type

        try:
            await asyncio.to_thread(
                self._s3_client.upload_fileobj,
                payload,
                self._config.bucket_name,
                storage_key,
                ExtraArgs=extra_args,
            )
        except Exception as e:
            logger.error(
                "Failed to upload media",
                extra={
                    "storage_key": storage_key,
                    "size_bytes": size,
                    "error": str(e),
                }
            )
            raise StorageError(f"Upload failed: {e}")

        logger.info(
            "Uploaded media",
            extra={
                "storage_key": storage_key,
                "media_kind": kind.value,
                "size_bytes": size,
            }
        )

        return BlobReference(
            url=self._public_url(storage_key),
            media_kind=kind,
            storage_key=storage_key,
            size_bytes=size,
            content_type=media_type,
        )

    def _inspect(self, payload: BinaryIO) -> tuple[int, Optional[str]]:
        return payload_size(payload), self._detect_mime_type(payload)

    def _detect_mime_type(self, payload: BinaryIO) -> Optional[str]:
        """
        Detect MIME type from the first bytes of the payload using libmagic.

        libmagic answers application/octet-stream for anything it doesn't
        recognise; that counts as undetected.
        """
        payload.seek(0)
        header = payload.read(SNIFF_BYTES)
        payload.seek(0)

        if not header:
            return None

        try:
            detected = self._magic.from_buffer(header)
        except Exception as e:
            logger.warning("MIME detection failed", extra={"error": str(e)})
            return None

        if not detected or detected == UNDETECTED_MIME_TYPE:
            return None
        return detected

    def _public_url(self, storage_key: str) -> str:
        if self._config.public_base_url:
            return f"{self._config.public_base_url.rstrip('/')}/{storage_key}"
        return f"{self._config.endpoint_url.rstrip('/')}/{self._config.bucket_name}/{storage_key}"


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Media is stored in a dictionary and "URLs" are mock URIs. There is
    no content sniffing: the kind comes from the declared content type.

    `fail_uploads` and `upload_delay_seconds` let tests simulate an
    unavailable or slow object store.
    """

    def __init__(
        self,
        fail_uploads: bool = False,
        upload_delay_seconds: float = 0.0,
    ) -> None:
        # {storage_key: bytes}
        self._objects: dict[str, bytes] = {}
        self.fail_uploads = fail_uploads
        self.upload_delay_seconds = upload_delay_seconds
        logger.info("Initialized mock storage client (in-memory)")

    async def upload_media(
        self,
        payload: BinaryIO,
        content_type: Optional[str] = None,
        declared_kind: DeclaredKind = "auto",
    ) -> BlobReference:
        """Store media in memory."""
        if self.upload_delay_seconds:
            await asyncio.sleep(self.upload_delay_seconds)

        if self.fail_uploads:
            raise StorageError("Upload failed: mock storage is configured to fail")

        payload.seek(0)
        data = payload.read()
        kind = _resolve_declared_kind(declared_kind) or MediaKind.from_mime(content_type)
        storage_key = build_storage_key(kind, content_type)
        self._objects[storage_key] = data

        logger.debug(
            "Stored media in mock storage",
            extra={
                "storage_key": storage_key,
                "size_bytes": len(data),
            }
        )

        return BlobReference(
            url=f"mock://storage/{storage_key}",
            media_kind=kind,
            storage_key=storage_key,
            size_bytes=len(data),
            content_type=content_type,
        )

    def get_object(self, storage_key: str) -> bytes:
        """Retrieve stored bytes (for test assertions)."""
        if storage_key not in self._objects:
            raise StorageError(f"Object not found: {storage_key}")
        return self._objects[storage_key]

    @property
    def object_count(self) -> int:
        return len(self._objects)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
