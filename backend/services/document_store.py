"""
Document store for audit files, backed by an S3-compatible bucket

Blocking boto3 calls run in a thread pool so the event loop never stalls.
"""
import json
import uuid
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import urlparse

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError
from botocore.config import Config

from core.environment import Settings, load_settings
from services.error_types import ValidationError, PersistenceError, ConfigurationError
from utils.json_utils import dumps

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10485760 bytes
ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "application/pdf")

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "application/pdf": "pdf",
    "application/json": "json",
}


@dataclass
class StoredDocument:
    key: str
    url: str
    size: int
    content_type: str


def validate_document(file_name: str, size: int, content_type: str) -> None:
    """Reject oversize or disallowed files before any network call"""
    if size > MAX_FILE_SIZE:
        raise ValidationError(
            f"File {file_name} exceeds maximum size of 10MB",
            {"file": file_name, "size": size, "max_size": MAX_FILE_SIZE},
        )
    if content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(
            f"File {file_name} must be PDF, JPEG, or PNG",
            {"file": file_name, "content_type": content_type},
        )


class DocumentStore:
    """
    S3-backed document store

    The bucket is provisioned on first use with public read access. The 10MB
    size cap and the MIME allow-list are checked on every document upload.
    """

    def __init__(self, settings: Optional[Settings] = None, client=None):
        self.settings = settings or load_settings()
        self.bucket_name = self.settings.store_bucket
        self._client = client
        self._bucket_ready = False
        self._bucket_lock = asyncio.Lock()
        self.executor = ThreadPoolExecutor(max_workers=10)

    @property
    def client(self):
        if self._client is None:
            if not (self.settings.store_access_key_id and self.settings.store_secret_access_key):
                raise ConfigurationError("Document store credentials are not configured")

            config = Config(
                region_name=self.settings.store_region,
                retries={'max_attempts': 3, 'mode': 'adaptive'},
                max_pool_connections=50
            )
            self._client = boto3.client(
                's3',
                endpoint_url=self.settings.store_endpoint_url,
                aws_access_key_id=self.settings.store_access_key_id,
                aws_secret_access_key=self.settings.store_secret_access_key,
                config=config
            )
        return self._client

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, lambda: func(*args, **kwargs))

    def _bucket_policy(self) -> Dict[str, Any]:
        return {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "PublicRead",
                    "Effect": "Allow",
                    "Principal": "*",
                    "Action": "s3:GetObject",
                    "Resource": f"arn:aws:s3:::{self.bucket_name}/*",
                },
            ],
        }

    def _ensure_bucket_sync(self) -> None:
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
            logger.info(f"Document store connected to bucket: {self.bucket_name}")
            return
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code not in ("404", "NoSuchBucket", "NotFound"):
                raise

        logger.info(f"Creating bucket {self.bucket_name}")
        params = {"Bucket": self.bucket_name}
        if self.settings.store_region and self.settings.store_region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.settings.store_region}
        self.client.create_bucket(**params)
        self.client.put_bucket_policy(Bucket=self.bucket_name, Policy=json.dumps(self._bucket_policy()))

    async def ensure_bucket(self) -> None:
        """Create and configure the bucket once per process; idempotent"""
        if self._bucket_ready:
            return
        async with self._bucket_lock:
            if self._bucket_ready:
                return
            try:
                await self._run(self._ensure_bucket_sync)
            except ClientError as e:
                raise PersistenceError(f"Bucket setup failed for {self.bucket_name}: {e}")
            self._bucket_ready = True

    def get_public_url(self, key: str) -> str:
        if self.settings.store_public_base_url:
            return f"{self.settings.store_public_base_url.rstrip('/')}/{key}"
        if self.settings.store_endpoint_url:
            return f"{self.settings.store_endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.settings.store_region}.amazonaws.com/{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        """Object key when the URL points into this bucket"""
        prefix = self.get_public_url("")
        if url.startswith(prefix):
            return url[len(prefix):]
        parsed = urlparse(url)
        if parsed.netloc.startswith(f"{self.bucket_name}."):
            return parsed.path.lstrip("/")
        return None

    async def upload(self, data: bytes, content_type: str, file_name: str) -> StoredDocument:
        """
        Upload a document under a fresh ``<uuid>.<ext>`` key

        Args:
            data: File content
            content_type: MIME type
            file_name: Original file name (for the extension and error messages)

        Returns:
            StoredDocument with the public URL
        """
        validate_document(file_name, len(data), content_type)
        await self.ensure_bucket()

        ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else EXTENSIONS.get(content_type, "bin")
        key = f"{uuid.uuid4()}.{ext}"

        try:
            await self._run(
                self.client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="max-age=3600",
                Metadata={'original_filename': file_name},
            )
        except ClientError as e:
            raise PersistenceError(f"Upload failed for {file_name}: {e}", {"file": file_name})

        logger.info(f"Stored {file_name} as {key} ({len(data)} bytes)")
        return StoredDocument(key=key, url=self.get_public_url(key), size=len(data), content_type=content_type)

    async def fetch(self, url_or_key: str) -> bytes:
        """Download a document, through the bucket when the URL belongs to it"""
        key = url_or_key if "://" not in url_or_key else self.key_from_url(url_or_key)
        if key is None:
            async with httpx.AsyncClient(timeout=60.0) as client:
                response = await client.get(url_or_key)
            if response.status_code >= 400:
                raise PersistenceError(
                    f"Failed to fetch {url_or_key}: {response.status_code} {response.reason_phrase}",
                    {"url": url_or_key},
                )
            return response.content

        try:
            obj = await self._run(self.client.get_object, Bucket=self.bucket_name, Key=key)
            return await self._run(obj["Body"].read)
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError(f"Failed to fetch {key}: {e}", {"key": key})

    async def upload_json(self, key: str, data: Dict[str, Any]) -> str:
        """Store a JSON document and return its public URL"""
        await self.ensure_bucket()
        body = dumps(data, indent=2).encode("utf-8")
        try:
            await self._run(
                self.client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                ContentType="application/json",
            )
        except ClientError as e:
            raise PersistenceError(f"Upload failed for {key}: {e}", {"key": key})
        return self.get_public_url(key)


_document_store: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """Process-wide store instance, created lazily"""
    global _document_store
    if _document_store is None:
        _document_store = DocumentStore()
    return _document_store
