import json
import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from bookshelf.core.config import settings


DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class StoredBlob:
    data: bytes
    content_type: Optional[str] = None


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: Optional[str] = None) -> None:
        raise NotImplementedError
    def get_bytes(self, key: str) -> Optional[StoredBlob]:
        raise NotImplementedError


class MemoryStorage(Storage):
    def __init__(self) -> None:
        self.objects: Dict[str, StoredBlob] = {}

    def put_bytes(self, key: str, data: bytes, *, content_type: Optional[str] = None) -> None:
        self.objects[key] = StoredBlob(data=bytes(data), content_type=content_type)

    def get_bytes(self, key: str) -> Optional[StoredBlob]:
        return self.objects.get(key)


class LocalStorage(Storage):
    """Blob files under <base_dir>/blobs; content types under <base_dir>/meta as <key>.json"""

    def __init__(self, base_dir: str) -> None:
        self.base_dir = os.path.abspath(base_dir)
        self.blob_dir = os.path.join(self.base_dir, "blobs")
        self.meta_dir = os.path.join(self.base_dir, "meta")
        os.makedirs(self.blob_dir, exist_ok=True)
        os.makedirs(self.meta_dir, exist_ok=True)

    @staticmethod
    def _within(root: str, relative: str) -> Optional[str]:
        path = os.path.abspath(os.path.join(root, relative))
        # keys must stay inside their root
        if not path.startswith(root + os.sep):
            return None
        return path

    def _paths(self, key: str) -> Optional[Tuple[str, str]]:
        blob_path = self._within(self.blob_dir, key)
        meta_path = self._within(self.meta_dir, key + ".json")
        if blob_path is None or meta_path is None:
            return None
        return blob_path, meta_path

    def put_bytes(self, key: str, data: bytes, *, content_type: Optional[str] = None) -> None:
        paths = self._paths(key)
        if paths is None:
            raise ValueError(f"invalid storage key: {key!r}")
        blob_path, meta_path = paths
        for p in paths:
            os.makedirs(os.path.dirname(p), exist_ok=True)
        with open(blob_path, "wb") as f:
            f.write(data)
        with open(meta_path, "w", encoding="utf-8") as f:
            json.dump({"content_type": content_type}, f)

    def get_bytes(self, key: str) -> Optional[StoredBlob]:
        paths = self._paths(key)
        if paths is None or not os.path.isfile(paths[0]):
            return None
        blob_path, meta_path = paths
        with open(blob_path, "rb") as f:
            data = f.read()
        content_type = None
        if os.path.isfile(meta_path):
            with open(meta_path, "r", encoding="utf-8") as f:
                content_type = (json.load(f) or {}).get("content_type")
        return StoredBlob(data=data, content_type=content_type)


class S3Storage(Storage):
    def __init__(self, *, endpoint_url: str, access_key: str, secret_key: str, bucket: str, region: Optional[str] = None, addressing_style: str = "path") -> None:
        import boto3
        from botocore.config import Config
        # R2 requires SigV4; addressing style is configurable (path/virtual)
        cfg = Config(signature_version="s3v4", s3={"addressing_style": addressing_style})
        self.client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=cfg,
        )
        self.bucket = bucket

    def put_bytes(self, key: str, data: bytes, *, content_type: Optional[str] = None) -> None:
        extra_args = {}
        if content_type:
            extra_args["ContentType"] = content_type
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra_args)

    def get_bytes(self, key: str) -> Optional[StoredBlob]:
        from botocore.exceptions import ClientError
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in ("NoSuchKey", "404", "NotFound"):
                return None
            raise
        body = obj["Body"]
        try:
            data = body.read()
        finally:
            body.close()
        return StoredBlob(data=data, content_type=obj.get("ContentType"))


_storage: Optional[Storage] = None


def get_storage() -> Storage:
    global _storage
    if _storage is not None:
        return _storage
    backend = (settings.STORAGE_BACKEND or "local").lower()
    if backend == "s3":
        endpoint = settings.S3_ENDPOINT_URL or os.getenv("R2_ENDPOINT_URL")
        access_key = settings.S3_ACCESS_KEY_ID or os.getenv("R2_ACCESS_KEY_ID")
        secret_key = settings.S3_SECRET_ACCESS_KEY or os.getenv("R2_SECRET_ACCESS_KEY")
        bucket = settings.S3_BUCKET or os.getenv("R2_BUCKET")
        region = settings.S3_REGION or os.getenv("R2_REGION")
        if not (endpoint and access_key and secret_key and bucket):
            raise RuntimeError("S3/R2 storage is not fully configured")
        _storage = S3Storage(
            endpoint_url=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            bucket=bucket,
            region=region,
            addressing_style=settings.S3_ADDRESSING_STYLE.lower(),
        )
    elif backend == "memory":
        _storage = MemoryStorage()
    else:
        from bookshelf.core.paths import get_upload_dir
        _storage = LocalStorage(base_dir=get_upload_dir())
    return _storage
