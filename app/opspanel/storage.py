from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


class StorageError(RuntimeError):
    pass


class Storage:
    """
    Key-value substrate behind the record store.
    Values are opaque bytes; a missing key reads as None.
    """

    def read(self, key: str) -> bytes | None:
        raise NotImplementedError

    def write(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        return self.read(key) is not None


@dataclass
class MemoryStorage(Storage):
    entries: dict[str, bytes] = field(default_factory=dict)

    def read(self, key: str) -> bytes | None:
        return self.entries.get(key)

    def write(self, key: str, data: bytes) -> None:
        self.entries[key] = bytes(data)

    def delete(self, key: str) -> None:
        self.entries.pop(key, None)


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path

    def _path(self, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        if ".." in safe_key.split("/"):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.root / f"{safe_key}.json"

    def read(self, key: str) -> bytes | None:
        p = self._path(key)
        try:
            return p.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Cannot read {p}: {e}") from e

    def write(self, key: str, data: bytes) -> None:
        p = self._path(key)
        tmp = p.with_name(p.name + ".tmp")
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, p)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise StorageError(f"Cannot write {p}: {e}") from e

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


@dataclass(frozen=True)
class DatabaseStorage(Storage):
    """One `kv_entries` row per key, in the application database."""

    sessionmaker: Any

    def read(self, key: str) -> bytes | None:
        from sqlalchemy.exc import SQLAlchemyError

        from app.opspanel.models import KeyValueEntry

        try:
            with self.sessionmaker() as s:
                row = s.get(KeyValueEntry, key)
                return bytes(row.value) if row is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot read key {key!r}: {e}") from e

    def write(self, key: str, data: bytes) -> None:
        from sqlalchemy.exc import SQLAlchemyError

        from app.opspanel.models import KeyValueEntry

        try:
            with self.sessionmaker() as s:
                row = s.get(KeyValueEntry, key)
                if row is None:
                    s.add(KeyValueEntry(key=key, value=data, updated_at=datetime.utcnow()))
                else:
                    row.value = data
                    row.updated_at = datetime.utcnow()
                s.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot write key {key!r}: {e}") from e

    def delete(self, key: str) -> None:
        from sqlalchemy.exc import SQLAlchemyError

        from app.opspanel.models import KeyValueEntry

        try:
            with self.sessionmaker() as s:
                row = s.get(KeyValueEntry, key)
                if row is not None:
                    s.delete(row)
                    s.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot delete key {key!r}: {e}") from e


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    prefix: str = "records/"

    def _client(self):
        try:
            import boto3  # type: ignore
        except Exception as e:  # pragma: no cover
            raise StorageError("boto3 required for S3 storage. Install boto3.") from e
        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}.json"

    def read(self, key: str) -> bytes | None:
        from botocore.exceptions import ClientError

        try:
            obj = self._client().get_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return None
            raise StorageError(f"S3 read failed for {key!r}: {e}") from e
        return obj["Body"].read()

    def write(self, key: str, data: bytes) -> None:
        from botocore.exceptions import ClientError

        try:
            self._client().put_object(
                Bucket=self.bucket,
                Key=self._key(key),
                Body=data,
                ContentType="application/json",
            )
        except ClientError as e:
            raise StorageError(f"S3 write failed for {key!r}: {e}") from e

    def delete(self, key: str) -> None:
        from botocore.exceptions import ClientError

        try:
            self._client().delete_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError as e:
            raise StorageError(f"S3 delete failed for {key!r}: {e}") from e


def storage_from_config(config: dict, app=None) -> Storage:
    backend = (config.get("STORE_BACKEND") or "database").strip().lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "nyc3").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
        )
    if backend == "local":
        root = (config.get("STORE_ROOT") or "").strip()
        return LocalStorage(root=Path(root) if root else Path(os.getcwd()) / "storage")
    if backend == "database":
        if app is None:
            raise StorageError("database store backend needs an initialized app")
        return DatabaseStorage(sessionmaker=app.extensions["sqlalchemy_sessionmaker"])
    raise StorageError(f"Unknown STORE_BACKEND: {backend!r}")
