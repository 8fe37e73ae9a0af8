from __future__ import annotations

import asyncio
import mimetypes
import uuid
from dataclasses import dataclass
from typing import Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from taskmaster.domain.errors import DeleteError, UploadError
from taskmaster.infrastructure.settings import Settings, get_settings

# delete_objects accepts at most 1000 keys per request
_DELETE_BATCH = 1000


@dataclass(frozen=True)
class S3StoreConfig:
    endpoint: str
    region: str
    access_key: str
    secret_key: str
    bucket: str
    public_base_url: str
    prefix: str = "tasks"
    use_ssl: bool = False
    force_path_style: bool = True


class S3BlobStore:
    """Task image storage on any S3-compatible endpoint.

    Objects are keyed ``prefix/owner_id/<uuid>.<ext>``; the ref persisted on a
    task is the object's public URL, which ``delete`` maps back to its key.
    """

    def __init__(self, cfg: S3StoreConfig, client=None) -> None:
        self.cfg = cfg
        if client is None:
            s3_cfg = Config(s3={"addressing_style": "path"} if cfg.force_path_style else {})
            client = boto3.client(
                "s3",
                endpoint_url=cfg.endpoint,
                aws_access_key_id=cfg.access_key,
                aws_secret_access_key=cfg.secret_key,
                region_name=cfg.region,
                use_ssl=cfg.use_ssl,
                config=s3_cfg,
            )
        self.client = client

    def _new_key(self, owner_id: str, content_type: str) -> str:
        ext = mimetypes.guess_extension(content_type) or ""
        safe_owner = owner_id.replace("/", "_")
        return f"{self.cfg.prefix}/{safe_owner}/{uuid.uuid4().hex}{ext}"

    def _key_for(self, ref: str) -> str | None:
        base = self.cfg.public_base_url.rstrip("/") + "/"
        if not ref.startswith(base):
            return None
        return ref[len(base):]

    async def upload(self, *, owner_id: str, payload: bytes, content_type: str) -> str:
        key = self._new_key(owner_id, content_type)
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.cfg.bucket,
                Key=key,
                Body=payload,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise UploadError(f"Upload to {self.cfg.bucket}/{key} failed: {e}") from e
        logger.debug(f"Stored {len(payload)} bytes at {self.cfg.bucket}/{key}")
        return key

    def resolve_public_ref(self, key: str) -> str:
        return f"{self.cfg.public_base_url.rstrip('/')}/{key}"

    async def delete(self, refs: Sequence[str]) -> dict[str, DeleteError | None]:
        outcomes: dict[str, DeleteError | None] = {}
        keys: dict[str, str] = {}
        for ref in refs:
            key = self._key_for(ref)
            if key is None:
                outcomes[ref] = DeleteError(ref, "not stored in this bucket")
            else:
                keys[key] = ref

        key_list = list(keys)
        for start in range(0, len(key_list), _DELETE_BATCH):
            batch = key_list[start:start + _DELETE_BATCH]
            try:
                resp = await asyncio.to_thread(
                    self.client.delete_objects,
                    Bucket=self.cfg.bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as e:
                for k in batch:
                    outcomes[keys[k]] = DeleteError(keys[k], str(e))
                continue

            errors = {err.get("Key"): err for err in resp.get("Errors", [])}
            for k in batch:
                err = errors.get(k)
                if err is None:
                    outcomes[keys[k]] = None
                else:
                    reason = f"{err.get('Code', 'Error')}: {err.get('Message', '')}".strip()
                    outcomes[keys[k]] = DeleteError(keys[k], reason)

        deleted = sum(1 for v in outcomes.values() if v is None)
        logger.debug(f"Deleted {deleted}/{len(outcomes)} object(s) from {self.cfg.bucket}")
        return outcomes


def s3_store_from_settings(settings: Settings | None = None) -> S3BlobStore:
    settings = settings or get_settings()
    cfg = S3StoreConfig(
        endpoint=settings.s3_endpoint,
        region=settings.s3_region,
        access_key=settings.s3_access_key.get_secret_value(),
        secret_key=settings.s3_secret_key.get_secret_value(),
        bucket=settings.s3_bucket,
        public_base_url=settings.s3_public_url,
        prefix=settings.s3_prefix,
        use_ssl=settings.s3_use_ssl,
        force_path_style=settings.s3_force_path_style,
    )
    return S3BlobStore(cfg)
