"""S3-compatible object store for encrypted backup blobs."""

from typing import List

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import BaseObjectStore, StoredBlob
from ..config import ObjectStoreConfig
from ..exceptions import BackupNotFoundError, ObjectStoreError
from .._utils import logger, BACKUP_PREFIX

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}
_MISSING_BUCKET_CODES = {"NoSuchBucket", "404", "NotFound"}
_BOTO_ERRORS = (BotoCoreError, ClientError)


class S3ObjectStore(BaseObjectStore):
    """Backup container on any S3-compatible endpoint."""

    def __init__(self, config: ObjectStoreConfig, session: aioboto3.Session = None):
        self.bucket = config.bucket
        self.region = config.region
        self.endpoint_url = config.endpoint_url
        self._access_key_id = config.access_key_id
        self._secret_access_key = config.secret_access_key
        self.session = session or aioboto3.Session()

    def _client(self):
        return self.session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=self.region,
            aws_access_key_id=self._access_key_id,
            aws_secret_access_key=self._secret_access_key,
        )

    async def ensure_container_exists(self) -> None:
        try:
            async with self._client() as s3:
                try:
                    await s3.head_bucket(Bucket=self.bucket)
                    return
                except ClientError as e:
                    if _error_code(e) not in _MISSING_BUCKET_CODES:
                        raise ObjectStoreError(f"Could not check bucket {self.bucket}: {e}") from e

                logger.info(f"Creating storage bucket: {self.bucket}")
                params = {"Bucket": self.bucket}
                if self.region and self.region != "us-east-1":
                    params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
                try:
                    await s3.create_bucket(**params)
                except ClientError as e:
                    if _error_code(e) not in {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}:
                        raise ObjectStoreError(f"Could not create bucket {self.bucket}: {e}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Could not reach bucket {self.bucket}: {e}") from e

    async def upload(self, name: str, data: bytes) -> None:
        try:
            async with self._client() as s3:
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=name,
                    Body=data,
                    ContentType="application/octet-stream",
                )
        except _BOTO_ERRORS as e:
            raise ObjectStoreError(f"Upload of {name} failed: {e}") from e
        logger.debug(f"Uploaded {self.bucket}/{name} ({len(data):,} bytes)")

    async def download(self, name: str) -> bytes:
        try:
            async with self._client() as s3:
                response = await s3.get_object(Bucket=self.bucket, Key=name)
                return await response["Body"].read()
        except ClientError as e:
            if _error_code(e) in _MISSING_KEY_CODES:
                raise BackupNotFoundError(name) from e
            raise ObjectStoreError(f"Download of {name} failed: {e}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Download of {name} failed: {e}") from e

    async def list(self) -> List[StoredBlob]:
        blobs = []
        try:
            async with self._client() as s3:
                paginator = s3.get_paginator("list_objects_v2")
                async for page in paginator.paginate(Bucket=self.bucket, Prefix=BACKUP_PREFIX):
                    for obj in page.get("Contents", []):
                        blobs.append(StoredBlob(name=obj["Key"], size=obj.get("Size")))
        except _BOTO_ERRORS as e:
            raise ObjectStoreError(f"Listing {self.bucket} failed: {e}") from e
        return blobs

    async def delete(self, name: str) -> None:
        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=self.bucket, Key=name)
        except _BOTO_ERRORS as e:
            raise ObjectStoreError(f"Delete of {name} failed: {e}") from e


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))
