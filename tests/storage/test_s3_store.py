"""Tests for the S3 object store with a mocked aioboto3 session."""

import pytest
from unittest.mock import AsyncMock, MagicMock
from botocore.exceptions import ClientError, EndpointConnectionError

from skyplanner_backup._storage.s3 import S3ObjectStore
from skyplanner_backup.config import ObjectStoreConfig
from skyplanner_backup.exceptions import BackupNotFoundError, ObjectStoreError


class _Pages:
    def __init__(self, pages):
        self.pages = pages

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for page in self.pages:
            yield page


def client_error(code, operation="Operation"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3():
    client = MagicMock()
    for method in ("head_bucket", "create_bucket", "put_object", "get_object", "delete_object"):
        setattr(client, method, AsyncMock())
    return client


@pytest.fixture
def session(s3):
    session = MagicMock()
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=s3)
    context.__aexit__ = AsyncMock(return_value=False)
    session.client.return_value = context
    return session


def make_store(session, **overrides):
    params = dict(
        bucket="backups",
        endpoint_url="https://s3.example.test",
        region="eu-north-1",
        access_key_id="AKIATEST",
        secret_access_key="secret",
    )
    params.update(overrides)
    return S3ObjectStore(ObjectStoreConfig(**params), session=session)


@pytest.mark.asyncio
async def test_client_configuration(session, s3):
    await make_store(session).upload("backup-2026-02-11T06-00-00.enc", b"blob")

    session.client.assert_called_once_with(
        "s3",
        endpoint_url="https://s3.example.test",
        region_name="eu-north-1",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="secret",
    )
    s3.put_object.assert_awaited_once_with(
        Bucket="backups",
        Key="backup-2026-02-11T06-00-00.enc",
        Body=b"blob",
        ContentType="application/octet-stream",
    )


@pytest.mark.asyncio
async def test_existing_bucket_is_not_created(session, s3):
    await make_store(session).ensure_container_exists()

    s3.head_bucket.assert_awaited_once_with(Bucket="backups")
    s3.create_bucket.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_bucket_is_created(session, s3):
    s3.head_bucket.side_effect = client_error("404", "HeadBucket")

    await make_store(session).ensure_container_exists()

    s3.create_bucket.assert_awaited_once_with(
        Bucket="backups",
        CreateBucketConfiguration={"LocationConstraint": "eu-north-1"},
    )


@pytest.mark.asyncio
async def test_bucket_created_in_default_region(session, s3):
    s3.head_bucket.side_effect = client_error("NoSuchBucket", "HeadBucket")

    await make_store(session, region="us-east-1").ensure_container_exists()

    s3.create_bucket.assert_awaited_once_with(Bucket="backups")


@pytest.mark.asyncio
async def test_bucket_check_denied(session, s3):
    s3.head_bucket.side_effect = client_error("403", "HeadBucket")

    with pytest.raises(ObjectStoreError):
        await make_store(session).ensure_container_exists()


@pytest.mark.asyncio
async def test_download(session, s3):
    body = MagicMock()
    body.read = AsyncMock(return_value=b"encrypted")
    s3.get_object.return_value = {"Body": body}

    assert await make_store(session).download("backup-2026-02-11T06-00-00.enc") == b"encrypted"


@pytest.mark.asyncio
async def test_download_missing(session, s3):
    s3.get_object.side_effect = client_error("NoSuchKey", "GetObject")

    with pytest.raises(BackupNotFoundError):
        await make_store(session).download("backup-2026-02-11T06-00-00.enc")


@pytest.mark.asyncio
async def test_list_follows_pages(session, s3):
    paginator = MagicMock()
    paginator.paginate.return_value = _Pages([
        {"Contents": [{"Key": "backup-2026-02-10T06-00-00.enc", "Size": 10}]},
        {"Contents": [{"Key": "backup-2026-02-11T06-00-00.enc", "Size": 20}]},
        {},
    ])
    s3.get_paginator.return_value = paginator

    blobs = await make_store(session).list()

    assert [(b.name, b.size) for b in blobs] == [
        ("backup-2026-02-10T06-00-00.enc", 10),
        ("backup-2026-02-11T06-00-00.enc", 20),
    ]
    paginator.paginate.assert_called_once_with(Bucket="backups", Prefix="backup-")


@pytest.mark.asyncio
async def test_delete(session, s3):
    await make_store(session).delete("backup-2026-02-10T06-00-00.enc")

    s3.delete_object.assert_awaited_once_with(Bucket="backups", Key="backup-2026-02-10T06-00-00.enc")


@pytest.mark.asyncio
async def test_unreachable_endpoint_on_upload(session, s3):
    s3.put_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.test")

    with pytest.raises(ObjectStoreError, match="Upload of backup-2026-02-11T06-00-00.enc failed") as exc_info:
        await make_store(session).upload("backup-2026-02-11T06-00-00.enc", b"blob")

    assert exc_info.value.stage == "object store"
    assert isinstance(exc_info.value.__cause__, EndpointConnectionError)


@pytest.mark.asyncio
async def test_unreachable_endpoint_on_bucket_check(session, s3):
    s3.head_bucket.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.test")

    with pytest.raises(ObjectStoreError):
        await make_store(session).ensure_container_exists()


@pytest.mark.asyncio
async def test_download_denied(session, s3):
    s3.get_object.side_effect = client_error("AccessDenied", "GetObject")

    with pytest.raises(ObjectStoreError) as exc_info:
        await make_store(session).download("backup-2026-02-11T06-00-00.enc")

    assert not isinstance(exc_info.value, BackupNotFoundError)


@pytest.mark.asyncio
async def test_list_failure(session, s3):
    paginator = MagicMock()
    paginator.paginate.side_effect = client_error("AccessDenied", "ListObjectsV2")
    s3.get_paginator.return_value = paginator

    with pytest.raises(ObjectStoreError, match="Listing backups failed"):
        await make_store(session).list()


@pytest.mark.asyncio
async def test_delete_failure(session, s3):
    s3.delete_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.test")

    with pytest.raises(ObjectStoreError):
        await make_store(session).delete("backup-2026-02-10T06-00-00.enc")
