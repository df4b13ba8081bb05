from __future__ import annotations

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from app.config import R2Config
from app.services.r2_client import R2Storage
from app.services.storage import (
    InvalidStorageKeyError,
    ObjectNotFoundError,
    StorageError,
    StorageNotConfiguredError,
)


def _client_error(code: str, op: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


@pytest.fixture()
def r2():
    client = MagicMock()
    storage = R2Storage(
        client,
        "docs",
        endpoint="https://acct.r2.cloudflarestorage.com",
        signed_url_ttl=900,
    )
    return storage, client


def test_exists_true_and_false(r2) -> None:
    storage, client = r2
    assert storage.exists("k.pdf") is True
    client.head_object.assert_called_once_with(Bucket="docs", Key="k.pdf")

    client.head_object.side_effect = _client_error("404")
    assert storage.exists("k.pdf") is False


def test_exists_propagates_other_errors(r2) -> None:
    storage, client = r2
    client.head_object.side_effect = _client_error("403")
    with pytest.raises(StorageError):
        storage.exists("k.pdf")


def test_write_object_returns_public_url(r2) -> None:
    storage, client = r2
    url = storage.write_object("uploads/documents/a@b.com/cv.pdf", b"%PDF", "application/pdf")

    client.put_object.assert_called_once_with(
        Bucket="docs",
        Key="uploads/documents/a@b.com/cv.pdf",
        Body=b"%PDF",
        ContentType="application/pdf",
    )
    assert url == "https://acct.r2.cloudflarestorage.com/docs/uploads/documents/a@b.com/cv.pdf"

    storage.public_base = "https://files.example.com/"
    assert storage.public_url_for("/a.txt") == "https://files.example.com/a.txt"


def test_write_object_failure_raises(r2) -> None:
    storage, client = r2
    client.put_object.side_effect = _client_error("500", "PutObject")
    with pytest.raises(StorageError):
        storage.write_object("k.pdf", b"x", "application/pdf")


def test_signed_read_url(r2) -> None:
    storage, client = r2
    client.generate_presigned_url.return_value = "https://signed"

    assert storage.signed_read_url("k.pdf") == "https://signed"
    client.generate_presigned_url.assert_called_once_with(
        ClientMethod="get_object",
        Params={"Bucket": "docs", "Key": "k.pdf"},
        ExpiresIn=900,
        HttpMethod="GET",
    )


def test_signed_read_url_missing(r2) -> None:
    storage, client = r2
    client.head_object.side_effect = _client_error("NotFound")
    with pytest.raises(ObjectNotFoundError):
        storage.signed_read_url("k.pdf", 60)
    client.generate_presigned_url.assert_not_called()


def test_delete_object(r2) -> None:
    storage, client = r2
    assert storage.delete_object("k.pdf") is True
    client.delete_object.assert_called_once_with(Bucket="docs", Key="k.pdf")

    client.reset_mock()
    client.head_object.side_effect = _client_error("404")
    assert storage.delete_object("k.pdf") is False
    client.delete_object.assert_not_called()


def test_delete_prefix_walks_all_pages(r2) -> None:
    storage, client = r2
    paginator = client.get_paginator.return_value
    paginator.paginate.return_value = [
        {"Contents": [{"Key": "p/a.pdf"}, {"Key": "p/b.pdf"}]},
        {"Contents": [{"Key": "p/c.pdf"}]},
        {},
    ]

    assert storage.delete_prefix("p/") is True
    client.get_paginator.assert_called_once_with("list_objects_v2")
    paginator.paginate.assert_called_once_with(Bucket="docs", Prefix="p/")
    deleted = sorted(call.kwargs["Key"] for call in client.delete_object.call_args_list)
    assert deleted == ["p/a.pdf", "p/b.pdf", "p/c.pdf"]


def test_delete_prefix_reports_partial_failure(r2) -> None:
    storage, client = r2
    client.get_paginator.return_value.paginate.return_value = [
        {"Contents": [{"Key": "p/a.pdf"}, {"Key": "p/b.pdf"}]},
    ]

    def _delete(Bucket: str, Key: str) -> None:
        if Key == "p/b.pdf":
            raise _client_error("AccessDenied", "DeleteObject")

    client.delete_object.side_effect = _delete
    with pytest.raises(StorageError):
        storage.delete_prefix("p/")


def test_read_object(r2) -> None:
    storage, client = r2
    client.get_object.return_value = {"Body": io.BytesIO(b"hello")}
    assert storage.read_object("k.txt") == b"hello"

    client.get_object.side_effect = _client_error("NoSuchKey", "GetObject")
    with pytest.raises(ObjectNotFoundError):
        storage.read_object("k.txt")


def test_from_config_requires_credentials() -> None:
    with pytest.raises(StorageNotConfiguredError):
        R2Storage.from_config(R2Config(endpoint="https://r2.example.com", bucket="docs"))


def test_delete_prefix_rejects_empty_prefix(r2) -> None:
    storage, client = r2
    with pytest.raises(InvalidStorageKeyError):
        storage.delete_prefix("")
    client.get_paginator.assert_not_called()
