from __future__ import annotations

import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError, WaiterError


def pytest_configure():
    # Ensure `src/` is importable as top-level for `backend.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


def _client_error(code: str, op: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, op)


# --- In-memory stand-ins for the boto3 clients the backend uses ---


class FakeS3:
    def __init__(self, *, page_size: int = 1000) -> None:
        self.buckets: Dict[str, Dict[str, Any]] = {}
        self.foreign_buckets: set[str] = set()
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.head_error: Optional[str] = None
        self.page_size = page_size

    def _record(self, op: str, **kwargs: Any) -> None:
        self.calls.append((op, kwargs))

    def ops(self) -> List[str]:
        return [op for op, _ in self.calls]

    def _bucket(self, name: str, op: str) -> Dict[str, Any]:
        if name not in self.buckets:
            raise _client_error("NoSuchBucket", op, "The specified bucket does not exist")
        return self.buckets[name]

    def seed_objects(self, bucket: str, *, versions: int = 0, delete_markers: int = 0) -> None:
        b = self._bucket(bucket, "Seed")
        b["versions"].extend({"Key": f"obj-{i}", "VersionId": f"v{i}"} for i in range(versions))
        b["delete_markers"].extend({"Key": f"gone-{i}", "VersionId": f"m{i}"} for i in range(delete_markers))

    def head_bucket(self, *, Bucket: str):
        self._record("head_bucket", Bucket=Bucket)
        if self.head_error:
            raise _client_error(self.head_error, "HeadBucket")
        if Bucket not in self.buckets:
            raise _client_error("404", "HeadBucket", "Not Found")
        return {}

    def create_bucket(self, *, Bucket: str, CreateBucketConfiguration: Optional[Dict[str, str]] = None):
        self._record("create_bucket", Bucket=Bucket, CreateBucketConfiguration=CreateBucketConfiguration)
        if Bucket in self.foreign_buckets:
            raise _client_error("BucketAlreadyExists", "CreateBucket")
        if Bucket in self.buckets:
            raise _client_error("BucketAlreadyOwnedByYou", "CreateBucket")
        self.buckets[Bucket] = {
            "location": (CreateBucketConfiguration or {}).get("LocationConstraint"),
            "versioning": None,
            "encryption": None,
            "public_access_block": None,
            "tags": None,
            "versions": [],
            "delete_markers": [],
        }
        return {"Location": f"/{Bucket}"}

    def put_bucket_tagging(self, *, Bucket: str, Tagging: Dict[str, Any]):
        self._record("put_bucket_tagging", Bucket=Bucket)
        self._bucket(Bucket, "PutBucketTagging")["tags"] = Tagging["TagSet"]
        return {}

    def put_bucket_versioning(self, *, Bucket: str, VersioningConfiguration: Dict[str, str]):
        self._record("put_bucket_versioning", Bucket=Bucket)
        self._bucket(Bucket, "PutBucketVersioning")["versioning"] = VersioningConfiguration["Status"]
        return {}

    def put_bucket_encryption(self, *, Bucket: str, ServerSideEncryptionConfiguration: Dict[str, Any]):
        self._record("put_bucket_encryption", Bucket=Bucket)
        rule = ServerSideEncryptionConfiguration["Rules"][0]
        self._bucket(Bucket, "PutBucketEncryption")["encryption"] = rule[
            "ApplyServerSideEncryptionByDefault"
        ]["SSEAlgorithm"]
        return {}

    def put_public_access_block(self, *, Bucket: str, PublicAccessBlockConfiguration: Dict[str, bool]):
        self._record("put_public_access_block", Bucket=Bucket)
        self._bucket(Bucket, "PutPublicAccessBlock")["public_access_block"] = dict(
            PublicAccessBlockConfiguration
        )
        return {}

    def get_paginator(self, name: str):
        assert name == "list_object_versions"
        return _FakeVersionPaginator(self)

    def delete_objects(self, *, Bucket: str, Delete: Dict[str, Any]):
        objects = Delete["Objects"]
        self._record("delete_objects", Bucket=Bucket, count=len(objects))
        assert len(objects) <= 1000
        b = self._bucket(Bucket, "DeleteObjects")
        doomed = {(o["Key"], o["VersionId"]) for o in objects}
        for field in ("versions", "delete_markers"):
            b[field] = [o for o in b[field] if (o["Key"], o["VersionId"]) not in doomed]
        return {"Deleted": objects}

    def delete_bucket(self, *, Bucket: str):
        self._record("delete_bucket", Bucket=Bucket)
        b = self._bucket(Bucket, "DeleteBucket")
        if b["versions"] or b["delete_markers"]:
            raise _client_error("BucketNotEmpty", "DeleteBucket")
        del self.buckets[Bucket]
        return {}


class _FakeVersionPaginator:
    def __init__(self, s3: FakeS3) -> None:
        self._s3 = s3

    def paginate(self, *, Bucket: str):
        self._s3._record("list_object_versions", Bucket=Bucket)
        b = self._s3._bucket(Bucket, "ListObjectVersions")
        # Snapshot so deletions during iteration do not shift pages
        items = [("Versions", o) for o in b["versions"]] + [("DeleteMarkers", o) for o in b["delete_markers"]]
        size = self._s3.page_size
        if not items:
            yield {}
            return
        for start in range(0, len(items), size):
            page: Dict[str, List[Dict[str, str]]] = {"Versions": [], "DeleteMarkers": []}
            for field, obj in items[start : start + size]:
                page[field].append(dict(obj))
            yield page


class FakeDynamoDB:
    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.waits: List[Tuple[str, str]] = []
        self.describe_error: Optional[str] = None
        self.waiter_fails = False
        self.delete_error: Optional[str] = None

    def ops(self) -> List[str]:
        return [op for op, _ in self.calls]

    def describe_table(self, *, TableName: str):
        self.calls.append(("describe_table", {"TableName": TableName}))
        if self.describe_error:
            raise _client_error(self.describe_error, "DescribeTable")
        if TableName not in self.tables:
            raise _client_error("ResourceNotFoundException", "DescribeTable")
        return {"Table": dict(self.tables[TableName], TableStatus="ACTIVE")}

    def create_table(self, **kwargs: Any):
        self.calls.append(("create_table", kwargs))
        name = kwargs["TableName"]
        if name in self.tables:
            raise _client_error("ResourceInUseException", "CreateTable")
        self.tables[name] = dict(kwargs)
        return {"TableDescription": {"TableName": name, "TableStatus": "CREATING"}}

    def delete_table(self, *, TableName: str):
        self.calls.append(("delete_table", {"TableName": TableName}))
        if self.delete_error:
            raise _client_error(self.delete_error, "DeleteTable")
        if TableName not in self.tables:
            raise _client_error("ResourceNotFoundException", "DeleteTable")
        del self.tables[TableName]
        return {"TableDescription": {"TableName": TableName, "TableStatus": "DELETING"}}

    def get_waiter(self, name: str):
        return _FakeWaiter(self, name)


class _FakeWaiter:
    def __init__(self, ddb: FakeDynamoDB, name: str) -> None:
        self._ddb = ddb
        self._name = name

    def wait(self, *, TableName: str, WaiterConfig: Optional[Dict[str, int]] = None):  # noqa: ARG002
        self._ddb.waits.append((self._name, TableName))
        if self._ddb.waiter_fails:
            raise WaiterError(name=self._name, reason="Max attempts exceeded", last_response={})


class FakeSTS:
    def __init__(self, account_id: str = "123456789012") -> None:
        self.account_id = account_id
        self.error: Optional[str] = None
        self.calls = 0

    def get_caller_identity(self):
        self.calls += 1
        if self.error:
            raise _client_error(self.error, "GetCallerIdentity", "The security token included in the request is invalid")
        return {"Account": self.account_id, "Arn": f"arn:aws:iam::{self.account_id}:user/ci", "UserId": "AIDA"}


class FakeAws:
    def __init__(self) -> None:
        self.s3 = FakeS3()
        self.dynamodb = FakeDynamoDB()
        self.sts = FakeSTS()
        self.factory_calls: List[Tuple[str, Optional[str]]] = []

    def clients(self):
        from backend.clients import AwsClients

        return AwsClients(s3=self.s3, dynamodb=self.dynamodb, sts=self.sts)

    def factory(self, region: str, profile: Optional[str] = None):
        self.factory_calls.append((region, profile))
        return self.clients()

    def destructive_calls(self) -> List[str]:
        destructive = {"delete_objects", "delete_bucket", "delete_table"}
        return [op for op in self.s3.ops() + self.dynamodb.ops() if op in destructive]


@pytest.fixture
def aws() -> FakeAws:
    return FakeAws()
