from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from common import terminal

from .clients import AwsClients, build_clients, call, describe_error, error_code, get_account_id
from .creator import wait_for_table
from .errors import BackendError
from .fragment import read_backend_config, write_local_config
from .models import BackendDescriptor, TeardownSettings
from .probe import bucket_exists, table_exists


logger = logging.getLogger(__name__)

CONFIRMATION_TOKEN = "DELETE"

# DeleteObjects accepts at most this many keys per request
DELETE_BATCH_SIZE = 1000


@dataclass
class TeardownResult:
    descriptor: BackendDescriptor
    cancelled: bool = False
    bucket_deleted: bool = False
    table_deleted: bool = False
    objects_deleted: int = 0


ClientsFactory = Callable[[str, Optional[str]], AwsClients]
Confirm = Callable[[], Optional[str]]


def _delete_batch(s3: Any, bucket: str, batch: List[Dict[str, str]]) -> None:
    resp = call(
        "Deleting objects",
        s3.delete_objects,
        Bucket=bucket,
        Delete={"Objects": batch, "Quiet": True},
    )
    errors = resp.get("Errors") or []
    if errors:
        first = errors[0]
        raise BackendError(
            f"Failed to delete {len(errors)} object(s) from {bucket}, "
            f"e.g. {first.get('Key')} ({first.get('Code')}: {first.get('Message')})"
        )


def empty_bucket(s3: Any, bucket: str) -> int:
    """Delete every object version and delete marker; returns how many."""
    deleted = 0
    batch: List[Dict[str, str]] = []
    paginator = s3.get_paginator("list_object_versions")
    try:
        for page in paginator.paginate(Bucket=bucket):
            for item in page.get("Versions", []) + page.get("DeleteMarkers", []):
                batch.append({"Key": item["Key"], "VersionId": item["VersionId"]})
                if len(batch) == DELETE_BATCH_SIZE:
                    _delete_batch(s3, bucket, batch)
                    deleted += len(batch)
                    batch = []
    except (ClientError, BotoCoreError) as e:
        raise BackendError(f"Listing objects in {bucket} failed ({describe_error(e)})") from e

    if batch:
        _delete_batch(s3, bucket, batch)
        deleted += len(batch)
    logger.debug("Removed %d object versions from %s", deleted, bucket)
    return deleted


def cleanup_bucket(s3: Any, bucket: str) -> Optional[int]:
    """Empty and delete the bucket. Returns None if it was already gone."""
    terminal.detail(f"Checking if S3 bucket exists: {bucket}")
    if not bucket_exists(s3, bucket):
        terminal.warn(f"S3 bucket {bucket} does not exist")
        return None

    terminal.detail(f"Emptying S3 bucket: {bucket}")
    removed = empty_bucket(s3, bucket)

    terminal.detail(f"Deleting S3 bucket: {bucket}")
    try:
        s3.delete_bucket(Bucket=bucket)
    except ClientError as e:
        if error_code(e) in ("NoSuchBucket", "404"):
            terminal.warn(f"S3 bucket {bucket} does not exist")
            return None
        raise BackendError(f"Deleting S3 bucket {bucket} failed ({describe_error(e)})") from e
    except BotoCoreError as e:
        raise BackendError(f"Deleting S3 bucket {bucket} failed ({e})") from e
    terminal.success(f"S3 bucket deleted: {bucket}")
    return removed


def cleanup_table(dynamodb: Any, table: str) -> bool:
    """Delete the lock table and wait until it is gone."""
    terminal.detail(f"Checking if DynamoDB table exists: {table}")
    if not table_exists(dynamodb, table):
        terminal.warn(f"DynamoDB table {table} does not exist")
        return False

    terminal.detail(f"Deleting DynamoDB table: {table}")
    try:
        dynamodb.delete_table(TableName=table)
    except ClientError as e:
        if error_code(e) == "ResourceNotFoundException":
            terminal.warn(f"DynamoDB table {table} does not exist")
            return False
        raise BackendError(f"Deleting DynamoDB table {table} failed ({describe_error(e)})") from e
    except BotoCoreError as e:
        raise BackendError(f"Deleting DynamoDB table {table} failed ({e})") from e

    terminal.detail("Waiting for DynamoDB table to be deleted...")
    wait_for_table(dynamodb, table, exists=False)
    terminal.success(f"DynamoDB table deleted: {table}")
    return True


def _print_danger_banner(descriptor: BackendDescriptor) -> None:
    terminal.warn("DANGER: This will permanently delete your Terraform state backend!")
    terminal.detail(f"S3 Bucket: {descriptor.bucket}", dim=False)
    terminal.detail(f"DynamoDB Table: {descriptor.table}", dim=False)
    terminal.detail(f"Region: {descriptor.region}", dim=False)
    terminal.print("")


def teardown_backend(
    settings: TeardownSettings,
    *,
    confirm: Confirm,
    clients_factory: ClientsFactory = build_clients,
) -> TeardownResult:
    """Destroy the backend recorded in the fragment and revert it to local state.

    The bucket and table names come from the existing fragment, never from a
    fresh derivation. Unless `settings.force` is set, `confirm()` must return
    the literal CONFIRMATION_TOKEN; anything else cancels before any AWS call.
    """
    recorded = read_backend_config(settings.backend_file)
    region = settings.region or recorded.region
    if not region:
        raise BackendError("Region not recorded in backend configuration; pass --region")
    descriptor = recorded.model_copy(update={"region": region})

    _print_danger_banner(descriptor)

    if not settings.force:
        terminal.detail("Make sure you have:", dim=False)
        terminal.detail("  1. Backed up any important state files", dim=False)
        terminal.detail("  2. Destroyed all infrastructure managed by this state", dim=False)
        terminal.detail("  3. Migrated to local state if needed", dim=False)
        terminal.print("")
        answer = confirm()
        if (answer or "") != CONFIRMATION_TOKEN:
            terminal.detail("Operation cancelled.", dim=False)
            return TeardownResult(descriptor=descriptor, cancelled=True)

    clients = clients_factory(region, settings.profile)
    get_account_id(clients.sts)

    terminal.header("Cleaning up Terraform state backend")
    removed = cleanup_bucket(clients.s3, descriptor.bucket)
    table_deleted = cleanup_table(clients.dynamodb, descriptor.table)

    terminal.detail("Updating backend configuration to local state...")
    write_local_config(settings.backend_file)
    terminal.success("Backend configuration updated to use local state")

    return TeardownResult(
        descriptor=descriptor,
        bucket_deleted=removed is not None,
        table_deleted=table_deleted,
        objects_deleted=removed or 0,
    )
