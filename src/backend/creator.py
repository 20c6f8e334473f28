from __future__ import annotations

import logging
from typing import Any, Dict, List

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from common import terminal

from .clients import AwsClients, call, describe_error, error_code, get_account_id
from .errors import BackendError, ResourceConflictError
from .models import BackendDescriptor, SetupSettings, STATE_KEY
from .probe import bucket_exists, table_exists


logger = logging.getLogger(__name__)

# us-east-1 rejects an explicit LocationConstraint; every other region requires one
DEFAULT_AWS_REGION = "us-east-1"

LOCK_KEY_ATTRIBUTE = "LockID"
SSE_ALGORITHM = "AES256"
TABLE_WAIT_DELAY = 5
TABLE_WAIT_MAX_ATTEMPTS = 60

RESOURCE_TAGS: Dict[str, str] = {
    "ManagedBy": "tfstate-bootstrap",
    "Purpose": "terraform-state",
}


def derive_bucket_name(prefix: str, account_id: str, region: str) -> str:
    return f"{prefix}-{account_id}-{region}"


def _tag_list() -> List[Dict[str, str]]:
    return [{"Key": k, "Value": v} for k, v in RESOURCE_TAGS.items()]


def create_bucket_request(name: str, region: str) -> Dict[str, Any]:
    """Build the CreateBucket arguments for a region."""
    req: Dict[str, Any] = {"Bucket": name}
    if region != DEFAULT_AWS_REGION:
        req["CreateBucketConfiguration"] = {"LocationConstraint": region}
    return req


def create_bucket(s3: Any, name: str, region: str) -> bool:
    """Create the state bucket. Returns False if the caller already owns it."""
    terminal.detail(f"Creating S3 bucket: {name}")
    try:
        s3.create_bucket(**create_bucket_request(name, region))
    except ClientError as e:
        code = error_code(e)
        if code == "BucketAlreadyOwnedByYou":
            terminal.warn(f"S3 bucket {name} already exists")
            return False
        if code == "BucketAlreadyExists":
            raise ResourceConflictError(
                f"S3 bucket name {name} is already taken by another account; choose a different --bucket-prefix"
            ) from e
        raise BackendError(f"Creating S3 bucket {name} failed ({describe_error(e)})") from e
    except BotoCoreError as e:
        raise BackendError(f"Creating S3 bucket {name} failed ({e})") from e

    call("Tagging S3 bucket", s3.put_bucket_tagging, Bucket=name, Tagging={"TagSet": _tag_list()})
    terminal.success(f"S3 bucket created: {name}")
    return True


def configure_bucket(s3: Any, name: str) -> None:
    """Apply versioning, default encryption and the public-access block.

    Every call is a full PUT of the setting, so this is safe to repeat.
    """
    terminal.detail("Configuring S3 bucket security settings...")

    call(
        "Enabling S3 bucket versioning",
        s3.put_bucket_versioning,
        Bucket=name,
        VersioningConfiguration={"Status": "Enabled"},
    )
    call(
        "Enabling S3 bucket encryption",
        s3.put_bucket_encryption,
        Bucket=name,
        ServerSideEncryptionConfiguration={
            "Rules": [
                {
                    "ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": SSE_ALGORITHM},
                    "BucketKeyEnabled": True,
                }
            ]
        },
    )
    call(
        "Blocking public access",
        s3.put_public_access_block,
        Bucket=name,
        PublicAccessBlockConfiguration={
            "BlockPublicAcls": True,
            "IgnorePublicAcls": True,
            "BlockPublicPolicy": True,
            "RestrictPublicBuckets": True,
        },
    )
    terminal.success("S3 bucket security configured")


def create_table(dynamodb: Any, name: str) -> bool:
    """Create the lock table. Returns False if it already exists."""
    terminal.detail(f"Creating DynamoDB table: {name}")
    try:
        dynamodb.create_table(
            TableName=name,
            AttributeDefinitions=[{"AttributeName": LOCK_KEY_ATTRIBUTE, "AttributeType": "S"}],
            KeySchema=[{"AttributeName": LOCK_KEY_ATTRIBUTE, "KeyType": "HASH"}],
            BillingMode="PAY_PER_REQUEST",
            Tags=_tag_list(),
        )
    except ClientError as e:
        if error_code(e) == "ResourceInUseException":
            terminal.warn(f"DynamoDB table {name} already exists")
            return False
        raise BackendError(f"Creating DynamoDB table {name} failed ({describe_error(e)})") from e
    except BotoCoreError as e:
        raise BackendError(f"Creating DynamoDB table {name} failed ({e})") from e
    return True


def wait_for_table(dynamodb: Any, name: str, *, exists: bool = True) -> None:
    """Block until the table is ACTIVE (or gone, with exists=False)."""
    waiter_name = "table_exists" if exists else "table_not_exists"
    try:
        dynamodb.get_waiter(waiter_name).wait(
            TableName=name,
            WaiterConfig={"Delay": TABLE_WAIT_DELAY, "MaxAttempts": TABLE_WAIT_MAX_ATTEMPTS},
        )
    except WaiterError as e:
        state = "active" if exists else "deleted"
        raise BackendError(f"Timed out waiting for DynamoDB table {name} to be {state} ({e})") from e
    except BotoCoreError as e:
        raise BackendError(f"Waiting for DynamoDB table {name} failed ({e})") from e


def ensure_backend(settings: SetupSettings, clients: AwsClients) -> BackendDescriptor:
    """Create (or adopt) the state bucket and lock table for `settings`.

    Each step is idempotent; re-running after a partial failure converges on
    the same end state. Nothing is rolled back on failure.
    """
    terminal.detail("Checking AWS credentials...")
    account_id = get_account_id(clients.sts)
    terminal.success("AWS credentials validated")

    bucket = derive_bucket_name(settings.bucket_prefix, account_id, settings.region)
    if len(bucket) > 63:
        raise BackendError(
            f"Derived bucket name {bucket} exceeds 63 characters; use a shorter --bucket-prefix"
        )

    terminal.header("Starting Terraform state backend setup")
    terminal.detail(f"AWS Account ID: {account_id}")
    terminal.detail(f"Region: {settings.region}")
    terminal.detail(f"S3 Bucket: {bucket}")
    terminal.detail(f"DynamoDB Table: {settings.table_name}")

    if bucket_exists(clients.s3, bucket):
        terminal.warn(f"S3 bucket {bucket} already exists")
    else:
        create_bucket(clients.s3, bucket, settings.region)
    configure_bucket(clients.s3, bucket)

    table = settings.table_name
    if table_exists(clients.dynamodb, table):
        terminal.warn(f"DynamoDB table {table} already exists")
    else:
        create_table(clients.dynamodb, table)
    terminal.detail("Waiting for DynamoDB table to be active...")
    wait_for_table(clients.dynamodb, table)
    terminal.success(f"DynamoDB table ready: {table}")

    logger.debug("Backend ready: bucket=%s table=%s region=%s", bucket, table, settings.region)
    return BackendDescriptor(
        bucket=bucket,
        table=table,
        region=settings.region,
        key=STATE_KEY,
        account_id=account_id,
    )
