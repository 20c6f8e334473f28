from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from .clients import describe_error, error_code
from .errors import ProbeError


# Codes that confirm absence. Anything else (403, throttling, expired
# credentials) leaves existence undetermined.
_BUCKET_ABSENT = ("404", "NoSuchBucket", "NotFound")
_TABLE_ABSENT = ("ResourceNotFoundException",)


def bucket_exists(s3: Any, name: str) -> bool:
    """Return True if the bucket exists and is reachable by the caller.

    Raises ProbeError when the answer cannot be determined, e.g. a 403 for a
    bucket owned by another account.
    """
    try:
        s3.head_bucket(Bucket=name)
    except ClientError as e:
        if error_code(e) in _BUCKET_ABSENT:
            return False
        raise ProbeError(
            f"Could not determine whether S3 bucket {name} exists ({describe_error(e)})"
        ) from e
    except BotoCoreError as e:
        raise ProbeError(f"Could not determine whether S3 bucket {name} exists ({e})") from e
    return True


def table_exists(dynamodb: Any, name: str) -> bool:
    try:
        dynamodb.describe_table(TableName=name)
    except ClientError as e:
        if error_code(e) in _TABLE_ABSENT:
            return False
        raise ProbeError(
            f"Could not determine whether DynamoDB table {name} exists ({describe_error(e)})"
        ) from e
    except BotoCoreError as e:
        raise ProbeError(f"Could not determine whether DynamoDB table {name} exists ({e})") from e
    return True
