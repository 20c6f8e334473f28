from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, ProfileNotFound

from .errors import BackendError, CredentialsError


logger = logging.getLogger(__name__)


@dataclass
class AwsClients:
    s3: Any
    dynamodb: Any
    sts: Any


def build_clients(region: str, profile: Optional[str] = None) -> AwsClients:
    """Create S3, DynamoDB and STS clients bound to one region and profile."""
    try:
        session = boto3.Session(profile_name=profile or None, region_name=region)
    except ProfileNotFound as e:
        raise CredentialsError(f"AWS profile not found: {profile}") from e
    logger.debug("Created boto3 session (profile=%s, region=%s)", profile, region)
    return AwsClients(
        s3=session.client("s3"),
        dynamodb=session.client("dynamodb"),
        sts=session.client("sts"),
    )


def error_code(e: ClientError) -> Optional[str]:
    return e.response.get("Error", {}).get("Code")


def describe_error(e: Exception) -> str:
    if isinstance(e, ClientError):
        err = e.response.get("Error", {})
        code = err.get("Code") or "Unknown"
        msg = err.get("Message")
        return f"{code}: {msg}" if msg else code
    return str(e)


def get_account_id(sts: Any) -> str:
    """Return the AWS account id of the caller.

    This is the only hard precondition of a run: any failure here means the
    credentials are missing or invalid.
    """
    try:
        resp = sts.get_caller_identity()
    except (ClientError, NoCredentialsError, BotoCoreError) as e:
        raise CredentialsError(
            f"Failed to get AWS account ID. Please check your AWS credentials. ({describe_error(e)})"
        ) from e
    account = resp.get("Account")
    if not account:
        raise CredentialsError("Failed to get AWS account ID: empty identity response.")
    return str(account)


def call(action: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
    """Invoke an AWS API call, wrapping provider failures in BackendError."""
    logger.debug("%s: %s", action, kwargs)
    try:
        return fn(**kwargs)
    except (ClientError, BotoCoreError) as e:
        raise BackendError(f"{action} failed ({describe_error(e)})") from e
