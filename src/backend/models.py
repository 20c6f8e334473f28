from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_BUCKET_PREFIX = "terraform-state"
DEFAULT_TABLE = "terraform-state-lock"
DEFAULT_REGION = "eu-north-1"
DEFAULT_BACKEND_FILE = "backend.tf"

# Object key of the state file inside the bucket; fixed for every backend
STATE_KEY = "eks-cluster/terraform.tfstate"

_REGION_PATTERN = r"^[a-z]{2}(-[a-z]+)+-\d+$"


class SetupSettings(BaseModel):
    """
    Inputs for a single `setup-backend` run.

    Fields
    - bucket_prefix: leading part of the bucket name; the account id and region
      are appended to make it globally unique.
    - region: AWS region for both the bucket and the lock table.
    - table_name: DynamoDB lock table name.
    - profile: optional named AWS profile (None uses the default chain).
    - backend_file: path of the generated backend configuration fragment.
    """

    model_config = ConfigDict(frozen=True)

    bucket_prefix: str = Field(
        default=DEFAULT_BUCKET_PREFIX,
        pattern=r"^[a-z0-9][a-z0-9-]*$",
        description="S3 bucket prefix",
    )
    region: str = Field(default=DEFAULT_REGION, pattern=_REGION_PATTERN)
    table_name: str = Field(
        default=DEFAULT_TABLE,
        pattern=r"^[A-Za-z0-9_.-]{3,255}$",
        description="DynamoDB lock table name",
    )
    profile: Optional[str] = None
    backend_file: Path = Path(DEFAULT_BACKEND_FILE)


class TeardownSettings(BaseModel):
    """Inputs for a single `cleanup-backend` run.

    `region` may be left unset, in which case the region recorded in the
    backend fragment is used.
    """

    model_config = ConfigDict(frozen=True)

    region: Optional[str] = Field(default=None, pattern=_REGION_PATTERN)
    profile: Optional[str] = None
    force: bool = False
    backend_file: Path = Path(DEFAULT_BACKEND_FILE)


class BackendDescriptor(BaseModel):
    """The remote backend a fragment points at."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    table: str
    region: str
    key: str = STATE_KEY
    account_id: Optional[str] = None
