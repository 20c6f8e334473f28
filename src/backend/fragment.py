"""
Generated `backend.tf` fragment.

The fragment has exactly two shapes:
- remote: an active `backend "s3"` block plus a `locals` block mirroring the
  same values. Teardown reads the resource names back from the locals.
- local: the backend block fully commented out, so the engine falls back to
  local state, with a pointer to `setup-backend`.

The file is always rewritten wholesale; it is generated, never hand-edited.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional

from .errors import BackendConfigError
from .models import BackendDescriptor, STATE_KEY


logger = logging.getLogger(__name__)

_REMOTE_TEMPLATE = """\
# Terraform Backend Configuration
# This file configures remote state storage in S3 with DynamoDB locking

terraform {{
  backend "s3" {{
    bucket         = "{bucket}"
    key            = "{key}"
    region         = "{region}"
    dynamodb_table = "{table}"
    encrypt        = true
  }}
}}

# Local values for reference
locals {{
  backend_bucket_name = "{bucket}"
  backend_key         = "{key}"
  backend_region      = "{region}"
  backend_table       = "{table}"
}}
"""

LOCAL_TEMPLATE = f"""\
# Local backend configuration
# Remote state backend has been removed

# Uncomment the block below to re-enable remote state:
# terraform {{
#   backend "s3" {{
#     bucket         = "your-terraform-state-bucket"
#     key            = "{STATE_KEY}"
#     region         = "us-west-2"
#     dynamodb_table = "terraform-state-lock"
#     encrypt        = true
#   }}
# }}

# To set up a new backend, run: setup-backend
"""

# Only uncommented assignments count
_LOCAL_VALUE = re.compile(r'^[ \t]*(backend_[a-z_]+)[ \t]*=[ \t]*"([^"]*)"', re.MULTILINE)


def render_remote(descriptor: BackendDescriptor) -> str:
    return _REMOTE_TEMPLATE.format(
        bucket=descriptor.bucket,
        key=descriptor.key,
        region=descriptor.region,
        table=descriptor.table,
    )


def render_local() -> str:
    return LOCAL_TEMPLATE


def _write(path: os.PathLike[str] | str, content: str) -> Path:
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
    except OSError as e:
        raise BackendConfigError(f"Could not write backend configuration {p}: {e}") from e
    logger.debug("Wrote %d bytes to %s", len(content), p)
    return p


def write_backend_config(descriptor: BackendDescriptor, path: os.PathLike[str] | str) -> Path:
    """Overwrite `path` with the remote-backend shape for `descriptor`."""
    return _write(path, render_remote(descriptor))


def write_local_config(path: os.PathLike[str] | str) -> Path:
    """Overwrite `path` with the commented-out local-state shape."""
    return _write(path, render_local())


def parse_backend_config(text: str) -> BackendDescriptor:
    values: Dict[str, str] = {}
    for m in _LOCAL_VALUE.finditer(text):
        values.setdefault(m.group(1), m.group(2))

    bucket: Optional[str] = values.get("backend_bucket_name")
    table: Optional[str] = values.get("backend_table")
    if not bucket or not table:
        raise BackendConfigError("Could not parse backend configuration: bucket or table name missing")

    return BackendDescriptor(
        bucket=bucket,
        table=table,
        region=values.get("backend_region") or "",
        key=values.get("backend_key") or STATE_KEY,
    )


def read_backend_config(path: os.PathLike[str] | str) -> BackendDescriptor:
    """Read the resource names recorded by the last successful setup."""
    p = Path(path)
    if not p.is_file():
        raise BackendConfigError(
            f"{p} file not found. Cannot determine backend resources. "
            "Please run this command from the directory containing the backend configuration"
        )
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise BackendConfigError(f"Could not read backend configuration {p}: {e}") from e
    return parse_backend_config(text)
