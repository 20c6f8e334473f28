"""
Remote state backend (S3 bucket + DynamoDB lock table) lifecycle.

Modules:
- probe: existence checks that distinguish "absent" from "unknown"
- creator: idempotent bucket/table creation
- fragment: generated backend.tf rendering and parsing
- destroyer: empty/delete resources and revert to local state
"""

from .errors import (
    BackendConfigError,
    BackendError,
    CredentialsError,
    ProbeError,
    ResourceConflictError,
)
from .models import BackendDescriptor, SetupSettings, TeardownSettings, STATE_KEY

__all__ = [
    "BackendConfigError",
    "BackendDescriptor",
    "BackendError",
    "CredentialsError",
    "ProbeError",
    "ResourceConflictError",
    "STATE_KEY",
    "SetupSettings",
    "TeardownSettings",
]
