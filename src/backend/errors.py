from __future__ import annotations


class BackendError(RuntimeError):
    """Base error for state backend provisioning."""


class CredentialsError(BackendError):
    """AWS credentials are missing, invalid, or the profile does not exist."""

    hint = "Please run 'aws configure' or set up your credentials."

    def __str__(self) -> str:
        return f"{super().__str__()}\n{self.hint}"


class ProbeError(BackendError):
    """Existence check failed for a reason other than confirmed absence."""


class ResourceConflictError(BackendError):
    """A resource name is already taken by another account."""


class BackendConfigError(BackendError):
    """The backend configuration fragment is missing or cannot be parsed."""
