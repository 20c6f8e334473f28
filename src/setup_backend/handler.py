from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from backend.clients import build_clients
from backend.creator import SSE_ALGORITHM, ensure_backend
from backend.errors import BackendError
from backend.fragment import write_backend_config
from backend.models import (
    BackendDescriptor,
    DEFAULT_BACKEND_FILE,
    DEFAULT_BUCKET_PREFIX,
    DEFAULT_REGION,
    DEFAULT_TABLE,
    SetupSettings,
)
from common import terminal


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _display_summary(descriptor: BackendDescriptor, backend_file: Path) -> None:
    terminal.print("")
    terminal.success("Terraform state backend setup completed!")
    terminal.print("")
    terminal.print("Backend Configuration:")
    terminal.print(f"  S3 Bucket:      {descriptor.bucket}")
    terminal.print(f"  DynamoDB Table: {descriptor.table}")
    terminal.print(f"  Region:         {descriptor.region}")
    terminal.print(f"  State Key:      {descriptor.key}")
    terminal.detail(f"  Written to:     {backend_file}", dim=False)
    terminal.print("")
    terminal.print("Security Features:")
    terminal.print("  - S3 Bucket Versioning Enabled")
    terminal.print(f"  - S3 Server-Side Encryption ({SSE_ALGORITHM})")
    terminal.print("  - S3 Public Access Blocked")
    terminal.print("  - DynamoDB State Locking")
    terminal.print("")
    terminal.print("Next Steps:")
    terminal.print("  1. Run 'tofu init' to initialize the backend")
    terminal.print("  2. When prompted, type 'yes' to migrate existing state")
    terminal.print("  3. Deploy your infrastructure with 'tofu apply'")
    terminal.print("")
    terminal.print("To clean up backend resources:")
    terminal.print(f"  cleanup-backend --region {descriptor.region}")


def run(settings: SetupSettings) -> BackendDescriptor:
    if settings.profile:
        terminal.detail(f"Using AWS profile: {settings.profile}")
    clients = build_clients(settings.region, settings.profile)
    descriptor = ensure_backend(settings, clients)

    terminal.detail("Updating backend configuration...")
    path = write_backend_config(descriptor, settings.backend_file)
    terminal.success(f"Backend configuration updated in {path}")
    return descriptor


@click.command(
    context_settings=CONTEXT_SETTINGS,
    help="Create the S3 bucket and DynamoDB table that store OpenTofu/Terraform state.",
    epilog="Example: setup-backend --bucket-prefix my-tf-state --region us-east-1 --profile my-aws-profile",
)
@click.option(
    "-b",
    "--bucket-prefix",
    default=DEFAULT_BUCKET_PREFIX,
    show_default=True,
    envvar="TFSTATE_BUCKET_PREFIX",
    help="S3 bucket prefix.",
)
@click.option(
    "-r",
    "--region",
    default=DEFAULT_REGION,
    show_default=True,
    envvar="TFSTATE_REGION",
    help="AWS region.",
)
@click.option(
    "-t",
    "--table",
    default=DEFAULT_TABLE,
    show_default=True,
    envvar="TFSTATE_TABLE",
    help="DynamoDB table name.",
)
@click.option("-p", "--profile", default=None, envvar="AWS_PROFILE", help="AWS profile to use.")
@click.option(
    "--backend-file",
    default=DEFAULT_BACKEND_FILE,
    show_default=True,
    envvar="TFSTATE_BACKEND_FILE",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Backend configuration file to generate.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(
    bucket_prefix: str,
    region: str,
    table: str,
    profile: Optional[str],
    backend_file: Path,
    verbose: bool,
) -> None:
    terminal.configure_logging(verbose)

    try:
        settings = SetupSettings(
            bucket_prefix=bucket_prefix,
            region=region,
            table_name=table,
            profile=profile,
            backend_file=backend_file,
        )
    except ValidationError as e:
        terminal.error(f"Invalid arguments: {e}")

    try:
        descriptor = run(settings)
    except BackendError as e:
        terminal.error(str(e))

    _display_summary(descriptor, settings.backend_file)


if __name__ == "__main__":
    main()
