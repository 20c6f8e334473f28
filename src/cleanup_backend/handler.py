from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from backend.clients import build_clients
from backend.destroyer import CONFIRMATION_TOKEN, TeardownResult, teardown_backend
from backend.errors import BackendError
from backend.models import DEFAULT_BACKEND_FILE, TeardownSettings
from common import terminal


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _confirm() -> Optional[str]:
    return terminal.prompt(
        text=f"Are you sure you want to continue? Type '{CONFIRMATION_TOKEN}' to confirm"
    )


def _display_summary(result: TeardownResult) -> None:
    terminal.print("")
    terminal.success("Backend cleanup completed!")
    terminal.print("")
    terminal.print("Resources Removed:")
    if result.bucket_deleted:
        terminal.print(f"  - S3 Bucket:      {result.descriptor.bucket} ({result.objects_deleted} object versions)")
    if result.table_deleted:
        terminal.print(f"  - DynamoDB Table: {result.descriptor.table}")
    if not (result.bucket_deleted or result.table_deleted):
        terminal.print("  (nothing to remove)")
    terminal.print("")
    terminal.print("Important Notes:")
    terminal.print("  - Terraform state is now local (terraform.tfstate)")
    terminal.print("  - Remote state history has been permanently deleted")
    terminal.print("  - You can set up a new backend with: setup-backend")
    terminal.print("")
    terminal.print("Next Steps:")
    terminal.print("  1. Run 'tofu init' to reinitialize with local backend")
    terminal.print("  2. Verify your infrastructure state with 'tofu plan'")
    terminal.print("  3. Set up a new remote backend if needed")


@click.command(
    context_settings=CONTEXT_SETTINGS,
    help="Delete the S3 bucket and DynamoDB table recorded in the backend configuration.",
    epilog="Example: cleanup-backend --region us-east-1 --profile my-aws-profile",
)
@click.option(
    "-r",
    "--region",
    default=None,
    envvar="TFSTATE_REGION",
    help="AWS region (default: the region recorded in the backend configuration).",
)
@click.option("-p", "--profile", default=None, envvar="AWS_PROFILE", help="AWS profile to use.")
@click.option("-f", "--force", is_flag=True, help="Skip confirmation prompts.")
@click.option(
    "--backend-file",
    default=DEFAULT_BACKEND_FILE,
    show_default=True,
    envvar="TFSTATE_BACKEND_FILE",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Backend configuration file to read and reset.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(
    region: Optional[str],
    profile: Optional[str],
    force: bool,
    backend_file: Path,
    verbose: bool,
) -> None:
    terminal.configure_logging(verbose)

    try:
        settings = TeardownSettings(region=region, profile=profile, force=force, backend_file=backend_file)
    except ValidationError as e:
        terminal.error(f"Invalid arguments: {e}")

    if settings.profile:
        terminal.detail(f"Using AWS profile: {settings.profile}")

    try:
        result = teardown_backend(settings, confirm=_confirm, clients_factory=build_clients)
    except BackendError as e:
        terminal.error(str(e))

    if result.cancelled:
        return
    _display_summary(result)


if __name__ == "__main__":
    main()
