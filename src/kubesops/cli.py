"""CLI entry point for kubesops."""

import sys

import click

from kubesops import __version__
from kubesops.config import DEFAULT_SECRETS_DIR
from kubesops.console import error
from kubesops.errors import KubesopsError
from kubesops.k8s.client import KubeSecretStore
from kubesops.secrets import sops_age
from kubesops.sync import driver

EPILOG = """\b
Examples:
  kubesops upload                                    # Upload all secrets (dry-run)
  kubesops --doit upload                             # Actually upload changed secrets
  kubesops --doit --force upload                     # Force upload all secrets
  kubesops --doit upload secrets/test/dotenv.env     # Upload one secret
  kubesops download                                  # Download all secrets
  kubesops download secrets/test/dotenv.env          # Download one secret
  kubesops diff                                      # Diff all (local vs remote)
  kubesops diff secrets/live/db.env secrets/test/db.env  # Diff two local files
  kubesops --verbose diff                            # Diff with full values
  kubesops manifest secrets/test                     # Print manifests for test namespace
"""


def get_store(ctx):
    """Return the secret store for this invocation, creating it on first use."""
    if ctx.obj.get("store") is None:
        ctx.obj["store"] = KubeSecretStore()
    return ctx.obj["store"]


def get_decryptor(ctx):
    if ctx.obj.get("decryptor") is None:
        ctx.obj["decryptor"] = sops_age.SopsDecryptor()
    return ctx.obj["decryptor"]


def finish(result):
    """Exit with status 1 when any secret failed."""
    if result.errors:
        sys.exit(1)


@click.group(epilog=EPILOG)
@click.version_option(version=__version__, prog_name="kubesops")
@click.option("--verbose", is_flag=True, envvar="KUBESOPS_VERBOSE", help="Show full values in diff output.")
@click.option("--force", is_flag=True, envvar="KUBESOPS_FORCE", help="Upload even if no changes are detected.")
@click.option("--doit", is_flag=True, envvar="KUBESOPS_DOIT", help="Actually perform the upload; default is dry-run.")
@click.pass_context
def main(ctx, verbose, force, doit):
    """kubesops - Manage Kubernetes secrets as encrypted dotenv files.

    Secret files live at <root>/<namespace>/<name>.env and may be encrypted
    with SOPS.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(verbose=verbose, force=force, doit=doit)


@main.command()
@click.argument("path", default=DEFAULT_SECRETS_DIR)
@click.pass_context
def upload(ctx, path):
    """Upload secrets to Kubernetes (default: secrets/)."""
    try:
        result = driver.upload(
            path,
            get_store(ctx),
            force=ctx.obj["force"],
            doit=ctx.obj["doit"],
            verbose=ctx.obj["verbose"],
            decryptor=get_decryptor(ctx),
        )
    except (KubesopsError, OSError) as e:
        error(f"Upload failed: {e}")
        sys.exit(1)
    finish(result)


@main.command()
@click.argument("path", default=DEFAULT_SECRETS_DIR)
@click.pass_context
def download(ctx, path):
    """Download secrets from Kubernetes (default: secrets/)."""
    try:
        result = driver.download(path, get_store(ctx), decryptor=get_decryptor(ctx))
    except (KubesopsError, OSError) as e:
        error(f"Download failed: {e}")
        sys.exit(1)
    finish(result)


@main.command()
@click.argument("path1", default=DEFAULT_SECRETS_DIR)
@click.argument("path2", required=False)
@click.pass_context
def diff(ctx, path1, path2):
    """Compare secrets (1 path: local vs remote, 2 paths: local vs local)."""
    verbose = ctx.obj["verbose"]
    try:
        if path2 is None:
            result = driver.upload(path1, get_store(ctx), verbose=verbose, decryptor=get_decryptor(ctx))
        else:
            result = driver.diff_local(path1, path2, verbose=verbose, decryptor=get_decryptor(ctx))
    except (KubesopsError, OSError) as e:
        error(f"Diff failed: {e}")
        sys.exit(1)
    finish(result)


@main.command()
@click.argument("path", default=DEFAULT_SECRETS_DIR)
@click.pass_context
def manifest(ctx, path):
    """Print secrets as YAML manifests (default: secrets/)."""
    try:
        result = driver.manifest(path, decryptor=get_decryptor(ctx))
    except (KubesopsError, OSError) as e:
        error(f"Manifest failed: {e}")
        sys.exit(1)
    finish(result)


@main.command()
def check():
    """Check if sops is installed."""
    if not sops_age.check_dependencies():
        sys.exit(1)


def run():
    """Console script entry point; usage errors exit with status 1."""
    try:
        main.main(standalone_mode=False)
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(1)


if __name__ == "__main__":
    run()
