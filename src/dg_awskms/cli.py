"""Typer-based command line interface for dg-awskms."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
import typer

from .client import AwsKmsClient, new_client
from .config import AppConfig, build_client, load_config
from .credentials import extract_creds_csv, resolve_credentials
from .exceptions import AwsKmsError, ConfigurationError, MalformedCredentialCSV, NotCredentialCSV
from .logging import configure_logging
from .options import (
    ClientOption,
    EncryptionContextName,
    use_v2,
    with_credential_path,
    with_encryption_context_name,
    with_shared_credentials_file,
    with_v2_kms_options,
)
from .uri import get_region

app = typer.Typer(help="Encrypt and decrypt with AWS KMS keys")


@app.callback()
def main(ctx: typer.Context, config: Optional[Path] = typer.Option(None, "--config", metavar="PATH")) -> None:
    try:
        ctx.obj = load_config(config)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    configure_logging(ctx.obj.logging.normalized_level())


def _client_for(
    key_uri: str,
    credentials: Optional[Path],
    v2: bool,
    legacy_context_name: bool,
) -> AwsKmsClient:
    config: AppConfig = click.get_current_context().obj
    overridden = credentials is not None or v2 or legacy_context_name
    if config.client is not None and not overridden:
        return build_client(config.client)

    options: list[ClientOption] = []
    if legacy_context_name:
        options.append(with_encryption_context_name(EncryptionContextName.LEGACY_ADDITIONAL_DATA))
    if v2:
        if credentials is not None:
            options.append(with_v2_kms_options(with_shared_credentials_file(credentials)))
        else:
            options.append(use_v2())
    elif credentials is not None:
        options.append(with_credential_path(credentials))
    return new_client(key_uri, *options)


def _associated_data(value: Optional[str]) -> bytes:
    return value.encode("utf-8") if value else b""


@app.command()
def region(key_uri: str = typer.Argument(..., help="aws-kms://arn:<partition>:kms:<region>:<path>")) -> None:
    """Print the region a key URI routes to"""
    try:
        typer.echo(get_region(key_uri))
    except AwsKmsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def encrypt(
    key_uri: str = typer.Option(..., "--key-uri", help="KMS key URI"),
    input: Path = typer.Option(..., "-i", exists=True, readable=True, help="Plaintext file"),
    output: Path = typer.Option(..., "-o", help="Ciphertext file"),
    associated_data: Optional[str] = typer.Option(None, "--associated-data", "--ad"),
    credentials: Optional[Path] = typer.Option(None, "--credentials", exists=True, readable=True),
    v2: bool = typer.Option(False, "--v2", help="Use the v2 handle strategy"),
    legacy_context_name: bool = typer.Option(False, "--legacy-context-name", help="Bind associated data as 'additionalData'"),
) -> None:
    """Encrypt a file with a remote KMS key"""
    try:
        aead = _client_for(key_uri, credentials, v2, legacy_context_name).get_aead(key_uri)
        output.write_bytes(aead.encrypt(input.read_bytes(), _associated_data(associated_data)))
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    except AwsKmsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Encrypted -> {output}")


@app.command()
def decrypt(
    key_uri: str = typer.Option(..., "--key-uri", help="KMS key URI"),
    input: Path = typer.Option(..., "-i", exists=True, readable=True, help="Ciphertext file"),
    output: Path = typer.Option(..., "-o", help="Plaintext file"),
    associated_data: Optional[str] = typer.Option(None, "--associated-data", "--ad"),
    credentials: Optional[Path] = typer.Option(None, "--credentials", exists=True, readable=True),
    v2: bool = typer.Option(False, "--v2", help="Use the v2 handle strategy"),
    legacy_context_name: bool = typer.Option(False, "--legacy-context-name", help="Bind associated data as 'additionalData'"),
) -> None:
    """Decrypt a file with a remote KMS key"""
    try:
        aead = _client_for(key_uri, credentials, v2, legacy_context_name).get_aead(key_uri)
        output.write_bytes(aead.decrypt(input.read_bytes(), _associated_data(associated_data)))
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    except AwsKmsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Decrypted -> {output}")


@app.command("check-credentials")
def check_credentials(path: Path = typer.Argument(..., exists=True, readable=True)) -> None:
    """Parse a CSV or INI credential file and print its format and access key id"""
    try:
        try:
            creds, fmt = extract_creds_csv(path), "csv"
        except (NotCredentialCSV, MalformedCredentialCSV):
            creds, fmt = resolve_credentials(path), "ini"
    except AwsKmsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"format: {fmt}")
    typer.echo(f"access key id: {creds.access_key_id}")


@app.command()
def version() -> None:
    from . import __version__

    typer.echo(__version__)


if __name__ == "__main__":  # pragma: no cover
    app()
