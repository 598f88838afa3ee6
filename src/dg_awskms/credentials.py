"""Credential file parsing.

Two formats are understood:

* the CSV file offered by the IAM console when an access key is created
  (header line, then ``User name,Password,Access key ID,Secret access key,...``);
* the INI-style shared credentials file used by the AWS CLI.

CSV is tried first. A file that parses as a single column table is almost
certainly INI, so it is handed to the INI parser; so is a CSV file with too few
rows or columns. Any other failure is reported as is.
"""
from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

import structlog
from botocore.credentials import SharedCredentialProvider
from botocore.exceptions import ConfigParseError, PartialCredentialsError

from .exceptions import (
    CredentialError,
    CredentialFileError,
    CredentialPathError,
    MalformedCredentialCSV,
    NotCredentialCSV,
)

DEFAULT_PROFILE: Final[str] = "default"

_ACCESS_KEY_COLUMN: Final[int] = 2
_SECRET_KEY_COLUMN: Final[int] = 3

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AccessKeyCredentials:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)

    def session_kwargs(self) -> dict[str, str | None]:
        """Keyword arguments accepted by ``boto3.session.Session``"""
        return {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
            "aws_session_token": self.session_token,
        }


def extract_creds_csv(path: Path | str) -> AccessKeyCredentials:
    try:
        handle = open(path, "r", encoding="utf-8-sig", newline="")
    except OSError as exc:
        raise CredentialFileError(f"cannot open credential path {path}") from exc

    with handle:
        try:
            lines = [row for row in csv.reader(handle) if row]
        except (csv.Error, UnicodeDecodeError) as exc:
            raise CredentialError(f"reading credential CSV {path}: {exc}") from exc

    # An INI credentials file also parses as a 1-column table; an IAM CSV never does.
    if lines and len(lines[0]) == 1:
        raise NotCredentialCSV("not a valid CSV credential file")
    if len(lines) < 2:
        raise MalformedCredentialCSV("malformed credential CSV file")
    if len(lines[1]) < 4:
        raise MalformedCredentialCSV("malformed credential CSV file")

    return AccessKeyCredentials(
        access_key_id=lines[1][_ACCESS_KEY_COLUMN],
        secret_access_key=lines[1][_SECRET_KEY_COLUMN],
    )


def load_shared_credentials(
    path: Path | str, profile: str = DEFAULT_PROFILE
) -> AccessKeyCredentials | None:
    """Read ``profile`` from an INI shared credentials file.

    Returns ``None`` when the file is not INI or has no credentials for
    ``profile``.
    """

    provider = SharedCredentialProvider(creds_filename=str(path), profile_name=profile)
    try:
        loaded = provider.load()
    except ConfigParseError:
        return None
    except PartialCredentialsError as exc:
        raise CredentialError(f"incomplete credentials for profile '{profile}' in {path}") from exc
    if loaded is None:
        return None
    return AccessKeyCredentials(
        access_key_id=loaded.access_key,
        secret_access_key=loaded.secret_key,
        session_token=loaded.token,
    )


def resolve_credentials(path: Path | str | None, profile: str = DEFAULT_PROFILE) -> AccessKeyCredentials:
    if not path:
        raise CredentialPathError("invalid credential path")

    try:
        return extract_creds_csv(path)
    except (NotCredentialCSV, MalformedCredentialCSV) as exc:
        csv_verdict = exc

    log.debug("kms.credentials.csv_fallback", path=str(path), reason=type(csv_verdict).__name__)
    creds = load_shared_credentials(path, profile=profile)
    if creds is not None:
        return creds
    if isinstance(csv_verdict, MalformedCredentialCSV):
        raise csv_verdict
    raise CredentialError(f"no credentials for profile '{profile}' in {path}") from csv_verdict


__all__ = [
    "AccessKeyCredentials",
    "DEFAULT_PROFILE",
    "extract_creds_csv",
    "load_shared_credentials",
    "resolve_credentials",
]
