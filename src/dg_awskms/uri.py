"""Key URI helpers."""
from __future__ import annotations

from typing import Final

import regex

from .exceptions import RegionError

AWS_PREFIX: Final[str] = "aws-kms://"

_REGION_PATTERN = regex.compile(r"(?i:aws-kms)://arn:(aws[a-zA-Z0-9_-]*):kms:([a-z0-9-]+):")


def has_aws_prefix(uri: str) -> bool:
    """Return True if ``uri`` starts with the ``aws-kms://`` scheme, ignoring case"""
    return uri.lower().startswith(AWS_PREFIX)


def key_arn(key_uri: str) -> str:
    """Strip the ``aws-kms://`` scheme and return the key ARN"""
    if has_aws_prefix(key_uri):
        return key_uri[len(AWS_PREFIX):]
    return key_uri


def get_region(key_uri: str) -> str:
    """Extract the region from a key URI of the form
    ``aws-kms://arn:<partition>:kms:<region>:<path>``.

    Raises
    ------
    RegionError
        If the URI does not match the grammar exactly once.
    """

    matches = _REGION_PATTERN.findall(key_uri)
    if len(matches) != 1 or len(matches[0]) != 2:
        raise RegionError("extracting region from URI failed")
    _partition, region = matches[0]
    return region


__all__ = ["AWS_PREFIX", "get_region", "has_aws_prefix", "key_arn"]
