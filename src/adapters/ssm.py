"""Configuration loading from the environment and AWS SSM Parameter Store."""

from __future__ import annotations

import os
from functools import lru_cache

import boto3

from src.core.models import SendGridConfig

DEFAULT_API_KEY_PARAMETER = "/sendgrid-mail/api-key"


@lru_cache(maxsize=16)
def get_parameter(name: str, decrypt: bool = True) -> str:
    """Fetch a parameter from SSM Parameter Store.

    Cached so repeated sends within one Lambda container hit SSM once.

    Args:
        name: The parameter name (e.g., "/sendgrid-mail/api-key")
        decrypt: Whether to decrypt SecureString parameters

    Returns:
        The parameter value

    Raises:
        botocore.exceptions.ClientError: If parameter doesn't exist or access denied
    """
    client = boto3.client("ssm")
    response = client.get_parameter(Name=name, WithDecryption=decrypt)
    return str(response["Parameter"]["Value"])


def load_sendgrid_config(parameter_name: str | None = None) -> SendGridConfig:
    """Build the SendGrid config.

    SENDGRID_API_KEY wins when set; otherwise the key is read from the SSM
    parameter named by the argument, SSM_SENDGRID_API_KEY, or the default.
    SENDGRID_TIMEOUT (seconds) is optional.
    """
    api_key = os.environ.get("SENDGRID_API_KEY")
    if not api_key:
        name = parameter_name or os.environ.get("SSM_SENDGRID_API_KEY", DEFAULT_API_KEY_PARAMETER)
        api_key = get_parameter(name)

    timeout = os.environ.get("SENDGRID_TIMEOUT")
    return SendGridConfig(api_key=api_key, timeout=float(timeout) if timeout else None)


def clear_cache() -> None:
    """Clear the parameter cache. Useful for testing."""
    get_parameter.cache_clear()
