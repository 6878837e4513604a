#!/usr/bin/env python3
"""
Configuration loading for the S3 file publisher.

Values come from an optional YAML file and are overridden by environment
variables. Everything is loaded once at startup; a missing required
value raises ConfigurationError so the service refuses to start.
"""

import logging
import os
from typing import Any, Dict, Mapping, NamedTuple, Optional

import yaml

from publish_errors import ConfigurationError
from sigv4_signer import Credentials

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_TIMEOUT = 300
DEFAULT_EMAIL_ADDRESS_ID = '0'


class PublishConfig(NamedTuple):
    """Object store settings for uploads."""
    region: str
    access_key_id: str
    secret_access_key: str
    bucket: str
    verify_ssl: bool = True
    timeout: float = DEFAULT_UPLOAD_TIMEOUT

    @property
    def host(self) -> str:
        return f"{self.bucket}.s3.{self.region}.amazonaws.com"

    @property
    def endpoint(self) -> str:
        return f"https://{self.host}"

    def credentials(self) -> Credentials:
        return Credentials(self.access_key_id, self.secret_access_key, self.region, 's3')


class ClickSendConfig(NamedTuple):
    """ClickSend REST API credentials for notifications."""
    username: str
    api_key: str
    email_address_id: str = DEFAULT_EMAIL_ADDRESS_ID


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load configuration from YAML file, empty when no path is given."""
    if not config_path:
        return {}
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Error loading config {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return data


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == 'true'


def load_publish_config(config_path: Optional[str] = None,
                        environ: Optional[Mapping[str, str]] = None) -> PublishConfig:
    """
    Load object store configuration.

    The YAML 's3' section supplies defaults; AWS_REGION, AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY, S3_BUCKET_NAME, S3_SKIP_SSL_VERIFICATION and
    S3_UPLOAD_TIMEOUT override it.

    Raises:
        ConfigurationError: if region, credentials or bucket are missing
    """
    if environ is None:
        environ = os.environ
    section = load_config_file(config_path).get('s3') or {}

    values = {
        'region': environ.get('AWS_REGION') or section.get('region'),
        'access_key_id': environ.get('AWS_ACCESS_KEY_ID') or section.get('access_key_id'),
        'secret_access_key': environ.get('AWS_SECRET_ACCESS_KEY') or section.get('secret_access_key'),
        'bucket': environ.get('S3_BUCKET_NAME') or section.get('bucket'),
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    skip_ssl = environ.get('S3_SKIP_SSL_VERIFICATION')
    if skip_ssl is not None:
        verify_ssl = not _parse_bool(skip_ssl)
    else:
        verify_ssl = _parse_bool(section.get('verify_ssl', True))

    raw_timeout = environ.get('S3_UPLOAD_TIMEOUT') or section.get('timeout', DEFAULT_UPLOAD_TIMEOUT)
    try:
        timeout = float(raw_timeout)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid upload timeout: {raw_timeout}") from e
    if timeout <= 0:
        raise ConfigurationError(f"Upload timeout must be positive: {raw_timeout}")

    config = PublishConfig(
        region=str(values['region']),
        access_key_id=str(values['access_key_id']),
        secret_access_key=str(values['secret_access_key']),
        bucket=str(values['bucket']),
        verify_ssl=verify_ssl,
        timeout=timeout,
    )
    logger.info(f"S3 Bucket: {config.bucket}")
    logger.info(f"S3 Endpoint: {config.endpoint}")
    return config


def load_clicksend_config(config_path: Optional[str] = None,
                          environ: Optional[Mapping[str, str]] = None) -> Optional[ClickSendConfig]:
    """
    Load ClickSend credentials.

    Returns None when neither username nor API key is configured, which
    disables the notification routes.

    Raises:
        ConfigurationError: if only one of username and API key is set
    """
    if environ is None:
        environ = os.environ
    section = load_config_file(config_path).get('clicksend') or {}

    username = environ.get('CLICK_SEND_API_USERNAME') or section.get('username')
    api_key = environ.get('CLICK_SEND_API_KEY') or section.get('api_key')
    email_address_id = (environ.get('CLICK_SEND_EMAIL_ADDRESS_ID')
                        or section.get('email_address_id')
                        or DEFAULT_EMAIL_ADDRESS_ID)

    if not username and not api_key:
        logger.info("ClickSend credentials not configured, notifications disabled")
        return None
    if not username or not api_key:
        raise ConfigurationError(
            "Both CLICK_SEND_API_USERNAME and CLICK_SEND_API_KEY are required for notifications"
        )

    logger.info("ClickSend credentials loaded")
    logger.info(f"Using email address ID: {email_address_id}")
    return ClickSendConfig(str(username), str(api_key), str(email_address_id))
