#!/usr/bin/env python3
"""
Direct S3 upload using requests and a hand-built SigV4 signature.

Performs a single signed PUT per object; no SDK, no retries. Retry policy
is left to the caller.
"""

import logging
from datetime import datetime
from typing import NamedTuple, Optional, Union

import requests

from publish_config import PublishConfig
from publish_errors import TransportError
from sigv4_signer import RequestDescriptor, SignatureResult, SigV4Signer

logger = logging.getLogger(__name__)

PUBLIC_READ_ACL = 'public-read'


class UploadResult(NamedTuple):
    """Outcome of one upload: the public URL or the transport error."""
    success: bool
    url: Optional[str] = None
    error: Optional[TransportError] = None

    @property
    def status_code(self) -> Optional[int]:
        return self.error.status_code if self.error else None


class S3Uploader:
    """
    Uploads objects to a single bucket with signed PUT requests.
    """

    def __init__(self, config: PublishConfig, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        """
        Initialize S3 uploader.

        Args:
            config: Object store configuration
            session: requests session to use (a new one by default)
            timeout: Request timeout in seconds, defaults to config.timeout
        """
        self.config = config
        self.signer = SigV4Signer(config.credentials())
        self.timeout = timeout if timeout is not None else config.timeout
        self.session = session or requests.Session()

        if not config.verify_ssl:
            logger.warning("SSL verification disabled for S3 uploads")
            self.session.verify = False
            import urllib3
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def public_url(self, key: str) -> str:
        return f"{self.config.endpoint}/{key}"

    def build_request(self, key: str, content: Union[bytes, str],
                      content_type: str) -> RequestDescriptor:
        """Build the unsigned PUT for an already percent-encoded key."""
        return RequestDescriptor(
            method='PUT',
            path=f"/{key}",
            query='',
            headers=[
                ('Host', self.config.host),
                ('Content-Type', content_type),
                ('x-amz-acl', PUBLIC_READ_ACL),
            ],
            payload=content,
        )

    def sign_request(self, request: RequestDescriptor,
                     now: Optional[datetime] = None) -> SignatureResult:
        return self.signer.sign(request, now)

    def upload(self, key: str, content: Union[bytes, str], content_type: str,
               now: Optional[datetime] = None) -> UploadResult:
        """
        Upload content to the bucket under key.

        Args:
            key: Object key, percent-encoded per path segment
            content: Raw bytes, or text which is sent UTF-8 encoded
            content_type: MIME type of the content
            now: Signing time (defaults to current UTC time)

        Returns:
            UploadResult with the public URL on success, or the
            TransportError describing the failure
        """
        if isinstance(content, str):
            content = content.encode('utf-8')

        request = self.build_request(key, content, content_type)
        signature = self.sign_request(request, now)
        url = f"{self.config.endpoint}{request.path}"
        headers = dict(request.headers)
        headers.update(signature.headers())

        logger.info(f"Uploading {len(content)} bytes to {url}")

        try:
            response = self.session.put(
                url,
                data=content,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Upload to {url} failed: {e}")
            return UploadResult(False, error=TransportError(f"Upload request failed: {e}"))

        if not 200 <= response.status_code < 300:
            body = response.text
            logger.error(f"Failed to upload file: {response.status_code} {response.reason}")
            logger.error(f"Response body: {body}")
            return UploadResult(False, error=TransportError(
                f"Failed to upload file: {response.status_code} {response.reason}",
                status_code=response.status_code,
                body=body,
            ))

        file_url = self.public_url(key)
        logger.info(f"File URL: {file_url}")
        return UploadResult(True, url=file_url)
