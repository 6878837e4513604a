#!/usr/bin/env python3
"""
Publish-file request handling.

Translates an inbound upload request into an S3Uploader call and the
uploader's result into an HTTP status and JSON body.
"""

import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, Tuple, Union
from urllib.parse import quote

from publish_errors import EncodingError
from s3_uploader import S3Uploader

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('folder', 'filename', 'data', 'mime_type')


def decode_content(data: str, content_encoding: Any = None) -> Union[bytes, str]:
    """
    Decode request content.

    Args:
        data: Content from the request
        content_encoding: 'base64' for base64 content, anything else for text

    Returns:
        Raw bytes for base64 content, otherwise the text unchanged

    Raises:
        EncodingError: if base64 content is malformed
    """
    if content_encoding != 'base64':
        return data
    try:
        # Line-wrapped and unpadded input is accepted, as browser atob() does
        compact = re.sub(r'[ \t\n\f\r]', '', data)
        remainder = len(compact) % 4
        if remainder == 1:
            raise EncodingError("Invalid base64 data: truncated input")
        if remainder:
            compact += '=' * (4 - remainder)
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise EncodingError(f"Invalid base64 data: {e}") from e


def build_object_key(folder: str, filename: str) -> str:
    """Object key for folder/filename, percent-encoded per path segment."""
    key = f"{str(folder).strip('/')}/{str(filename).lstrip('/')}"
    return quote(key, safe='/')


def handle_file_upload(request: Dict[str, Any], uploader: S3Uploader) -> Tuple[int, Dict[str, Any]]:
    """
    Handle a file upload request.

    Args:
        request: {folder, filename, data, mime_type, type?}
        uploader: Uploader bound to the target bucket

    Returns:
        Tuple of (HTTP status, JSON-serializable body)
    """
    logger.info("Handling file upload request")
    logger.debug(f"Request fields: {sorted(request.keys())}")

    missing = [field for field in REQUIRED_FIELDS if not request.get(field)]
    if missing:
        logger.warning(f"Upload request missing fields: {missing}")
        return 400, {'error': 'Missing required fields', 'details': ', '.join(missing)}
    if not isinstance(request['data'], str):
        return 400, {'error': 'Invalid file data', 'details': 'data must be a string'}

    key = build_object_key(request['folder'], request['filename'])
    logger.info(f"File key: {key}")

    try:
        content = decode_content(request['data'], request.get('type'))
    except EncodingError as e:
        logger.error(f"Error decoding file content: {e}")
        return 400, {'error': 'Invalid base64 data', 'details': str(e)}

    result = uploader.upload(key, content, request['mime_type'])
    if not result.success:
        logger.error(f"Error during file upload: {result.error}")
        return 500, {
            'error': 'Failed to upload file',
            'details': str(result.error),
            'status_code': result.status_code,
        }

    return 200, {'url': result.url}


def parse_request_body(raw: Union[bytes, str]) -> Dict[str, Any]:
    """
    Parse a JSON request body.

    Raises:
        ValueError: if the body is not a JSON object
    """
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8')
    body = json.loads(raw)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body
