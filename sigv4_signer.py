#!/usr/bin/env python3
"""
AWS Signature Version 4 Signer

Signs HTTP requests for S3-compatible object stores without an AWS SDK:
derives the date/region/service scoped signing key, canonicalizes the
request, builds the string-to-sign and composes the Authorization header.

Header values are trimmed but internal whitespace is not collapsed. This
is sufficient for the fixed header set the uploader sends (Host,
Content-Type, x-amz-acl and the two x-amz headers added here); headers
whose values contain whitespace runs would need full SigV4 value
normalization before they could be signed here.
"""

import hashlib
import hmac
import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from publish_errors import ConfigurationError, SigningError

logger = logging.getLogger(__name__)

ALGORITHM = 'AWS4-HMAC-SHA256'
TERMINATOR = 'aws4_request'
DEFAULT_SERVICE = 's3'

AMZ_DATE_FORMAT = '%Y%m%dT%H%M%SZ'
DATE_STAMP_LENGTH = 8

AMZ_DATE_HEADER = 'x-amz-date'
CONTENT_SHA256_HEADER = 'x-amz-content-sha256'

EMPTY_PAYLOAD_SHA256 = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'

HeaderList = List[Tuple[str, str]]


class Credentials(NamedTuple):
    """Long-term signing credentials, fixed for the process lifetime."""
    access_key_id: str
    secret_access_key: str
    region: str
    service: str = DEFAULT_SERVICE

    def validate(self) -> 'Credentials':
        missing = [name for name, value in self._asdict().items() if not value]
        if missing:
            raise ConfigurationError(f"Missing signing credential fields: {', '.join(missing)}")
        return self


class SigningContext(NamedTuple):
    """Per-request timestamp and credential scope. Never reused."""
    timestamp: str
    date_stamp: str
    credential_scope: str


class CanonicalRequest(NamedTuple):
    """Canonical form of a request plus the pieces the signature repeats."""
    text: str
    signed_headers: str
    payload_hash: str


class SignatureResult(NamedTuple):
    """Headers the caller must attach to the outbound request."""
    authorization_header: str
    amz_date: str
    content_sha256: str
    canonical_request: Optional[CanonicalRequest] = None

    def headers(self) -> Dict[str, str]:
        return {
            'Authorization': self.authorization_header,
            AMZ_DATE_HEADER: self.amz_date,
            CONTENT_SHA256_HEADER: self.content_sha256,
        }


class RequestDescriptor:
    """
    HTTP request to be signed.

    Headers are kept as a plain list of (name, value) pairs; their order is
    irrelevant because canonicalization sorts them on every call.

    Args:
        method: HTTP verb
        path: Absolute, already percent-encoded URI path
        query: Canonical query string, already sorted and encoded
        headers: Mapping or sequence of (name, value) pairs
        payload: Request body
    """

    def __init__(self, method: str, path: str, query: str = '',
                 headers: Union[Mapping[str, str], Sequence[Tuple[str, str]], None] = None,
                 payload: Union[bytes, str] = b''):
        self.method = method
        self.path = path
        self.query = query
        if headers is None:
            headers = []
        elif isinstance(headers, Mapping):
            headers = headers.items()
        self.headers: HeaderList = [(name, str(value)) for name, value in headers]
        self.payload = payload

    def set_header(self, name: str, value: str):
        """Set a header, replacing any entry with the same name in any case."""
        lowered = name.lower()
        self.headers = [(n, v) for n, v in self.headers if n.lower() != lowered]
        self.headers.append((name, value))

    def get_header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for header_name, value in self.headers:
            if header_name.lower() == lowered:
                return value
        return None


def _to_bytes(data: Union[bytes, bytearray, memoryview, str]) -> bytes:
    if isinstance(data, str):
        return data.encode('utf-8')
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise SigningError(f"Cannot hash payload of type {type(data).__name__}")


def sha256_hex(data: Union[bytes, str]) -> str:
    """SHA-256 digest of data as 64 lowercase hex characters."""
    try:
        return hashlib.sha256(_to_bytes(data)).hexdigest()
    except ValueError as e:
        raise SigningError(f"SHA-256 unavailable: {e}") from e


def hmac_sha256(key: bytes, message: str) -> bytes:
    """Raw HMAC-SHA256 of the UTF-8 encoded message."""
    try:
        return hmac.new(key, message.encode('utf-8'), hashlib.sha256).digest()
    except ValueError as e:
        raise SigningError(f"HMAC-SHA256 unavailable: {e}") from e


def derive_signing_key(secret_access_key: str, date_stamp: str,
                       region: str, service: str) -> bytes:
    """
    Derive the SigV4 signing key.

    The secret is chained through HMAC-SHA256 over the date stamp, region,
    service and the aws4_request terminator; each stage's digest is the
    key for the next.

    Returns:
        32-byte signing key
    """
    k_date = hmac_sha256(f"AWS4{secret_access_key}".encode('utf-8'), date_stamp)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, TERMINATOR)


def build_signing_context(credentials: Credentials,
                          now: Optional[datetime] = None) -> SigningContext:
    """Build the timestamp and credential scope for one request."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    timestamp = now.astimezone(timezone.utc).strftime(AMZ_DATE_FORMAT)
    date_stamp = timestamp[:DATE_STAMP_LENGTH]
    scope = f"{date_stamp}/{credentials.region}/{credentials.service}/{TERMINATOR}"
    return SigningContext(timestamp, date_stamp, scope)


def canonicalize_headers(headers: Sequence[Tuple[str, str]]) -> Tuple[str, str]:
    """
    Canonical headers block and signed headers list.

    Names are lower-cased and values trimmed, then both outputs are built
    from the same ordinal sort so their orderings cannot diverge.

    Returns:
        Tuple of (canonical_headers, signed_headers)
    """
    entries = []
    seen = set()
    for name, value in headers:
        lowered = name.strip().lower()
        if lowered in seen:
            raise SigningError(f"Duplicate header in signed request: {lowered}")
        seen.add(lowered)
        entries.append((lowered, str(value).strip()))

    entries.sort(key=lambda entry: entry[0].encode('utf-8'))

    canonical_headers = ''.join(f"{name}:{value}\n" for name, value in entries)
    signed_headers = ';'.join(name for name, _ in entries)
    return canonical_headers, signed_headers


def build_canonical_request(request: RequestDescriptor, payload_hash: str) -> CanonicalRequest:
    """
    Canonical request for a descriptor whose x-amz headers are already set.

    payload_hash is passed in rather than recomputed so that the value in
    the x-amz-content-sha256 header and the last canonical line are the
    same string.
    """
    canonical_headers, signed_headers = canonicalize_headers(request.headers)
    text = '\n'.join([
        request.method,
        request.path,
        request.query,
        canonical_headers,
        signed_headers,
        payload_hash,
    ])
    return CanonicalRequest(text, signed_headers, payload_hash)


def build_string_to_sign(context: SigningContext, canonical_request: str) -> str:
    return '\n'.join([
        ALGORITHM,
        context.timestamp,
        context.credential_scope,
        sha256_hex(canonical_request),
    ])


class SigV4Signer:
    """
    Stateless SigV4 signer bound to one set of credentials.

    Safe to share between threads: every call builds its own signing
    context and only touches the descriptor it was given.
    """

    def __init__(self, credentials: Credentials):
        self.credentials = credentials.validate()

    def sign(self, request: RequestDescriptor,
             now: Optional[datetime] = None) -> SignatureResult:
        """
        Sign a request.

        Injects x-amz-date and x-amz-content-sha256 into the descriptor,
        then canonicalizes and signs it.

        Args:
            request: Request to sign; its headers are updated in place
            now: Signing time, defaults to the current UTC time

        Returns:
            SignatureResult with the Authorization, x-amz-date and
            x-amz-content-sha256 header values
        """
        context = build_signing_context(self.credentials, now)
        payload_hash = sha256_hex(request.payload)

        request.set_header(AMZ_DATE_HEADER, context.timestamp)
        request.set_header(CONTENT_SHA256_HEADER, payload_hash)

        canonical = build_canonical_request(request, payload_hash)
        string_to_sign = build_string_to_sign(context, canonical.text)

        signing_key = derive_signing_key(
            self.credentials.secret_access_key,
            context.date_stamp,
            self.credentials.region,
            self.credentials.service,
        )
        signature = hmac_sha256(signing_key, string_to_sign).hex()

        authorization = (
            f"{ALGORITHM} Credential={self.credentials.access_key_id}/{context.credential_scope},"
            f"SignedHeaders={canonical.signed_headers},Signature={signature}"
        )

        logger.debug(f"Signed {request.method} {request.path} "
                     f"scope={context.credential_scope} signed_headers={canonical.signed_headers}")

        return SignatureResult(authorization, context.timestamp, payload_hash, canonical)
