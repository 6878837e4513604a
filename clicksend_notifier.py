#!/usr/bin/env python3
"""
ClickSend notification client

Sends SMS, MMS and email through the ClickSend REST API using HTTP basic
authentication.
"""

import json
import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional

import requests
from requests.auth import HTTPBasicAuth

from publish_errors import NotificationError

logger = logging.getLogger(__name__)

CLICKSEND_API_URL = 'https://rest.clicksend.com/v3'
MESSAGE_SOURCE = 'python'
DEFAULT_COUNTRY_PREFIX = '+44'
MMS_COUNTRY = 'GB'


class NotificationResult(NamedTuple):
    success: bool
    status_code: Optional[int] = None
    body: Optional[str] = None


def format_phone_number(phone_number: str) -> str:
    """
    Normalize a phone number to international format.

    Numbers without a leading '+' are assumed to be UK numbers: a leading
    0 is replaced by +44, otherwise +44 is prepended.
    """
    if phone_number is None or phone_number == '':
        raise NotificationError("Phone number is required")
    if isinstance(phone_number, bool) or not isinstance(phone_number, (str, int)):
        raise NotificationError(f"Phone number must be a string: {phone_number!r}")
    phone_number = str(phone_number)

    digits = re.sub(r'\D', '', phone_number)
    if not digits:
        raise NotificationError(f"Phone number has no digits: {phone_number}")

    if not phone_number.startswith('+'):
        if digits.startswith('0'):
            return DEFAULT_COUNTRY_PREFIX + digits[1:]
        return DEFAULT_COUNTRY_PREFIX + digits

    return '+' + digits


class ClickSendClient:
    """
    ClickSend REST API client.
    """

    def __init__(self, username: str, api_key: str, email_address_id: str = '0',
                 session: Optional[requests.Session] = None, timeout: float = 30):
        """
        Initialize ClickSend client.

        Args:
            username: ClickSend API username
            api_key: ClickSend API key
            email_address_id: Allowed sender address id for email
            session: requests session to use (a new one by default)
            timeout: Request timeout in seconds
        """
        self.email_address_id = email_address_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(username, api_key)
        self.session.headers.update({'Content-Type': 'application/json'})

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> 'ClickSendClient':
        return cls(config.username, config.api_key, config.email_address_id, session=session)

    def _post(self, path: str, payload: Dict[str, Any]) -> NotificationResult:
        url = f"{CLICKSEND_API_URL}/{path}"
        try:
            response = self.session.post(url, data=json.dumps(payload), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error calling ClickSend {path}: {e}")
            return NotificationResult(False, body=str(e))

        logger.info(f"ClickSend API Response ({response.status_code})")
        logger.debug(response.text)

        if not response.ok:
            logger.error(f"ClickSend {path} returned non-success status {response.status_code}")
        return NotificationResult(response.ok, response.status_code, response.text)

    def send_sms(self, phone: str, message: str) -> NotificationResult:
        if not phone or not message:
            raise NotificationError("Both phone and message are required")

        payload = {
            'messages': [{
                'source': MESSAGE_SOURCE,
                'body': message,
                'to': format_phone_number(phone),
            }]
        }
        return self._post('sms/send', payload)

    def send_mms(self, subject: str, sender: str, to: str, body: str,
                 media_file: str) -> NotificationResult:
        if not all([subject, sender, to, body, media_file]):
            raise NotificationError("All fields (subject, from, to, body, media_file) are required")

        payload = {
            'media_file': media_file,
            'messages': [{
                'source': MESSAGE_SOURCE,
                'subject': subject,
                'from': sender,
                'body': body,
                'to': format_phone_number(to),
                'country': MMS_COUNTRY,
            }]
        }
        return self._post('mms/send', payload)

    def send_email(self, to: List[Dict[str, str]], sender: str, subject: str, body: str,
                   attachments: Optional[List[Dict[str, str]]] = None) -> NotificationResult:
        if not to or not sender or not subject or not body:
            raise NotificationError("Missing required fields (to, from, subject, body)")

        try:
            address_id = int(self.email_address_id)
        except (TypeError, ValueError) as e:
            raise NotificationError(f"Invalid email address id: {self.email_address_id}") from e

        payload = {
            'to': to,
            'from': {
                'email_address_id': address_id,
                'name': sender,
            },
            'subject': subject,
            'body': body,
            'attachments': attachments or [],
        }
        return self._post('email/send', payload)
