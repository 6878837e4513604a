#!/usr/bin/env python3
"""
Unit tests for the ClickSend notification client
"""

import json
import sys
import unittest
from pathlib import Path
from unittest.mock import Mock

import requests

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clicksend_notifier import ClickSendClient, format_phone_number
from publish_config import ClickSendConfig
from publish_errors import NotificationError


class TestFormatPhoneNumber(unittest.TestCase):

    def test_uk_leading_zero(self):
        self.assertEqual(format_phone_number('07700 900123'), '+447700900123')

    def test_no_prefix(self):
        self.assertEqual(format_phone_number('7700900123'), '+447700900123')

    def test_international(self):
        self.assertEqual(format_phone_number('+1 (555) 010-9999'), '+15550109999')

    def test_empty(self):
        with self.assertRaises(NotificationError):
            format_phone_number('')

    def test_numeric_phone(self):
        self.assertEqual(format_phone_number(7700900123), '+447700900123')

    def test_non_string_phone(self):
        with self.assertRaises(NotificationError):
            format_phone_number(['07700900123'])
        with self.assertRaises(NotificationError):
            format_phone_number(7.7e9)


class TestClickSendClient(unittest.TestCase):

    def setUp(self):
        self.mock_session = Mock()
        self.mock_session.headers = {}
        self.mock_session.post.return_value = Mock(ok=True, status_code=200, text='{"response_code": "SUCCESS"}')
        self.client = ClickSendClient('user', 'api-key', '7', session=self.mock_session)

    def _sent_payload(self):
        return json.loads(self.mock_session.post.call_args.kwargs['data'])

    def test_basic_auth_configured(self):
        self.assertEqual(self.mock_session.auth.username, 'user')
        self.assertEqual(self.mock_session.auth.password, 'api-key')
        self.assertEqual(self.mock_session.headers['Content-Type'], 'application/json')

    def test_from_config(self):
        client = ClickSendClient.from_config(ClickSendConfig('u', 'k', '3'), session=self.mock_session)
        self.assertEqual(client.email_address_id, '3')

    def test_send_sms(self):
        result = self.client.send_sms('07700900123', 'Hello')

        self.assertTrue(result.success)
        self.assertEqual(self.mock_session.post.call_args.args[0], 'https://rest.clicksend.com/v3/sms/send')
        message = self._sent_payload()['messages'][0]
        self.assertEqual(message['to'], '+447700900123')
        self.assertEqual(message['body'], 'Hello')

    def test_send_sms_missing_fields(self):
        with self.assertRaises(NotificationError):
            self.client.send_sms('', 'Hello')
        self.mock_session.post.assert_not_called()

    def test_send_mms(self):
        result = self.client.send_mms('Subject', 'Shop', '07700900123', 'Body',
                                      'https://example.com/image.jpg')

        self.assertTrue(result.success)
        payload = self._sent_payload()
        self.assertEqual(payload['media_file'], 'https://example.com/image.jpg')
        self.assertEqual(payload['messages'][0]['country'], 'GB')
        self.assertEqual(payload['messages'][0]['from'], 'Shop')

    def test_send_mms_missing_fields(self):
        with self.assertRaises(NotificationError):
            self.client.send_mms('Subject', 'Shop', '07700900123', 'Body', '')

    def test_send_email(self):
        to = [{'email': 'a@example.com', 'name': 'A'}]
        result = self.client.send_email(to, 'Shop', 'Subject', '<p>Hi</p>')

        self.assertTrue(result.success)
        payload = self._sent_payload()
        self.assertEqual(payload['from'], {'email_address_id': 7, 'name': 'Shop'})
        self.assertEqual(payload['attachments'], [])
        self.assertEqual(payload['to'], to)

    def test_send_email_missing_fields(self):
        with self.assertRaises(NotificationError):
            self.client.send_email([], 'Shop', 'Subject', 'Body')

    def test_non_success_status(self):
        self.mock_session.post.return_value = Mock(ok=False, status_code=401, text='unauthorized')

        result = self.client.send_sms('07700900123', 'Hello')

        self.assertFalse(result.success)
        self.assertEqual(result.status_code, 401)

    def test_transport_error(self):
        self.mock_session.post.side_effect = requests.exceptions.ConnectionError('down')

        result = self.client.send_sms('07700900123', 'Hello')

        self.assertFalse(result.success)
        self.assertIsNone(result.status_code)


if __name__ == '__main__':
    unittest.main()
