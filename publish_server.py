#!/usr/bin/env python3
"""
HTTP serving functions for the S3 file publisher.

Exposes POST endpoints for file publishing and, when ClickSend is
configured, SMS/MMS/email notifications. Each endpoint is a thin
translation between JSON requests and the underlying clients.
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, Optional

import flask
from flask import jsonify, request

from clicksend_notifier import ClickSendClient, NotificationResult
from publish_config import ClickSendConfig, PublishConfig, load_clicksend_config, load_publish_config
from publish_errors import ConfigurationError, NotificationError
from publish_file import handle_file_upload, parse_request_body
from s3_uploader import S3Uploader

# Configure logging
log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _read_json_body() -> Optional[Dict[str, Any]]:
    logger.info(f"Received {request.method} request for {request.path}")
    try:
        body = parse_request_body(request.get_data())
    except ValueError as e:
        logger.error(f"Error parsing request body: {e}")
        return None
    logger.debug("Request body parsed successfully")
    return body


def _notification_response(kind: str, result: NotificationResult):
    if result.success:
        return jsonify({'success': True, 'message': f"{kind} sent successfully"}), 200
    logger.error(f"Error sending {kind}: ClickSend API returned status {result.status_code}")
    return jsonify({'success': False, 'error': f"Failed to send {kind}"}), 500


def _register_notification_routes(app: flask.Flask, notifier: ClickSendClient):

    @app.route('/send-sms', methods=['POST'])
    def send_sms():
        body = _read_json_body()
        if body is None:
            return jsonify({'success': False, 'error': 'Invalid JSON input'}), 400
        try:
            result = notifier.send_sms(body.get('phone'), body.get('message'))
        except NotificationError as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        return _notification_response('SMS', result)

    @app.route('/send-mms', methods=['POST'])
    def send_mms():
        body = _read_json_body()
        if body is None:
            return jsonify({'success': False, 'error': 'Invalid JSON input'}), 400
        try:
            result = notifier.send_mms(
                body.get('subject'), body.get('from'), body.get('to'),
                body.get('body'), body.get('media_file'),
            )
        except NotificationError as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        return _notification_response('MMS', result)

    @app.route('/send-email', methods=['POST'])
    def send_email():
        body = _read_json_body()
        if body is None:
            return jsonify({'success': False, 'error': 'Invalid JSON input'}), 400
        try:
            result = notifier.send_email(
                body.get('to'), body.get('from'), body.get('subject'),
                body.get('body'), body.get('attachments'),
            )
        except NotificationError as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        return _notification_response('Email', result)


def create_app(publish_config: PublishConfig,
               clicksend_config: Optional[ClickSendConfig] = None,
               uploader: Optional[S3Uploader] = None,
               notifier: Optional[ClickSendClient] = None) -> flask.Flask:
    """
    Build the Flask application.

    Args:
        publish_config: Object store configuration
        clicksend_config: ClickSend credentials, None disables notifications
        uploader: Uploader to use (built from publish_config by default)
        notifier: ClickSend client to use (built from clicksend_config by default)
    """
    app = flask.Flask(__name__)
    uploader = uploader or S3Uploader(publish_config)

    if notifier is None and clicksend_config is not None:
        notifier = ClickSendClient.from_config(clicksend_config)

    @app.errorhandler(405)
    def method_not_allowed(error):
        logger.info(f"Unsupported method: {request.method}")
        return jsonify({'error': 'Method not allowed'}), 405

    @app.route('/publish-file', methods=['POST'])
    def publish_file():
        body = _read_json_body()
        if body is None:
            return jsonify({'error': 'Invalid JSON input'}), 400
        status, payload = handle_file_upload(body, uploader)
        return jsonify(payload), status

    if notifier is not None:
        _register_notification_routes(app, notifier)
    else:
        logger.warning("Notification endpoints disabled: ClickSend is not configured")

    return app


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Serve S3 file publishing and ClickSend notification endpoints'
    )

    parser.add_argument(
        '--config', '-c',
        help='Optional YAML configuration file path'
    )

    parser.add_argument(
        '--host',
        default=os.getenv('PUBLISH_HOST', '0.0.0.0'),
        help='Interface to listen on'
    )

    parser.add_argument(
        '--port', '-p',
        type=int,
        default=int(os.getenv('PUBLISH_PORT', '8000')),
        help='Port to listen on'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("Initializing configuration")
    try:
        publish_config = load_publish_config(args.config)
        clicksend_config = load_clicksend_config(args.config)
    except ConfigurationError as e:
        logger.error(f"Missing required configuration: {e}")
        sys.exit(1)

    app = create_app(publish_config, clicksend_config)

    logger.info(f"Server is ready to handle requests on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port)


if __name__ == '__main__':
    main()
