"""
AWS Lambda handler for Turnstile callbacks.

Receives the ``turnstile_callback`` payload pushed by the widget
(``{"token": "..."}``) and answers with the verification verdict. The
verdict is fail-open: ``allowed`` is true unless the token argument is
malformed, so callers can gate on it without ever blocking real users.
"""

import os
import traceback
from turnstile_guard import __version__
from turnstile_guard.utils.lambda_utils import (
    parse_lambda_event,
    build_response,
    build_error_response,
    extract_http_method,
    extract_remote_ip
)
from turnstile_guard.utils.turnstile_utils import verify_token


# CORS headers - origin is configurable via CORS_ORIGIN environment variable
def _cors_headers():
    return {
        "Access-Control-Allow-Origin": os.environ.get("CORS_ORIGIN", "*"),
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Content-Type": "application/json"
    }


def _handle_healthcheck(headers):
    """Handle healthcheck action."""
    return build_response(200, {
        'status': 'healthy',
        'message': 'Lambda function is running',
        'version': __version__
    }, headers)


def _handle_expired_token(headers):
    # A null token means a previously issued token went stale
    return build_response(200, {
        'verified': False,
        'allowed': False,
        'expired': True,
        'error': None,
        'error_codes': []
    }, headers)


def lambda_handler(event, context):
    """
    AWS Lambda handler for Turnstile token verification.

    Expected event format:
    {
        "token": "turnstile-token-or-bypass-token"
    }

    Expected event format for healthcheck:
    {
        "action": "healthcheck"
    }

    Or wrapped in an API Gateway / Function URL body:
    {
        "body": "{\"token\": \"...\"}"
    }

    Environment variables optional:
    - TURNSTILE_SECRET_KEY: CloudFlare Turnstile secret key (verification skipped if unset)
    - CORS_ORIGIN: CORS origin URL (default: *)

    Returns:
        dict: Response with statusCode and body containing the verdict
    """
    headers = _cors_headers()
    original_event = event

    http_method = extract_http_method(original_event)
    if http_method == "OPTIONS":
        return build_response(200, {"message": "CORS preflight OK"}, headers)

    try:
        event = parse_lambda_event(event)
    except ValueError as e:
        return build_error_response(f'Invalid JSON payload: {str(e)}', headers=headers)

    if not isinstance(event, dict) or not event:
        return build_error_response(
            'Missing event body. Expected fields: token',
            headers=headers
        )

    if event.get('action') == 'healthcheck':
        return _handle_healthcheck(headers)

    if 'token' not in event:
        return build_error_response('Missing required field: token', headers=headers)

    token = event['token']
    if token is None:
        return _handle_expired_token(headers)

    try:
        remoteip = extract_remote_ip(original_event, context)
        result = verify_token(token, remoteip=remoteip)
    except Exception as e:
        return build_response(500, {
            'error': str(e),
            'type': type(e).__name__,
            'traceback': traceback.format_exc()
        }, headers)

    if not result.allowed:
        return build_error_response(result.error, headers=headers)

    return build_response(200, result.as_dict(), headers)
