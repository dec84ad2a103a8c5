"""
Common utilities for serverless callback handlers.

Parsing events, building responses and extracting request metadata for
handlers that receive ``turnstile_callback`` payloads over HTTP.
"""

import json


def parse_lambda_event(event):
    """
    Parse and normalize a Lambda event, handling various formats.

    Handles:
    - String events (parses as JSON)
    - Events with body wrapper (e.g., from API Gateway)
    - Direct event objects

    Args:
        event: The Lambda event (string, dict, or dict with body wrapper)

    Returns:
        dict: Normalized event body

    Raises:
        ValueError: If the event or its body is not valid JSON
    """
    if isinstance(event, str):
        event = json.loads(event)

    if isinstance(event, dict) and "body" in event:
        body = event.get("body")
        if isinstance(body, str):
            body = json.loads(body) if body.strip() else {}
        return body or {}

    return event or {}


def build_response(status_code, body, headers=None):
    """
    Build a standardized Lambda response.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON-encoded if not a string)
        headers: Optional dict of response headers

    Returns:
        dict: Lambda response object with statusCode, body, and headers
    """
    response = {
        'statusCode': status_code,
        'body': json.dumps(body) if not isinstance(body, str) else body
    }

    if headers:
        response['headers'] = headers

    return response


def build_error_response(error_message, status_code=400, headers=None):
    return build_response(status_code, {'error': error_message}, headers)


def extract_http_method(event):
    """
    Extract HTTP method from Lambda Function URL or API Gateway events.

    Returns:
        str or None: HTTP method (e.g., 'POST', 'OPTIONS') or None
    """
    if not isinstance(event, dict):
        return None

    request_context = event.get("requestContext")
    if not isinstance(request_context, dict):
        request_context = {}
    if isinstance(request_context.get("http"), dict):
        return request_context["http"].get("method")
    if "httpMethod" in request_context:
        return request_context.get("httpMethod")

    return event.get("httpMethod")


def extract_remote_ip(event, context=None):
    """
    Extract the client IP address from a Lambda event or context.

    Checks, in order: the context identity, the Function URL
    ``requestContext.http.sourceIp`` and the API Gateway
    ``requestContext.identity.sourceIp``.

    Returns:
        str or None: Remote IP address or None if not found
    """
    if context and hasattr(context, 'identity') and hasattr(context.identity, 'sourceIp'):
        return context.identity.sourceIp

    if not isinstance(event, dict):
        return None

    request_context = event.get('requestContext')
    if not isinstance(request_context, dict):
        return None
    if isinstance(request_context.get('http'), dict):
        return request_context['http'].get('sourceIp')
    if isinstance(request_context.get('identity'), dict):
        return request_context['identity'].get('sourceIp')

    return None
