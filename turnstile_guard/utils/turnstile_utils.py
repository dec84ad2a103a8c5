"""
CloudFlare Turnstile verification utilities.

Provides server-side verification of Turnstile tokens with graceful
failure handling: verification failures never block users. Every
outcome except a malformed token argument is something the caller can
treat as "proceed". Problems are logged, never raised.
"""

import logging
from typing import List, Optional

import requests

from turnstile_guard.utils.config_utils import resolve_config

logger = logging.getLogger(__name__)

TURNSTILE_VERIFY_URL = 'https://challenges.cloudflare.com/turnstile/v0/siteverify'
VERIFY_TIMEOUT = 5  # seconds

BYPASS_PREFIX = 'bypass-'

INVALID_TOKEN = 'Invalid token'
SERVICE_ERROR = 'Verification service error'
REQUEST_FAILED = 'Could not verify captcha'


class VerificationResult:
    """
    Outcome of a token verification.

    - ``verified=True`` -- token verified or bypassed
    - ``verified=False, error=None`` -- Cloudflare rejected the token
    - ``error=<reason>`` -- the token could not be verified

    Args:
        verified: Whether the token was accepted
        error: Reason string when verification could not be performed
        error_codes: Error codes reported by Cloudflare on rejection
    """

    def __init__(self, verified: bool, error: Optional[str] = None,
                 error_codes: Optional[List[str]] = None):
        self.verified = verified
        self.error = error
        self.error_codes = list(error_codes or [])

    @classmethod
    def accepted(cls):
        return cls(True)

    @classmethod
    def rejected(cls, error_codes=None):
        return cls(False, error_codes=error_codes)

    @classmethod
    def failed(cls, reason):
        return cls(False, error=reason)

    @property
    def ok(self) -> bool:
        """True when a verdict (accepted or rejected) was reached."""
        return self.error is None

    @property
    def allowed(self) -> bool:
        """Fail-open verdict: only a malformed token is refused."""
        return self.error != INVALID_TOKEN

    def as_dict(self):
        return {
            'verified': self.verified,
            'allowed': self.allowed,
            'error': self.error,
            'error_codes': self.error_codes
        }

    def __eq__(self, other):
        if not isinstance(other, VerificationResult):
            return NotImplemented
        return (self.verified, self.error, self.error_codes) == \
            (other.verified, other.error, other.error_codes)

    def __repr__(self):
        if self.error is not None:
            return f'VerificationResult(error={self.error!r})'
        return f'VerificationResult(verified={self.verified!r})'


def is_bypass_token(token) -> bool:
    return isinstance(token, str) and token.startswith(BYPASS_PREFIX)


def bypass_token(reason: str) -> str:
    """Build the bypass token emitted for ``reason`` (e.g. ``bypass-no-key``)."""
    return f'{BYPASS_PREFIX}{reason}'


def enabled(config=None) -> bool:
    """True if both the site key and the secret key are configured."""
    return resolve_config(config).enabled


def site_key(config=None) -> Optional[str]:
    """Site key for the client-side widget, or None if not configured."""
    return resolve_config(config).site_key


def verify_token(token, remoteip=None, config=None) -> VerificationResult:
    """
    Verify a Turnstile token with CloudFlare.

    Bypass tokens and a missing secret key are accepted without contacting
    CloudFlare. Service and network problems are logged and returned as
    an error result, they are never raised.

    Args:
        token: The Turnstile response token from the client
        remoteip: Optional remote IP address of the client
        config: Optional TurnstileConfig, defaults to the environment

    Returns:
        VerificationResult
    """
    if not isinstance(token, str):
        return VerificationResult.failed(INVALID_TOKEN)

    if is_bypass_token(token):
        logger.warning('Turnstile: Accepting bypass token - %s', token)
        return VerificationResult.accepted()

    secret = resolve_config(config).secret_key
    if secret is None:
        logger.warning('Turnstile: No secret key configured, skipping verification')
        return VerificationResult.accepted()

    return _perform_verification(token, secret, remoteip)


def validate_turnstile(token, remoteip=None, config=None) -> bool:
    """
    Validate CloudFlare Turnstile token.

    Returns:
        bool: False only for a malformed token, True otherwise
    """
    return verify_token(token, remoteip=remoteip, config=config).allowed


def _build_request_body(token, secret, remoteip=None):
    data = {'secret': secret, 'response': token}
    if remoteip:
        data['remoteip'] = remoteip
    return data


def _perform_verification(token, secret, remoteip):
    try:
        response = requests.post(
            TURNSTILE_VERIFY_URL,
            json=_build_request_body(token, secret, remoteip),
            timeout=VERIFY_TIMEOUT
        )
    except requests.exceptions.RequestException as e:
        logger.error('Turnstile: Request failed - %r', e)
        return VerificationResult.failed(REQUEST_FAILED)

    return _handle_verification_response(response)


def _handle_verification_response(response):
    if response.status_code != 200:
        logger.error('Turnstile: Unexpected API status %s', response.status_code)
        return VerificationResult.failed(SERVICE_ERROR)

    try:
        body = response.json()
    except ValueError:
        logger.error('Turnstile: Unparseable API response')
        return VerificationResult.failed(SERVICE_ERROR)

    if not isinstance(body, dict):
        logger.error('Turnstile: Unexpected API response %r', body)
        return VerificationResult.failed(SERVICE_ERROR)

    success = body.get('success')
    error_codes = body.get('error-codes')

    if success is True:
        return VerificationResult.accepted()

    if success is False and isinstance(error_codes, list):
        logger.warning('Turnstile: Verification failed - %s', error_codes)
        return VerificationResult.rejected(error_codes)

    logger.error('Turnstile: Unexpected API response %r', body)
    return VerificationResult.failed(SERVICE_ERROR)
