"""
turnstile-guard: Cloudflare Turnstile integration with graceful failure handling.

Verification failures never block users. Bypass tokens, a missing secret
key, a rejected token and an unreachable Cloudflare are all logged and
returned as values; only a malformed token argument is refused.

    from turnstile_guard import verify_token

    result = verify_token(token, remoteip=client_ip)
    if result.allowed:
        ...

Configuration comes from ``TURNSTILE_SITE_KEY`` and ``TURNSTILE_SECRET_KEY``.
Do not use ``id="turnstile"`` for the widget element, it shadows the
CloudFlare ``window.turnstile`` object.
"""

__version__ = '0.1.0'

from .utils.config_utils import TurnstileConfig
from .utils.turnstile_utils import VerificationResult, enabled, site_key, verify_token

__all__ = [
    'TurnstileConfig',
    'VerificationResult',
    'enabled',
    'site_key',
    'verify_token',
    'version',
]


def version() -> str:
    return __version__
