"""
Turnstile credential configuration.

Credentials are process-wide configuration sourced from the environment.
They are read fresh on every call so tests can patch ``os.environ`` and
get isolated behaviour without any cache to reset.
"""

import os
from typing import Optional

SITE_KEY_ENV = 'TURNSTILE_SITE_KEY'
SECRET_KEY_ENV = 'TURNSTILE_SECRET_KEY'

# Cloudflare test keys, always pass on localhost
TEST_SITE_KEY = '1x00000000000000000000AA'
TEST_SECRET_KEY = '1x0000000000000000000000000000000AA'


def _present(value):
    return value if value else None


class TurnstileConfig:
    """
    Turnstile credentials (site key and secret key).

    Either key may be ``None``. Turnstile is only considered enabled when
    both are configured.

    Args:
        site_key: Public key used by the client-side widget
        secret_key: Private key used for server-side verification
    """

    def __init__(self, site_key: Optional[str] = None, secret_key: Optional[str] = None):
        self.site_key = _present(site_key)
        self.secret_key = _present(secret_key)

    @classmethod
    def from_env(cls, environ=None) -> 'TurnstileConfig':
        """Build a config from ``TURNSTILE_SITE_KEY`` / ``TURNSTILE_SECRET_KEY``."""
        environ = os.environ if environ is None else environ
        return cls(
            site_key=environ.get(SITE_KEY_ENV),
            secret_key=environ.get(SECRET_KEY_ENV)
        )

    @classmethod
    def test_keys(cls) -> 'TurnstileConfig':
        return cls(site_key=TEST_SITE_KEY, secret_key=TEST_SECRET_KEY)

    @property
    def enabled(self) -> bool:
        return self.site_key is not None and self.secret_key is not None

    def __eq__(self, other):
        if not isinstance(other, TurnstileConfig):
            return NotImplemented
        return (self.site_key, self.secret_key) == (other.site_key, other.secret_key)

    def __repr__(self):
        # Never print the secret itself
        secret = '***' if self.secret_key else None
        return f'TurnstileConfig(site_key={self.site_key!r}, secret_key={secret!r})'


def resolve_config(config=None) -> TurnstileConfig:
    """Return ``config`` if given, otherwise a fresh read of the environment."""
    if config is not None:
        return config
    return TurnstileConfig.from_env()
