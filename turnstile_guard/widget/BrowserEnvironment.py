"""
Host environment abstractions for the Turnstile widget controller.

The controller never touches a real DOM. It talks to a BrowserEnvironment
(script tags, element lookup, timers) and to the Element it owns, so the
same lifecycle can be driven by a browser bridge or a simulated browser.
"""

TURNSTILE_SCRIPT_URL = 'https://challenges.cloudflare.com/turnstile/v0/api.js?render=explicit'
TURNSTILE_SCRIPT_MARKER = 'turnstile'
WIDGET_ID_PREFIX = 'cf-chl-widget'


class Element:
    """A DOM element as seen by the widget controller."""

    def get_attribute(self, name):
        """Return the attribute value, or None when it is not set."""
        raise NotImplementedError

    def has_rendered_widget(self) -> bool:
        """True if the element holds an iframe or a ``cf-chl-widget*`` child."""
        raise NotImplementedError

    def clear(self):
        """Remove all children (``innerHTML = ''``)."""
        raise NotImplementedError


class BrowserEnvironment:
    """
    The parts of ``window``/``document`` the widget controller relies on.

    Timer handles are opaque; they only need to be accepted back by the
    matching ``clear_*`` method.
    """

    def turnstile(self):
        """Return the global ``turnstile`` API object, or None if not loaded."""
        raise NotImplementedError

    def has_script(self, src_fragment: str) -> bool:
        """True if a ``<script>`` whose src contains ``src_fragment`` exists."""
        raise NotImplementedError

    def inject_script(self, src: str, on_load, on_error):
        """Append an async/defer ``<script>`` to ``<head>``."""
        raise NotImplementedError

    def get_element_by_id(self, element_id: str):
        raise NotImplementedError

    def set_timeout(self, callback, delay_ms: int):
        raise NotImplementedError

    def clear_timeout(self, handle):
        raise NotImplementedError

    def set_interval(self, callback, interval_ms: int):
        raise NotImplementedError

    def clear_interval(self, handle):
        raise NotImplementedError


class CancellableTimer:
    """
    Single-fire timer on top of ``set_timeout``/``clear_timeout``.

    The callback runs at most once. After it fired, or after ``cancel()``,
    the timer is inert; cancelling twice is harmless.
    """

    def __init__(self, environment, delay_ms, callback):
        self.environment = environment
        self.delay_ms = delay_ms
        self.callback = callback
        self.fired = False
        self.cancelled = False
        self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self):
        if self.pending or self.fired or self.cancelled:
            return self
        self._handle = self.environment.set_timeout(self._fire, self.delay_ms)
        return self

    def cancel(self) -> bool:
        """Cancel the timer. Returns True if a pending callback was dropped."""
        if not self.pending:
            return False
        self.environment.clear_timeout(self._handle)
        self._handle = None
        self.cancelled = True
        return True

    def _fire(self):
        if not self.pending:
            return
        self._handle = None
        self.fired = True
        self.callback()
