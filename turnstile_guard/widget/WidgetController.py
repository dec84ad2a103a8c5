"""
Client-side lifecycle of one Turnstile widget.

Implements graceful failure: every failure path ends in a labelled
bypass token (``bypass-<reason>``) pushed to the server, so the host
application is never left without a token.
"""

import logging
from enum import Enum

from turnstile_guard.utils.turnstile_utils import bypass_token
from turnstile_guard.widget.BrowserEnvironment import (
    CancellableTimer,
    TURNSTILE_SCRIPT_MARKER,
    TURNSTILE_SCRIPT_URL
)

logger = logging.getLogger(__name__)

CALLBACK_EVENT = 'turnstile_callback'
RESET_EVENT = 'reset_turnstile'

DEFAULT_CONTAINER_ID = 'turnstile-container'
UNSET_ATTRIBUTE_VALUES = (None, '', 'undefined', 'null')

RENDER_DELAY_MS = 100
SCRIPT_POLL_INTERVAL_MS = 100
SCRIPT_WAIT_MS = 5000
WIDGET_TIMEOUT_MS = 6000


class WidgetState(Enum):
    UNINITIALIZED = 'uninitialized'
    SCRIPT_LOADING = 'script_loading'
    SCRIPT_READY = 'script_ready'
    RENDERING = 'rendering'
    RENDERED = 'rendered'
    VERIFIED = 'verified'
    EXPIRED = 'expired'
    ERRORED = 'errored'
    RESET = 'reset'
    BYPASSED = 'bypassed'
    DESTROYED = 'destroyed'


class WidgetEvent(Enum):
    MOUNT = 'mount'
    SCRIPT_READY = 'script_ready'
    RENDER_STARTED = 'render_started'
    RENDERED = 'rendered'
    SUCCESS = 'success'
    EXPIRED = 'expired'
    ERROR = 'error'
    PROVIDER_TIMEOUT = 'provider_timeout'
    RESET = 'reset'
    BYPASS = 'bypass'
    DESTROY = 'destroy'


TRANSITIONS = {
    WidgetEvent.MOUNT: WidgetState.SCRIPT_LOADING,
    WidgetEvent.SCRIPT_READY: WidgetState.SCRIPT_READY,
    WidgetEvent.RENDER_STARTED: WidgetState.RENDERING,
    WidgetEvent.RENDERED: WidgetState.RENDERED,
    WidgetEvent.SUCCESS: WidgetState.VERIFIED,
    WidgetEvent.EXPIRED: WidgetState.EXPIRED,
    WidgetEvent.ERROR: WidgetState.ERRORED,
    WidgetEvent.PROVIDER_TIMEOUT: WidgetState.ERRORED,
    WidgetEvent.RESET: WidgetState.RESET,
    WidgetEvent.BYPASS: WidgetState.BYPASSED,
    WidgetEvent.DESTROY: WidgetState.DESTROYED,
}


def _attribute(element, name):
    value = element.get_attribute(name)
    return None if value in UNSET_ATTRIBUTE_VALUES else value


class WidgetController:
    """
    Drives one Turnstile widget inside one element.

    Args:
        element: The hook element carrying ``data-sitekey`` and
                 ``data-container-id``
        environment: BrowserEnvironment used for scripts, lookups and timers
        push_event: ``push_event(name, payload)`` sending events to the server
        handle_event: Optional ``handle_event(name, callback)`` used to
                      subscribe to server events (``reset_turnstile``)
    """

    def __init__(self, element, environment, push_event, handle_event=None):
        self.el = element
        self.environment = environment
        self.push_event = push_event
        self.handle_event = handle_event
        self.state = WidgetState.UNINITIALIZED
        self.sitekey = None
        self.container_id = None
        self.widget_id = None
        self.timeout_timer = None
        self._render_timer = None
        self._script_wait_timer = None
        self._poll_handle = None

    @property
    def destroyed(self) -> bool:
        return self.state is WidgetState.DESTROYED

    def _dispatch(self, event):
        if self.destroyed:
            return
        previous, self.state = self.state, TRANSITIONS[event]
        logger.debug('Turnstile: %s --%s--> %s', previous.value, event.value, self.state.value)

    def send_bypass_token(self, reason):
        logger.warning('Turnstile: Bypassing verification - %s', reason)
        self._dispatch(WidgetEvent.BYPASS)
        self.push_event(CALLBACK_EVENT, {'token': bypass_token(reason)})

    # Mount

    def mount(self):
        try:
            sitekey = _attribute(self.el, 'data-sitekey')
            if sitekey is None:
                return self.send_bypass_token('no-key')

            self.sitekey = sitekey
            self.container_id = _attribute(self.el, 'data-container-id') or DEFAULT_CONTAINER_ID
            self._dispatch(WidgetEvent.MOUNT)
            self.load_script()
            self._setup_reset_handler()
        except Exception as e:
            logger.error('Turnstile: Initialization error - %r', e)
            self.send_bypass_token('init-error')

    def _setup_reset_handler(self):
        if self.handle_event is not None:
            self.handle_event(RESET_EVENT, lambda payload=None: self.reset())

    # Script acquisition

    def load_script(self):
        if self.environment.turnstile():
            return self._script_ready()

        if self.environment.has_script(TURNSTILE_SCRIPT_MARKER):
            return self._wait_for_script()

        self.environment.inject_script(
            TURNSTILE_SCRIPT_URL,
            on_load=self._script_ready,
            on_error=self._script_error
        )

    def _script_ready(self):
        if self.destroyed:
            return
        try:
            self._dispatch(WidgetEvent.SCRIPT_READY)
            self._render_timer = CancellableTimer(
                self.environment, RENDER_DELAY_MS, self.render_widget
            ).start()
        except Exception as e:
            logger.error('Turnstile: Script ready error - %r', e)
            self.send_bypass_token('script-error')

    def _script_error(self):
        if self.destroyed:
            return
        self.send_bypass_token('script-error')

    def _wait_for_script(self):
        self._poll_handle = self.environment.set_interval(
            self._poll_for_script, SCRIPT_POLL_INTERVAL_MS
        )
        self._script_wait_timer = CancellableTimer(
            self.environment, SCRIPT_WAIT_MS, self._script_wait_expired
        ).start()

    def _stop_polling(self):
        if self._poll_handle is not None:
            self.environment.clear_interval(self._poll_handle)
            self._poll_handle = None

    def _poll_for_script(self):
        if self.destroyed:
            return
        try:
            loaded = self.environment.turnstile()
        except Exception as e:
            logger.error('Turnstile: Script wait error - %r', e)
            self._stop_polling()
            self._script_wait_timer.cancel()
            return self.send_bypass_token('script-error')

        if loaded:
            self._stop_polling()
            self._script_wait_timer.cancel()
            self._script_ready()

    def _script_wait_expired(self):
        if self.destroyed:
            return
        try:
            self._stop_polling()
            loaded = self.environment.turnstile()
        except Exception as e:
            logger.error('Turnstile: Script wait error - %r', e)
            return self.send_bypass_token('script-error')

        if not loaded:
            self.send_bypass_token('script-timeout')

    # Render

    def render_widget(self):
        if self.destroyed:
            return
        try:
            if not self._can_render():
                return

            container = self._get_container()
            if container is None:
                return

            container.clear()
            self.widget_id = self._create_widget(container)
        except Exception as e:
            logger.error('Turnstile: Render error - %r', e)
            self.send_bypass_token('render-error')

    def _can_render(self):
        api = self.environment.turnstile()
        if not api:
            self.send_bypass_token('no-api')
            return False

        if not callable(getattr(api, 'render', None)):
            logger.error(
                "Turnstile: render method not found. Make sure element ID is not 'turnstile'"
            )
            self.send_bypass_token('no-render-method')
            return False

        return self.widget_id is None

    def _get_container(self):
        container = self.environment.get_element_by_id(self.container_id)
        if container is None:
            logger.error('Turnstile: Container with id="%s" not found', self.container_id)
            self.send_bypass_token('no-container')
            return None

        # Another render already succeeded
        if container.has_rendered_widget():
            return None

        return container

    def _create_widget(self, container):
        try:
            self._dispatch(WidgetEvent.RENDER_STARTED)
            self.timeout_timer = CancellableTimer(
                self.environment, WIDGET_TIMEOUT_MS, self._on_local_timeout
            ).start()

            widget_id = self.environment.turnstile().render(container, {
                'sitekey': self.sitekey,
                'theme': 'auto',
                'size': 'invisible',
                'callback': self._on_success,
                'error-callback': self._on_error,
                'expired-callback': self._on_expired,
                'timeout-callback': self._on_provider_timeout
            })
            if self.state is WidgetState.RENDERING:
                self._dispatch(WidgetEvent.RENDERED)
            logger.info('Turnstile: Invisible widget loaded successfully')
            return widget_id
        except Exception as e:
            logger.error('Turnstile: Failed to create widget - %r', e)
            self._cancel_timeout()
            self.send_bypass_token('create-error')
            return None

    def _cancel_timeout(self):
        if self.timeout_timer is not None:
            self.timeout_timer.cancel()
            self.timeout_timer = None

    # Remote callbacks

    def _on_success(self, token):
        if self.destroyed:
            return
        logger.info('Turnstile: Token generated successfully')
        self._cancel_timeout()
        self._dispatch(WidgetEvent.SUCCESS)
        self.push_event(CALLBACK_EVENT, {'token': token})

    def _on_error(self, *args):
        if self.destroyed:
            return
        logger.warning('Turnstile: Widget error')
        self._cancel_timeout()
        self._dispatch(WidgetEvent.ERROR)
        self.send_bypass_token('widget-error')

    def _on_expired(self, *args):
        # The local timeout keeps running, so a later 'timeout' bypass may follow
        if self.destroyed:
            return
        logger.info('Turnstile: Token expired')
        self._dispatch(WidgetEvent.EXPIRED)
        self.push_event(CALLBACK_EVENT, {'token': None})

    def _on_provider_timeout(self, *args):
        if self.destroyed:
            return
        logger.warning('Turnstile: Widget timeout callback')
        self._cancel_timeout()
        self._dispatch(WidgetEvent.PROVIDER_TIMEOUT)
        self.send_bypass_token('widget-timeout')

    def _on_local_timeout(self):
        self.timeout_timer = None
        logger.warning('Turnstile: Widget timeout after %s seconds, bypassing',
                       WIDGET_TIMEOUT_MS // 1000)
        self.send_bypass_token('timeout')

    # Reset / teardown

    def reset(self):
        api = self.environment.turnstile()
        if not api or self.widget_id is None or self.destroyed:
            return
        try:
            api.reset(self.widget_id)
            self._dispatch(WidgetEvent.RESET)
            logger.info('Turnstile: Widget reset')
        except Exception as e:
            logger.warning('Turnstile: Reset failed - %r', e)

    def destroy(self):
        if self.destroyed:
            return
        self._cancel_timeout()
        for timer in (self._render_timer, self._script_wait_timer):
            if timer is not None:
                timer.cancel()
        self._stop_polling()

        api = self.environment.turnstile()
        if api and self.widget_id is not None:
            try:
                api.remove(self.widget_id)
                self.widget_id = None
                logger.info('Turnstile: Widget removed')
            except Exception as e:
                logger.warning('Turnstile: Cleanup error - %r', e)

        self._dispatch(WidgetEvent.DESTROY)
