"""
Simulated browser used to drive WidgetController in tests.

Time only moves when a test calls ``advance()``, so timers, polling and
deferred renders are fully deterministic.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from turnstile_guard.widget.BrowserEnvironment import (
    BrowserEnvironment,
    Element,
    WIDGET_ID_PREFIX
)


class SimElement(Element):

    def __init__(self, element_id, attributes=None, children=None):
        self.id = element_id
        self.attributes = dict(attributes or {})
        self.children = list(children or [])
        self.clear_count = 0

    def get_attribute(self, name):
        return self.attributes.get(name)

    def has_rendered_widget(self):
        return any(
            child == 'iframe' or child.startswith(WIDGET_ID_PREFIX)
            for child in self.children
        )

    def clear(self):
        self.children = []
        self.clear_count += 1


class SimTurnstile:
    """Stand-in for ``window.turnstile`` recording every call."""

    def __init__(self):
        self.renders = []
        self.resets = []
        self.removed = []

    def render(self, container, options):
        self.renders.append((container, options))
        widget_id = f'{WIDGET_ID_PREFIX}-{len(self.renders)}'
        container.children.append(widget_id)
        return widget_id

    def reset(self, widget_id):
        self.resets.append(widget_id)

    def remove(self, widget_id):
        self.removed.append(widget_id)

    @property
    def options(self):
        return self.renders[-1][1]


class SimBrowser(BrowserEnvironment):

    def __init__(self, api=None, scripts=None):
        self.api = api
        self.scripts = list(scripts or [])
        self.injected = []
        self.elements = {}
        self.now = 0
        self._timers = {}
        self._next_handle = 1

    # BrowserEnvironment

    def turnstile(self):
        return self.api

    def has_script(self, src_fragment):
        return any(src_fragment in src for src in self.scripts)

    def inject_script(self, src, on_load, on_error):
        self.scripts.append(src)
        self.injected.append((src, on_load, on_error))

    def get_element_by_id(self, element_id):
        return self.elements.get(element_id)

    def set_timeout(self, callback, delay_ms):
        return self._schedule(callback, delay_ms, None)

    def clear_timeout(self, handle):
        self._timers.pop(handle, None)

    def set_interval(self, callback, interval_ms):
        return self._schedule(callback, interval_ms, interval_ms)

    def clear_interval(self, handle):
        self._timers.pop(handle, None)

    # Test helpers

    def add_element(self, element):
        self.elements[element.id] = element
        return element

    def load_script(self, api=None):
        """Finish loading the last injected script."""
        _, on_load, _ = self.injected[-1]
        self.api = api or SimTurnstile()
        on_load()
        return self.api

    def fail_script(self):
        _, _, on_error = self.injected[-1]
        on_error()

    @property
    def pending_timers(self):
        return len(self._timers)

    def advance(self, ms):
        target = self.now + ms
        while True:
            due = [(timer[0], handle) for handle, timer in self._timers.items() if timer[0] <= target]
            if not due:
                break
            when, handle = min(due)
            self.now = when
            _, callback, interval = self._timers[handle]
            if interval is None:
                del self._timers[handle]
            else:
                self._timers[handle][0] = when + interval
            callback()
        self.now = target

    def _schedule(self, callback, delay_ms, interval):
        handle = self._next_handle
        self._next_handle += 1
        self._timers[handle] = [self.now + delay_ms, callback, interval]
        return handle
