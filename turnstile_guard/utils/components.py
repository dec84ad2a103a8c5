"""
HTML components for rendering the Turnstile widget.

Both helpers render nothing when Turnstile is not enabled, so templates
can include them unconditionally.

IMPORTANT: do not use ``id="turnstile"`` for the widget or its container.
Browsers expose element ids as globals and ``window.turnstile`` is the
CloudFlare API object; a colliding id replaces it and every render ends in
a ``bypass-no-render-method`` token.
"""

import logging
from html import escape

from turnstile_guard.utils.config_utils import resolve_config

logger = logging.getLogger(__name__)

HOOK_NAME = 'TurnstileHook'
DEFAULT_CONTAINER_ID = 'turnstile-container'
DEFAULT_LOADING_TEXT = 'Loading verification...'
RESERVED_ID = 'turnstile'

SPINNER_SVG = (
    '<svg class="animate-spin h-5 w-5 mr-2" xmlns="http://www.w3.org/2000/svg" '
    'fill="none" viewBox="0 0 24 24">'
    '<circle class="opacity-25" cx="12" cy="12" r="10" stroke="currentColor" '
    'stroke-width="4"></circle>'
    '<path class="opacity-75" fill="currentColor" '
    'd="M4 12a8 8 0 018-8V0C5.373 0 0 5.373 0 12h4zm2 5.291A7.962 7.962 0 014 12H0'
    'c0 3.042 1.135 5.824 3 7.938l3-2.647z"></path>'
    '</svg>'
)


def _attrs(**attrs):
    return ' '.join(
        f'{name.rstrip("_").replace("_", "-")}="{escape(str(value), quote=True)}"'
        for name, value in attrs.items()
    )


def _check_reserved_ids(*ids):
    for element_id in ids:
        if element_id == RESERVED_ID:
            logger.warning(
                'Turnstile: id="%s" collides with the window.turnstile API object, '
                'use a different id such as "turnstile-widget"', element_id
            )


def _hook_element(id, container_id, site_key, inner='', class_=None):
    attrs = {'id': id, 'phx_hook': HOOK_NAME, 'data_sitekey': site_key,
             'data_container_id': container_id}
    if class_ is not None:
        attrs['class_'] = class_
    return (
        f'<div {_attrs(**attrs)}>'
        f'<div {_attrs(id=container_id)}>{inner}</div>'
        '</div>'
    )


def widget(id, class_='', container_id=DEFAULT_CONTAINER_ID, config=None) -> str:
    """
    Render a Turnstile widget.

    Args:
        id: Unique id for the hook element (avoid "turnstile")
        class_: CSS classes for the widget element
        container_id: Id of the inner container receiving the challenge
        config: Optional TurnstileConfig, defaults to the environment

    Returns:
        str: Widget markup, or an empty string when Turnstile is disabled
    """
    config = resolve_config(config)
    if not config.enabled:
        return ''

    _check_reserved_ids(id, container_id)
    return _hook_element(id, container_id, config.site_key or '', class_=class_)


def widget_with_loading(id, class_='', container_id=DEFAULT_CONTAINER_ID,
                        loading_text=DEFAULT_LOADING_TEXT, config=None) -> str:
    """
    Render a Turnstile widget with a loading indicator.

    The indicator sits inside the container and is cleared by the hook
    right before the challenge renders.
    """
    config = resolve_config(config)
    if not config.enabled:
        return ''

    _check_reserved_ids(id, container_id)
    indicator = (
        '<div class="flex items-center justify-center p-4 text-sm text-gray-600">'
        f'{SPINNER_SVG}{escape(loading_text)}'
        '</div>'
    )
    hook = _hook_element(id, container_id, config.site_key or '', inner=indicator)
    return f'<div {_attrs(class_=class_)}>{hook}</div>'
