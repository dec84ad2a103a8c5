"""
Unit tests for the widget HTML components.
"""

import os
import sys
import unittest
from unittest.mock import patch

# Add parent directory to path to import turnstile_guard modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from turnstile_guard.utils.components import widget, widget_with_loading
from turnstile_guard.utils.config_utils import TurnstileConfig

ENABLED_ENV = {'TURNSTILE_SITE_KEY': 'test-site-key', 'TURNSTILE_SECRET_KEY': 'test-secret-key'}
LOGGER = 'turnstile_guard.utils.components'


class TestWidget(unittest.TestCase):
    """Test cases for widget()."""

    @patch.dict(os.environ, {}, clear=True)
    def test_renders_nothing_when_disabled(self):
        self.assertEqual(widget(id='turnstile-widget'), '')

    @patch.dict(os.environ, {'TURNSTILE_SITE_KEY': 'test-site-key'}, clear=True)
    def test_renders_nothing_without_secret(self):
        self.assertEqual(widget(id='turnstile-widget'), '')

    @patch.dict(os.environ, ENABLED_ENV, clear=True)
    def test_renders_widget_when_enabled(self):
        html = widget(id='turnstile-widget')

        self.assertIn('id="turnstile-widget"', html)
        self.assertIn('phx-hook="TurnstileHook"', html)
        self.assertIn('data-sitekey="test-site-key"', html)
        self.assertIn('data-container-id="turnstile-container"', html)
        self.assertIn('<div id="turnstile-container"></div>', html)
        self.assertNotIn('test-secret-key', html)

    @patch.dict(os.environ, ENABLED_ENV, clear=True)
    def test_custom_class_and_container(self):
        html = widget(id='my-turnstile', class_='flex justify-center my-4', container_id='custom-container')

        self.assertIn('class="flex justify-center my-4"', html)
        self.assertIn('data-container-id="custom-container"', html)
        self.assertIn('<div id="custom-container"></div>', html)

    def test_explicit_config(self):
        with patch.dict(os.environ, {}, clear=True):
            html = widget(id='turnstile-widget', config=TurnstileConfig('explicit-key', 'secret'))

        self.assertIn('data-sitekey="explicit-key"', html)

    @patch.dict(os.environ, ENABLED_ENV, clear=True)
    def test_attributes_are_escaped(self):
        html = widget(id='w"><script>', class_='a&b')

        self.assertNotIn('<script>', html)
        self.assertIn('class="a&amp;b"', html)

    @patch.dict(os.environ, ENABLED_ENV, clear=True)
    def test_reserved_id_warns(self):
        with self.assertLogs(LOGGER, level='WARNING') as logs:
            html = widget(id='turnstile')

        self.assertIn('id="turnstile"', html)
        self.assertIn('window.turnstile', logs.output[0])

    @patch.dict(os.environ, ENABLED_ENV, clear=True)
    def test_reserved_container_id_warns(self):
        with self.assertLogs(LOGGER, level='WARNING'):
            widget(id='turnstile-widget', container_id='turnstile')


class TestWidgetWithLoading(unittest.TestCase):
    """Test cases for widget_with_loading()."""

    @patch.dict(os.environ, {}, clear=True)
    def test_renders_nothing_when_disabled(self):
        self.assertEqual(widget_with_loading(id='turnstile-widget'), '')

    @patch.dict(os.environ, ENABLED_ENV, clear=True)
    def test_renders_loading_indicator(self):
        html = widget_with_loading(id='turnstile-widget')

        self.assertIn('phx-hook="TurnstileHook"', html)
        self.assertIn('Loading verification...', html)
        self.assertIn('animate-spin', html)
        self.assertIn('<div id="turnstile-container">', html)

    @patch.dict(os.environ, ENABLED_ENV, clear=True)
    def test_custom_loading_text(self):
        html = widget_with_loading(id='turnstile-widget', loading_text='Please wait <3')

        self.assertIn('Please wait &lt;3', html)
        self.assertNotIn('Loading verification...', html)

    @patch.dict(os.environ, ENABLED_ENV, clear=True)
    def test_class_on_outer_container(self):
        html = widget_with_loading(id='my-turnstile', class_='my-custom-class', container_id='my-container')

        self.assertTrue(html.startswith('<div class="my-custom-class"><div id="my-turnstile"'))
        self.assertIn('data-container-id="my-container"', html)


if __name__ == '__main__':
    unittest.main()
