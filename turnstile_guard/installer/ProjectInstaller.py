"""
Installs turnstile-guard into a consuming web project.

- Adds Turnstile keys to the project ``.env`` (Cloudflare test keys)
- Reports the Content Security Policy directives Turnstile needs
- Copies the JavaScript hook to ``assets/js/turnstile_hook.js``
- Registers the hook in ``assets/js/app.js``

Every step is idempotent: running the installer twice changes nothing
the second time. Problems are collected as warnings, not raised.
"""

import difflib
import os
import re
from typing import List

from beaupy import confirm
from dotenv import dotenv_values, set_key
from tqdm import tqdm

from turnstile_guard.utils.config_utils import (
    SECRET_KEY_ENV,
    SITE_KEY_ENV,
    TEST_SECRET_KEY,
    TEST_SITE_KEY
)

INSTALL_STEPS = 4

HOOK_ASSET = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'static', 'turnstile_hook.js')
HOOK_DEST = os.path.join('assets', 'js', 'turnstile_hook.js')
APP_JS = os.path.join('assets', 'js', 'app.js')
ENV_FILE = '.env'

HOOK_IMPORT = 'import TurnstileHook from "./turnstile_hook"'

CLOUDFLARE_DOMAIN = 'https://challenges.cloudflare.com'
CLOUDFLARE_WILDCARD = 'https://*.cloudflare.com'

CSP_DIRECTIVES = {
    'script-src': [CLOUDFLARE_DOMAIN, CLOUDFLARE_WILDCARD],
    'frame-src': [CLOUDFLARE_DOMAIN, CLOUDFLARE_WILDCARD],
    'style-src': [CLOUDFLARE_DOMAIN],
    'connect-src': [CLOUDFLARE_DOMAIN, CLOUDFLARE_WILDCARD],
    'child-src': [CLOUDFLARE_DOMAIN, CLOUDFLARE_WILDCARD],
}

_HOOKS_KEY = re.compile(r'\bhooks\s*:')
_HOOKS_OBJECT = re.compile(r'(\bhooks\s*:\s*\{)')
_HOOKS_IDENTIFIER = re.compile(r'\bhooks\s*:\s*([A-Za-z_$][\w$]*)(?=\s*[,}])')
_HOOKS_SHORTHAND = re.compile(r'([{,]\s*)hooks(?=\s*[,}])')
_LIVESOCKET_WITH_OPTIONS = re.compile(r'(new\s+LiveSocket\s*\([^)]+?,\s*\{)')
_LIVESOCKET_BARE = re.compile(r'(new\s+LiveSocket\s*\()([^,()]+),\s*([^,()]+)\)')
_IMPORT_END = re.compile(r'^\}\s*from\s')


class InstallReport:
    """Files changed (or, in dry-run mode, that would change) and warnings."""

    def __init__(self):
        self.changed_files: List[str] = []
        self.warnings: List[str] = []
        self.diffs: List[str] = []

    @property
    def changed(self) -> bool:
        return bool(self.changed_files)


def csp_warning() -> str:
    lines = [f'{directive}: {" ".join(sources)}' for directive, sources in CSP_DIRECTIVES.items()]
    return (
        'Content Security Policy headers are not updated automatically.\n'
        'If your application sends a CSP, add these sources:\n\n' + '\n'.join(lines)
    )


def add_import_line(content: str, import_line: str = HOOK_IMPORT) -> str:
    """Insert ``import_line`` after the last import statement of the leading import block."""
    lines = content.split('\n')
    last_import = None
    for i, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith('import ') or _IMPORT_END.match(stripped):
            last_import = i
        elif stripped and last_import is not None and not line[:1].isspace():
            break

    position = 0 if last_import is None else last_import + 1
    lines.insert(position, import_line)
    return '\n'.join(lines)


def add_to_hooks_object(content: str):
    """
    Register TurnstileHook with the LiveSocket.

    Returns:
        tuple: (updated_content, registered: bool)
    """
    # Never add a second hooks key: the later one would win
    if _HOOKS_KEY.search(content):
        if _HOOKS_OBJECT.search(content):
            return _HOOKS_OBJECT.sub(r'\1TurnstileHook, ', content, count=1), True
        if _HOOKS_IDENTIFIER.search(content):
            return _HOOKS_IDENTIFIER.sub(
                r'hooks: {TurnstileHook, ...\1}', content, count=1
            ), True
        return content, False

    if _HOOKS_SHORTHAND.search(content):
        return _HOOKS_SHORTHAND.sub(
            r'\1hooks: {TurnstileHook, ...hooks}', content, count=1
        ), True

    if _LIVESOCKET_WITH_OPTIONS.search(content):
        return _LIVESOCKET_WITH_OPTIONS.sub(
            r'\1\n  hooks: {TurnstileHook},', content, count=1
        ), True

    if _LIVESOCKET_BARE.search(content):
        return _LIVESOCKET_BARE.sub(
            r'\1\2, \3, {\n  hooks: {TurnstileHook}\n})', content, count=1
        ), True

    return content, False


def register_hook(content: str):
    """Import and register the hook in app.js content. Already registered content is kept."""
    if 'turnstile_hook' in content:
        return content, True
    updated, registered = add_to_hooks_object(content)
    if not registered:
        return content, False
    return add_import_line(updated), True


def _read(path):
    with open(path, 'r', encoding='utf8') as f:
        return f.read()


class ProjectInstaller:
    """
    Applies the installation steps to a project directory.

    Args:
        project_dir: Root of the consuming project
        dry_run: Compute diffs without writing anything
        force: Overwrite a modified turnstile_hook.js without asking
        interactive: Ask before overwriting a modified turnstile_hook.js
        quiet: Hide the progress bar
    """

    def __init__(self, project_dir, dry_run=False, force=False, interactive=False, quiet=True):
        self.project_dir = os.path.abspath(project_dir)
        self.dry_run = dry_run
        self.force = force
        self.interactive = interactive
        self.quiet = quiet
        self.report = InstallReport()

    def path(self, relative):
        return os.path.join(self.project_dir, relative)

    def install(self) -> InstallReport:
        steps = (
            ('Adding configuration', self.add_configuration),
            ('Checking CSP', self.add_csp_warning),
            ('Copying hook', self.copy_javascript_hook),
            ('Registering hook', self.register_hook_in_app_js),
        )
        pbar = tqdm(total=INSTALL_STEPS, desc='Installing turnstile-guard', unit='step',
                    disable=self.quiet)
        for description, step in steps:
            pbar.set_description(description)
            step()
            pbar.update(1)
        pbar.close()
        return self.report

    def _record(self, relative, old, new):
        self.report.changed_files.append(relative)
        diff = difflib.unified_diff(
            old.splitlines(keepends=True), new.splitlines(keepends=True),
            fromfile=f'a/{relative}', tofile=f'b/{relative}'
        )
        self.report.diffs.append(''.join(diff))

    def _write(self, relative, old, new):
        self._record(relative, old, new)
        if self.dry_run:
            return
        path = self.path(relative)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf8') as f:
            f.write(new)

    def add_configuration(self):
        env_path = self.path(ENV_FILE)
        old = _read(env_path) if os.path.exists(env_path) else ''
        existing = dotenv_values(env_path) if os.path.exists(env_path) else {}

        missing = [
            (key, value)
            for key, value in ((SITE_KEY_ENV, TEST_SITE_KEY), (SECRET_KEY_ENV, TEST_SECRET_KEY))
            if key not in existing
        ]
        if not missing:
            return

        if self.dry_run:
            prefix = old if not old or old.endswith('\n') else old + '\n'
            planned = prefix + ''.join(f"{key}='{value}'\n" for key, value in missing)
            self._record(ENV_FILE, old, planned)
            return

        if not os.path.exists(env_path):
            open(env_path, 'a').close()
        for key, value in missing:
            set_key(env_path, key, value)
        self._record(ENV_FILE, old, _read(env_path))

    def add_csp_warning(self):
        self.report.warnings.append(csp_warning())

    def copy_javascript_hook(self):
        if not os.path.exists(HOOK_ASSET):
            self.report.warnings.append(
                'Could not copy turnstile_hook.js. Please copy it manually from the '
                'turnstile-guard package.'
            )
            return

        content = _read(HOOK_ASSET)
        dest = self.path(HOOK_DEST)
        if not os.path.exists(dest):
            self._write(HOOK_DEST, '', content)
            return

        current = _read(dest)
        if current == content:
            return

        overwrite = self.force or (
            self.interactive and confirm(f'{HOOK_DEST} has local changes. Overwrite it?')
        )
        if overwrite:
            self._write(HOOK_DEST, current, content)
        else:
            self.report.warnings.append(
                f'{HOOK_DEST} differs from the packaged hook and was kept. '
                'Use --force to overwrite it.'
            )

    def register_hook_in_app_js(self):
        app_js = self.path(APP_JS)
        if not os.path.exists(app_js):
            self.report.warnings.append(
                f'Could not find {APP_JS}. Register the hook manually:\n'
                f'  {HOOK_IMPORT}\n'
                '  new LiveSocket("/live", Socket, {hooks: {TurnstileHook}})'
            )
            return

        content = _read(app_js)
        updated, registered = register_hook(content)
        if not registered:
            self.report.warnings.append(
                f'Could not register TurnstileHook in {APP_JS}. Add it to the LiveSocket hooks manually.'
            )
        elif updated != content:
            self._write(APP_JS, content, updated)
