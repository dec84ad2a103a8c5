import argparse
import logging
import sys

from dotenv import find_dotenv, load_dotenv
from huepy import bad, bold, good, info, orange

from turnstile_guard import __version__
from turnstile_guard.installer.ProjectInstaller import ProjectInstaller
from turnstile_guard.utils.config_utils import TurnstileConfig
from turnstile_guard.utils.turnstile_utils import verify_token

__author__ = "turnstile-guard contributors"

parser = argparse.ArgumentParser(
    prog='turnstile-guard',
    description='Cloudflare Turnstile integration with graceful failure handling'
)
parser.add_argument('-v', '--version', action='version', version=f'turnstile-guard {__version__}')
parser.add_argument('--debug', dest='debug', action='store_true', help='Show debug logging')

subparsers = parser.add_subparsers(dest='subcommand', help='Subcommands')

install_parser = subparsers.add_parser('install', help='Install Turnstile into a web project (config, JS hook, app.js)')
install_parser.add_argument('project_dir', nargs='?', default='.', help='Project root (default: current directory)')
install_parser.add_argument('--dry-run', dest='dry_run', action='store_true', help='Show the changes without writing them')
install_parser.add_argument('--force', dest='force', action='store_true', help='Overwrite a modified turnstile_hook.js')
install_parser.add_argument('-q', '--quiet', dest='quiet', action='store_true', help='Hide the progress bar')

verify_parser = subparsers.add_parser('verify', help='Verify a Turnstile token against Cloudflare')
verify_parser.add_argument('token', help='Token returned by the widget (bypass-* tokens are always accepted)')
verify_parser.add_argument('--remoteip', dest='remoteip', help='Client IP address')

status_parser = subparsers.add_parser('status', help='Show whether Turnstile is configured')


def _install(args):
    installer = ProjectInstaller(
        args.project_dir,
        dry_run=args.dry_run,
        force=args.force,
        interactive=sys.stdin.isatty(),
        quiet=args.quiet
    )
    report = installer.install()

    if args.dry_run:
        for diff in report.diffs:
            print(diff)

    if report.changed:
        verb = 'Would update' if args.dry_run else 'Updated'
        print(good(f"{verb}: [ {bold(' '.join(report.changed_files))} ]"))
    else:
        print(info('Nothing to change, turnstile-guard is already installed.'))

    for warning in report.warnings:
        print(orange(f'[!] {warning}'))
    return 0


def _verify(args):
    result = verify_token(args.token, remoteip=args.remoteip)
    if result.verified:
        print(good('Token verified.'))
    elif result.error:
        print(bad(f'Could not verify token: {result.error}'))
    else:
        print(bad(f"Token rejected: {', '.join(result.error_codes) or 'no error codes'}"))

    if result.allowed and not result.verified:
        print(info('Request would still be allowed (fail-open).'))
    return 0 if result.allowed else 1


def _status(args):
    config = TurnstileConfig.from_env()
    if config.enabled:
        print(good(f'Turnstile enabled with site key {bold(config.site_key)}'))
    else:
        print(orange('Turnstile disabled, verification will be skipped.'))
        if config.site_key is None:
            print(info('TURNSTILE_SITE_KEY is not set.'))
        if config.secret_key is None:
            print(info('TURNSTILE_SECRET_KEY is not set.'))
    return 0


COMMANDS = {
    'install': _install,
    'verify': _verify,
    'status': _status,
}


def main(argv=None):
    """Main entry point for the turnstile-guard CLI."""
    args = parser.parse_args(argv)
    load_dotenv(find_dotenv(usecwd=True))
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    if not args.subcommand:
        print(info('Welcome to turnstile-guard! Use "turnstile-guard -h" for help.'))
        return 0

    return COMMANDS[args.subcommand](args)


if __name__ == '__main__':
    sys.exit(main())
