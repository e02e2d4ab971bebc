"""luxsync command line.

    luxsync authorize            link a Slack workspace
    luxsync logout [--yes]       remove the Slack integration
    luxsync status               show session and config summary
    luxsync run busy [--dim]     drive the light (and Slack) until interrupted
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from .app import Availability, LuxsyncApp
from .config import ConfigManager, LuxsyncConfig
from .errors import AuthorizationError
from .light.device import SPEED_MAX, SPEED_MIN, validate_speed
from .slack.oauth import require_credentials

logger = logging.getLogger(__name__)

InputFunc = Callable[[str], str]


def transition_speed(value: str) -> int:
    """argparse type for --speed: an int in the 8-bit signed range."""
    try:
        return validate_speed(int(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be an integer in {SPEED_MIN}..{SPEED_MAX}, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="luxsync", description="Luxafor status light with Slack Do Not Disturb sync")
    parser.add_argument("--config", type=Path, default=None, help="Config file (default: ~/.luxsync/config.yaml)")
    parser.add_argument("--mock", action="store_true", help="Use a mock light and in-memory token store")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("authorize", help="Link a Slack workspace")
    logout = sub.add_parser("logout", help="Remove the Slack integration")
    logout.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    sub.add_parser("status", help="Show session and config summary")
    run = sub.add_parser("run", help="Show availability until interrupted")
    run.add_argument("availability", choices=[a.value for a in Availability])
    run.add_argument("--dim", action="store_true", help="Dimmed brightness")
    run.add_argument("--speed", type=transition_speed, default=None, help="Transition speed (-128..127)")
    return parser


async def authorize(app: LuxsyncApp, config: LuxsyncConfig, input_func: InputFunc = input) -> int:
    """Open the authorize page, read the redirect URL back, exchange the code."""
    try:
        require_credentials(config.slack)
        url = app.slack.add_integration()
    except AuthorizationError as e:
        print(f"Slack authentication failed: {e}", file=sys.stderr)
        return 1

    print(f"Opened {url}")
    redirect = input_func("Paste the URL Slack redirected to: ").strip()
    if not app.slack.handle_redirect(redirect):
        print(f"Not a luxsync activation URL: {redirect}", file=sys.stderr)
        return 1

    await app.slack.wait_idle()
    if app.last_auth_message:
        print(app.last_auth_message)
    return 0 if app.slack.is_logged_in else 1


def logout(app: LuxsyncApp, assume_yes: bool = False, input_func: InputFunc = input) -> int:
    def confirm() -> bool:
        answer = input_func(
            "Remove Slack integration? Your Do Not Disturb status will no longer be published. [y/N] "
        )
        return answer.strip().lower() in ("y", "yes")

    removed = app.slack.remove_integration(None if assume_yes else confirm)
    print("Slack integration removed." if removed else "Cancelled.")
    return 0


def status(app: LuxsyncApp, config: LuxsyncConfig) -> int:
    print(f"Slack: {'logged in' if app.slack.is_logged_in else 'logged out'}")
    print(f"Slack app configured: {'yes' if config.slack.is_configured else 'no'}")
    print(f"Light: {config.light.vendor_id:04x}:{config.light.product_id:04x}")
    print(f"Token file: {config.resolved_token_path}")
    return 0


async def run(
    app: LuxsyncApp,
    availability: Availability,
    dim: bool = False,
    speed: Optional[int] = None,
    stop: Optional[asyncio.Event] = None,
) -> int:
    """Apply availability, then keep the monitor alive until stop is set."""
    if not app.start():
        print("Light: failed to start USB detector", file=sys.stderr)
    try:
        if speed is not None:
            app.light.set_transition_speed(speed)
        app.set_dimmed(dim)
        app.set_availability(availability)
        await app.slack.wait_idle()
        await (stop or asyncio.Event()).wait()
    finally:
        await app.slack.wait_idle()
        app.stop()
    return 0


async def _main_async(args: argparse.Namespace, config: LuxsyncConfig) -> int:
    app = LuxsyncApp.from_config(config, mock=args.mock)

    if args.command == "authorize":
        app.slack.attach(app)
        return await authorize(app, config)
    if args.command == "logout":
        app.slack.attach(app)
        return logout(app, assume_yes=args.yes)
    if args.command == "status":
        app.slack.attach(app)
        return status(app, config)
    return await run(app, Availability(args.availability), dim=args.dim, speed=args.speed)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = ConfigManager(args.config).load()
    try:
        return asyncio.run(_main_async(args, config))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
