"""Wallet CLI — inspect the configured key and exercise the login flow.

Reads ``BLUEFIN_PRIVATE_KEY`` (and optionally ``BLUEFIN_WALLET_ADDRESS``,
``BLUEFIN_SANDBOX``, ``BLUEFIN_AUTH_URL``) from the environment / .env.

Usage:
    python3 -m cli.wallet address
    python3 -m cli.wallet sign --message "hello"
    python3 -m cli.wallet login
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from auth.session_manager import SessionManager
from auth.transport import HttpAuthTransport
from config.settings import settings
from core.exceptions import AuthenticationError, MalformedKeyMaterial
from core.logger import get_logger
from sui_infra.keys import KeyMaterial
from sui_infra.personal_message import MessageSigner

logger = get_logger("cli.wallet")


def _load_key() -> KeyMaterial:
    secret = settings.BLUEFIN_PRIVATE_KEY.get_secret_value()
    if not secret:
        print("ERROR: BLUEFIN_PRIVATE_KEY is not set", file=sys.stderr)
        sys.exit(1)
    try:
        return KeyMaterial.from_hex(secret)
    except MalformedKeyMaterial as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)


def cmd_address(args: argparse.Namespace) -> None:
    """Print the Sui address and public key of the configured key."""
    key = _load_key()
    print(f"  Address:    {key.sui_address}")
    print(f"  Public key: {key.public_key.hex()}")
    if settings.BLUEFIN_WALLET_ADDRESS and settings.BLUEFIN_WALLET_ADDRESS != key.sui_address:
        print(f"  NOTE: BLUEFIN_WALLET_ADDRESS is {settings.BLUEFIN_WALLET_ADDRESS}")


def cmd_sign(args: argparse.Namespace) -> None:
    """Sign a UTF-8 message as a Sui personal message."""
    signer = MessageSigner(_load_key())
    print(signer.sign_personal_message(args.message).to_base64())


async def cmd_login(args: argparse.Namespace) -> None:
    """Authenticate and report token lifetimes (never the token itself)."""
    signer = MessageSigner(_load_key())
    async with HttpAuthTransport(base_url=args.auth_url or None) as transport:
        session = SessionManager(signer=signer, transport=transport)
        try:
            await session.get_credential()
        except AuthenticationError as exc:
            logger.error("cli.login_failed", error=str(exc))
            sys.exit(2)

        state = session.token_state
        print(f"  Account:          {session.account_address}")
        print(f"  Auth host:        {transport.base_url}")
        print(f"  Access lifetime:  {state.access_lifetime_seconds:.0f}s")
        print(f"  Refresh lifetime: {state.refresh_lifetime_seconds:.0f}s")
        print(f"  Refresh token:    {'yes' if state.has_refresh_token else 'no'}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Bluefin wallet CLI — key inspection and login check",
        prog="wallet",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("address", help="Show the Sui address of the configured key")

    sign = sub.add_parser("sign", help="Sign a personal message")
    sign.add_argument("--message", required=True, help="UTF-8 message to sign")

    login = sub.add_parser("login", help="Authenticate and show token lifetimes")
    login.add_argument("--auth-url", default="", help="Override the auth host")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.command == "address":
        cmd_address(args)
    elif args.command == "sign":
        cmd_sign(args)
    elif args.command == "login":
        asyncio.run(cmd_login(args))


if __name__ == "__main__":
    main()
