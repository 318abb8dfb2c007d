"""CLI entry point: inspect unsubscribe tokens and manage the suppression list."""

import argparse
import json
import logging
import sys

from optout.config import Settings
from optout.errors import ConfigError, StoreError, TokenError
from optout.models import normalize_email

log = logging.getLogger(__name__)


def _cmd_verify(settings: Settings, args: argparse.Namespace) -> int:
    from optout.tokens import verify_token

    try:
        claim = verify_token(args.token, settings.unsub_secret, now=args.now)
    except TokenError as exc:
        print(exc.reason, file=sys.stderr)
        return 1
    print(json.dumps(claim.to_dict(), indent=2))
    return 0


def _cmd_suppress(settings: Settings, args: argparse.Namespace) -> int:
    from optout.db import SuppressionStore, create_client_from_settings

    client = create_client_from_settings(settings)
    if client is None:
        log.error("Storage is not configured (set SUPABASE_URL and SUPABASE_KEY)")
        return 2

    store = SuppressionStore(client)
    try:
        record = store.upsert(normalize_email(args.email), args.source, args.reason)
    except StoreError:
        log.exception("Failed to suppress %s", args.email)
        return 1
    print(json.dumps(record.to_row(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="optout", description="Unsubscribe token and suppression tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p_verify = sub.add_parser("verify", help="Verify a token and print its claim as JSON")
    p_verify.add_argument("token")
    p_verify.add_argument(
        "--now", type=float, default=None,
        help="Unix time to check expiry against (default: current time)",
    )

    p_suppress = sub.add_parser("suppress", help="Add or refresh an address on the suppression list")
    p_suppress.add_argument("email")
    p_suppress.add_argument("--source", default="admin", help="Provenance tag (default: admin)")
    p_suppress.add_argument("--reason", default="user-request")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        log.error("%s", exc)
        return 2

    if args.command == "verify":
        return _cmd_verify(settings, args)
    return _cmd_suppress(settings, args)


if __name__ == "__main__":
    sys.exit(main())
