"""
Print the newest emailed token link for an address from Mailpit.

Usage:
    python scripts/fetch_token.py user@test.com verify-email
    python scripts/fetch_token.py user@test.com magic-link --subject "login link"
"""

import argparse
import sys

from notes_client.config import configure_logging
from notes_client.mailpit import MailpitClient, MailTimeout, extract_token_from_email
from notes_client.router import build_hash
from notes_client.tokens import TokenFlow, TokenNotFound


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("email")
    parser.add_argument("route", choices=[flow.value for flow in TokenFlow])
    parser.add_argument("--subject", default="")
    parser.add_argument("--timeout", type=float, default=None)
    args = parser.parse_args()

    configure_logging()
    mailpit = MailpitClient()
    try:
        message = mailpit.wait_for_email(to=args.email, subject=args.subject, timeout=args.timeout)
        token = extract_token_from_email(message, args.route)
    except (MailTimeout, TokenNotFound) as exc:
        print(exc, file=sys.stderr)
        return 1

    print(build_hash(args.route, token=token))
    return 0


if __name__ == "__main__":
    sys.exit(main())
