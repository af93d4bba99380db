"""Mint an issuer access token for local development."""
from __future__ import annotations

import argparse

from credential_ledger.core.security import create_access_token
from credential_ledger.core.settings import settings


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create a bearer token for an issuer DID")
    parser.add_argument(
        "issuer_did",
        nargs="?",
        default=settings.issuer_did,
        help="Issuer DID to use as the token subject (defaults to ISSUER_DID)",
    )
    args = parser.parse_args(argv)
    print(create_access_token(args.issuer_did))


if __name__ == "__main__":
    main()
