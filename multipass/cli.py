#!/usr/bin/env python3
"""
cli.py - operator CLI for Multipass tokens

Subcommands:
- generate : mint a Multipass login URL for an email
- verify   : check a token's signature against the shared secret

The secret and store URL default to SHOPIFY_MULTIPASS_SECRET and
SHOPIFY_STORE_URL (a .env file in the working directory is loaded first).
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from .errors import MultipassError
from .token import MultipassTokenGenerator, verify_signature


# --- CLI command handlers ---
def cmd_generate(args) -> int:
    gen = MultipassTokenGenerator(args.secret, args.store_url)
    result = gen.generate_for_email(args.email)
    if args.token_only:
        print(result.token)
    else:
        print(f"[*] Multipass login for {args.email}:")
        print("    URL:  ", result.url)
        print("    Token:", result.token)
    return 0


def cmd_verify(args) -> int:
    if verify_signature(args.token, args.secret):
        print("[+] Signature is VALID")
        return 0
    print("[-] Signature is INVALID")
    return 1


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="multipass", description="Shopify Multipass token tool")
    sub = p.add_subparsers(dest="cmd")

    # generate
    pg = sub.add_parser("generate", help="Create a Multipass login URL for a customer email")
    pg.add_argument("--email", required=True, help="Customer email (Shopify record key)")
    pg.add_argument("--secret", default=os.getenv("SHOPIFY_MULTIPASS_SECRET"), help="Multipass secret")
    pg.add_argument("--store-url", default=os.getenv("SHOPIFY_STORE_URL"), help="Storefront base URL")
    pg.add_argument("--token-only", action="store_true", help="Print only the raw token")
    pg.set_defaults(func=cmd_generate)

    # verify
    pv = sub.add_parser("verify", help="Verify the HMAC signature of a token")
    pv.add_argument("token", help="Token as produced by 'generate'")
    pv.add_argument("--secret", default=os.getenv("SHOPIFY_MULTIPASS_SECRET"), help="Multipass secret")
    pv.set_defaults(func=cmd_verify)

    return p


def main(argv=None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 2
    try:
        return args.func(args)
    except MultipassError as e:
        print(f"[!] {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
