from __future__ import annotations

import argparse
import logging
import os
from typing import Optional

from sync_client.client import SyncClient, SyncClientError
from sync_client.links import make_sync_link
from sync_client.roster import JsonRosterFile, pull_roster, push_roster, summarize


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sync_client", description="Share a roster between devices with a one-time code")
    parser.add_argument("--url", default=os.getenv("SYNC_BASE_URL"), help="sync API base url")
    parser.add_argument("--log-level", default=os.getenv("SYNC_LOG_LEVEL", "WARNING"))
    sub = parser.add_subparsers(dest="command", required=True)

    push = sub.add_parser("push", help="upload the roster and print a code")
    push.add_argument("--roster", required=True, help="roster JSON file")
    push.add_argument("--origin", default=os.getenv("SYNC_ORIGIN"), help="app origin for the share link")

    pull = sub.add_parser("pull", help="replace the roster with a redeemed snapshot")
    pull.add_argument("code", help="6-digit code, share link or scanned QR text")
    pull.add_argument("--roster", required=True, help="roster JSON file")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    client = SyncClient(base_url=args.url)
    roster = JsonRosterFile(args.roster)

    try:
        if args.command == "push":
            result = push_roster(client, roster)
            print(f"code: {result.code}")
            print(f"expires in: {result.expires_in_s}s")
            if args.origin:
                print(f"link: {make_sync_link(args.origin, result.code)}")
        else:
            pull_roster(client, args.code, roster)
            for mode, counts in summarize(roster.entries()).items():
                print(f"{mode}: {counts['done']}/{counts['total']} done")
            print("Synced!")
    except (SyncClientError, ValueError) as exc:
        print(f"error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
