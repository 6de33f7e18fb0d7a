from __future__ import annotations

import argparse

from weit.main import run_forever


def main() -> None:
    p = argparse.ArgumentParser(prog="weit", description="Emote lookup service for Twitch chat.")
    p.add_argument("--host", default=None, help="Bind address (default: config or 127.0.0.1).")
    p.add_argument("--port", type=int, default=None, help="Bind port (default: config or 8787).")
    args = p.parse_args()

    run_forever(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
