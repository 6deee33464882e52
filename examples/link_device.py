from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from wapair import ServerConfig, SessionCoordinator
from wapair.log import configure_logging


async def main() -> None:
    ap = argparse.ArgumentParser(prog="link_device.py")
    ap.add_argument("--auth", default="./sessions", help="credentials root (default: ./sessions)")
    ap.add_argument("--number", help="phone number to pair; omit to link with a QR code")
    args = ap.parse_args()

    configure_logging("INFO")
    config = ServerConfig(sessions_dir=Path(args.auth).expanduser().resolve(), static_dir=None)
    coordinator = SessionCoordinator(config)

    if args.number:
        code = await coordinator.pair(args.number)
        print("\nEnter this code in WhatsApp -> Linked devices -> Link with phone number\n")
        print(code)
    else:
        uri = await coordinator.qr()
        html = config.sessions_dir / "qr.html"
        html.write_text(f'<img src="{uri}" alt="WhatsApp QR">', "utf-8")
        print(f"\nOpen {html} and scan it in WhatsApp -> Linked devices -> Link a device\n")

    try:
        await asyncio.Event().wait()
    finally:
        await coordinator.close_all()


if __name__ == "__main__":
    asyncio.run(main())
