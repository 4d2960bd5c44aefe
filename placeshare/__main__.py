"""
Run the places backend with uvicorn.

Usage:
    python -m placeshare --host 0.0.0.0 --port 5000
"""

from __future__ import annotations

import argparse

import uvicorn


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Serve the places API.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument(
        "--reload", action="store_true", help="Restart on code changes (development)."
    )
    args = parser.parse_args(argv)
    uvicorn.run("placeshare.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
