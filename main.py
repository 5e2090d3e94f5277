#!/usr/bin/env python3
"""
SessionAuth -- cookie-based JWT session backend.

Usage:
  python main.py
  python main.py --port 8000
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  ACCESS_TOKEN_SECRET   HMAC key for access tokens (>= 32 chars).
  REFRESH_TOKEN_SECRET  HMAC key for refresh tokens (>= 32 chars, different).
  ENVIRONMENT           "production" turns on Secure cookies.
  DATABASE_URL          SQLAlchemy URL for the user store.
  TOKEN_CACHE_URL       redis://... for Redis, otherwise a SQLite path.
  DEBUG=true            auto-generate missing secrets for local development.
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the SessionAuth API server.")
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
