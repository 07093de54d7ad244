"""Notes formatting server (FastAPI + uvicorn).

Run:
  python -m notes_prettier.server
Then:
  GET  http://127.0.0.1:18090/api/v1/settings
  POST http://127.0.0.1:18090/api/v1/commands/format-page
"""

from __future__ import annotations

import argparse

import uvicorn

from notes_prettier.env import env_int, env_str


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="notes-prettier server")
    parser.add_argument("--host", default=env_str("NOTES_PRETTIER_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=env_int("NOTES_PRETTIER_PORT", 18090, min_value=1, max_value=65535))
    parser.add_argument("--log-level", default="info")
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args(argv)

    uvicorn.run(
        "notes_prettier.api:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=bool(args.reload),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
