from __future__ import annotations

import argparse
from typing import Optional

from hectrack.services.config import get_settings


def main(argv: Optional[list[str]] = None) -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="hectrack-server", description="Serve the HEC project tracker API")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Bind port")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    args = parser.parse_args(argv)

    import uvicorn

    uvicorn.run("hectrack.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
