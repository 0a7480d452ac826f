import argparse
import os
import sys
from pathlib import Path

import uvicorn


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="threadchat")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--db-path", default=None)
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args(argv)

    if args.db_path:
        p = Path(args.db_path).expanduser().resolve()
        p.parent.mkdir(parents=True, exist_ok=True)
        os.environ["CHAT_DATABASE_URL"] = f"sqlite:///{p}"
    if args.log_level:
        os.environ["CHAT_LOG_LEVEL"] = args.log_level

    if sys.stdout is None:
        sys.stdout = open(os.devnull, "w")
    if sys.stderr is None:
        sys.stderr = open(os.devnull, "w")

    # settings are read on import, so the overrides above must come first
    from backend.app.main import app, settings

    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
