import argparse

import uvicorn

from config import SERVER_HOST, SERVER_PORT
from logger import logger, enable_file_logging
from api_server.app import create_app


def main(argv=None):
    ap = argparse.ArgumentParser(prog="api_server", description="Fire mission calculator HTTP API")
    ap.add_argument("--host", default=SERVER_HOST)
    ap.add_argument("--port", type=int, default=SERVER_PORT)
    ap.add_argument("--log-file", default=None, help="also write debug log to this file")
    args = ap.parse_args(argv)

    if args.log_file:
        enable_file_logging(args.log_file)
    app = create_app()
    logger.info(f"Serving on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
