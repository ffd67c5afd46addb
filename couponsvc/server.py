"""Command that runs the coupon service over HTTP."""

from __future__ import annotations

import argparse
import logging
from http.server import ThreadingHTTPServer
from pathlib import Path

from couponsvc.database import Config, DatabaseError, connect
from couponsvc.service import CouponService
from couponsvc.transport import make_server

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "./data/coupon.db"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080


def build_server(db_path: str, host: str, port: int) -> ThreadingHTTPServer:
    """Open the database and bind a server for the coupon service."""
    connection = connect(Config(db_path))
    try:
        return make_server(CouponService(connection), host, port)
    except BaseException:
        connection.close()
        raise


def main(argv=None) -> int:
    """Run the coupon server until interrupted."""
    parser = argparse.ArgumentParser(description="Run the coupon service.")
    parser.add_argument("--db", default=DEFAULT_DB_PATH, help="SQLite database file")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    if args.db != ":memory:":
        Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    try:
        server = build_server(args.db, args.host, args.port)
    except (DatabaseError, OSError) as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Server is running on %s:%d", args.host, args.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        server.service.connection.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())