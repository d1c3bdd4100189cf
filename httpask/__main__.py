"""
Entry point for the relay gateway.

Usage:
    python -m httpask PORT [--config FILE] [--loglevel LEVEL]
"""

import sys
import logging
from argparse import ArgumentParser, ArgumentTypeError

from .config import GatewayConfig
from .errors import BindError
from .server import AskServer

logger = logging.getLogger(__name__)


def positive_port(value):
    if not value.isdigit() or int(value) <= 0:
        raise ArgumentTypeError(f"invalid port: {value!r}")
    return int(value)


def build_parser():
    parser = ArgumentParser(prog="httpask", description="""
Serve GET /ask, which relays a string to a TCP peer and returns the reply,
and GET /stop, which shuts the gateway down.
""")
    parser.add_argument("port", type=positive_port, metavar="PORT")
    parser.add_argument("-c", "--config", type=str, metavar="FILE")
    parser.add_argument("--loglevel", type=str, metavar="LEVEL")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = GatewayConfig(args.config)

    logging.basicConfig(
        level=(args.loglevel or config.get("log_level")).upper(),
        format=config.get("log_format")
    )

    server = AskServer(host=config.get("host"), port=args.port, config=config)
    try:
        server.bind()
    except BindError as e:
        logger.critical(str(e))
        return 1

    server.start()
    return 0


if __name__ == '__main__':
    sys.exit(main())
