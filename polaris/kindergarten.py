from .config import Config
from .server import Server

import argparse
import asyncio
import json
import logging
import signal
import ssl
import sys

log = logging.getLogger("polaris.kindergarten")


class ServerManager:
    def __init__(self, cfg):
        self.config = Config.from_config(cfg)
        self.server = Server(self.config)

    def reconfigure(self):
        log.info("Received HUP; reloading certificate.")

        if self.config.tls is not None:
            self.config.tls.clear_context_cache()

    async def run(self):
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGHUP, self.reconfigure)
        except (NotImplementedError, AttributeError):
            log.debug("SIGHUP reloading is not available on this platform")

        log.info(f"Starting server on port {self.config.port} in {self.config.mode} mode")
        await self.server.serve_forever()

    def start(self):
        asyncio.run(self.run())


def command_line_parser():
    parser = argparse.ArgumentParser(
        prog="polaris",
        description="A small Gemini server for a directory of static files.",
    )
    parser.add_argument("addr", nargs="?", help="Listen address, e.g. 0.0.0.0:1965")
    parser.add_argument("-c", "--cert", help="TLS certificate file (PEM)")
    parser.add_argument("-k", "--key", help="TLS private key file (PEM)")
    parser.add_argument("-d", "--data", dest="root", help="Content root directory")
    parser.add_argument("--mode", help="static (default) or echo")
    parser.add_argument(
        "--content-mode",
        choices=["raw", "text"],
        help="Serve files as raw bytes (default) or as UTF-8 gemtext",
    )
    parser.add_argument(
        "--hostname",
        action="append",
        dest="hostnames",
        metavar="NAME",
        help="Host name to answer for; repeat for several (default: any)",
    )
    parser.add_argument(
        "--auto-cert",
        action="store_true",
        help="Generate or renew a self-signed certificate at --cert/--key",
    )
    parser.add_argument("--read-timeout", type=float, metavar="SECONDS")
    parser.add_argument("--max-connections", type=int, metavar="N")
    parser.add_argument("--config", metavar="FILE", help="JSON configuration file")
    parser.add_argument("--log-level", default="INFO")
    return parser


def config_from_args(args) -> dict:
    cfg = {}
    if args.config:
        with open(args.config) as f:
            cfg = json.load(f)

    if args.addr:
        cfg["listen"] = args.addr

    for key in ("root", "mode", "content_mode", "hostnames", "read_timeout", "max_connections"):
        value = getattr(args, key)
        if value is not None:
            cfg[key] = value

    tls = dict(cfg.get("tls") or {})
    if args.cert:
        tls["cert_path"] = args.cert
    if args.key:
        tls["key_path"] = args.key
    if args.auto_cert:
        tls["auto"] = True

    if "cert_path" not in tls or "key_path" not in tls:
        raise ValueError("A certificate and a private key are required (--cert, --key)")

    cfg["tls"] = tls
    return cfg


def cli(argv=None):
    args = command_line_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    try:
        manager = ServerManager(config_from_args(args))
    except (OSError, ValueError, ssl.SSLError) as e:
        log.error(f"Unable to start server: {e}")
        sys.exit(1)

    try:
        manager.start()
    except OSError as e:
        log.error(f"Unable to listen on {manager.config.host}:{manager.config.port}: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("Shutting down.")


if __name__ == "__main__":
    cli()
