"""Command line entry point."""

import argparse
import logging
from pathlib import Path

from lixian import __version__
from lixian.config import Settings
from lixian.main import serve

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lixian",
        description="Serve the download manager front-end and its /action endpoint",
    )
    parser.add_argument("--host", help="address to listen on (default 0.0.0.0)")
    parser.add_argument("--port", type=int, help="port to listen on (default 5000)")
    parser.add_argument("--static-dir", type=Path, help="directory served at / (default html)")
    parser.add_argument("--config-dir", type=Path, help="aria2.json and cookies files (default config)")
    parser.add_argument("--aria2-url", help="aria2 JSON-RPC endpoint")
    parser.add_argument("--log-level", help="logging level (default INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_settings(argv: list[str] | None = None) -> Settings:
    """Environment and .env first, then any flags given on the command line."""
    args = build_parser().parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    return Settings(**overrides)


def main(argv: list[str] | None = None) -> None:
    settings = load_settings(argv)
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    serve(settings)


if __name__ == "__main__":
    main()
