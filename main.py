# main.py

"""Entry point for kaspi_catalog: API server or headless CLI."""

import argparse
import logging
import sys

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("kaspi_catalog.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_keys = ", ".join(c["key"] for c in Settings.CATEGORIES)

    parser = argparse.ArgumentParser(
        prog="kaspi_catalog",
        description="kaspi.kz category listing extractor.",
        epilog=f"Available categories: {valid_keys}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser(
        "fetch", help="Load products for a category key or URL."
    )
    fetch.add_argument("target", help="Category key or kaspi.kz URL.")
    fetch.add_argument(
        "-n", "--count", type=int, default=None,
        help=f"Items to request (1-{Settings.MAX_COUNT}).",
    )
    fetch.add_argument(
        "-p", "--page", type=int, default=None,
        help="Listing page to request.",
    )
    fetch.add_argument(
        "--no-cache", action="store_false", dest="use_cache",
        help="Ignore the client cache for category keys.",
    )

    more = sub.add_parser(
        "more", help="Append the next page to a cached category."
    )
    more.add_argument("category", help="Category key.")

    for command in (fetch, more):
        command.add_argument(
            "-f", "--format", choices=["json", "table"], default="json",
            dest="output_format", help="Output format (default: json).",
        )
        command.add_argument(
            "--api", default=None, dest="api_base_url",
            help="Use a running API server, e.g. http://127.0.0.1:4000.",
        )

    clear = sub.add_parser("clear-cache", help="Drop the client cache.")
    clear.add_argument("category", nargs="?", default=None)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=Settings.API_HOST)
    serve.add_argument("--port", type=int, default=Settings.API_PORT)

    sub.add_parser("health", help="Probe upstream connectivity.")
    return parser


def _run_server(host: str, port: int) -> None:
    """Serve the FastAPI app with uvicorn."""
    import uvicorn

    from src.api.app import app

    try:
        # log_config=None keeps the handlers installed by setup_logging
        uvicorn.run(app, host=host, port=port, log_config=None)
    except Exception:
        logger.critical("Fatal error in API server", exc_info=True)
        raise
    finally:
        logger.info("kaspi_catalog API shutting down")


def main() -> None:
    """Dispatch to the selected sub-command."""
    args = _build_parser().parse_args()

    log_file = setup_logging(
        extra_loggers=("uvicorn",) if args.command == "serve" else ()
    )
    logger.info(
        "kaspi_catalog starting '%s', log file: %s", args.command, log_file
    )

    from src.cli import runner

    if args.command == "serve":
        _run_server(args.host, args.port)
        return
    if args.command == "fetch":
        code = runner.cli_fetch(
            target=args.target,
            count=args.count,
            page=args.page,
            output_format=args.output_format,
            api_base_url=args.api_base_url,
            use_cache=args.use_cache,
        )
    elif args.command == "more":
        code = runner.cli_more(
            args.category, args.output_format, args.api_base_url
        )
    elif args.command == "clear-cache":
        code = runner.cli_clear_cache(args.category)
    else:
        code = runner.run_health_check()
    sys.exit(code)


if __name__ == "__main__":
    main()
