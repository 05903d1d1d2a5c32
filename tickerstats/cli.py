"""
Command-line interface for the statistics engine.

This module provides CLI commands for serving the HTTP API and for running
an offline simulation that prints a correlation matrix.
"""

import argparse
import logging
import sys
from datetime import timedelta

import pandas as pd

from tickerstats.analytics.window import utc_now
from tickerstats.config import load_config
from tickerstats.data_sources.random_walk import RandomWalkSource
from tickerstats.errors import StatsError
from tickerstats.ingest import IngestionDriver
from tickerstats.service import StatsService

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def configure_logging(level: str):
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def serve_command(args, config):
    """Run the HTTP API with live ingestion."""
    import uvicorn
    from tickerstats.web import create_app

    app = create_app(config)
    print(f"Serving {', '.join(config.symbols)} on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level=config.log_level.lower())


def simulate_command(args, config):
    """Feed synthetic ticks into a fresh store and print the matrix."""
    service = StatsService.from_config(config)
    source = RandomWalkSource(seed=args.seed if args.seed is not None else config.seed)
    driver = IngestionDriver(
        service.store,
        source,
        tick_interval_seconds=config.tick_interval_seconds,
        fetch_timeout_seconds=config.fetch_timeout_seconds,
    )

    now = utc_now()
    interval = timedelta(seconds=config.tick_interval_seconds)
    print(f"Simulating {args.ticks} ticks for {', '.join(config.symbols)}...")
    for k in range(args.ticks):
        driver.tick(now - interval * (args.ticks - 1 - k))

    matrix = service.get_correlation_matrix(args.minutes, now=now)

    print(f"\nCorrelation matrix (last {args.minutes:g} min):")
    print(matrix.to_frame().to_string(float_format=lambda x: f"{x:.4f}"))

    summary = pd.DataFrame({
        "average": pd.Series(matrix.averages),
        "std": pd.Series(matrix.standard_deviations),
    })
    print("\nPer-ticker summary:")
    print(summary.to_string(float_format=lambda x: f"{x:.6f}"))

    prices = pd.concat(
        [service.reader.read(symbol, args.minutes, now).to_series() for symbol in config.symbols],
        axis=1
    )
    print("\nLatest prices:")
    print(prices.tail(5).to_string(float_format=lambda x: f"{x:.4f}"))


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Ticker Window Statistics",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--config", default=None, help="Path to YAML config file")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=3000, help="Port (default: 3000)")

    # Simulate command
    sim_parser = subparsers.add_parser("simulate", help="Run an offline simulation")
    sim_parser.add_argument("--ticks", type=int, default=360, help="Ticks to generate (default: 360)")
    sim_parser.add_argument("--minutes", type=float, default=60, help="Lookback window (default: 60)")
    sim_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except StatsError as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        sys.exit(2)

    configure_logging(config.log_level)

    if args.command == "serve":
        serve_command(args, config)
    elif args.command == "simulate":
        if args.ticks <= 0:
            print("\n✗ Error: --ticks must be positive", file=sys.stderr)
            sys.exit(2)
        try:
            simulate_command(args, config)
        except StatsError as e:
            print(f"\n✗ Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
