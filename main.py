"""
Entry point for Tetris2P.

Supports two modes:
  - play:  Open the game window (local board + opponent mirror + chat).
  - relay: Run a standalone relay server that forwards frames between players.

Usage:
    python main.py --mode play
    python main.py --mode play --host 192.168.1.20 --port 1337
    python main.py --mode relay --port 1337
    python main.py --config config/settings.yaml --seed 42
"""

from __future__ import annotations

import argparse
import pathlib
import sys

import yaml


def load_config(config_path: str | pathlib.Path) -> dict:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML config file.

    Returns:
        Dict of configuration key-value pairs (empty for an empty file).

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    config_path = pathlib.Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Namespace with mode, config, host, port and seed attributes.
    """
    parser = argparse.ArgumentParser(
        description="Tetris2P: two-player networked Tetris.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=["play", "relay"],
        default="play",
        help="Run mode: 'play' (game window) or 'relay' (standalone relay server).",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/settings.yaml",
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Relay host to connect to (overrides the config file).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Relay port (overrides the config file).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the piece randomizer (default: unseeded).",
    )
    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Return a copy of config with the non-None CLI values applied."""
    merged = dict(config)
    for key in ("host", "port", "seed"):
        value = getattr(args, key)
        if value is not None:
            merged[key] = value
    return merged


def main() -> None:
    """Main entry point: parse args, load config, and dispatch to the selected mode."""
    args = parse_args()
    config = apply_overrides(load_config(args.config), args)

    if args.mode == "play":
        from tetris2p.play import play
        play(config)

    elif args.mode == "relay":
        from tetris2p.net.relay import RelayServer
        relay = RelayServer("", config.get("port", 1337))
        try:
            relay.serve_forever()
        except KeyboardInterrupt:
            print("\nRelay interrupted.")

    else:
        print(f"Unknown mode: {args.mode}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
