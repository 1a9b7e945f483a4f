#!/usr/bin/env python3
"""Evaluate one user-state snapshot and message with the engine.

Usage:
    # Message decision
    python scripts/run_engine.py --state examples/state.json --message "what was that noise?"

    # Proactive check instead of a message
    python scripts/run_engine.py --state examples/state.json --proactive

    # Custom config
    python scripts/run_engine.py --state state.json --message "hi" --config configs/engine.yaml
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from otie.data.schema import UserState
from otie.engine import Engine
from otie.utils.config import load_engine_config


def main():
    parser = argparse.ArgumentParser(
        description="Run the OTIE emotional state engine on one snapshot"
    )
    parser.add_argument(
        "--state", type=str, required=True,
        help="Path to a JSON user-state snapshot ('-' reads stdin)"
    )
    parser.add_argument(
        "--message", type=str, default=None,
        help="User message (default: the snapshot's last message text)"
    )
    parser.add_argument(
        "--proactive", action="store_true",
        help="Run the proactive monitor instead of processing a message"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Engine config YAML (default: $OTIE_CONFIG or built-in defaults)"
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Enable verbose logging"
    )
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.state == "-":
        raw = json.load(sys.stdin)
    else:
        with open(args.state) as f:
            raw = json.load(f)

    config = load_engine_config(Path(args.config) if args.config else None)
    engine = Engine(config)
    state = UserState.from_dict(raw)

    if args.proactive:
        result = engine.check_proactive(state).to_dict()
    else:
        result = engine.process_message(args.message, state).to_dict()

    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
