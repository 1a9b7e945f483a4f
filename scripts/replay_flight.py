#!/usr/bin/env python3
"""Replay a whole flight through the engine and write reports.

Usage:
    # Generated demo flight
    python scripts/replay_flight.py --demo --seed 7

    # Recorded session (CSV with elapsed_seconds, phase, anxiety[, heart_rate, message, ...])
    python scripts/replay_flight.py --session data/session_001.csv --profile data/user.json

    # Custom config and output directory
    python scripts/replay_flight.py --demo --config configs/engine.yaml --output-dir outputs/demo
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
from otie.evaluation.reporter import Reporter, summarize_replay
from otie.simulation.replay import FlightReplay
from otie.simulation.timeline import generate_demo_flight, load_session_csv, prepare_timeline
from otie.utils.config import load_engine_config


def main():
    parser = argparse.ArgumentParser(
        description="Replay a flight session through the OTIE engine"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--session", type=str, default=None,
        help="Session timeline CSV"
    )
    source.add_argument(
        "--demo", action="store_true",
        help="Replay a generated demo flight"
    )
    parser.add_argument(
        "--seed", type=int, default=42,
        help="RNG seed for the demo flight (default: 42)"
    )
    parser.add_argument(
        "--tick", type=int, default=60,
        help="Seconds between demo ticks (default: 60)"
    )
    parser.add_argument(
        "--profile", type=str, default=None,
        help="JSON user-state snapshot used as the starting state"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Engine config YAML (default: $OTIE_CONFIG or built-in defaults)"
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Output directory (default: outputs/replay/)"
    )
    parser.add_argument(
        "--no-progress", action="store_true",
        help="Disable the progress bar"
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

    if args.demo:
        timeline = prepare_timeline(generate_demo_flight(tick_seconds=args.tick, seed=args.seed))
        name = f"demo_seed{args.seed}"
    else:
        timeline = load_session_csv(Path(args.session))
        name = Path(args.session).stem

    base_state = UserState()
    if args.profile:
        with open(args.profile) as f:
            base_state = UserState.from_dict(json.load(f))

    config = load_engine_config(Path(args.config) if args.config else None)
    replay = FlightReplay(Engine(config), base_state=base_state)
    records = replay.run(timeline, show_progress=not args.no_progress)

    output_dir = Path(args.output_dir) if args.output_dir else PROJECT_ROOT / "outputs" / "replay"
    reporter = Reporter(output_dir)
    summary = summarize_replay(records)

    csv_path = reporter.save_records_csv(records, f"{name}_ticks.csv")
    json_path = reporter.save_summary_json(summary, f"{name}_summary.json")
    table_path = reporter.save_phase_table(records, f"{name}_phases.md")

    logging.info(f"Ticks:   {csv_path}")
    logging.info(f"Summary: {json_path}")
    logging.info(f"Phases:  {table_path}")
    logging.info(
        f"Peak anxiety {summary['anxiety']['peak']:.1f} during {summary['anxiety']['peak_phase']}, "
        f"{summary['proactive_interventions']} proactive interventions, "
        f"{summary['escalations']} escalations"
    )


if __name__ == "__main__":
    main()
