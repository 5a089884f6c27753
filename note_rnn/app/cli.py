"""
Command Line Interface
======================

Usage Examples:
    # Train on training.csv, predict test.csv, write results.csv
    note-rnn --train data/training.csv --test data/test.csv

    # Start from a YAML config and override a few values
    note-rnn --config config.yaml --cycles 5 --iterations 200

    # Quick smoke run
    note-rnn --train data/training.csv --test data/test.csv \\
        --cycles 1 --iterations 10 --step-size 1e-3 --quiet

Flags override values from --config, which override the built-in
defaults.
"""

import argparse
import sys
from typing import List, Optional

from note_rnn.config import RunConfig, build_config, load_config
from note_rnn.errors import NoteRNNError


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="note-rnn",
        description="Train a next-note LSTM on a note index series and "
                    "predict a held-out series.",
    )

    # ─────────────────────────────────────────────────────────────────────────
    # Input / output
    # ─────────────────────────────────────────────────────────────────────────
    parser.add_argument("-c", "--config", help="YAML run configuration")
    parser.add_argument("--train", dest="train_path", help="Training CSV (one note per row)")
    parser.add_argument("--test", dest="test_path", help="Held-out CSV to predict")
    parser.add_argument("-o", "--output", dest="output_path", help="Result CSV (default: results.csv)")
    parser.add_argument("--log", dest="log_path", help="Write the per-cycle training log as JSON")
    parser.add_argument(
        "--no-header",
        dest="header",
        action="store_false",
        default=None,
        help="CSV files have no header row",
    )

    # ─────────────────────────────────────────────────────────────────────────
    # Windowing / training
    # ─────────────────────────────────────────────────────────────────────────
    parser.add_argument("-L", "--window-length", type=int, help="Time steps per training window")
    parser.add_argument("--cycles", type=int, help="Number of train/evaluate cycles")
    parser.add_argument("--iterations", dest="iterations_per_cycle", type=int,
                        help="Optimizer steps per cycle")
    parser.add_argument("--step-size", type=float, help="Adam step size")
    parser.add_argument("--batch-size", type=int, help="Windows per gradient step")
    parser.add_argument("--metric", dest="accuracy_metric", choices=["channel", "argmax"],
                        help="Accuracy metric reported after each cycle")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print errors")

    return parser


RUN_FLAGS = ("train_path", "test_path", "output_path", "log_path", "header", "window_length")
TRAINING_FLAGS = ("cycles", "iterations_per_cycle", "step_size", "batch_size",
                  "accuracy_metric", "seed")


def config_from_args(args: argparse.Namespace) -> RunConfig:
    """Merge --config and explicit flags into one validated RunConfig."""
    base = load_config(args.config) if args.config else RunConfig()
    values = base.model_dump()

    for name in RUN_FLAGS:
        value = getattr(args, name)
        if value is not None:
            values[name] = value

    for name in TRAINING_FLAGS:
        value = getattr(args, name)
        if value is not None:
            values["training"][name] = value

    if args.quiet:
        values["training"]["verbose"] = False

    return build_config(values)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the note-rnn command."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Imported here so --help works without loading torch
    from note_rnn.app.pipeline import run_pipeline

    try:
        config = config_from_args(args)
        run_pipeline(config)
    except (NoteRNNError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
