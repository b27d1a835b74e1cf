"""
CLI dispatcher for diversifier module.

Usage:
    python -m diversifier rank --config config.yaml [--k 46]
    python -m diversifier uncorrelated --config config.yaml [--target-size 5 --threshold 0.2]
"""

import sys
import argparse


def main():
    parser = argparse.ArgumentParser(
        prog="diversifier",
        description="Correlation-based selection of uncorrelated crypto assets"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Top-K ranking
    rank_parser = subparsers.add_parser(
        "rank",
        aliases=["r"],
        help="Rank asset pairs by absolute correlation"
    )
    rank_parser.add_argument(
        "--k",
        type=int,
        default=None,
        help="Number of pairs to keep (default: top_k.k from config)"
    )

    # Greedy selection
    greedy_parser = subparsers.add_parser(
        "uncorrelated",
        aliases=["u"],
        help="Greedily select mutually uncorrelated assets"
    )
    greedy_parser.add_argument(
        "--target-size", "-n",
        type=int,
        default=None,
        help="Number of assets to select (default: greedy.target_size from config)"
    )
    greedy_parser.add_argument(
        "--threshold", "-t",
        type=float,
        default=None,
        help="Maximum absolute correlation, exclusive (default: greedy.threshold from config)"
    )

    for sub in (rank_parser, greedy_parser):
        sub.add_argument(
            "--config", "-c",
            required=True,
            help="Path to YAML config file"
        )
        sub.add_argument(
            "--output-dir", "-o",
            default=None,
            help="Output directory for run artifacts (default: <artifact_base_dir>/runs)"
        )

    args = parser.parse_args()

    if args.command in ("rank", "r"):
        from diversifier.pipeline import main as pipeline_main
        pipeline_main(
            config_path=args.config,
            strategy="top_k",
            output_dir=args.output_dir,
            k=args.k
        )
    elif args.command in ("uncorrelated", "u"):
        from diversifier.pipeline import main as pipeline_main
        pipeline_main(
            config_path=args.config,
            strategy="greedy",
            output_dir=args.output_dir,
            target_size=args.target_size,
            threshold=args.threshold
        )
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
