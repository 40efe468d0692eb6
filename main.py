"""
main.py
--------
Command-line entry point for the Rule Debugger.

Loads the three datasets, evaluates every rule against every transaction,
prints a summary and writes rule stats and the hit matrix to outputs/.

Usage (from the project root):
    python main.py

    # With optional arguments:
    python main.py --data-dir path/to/data
    python main.py --rule R001 --rule R004
    python main.py --output-dir /tmp/rule_debugger
"""

import sys
import os
import argparse
import logging
import pandas as pd
from datetime import datetime

# Ensure project root is on path (for VS Code runs from any working directory)
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from pipeline import RuleEvaluationPipeline
from core.models import DatasetError, RuleDefinitionError
from config.config_loader import load_config, get_output_config


# =============================================================================
# LOGGING SETUP
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("main")


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rule Debugger — Evaluate fraud/risk rules against transactions."
    )
    parser.add_argument(
        "--data-dir", type=str, default=None,
        help="Directory holding the transactions, feature vector and rules JSON files. Defaults to config value."
    )
    parser.add_argument(
        "--rule", dest="rules", action="append", default=None,
        help="Only evaluate this rule id. Repeat for several rules. Default: all rules."
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Output directory. Defaults to outputs/ in project root."
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to an alternative config.yaml."
    )
    return parser.parse_args(argv)


# =============================================================================
# MAIN
# =============================================================================

def main(argv: list[str] | None = None):
    args = parse_args(argv)

    if args.config:
        load_config(args.config)

    # --- Resolve paths ---
    output_dir = args.output_dir or os.path.join(PROJECT_ROOT, get_output_config()["output_dir"])
    os.makedirs(output_dir, exist_ok=True)

    # --- Run pipeline ---
    pipeline = RuleEvaluationPipeline(data_dir=args.data_dir, rule_ids=args.rules)

    try:
        stats_df, matrix_df = pipeline.run()
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except (DatasetError, RuleDefinitionError) as e:
        logger.error(f"Malformed dataset: {e}")
        sys.exit(1)
    except KeyError as e:
        logger.error(e.args[0] if e.args else str(e))
        sys.exit(1)

    # --- Output ---
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    stats_path = os.path.join(output_dir, f"rule_stats_{timestamp}.csv")
    matrix_path = os.path.join(output_dir, f"hit_matrix_{timestamp}.csv")
    stats_df.to_csv(stats_path, index=False)
    matrix_df.to_csv(matrix_path, index=False)
    logger.info(f"Rule stats saved to: {stats_path}")
    logger.info(f"Hit matrix saved to: {matrix_path}")

    _print_summary(stats_df, matrix_df)


def _print_summary(stats_df: pd.DataFrame, matrix_df: pd.DataFrame):
    """Prints a clean summary table to the console."""
    if stats_df.empty:
        print("\n  No rules to display.\n")
        return

    print("\n" + "=" * 80)
    print("  RULE EVALUATION SUMMARY")
    print("=" * 80)

    print("\n  Hits by Rule:")
    print("  " + "-" * 72)
    for _, row in stats_df.iterrows():
        print(
            f"    {row['rule_id']:8s} {row['name'][:32]:32s} {row['severity']:8s} "
            f"{row['pass_count']:>5,} hits  {row['hit_percent']:>3}%  ${row['flagged_amount']:>12,.0f}"
        )

    total = len(matrix_df)
    flagged = int((matrix_df["total_fires"] > 0).sum()) if total else 0
    pct = (flagged / total * 100) if total > 0 else 0
    print(f"\n  Transactions hit by at least one rule: {flagged:,} of {total:,} ({pct:.1f}%)")
    print("=" * 80 + "\n")


if __name__ == "__main__":
    main()
