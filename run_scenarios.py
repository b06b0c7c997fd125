"""
Run Value-of-Information Scenarios

This script runs the end-to-end value-of-information analysis on the
built-in example scenarios.

Usage:
    # Run all scenarios
    python run_scenarios.py

    # Run a specific scenario
    python run_scenarios.py --scenario uniform

    # More Monte Carlo samples, fixed seed
    python run_scenarios.py --samples 20000 --seed 42

    # Run quietly
    python run_scenarios.py --quiet
"""

import argparse
import sys

from experiment_value.config import DEFAULT_NUM_SAMPLES, SimulationConfig
from experiment_value.pipelines import SCENARIOS, run_named_scenario


def run_all_scenarios(config: SimulationConfig, verbose: bool = True):
    """Run every built-in scenario and summarise the decisions."""
    results = {}
    for name in SCENARIOS:
        results[name] = run_named_scenario(name, config=config, verbose=verbose)

    if verbose:
        print("\n" + "=" * 80)
        print(" " * 30 + "FINAL SUMMARY")
        print("=" * 80)
        for name, result in results.items():
            decision = result['decision']['decision'].upper()
            print(f"\n{name.upper()}: Decision = {decision}")
            print(f"  EVPI: ${result['evpi'].evpi_dollars:,.0f}"
                  f" | Net value: ${result['net_value'].net_value_dollars:,.0f}")
        print("\n" + "=" * 80 + "\n")

    return results


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run value-of-information scenarios",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_scenarios.py
  python run_scenarios.py --scenario minimum-lift
  python run_scenarios.py --scenario heavy-tailed --samples 20000 --seed 1
  python run_scenarios.py --quiet
        """
    )

    parser.add_argument(
        '--scenario',
        choices=['all'] + list(SCENARIOS),
        default='all',
        help='Which scenario to run (default: all)'
    )

    parser.add_argument(
        '--samples',
        type=int,
        default=DEFAULT_NUM_SAMPLES,
        help=f'Monte Carlo samples (default: {DEFAULT_NUM_SAMPLES})'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for reproducibility'
    )

    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress verbose output'
    )

    args = parser.parse_args(argv)
    verbose = not args.quiet

    try:
        config = SimulationConfig(num_samples=args.samples, random_state=args.seed)
        if args.scenario == 'all':
            run_all_scenarios(config, verbose=verbose)
        else:
            result = run_named_scenario(args.scenario, config=config, verbose=verbose)
            if verbose:
                print(f"\nDecision: {result['decision']['decision'].upper()}")
        return 0

    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
