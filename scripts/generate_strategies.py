"""
Build and analyse every catalogue strategy for one expiry of a chain snapshot.

Loads a chain, isolates the expiry closest to --target-date, builds all
feasible strategies (optionally filtered by sentiment), and writes the
analysed trades as JSON plus a flat CSV summary.

Usage:
    python scripts/generate_strategies.py data/xyz_chain.csv --price 100
    python scripts/generate_strategies.py data/xyz_chain.csv --price 100
        --target-date 2030-01-18 --sentiment bullish --config configs/default.json
    python scripts/generate_strategies.py data/xyz_chain.csv --price 100 --ideas --target-price 110
"""

import sys
import argparse
import json
import logging
from pathlib import Path
from datetime import datetime

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pandas as pd

from strikelogic.analytics.metrics import break_even_probabilities
from strikelogic.config import EngineConfig
from strikelogic.data.chain_loader import fill_missing_implied_vols, load_option_chain
from strikelogic.strategy.builders import generate_all_strategies
from strikelogic.strategy.risk_profiles import find_risk_profile_trades

logger = logging.getLogger(__name__)


def save_results(config: EngineConfig, trades: list, ideas: list):
    """Save analysed trades to JSON and a CSV summary"""
    output_dir = config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    payload = {
        'trades': [t.to_dict() for t in trades],
        'ideas': [
            {
                'risk_profile': idea.risk_profile,
                'max_profit_note': idea.max_profit_note,
                'roi_note': idea.roi_note,
                'trade': idea.trade.to_dict(),
            }
            for idea in ideas
        ],
        'run_timestamp': datetime.now().isoformat()
    }

    json_path = output_dir / config.output['trades_filename']
    with open(json_path, 'w') as f:
        json.dump(payload, f, indent=2, default=str)
    logger.info(f"Saved trades to {json_path}")

    if trades:
        summary = pd.DataFrame([
            {
                'name': t.name,
                'sentiment': t.sentiment.value,
                'expiry': t.expiry_label,
                'num_legs': t.num_legs,
                'net_debit': t.net_debit,
                'max_profit': t.max_profit,
                'max_risk': t.max_risk,
                'break_evens': ' / '.join(f"{be:.2f}" for be in t.break_evens),
                'return_on_risk': t.metrics.return_on_risk,
                'delta': t.delta,
                'theta': t.theta,
            }
            for t in trades
        ])
        csv_path = json_path.with_suffix('.csv')
        summary.to_csv(csv_path, index=False)
        logger.info(f"Saved summary to {csv_path}")


def print_summary(trades: list, ideas: list, probabilities: dict):
    """Print strategy table to console"""
    print("\n" + "="*80)
    print(f"STRATEGIES: {len(trades)}")
    print("="*80)

    for t in trades:
        bes = ', '.join(
            f"{be:.2f} (PoP {probabilities[t.name][be]:.0%})" if be in probabilities.get(t.name, {})
            else f"{be:.2f}"
            for be in t.break_evens
        )
        print(f"\n{t.name} [{t.sentiment.value}] {t.expiry_label}")
        print(f"  {t.description}")
        print(f"  Net Debit:   ${t.net_debit:>12,.2f}")
        print(f"  Max Profit:  ${t.max_profit:>12,.2f}")
        print(f"  Max Risk:    ${t.max_risk:>12,.2f}")
        print(f"  RoR:         {t.metrics.return_on_risk:>12.1f}%")
        print(f"  Break-evens: {bes or 'none'}")

    if ideas:
        print("\n" + "-"*80)
        print("RISK-PROFILE IDEAS")
        for idea in ideas:
            print(f"\n{idea.risk_profile}: {idea.trade.description}")
            print(f"  Net Debit: ${idea.trade.net_debit:,.2f}  Max Profit: {idea.max_profit_note}  "
                  f"ROI: {idea.roi_note}")

    print("="*80 + "\n")


def main():
    parser = argparse.ArgumentParser(
        description='Generate and analyse option strategies from a chain snapshot',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
            Examples:
            python scripts/generate_strategies.py data/xyz_chain.csv --price 100
            python scripts/generate_strategies.py data/xyz_chain.csv --price 100 --sentiment neutral
        """
    )

    parser.add_argument('chain', type=str, help='Chain snapshot file (.csv or .parquet)')
    parser.add_argument('--price', type=float, required=True, help='Current underlying price')
    parser.add_argument('--target-price', type=float, default=None, help='Target underlying price')
    parser.add_argument('--target-date', type=str, default=None, help='Target expiry (YYYY-MM-DD)')
    parser.add_argument('--sentiment', type=str, default=None,
                        help='Filter: bullish, very_bullish, bearish, very_bearish, neutral')
    parser.add_argument('--volatility', type=float, default=None,
                        help='Volatility for break-even probabilities')
    parser.add_argument('--ideas', action='store_true', help='Also build risk-profile trade ideas')
    parser.add_argument('--config', type=str, default=None, help='Path to JSON config file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose (DEBUG) logging')

    args = parser.parse_args()

    # Load config
    try:
        config = EngineConfig.from_json(args.config) if args.config else EngineConfig()
    except Exception as e:
        print(f"Error loading config: {e}")
        sys.exit(1)

    if args.verbose:
        config.logging['level'] = 'DEBUG'
    config.setup_logging()
    config.setup_output_dir()

    as_of = datetime.now()

    try:
        chain = load_option_chain(args.chain)
        chain = fill_missing_implied_vols(
            chain,
            args.price,
            as_of,
            risk_free_rate=config.pricing['risk_free_rate'],
            min_time_to_expiry=config.pricing['min_time_to_expiry'],
            **config.iv_kwargs()
        )

        # Expired contracts can never be traded
        live = [opt for opt in chain if opt.expiry >= as_of.date()]

        trades = generate_all_strategies(
            live,
            args.price,
            target_price=args.target_price,
            sentiment=args.sentiment,
            target_date=args.target_date or as_of.date(),
            as_of=as_of,
            **config.analysis_kwargs()
        )

        probabilities = {}
        if args.volatility:
            probabilities = {
                t.name: break_even_probabilities(t, args.price, args.volatility, as_of)
                for t in trades
            }

        ideas = []
        if args.ideas:
            ideas = find_risk_profile_trades(
                live,
                args.price,
                args.target_price or args.price,
                target_date=args.target_date,
                as_of=as_of
            )

        save_results(config, trades, ideas)
        print_summary(trades, ideas, probabilities)

    except Exception as e:
        logger.error(f"Strategy generation failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
