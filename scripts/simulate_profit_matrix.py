"""
Simulate the profit matrix of one catalogue strategy.

Usage:
    python scripts/simulate_profit_matrix.py data/xyz_chain.csv "Iron Condor" --price 100 --vol 0.30
    python scripts/simulate_profit_matrix.py data/xyz_chain.csv Straddle --price 100 --vol 0.25
        --target-date 2030-01-18 --config configs/default.json
"""

import sys
import argparse
import logging
from pathlib import Path
from datetime import datetime

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pandas as pd

from strikelogic.config import EngineConfig
from strikelogic.data.chain_loader import filter_chain_by_closest_expiry, load_option_chain
from strikelogic.simulation.profit_matrix import calculate_profit_matrix, profit_matrix_frame
from strikelogic.strategy.builders import build_strategy

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description='Simulate a strategy profit matrix (dates x prices)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
            Examples:
            python scripts/simulate_profit_matrix.py data/xyz_chain.csv "Bull Call Spread" --price 100 --vol 0.3
        """
    )

    parser.add_argument('chain', type=str, help='Chain snapshot file (.csv or .parquet)')
    parser.add_argument('strategy', type=str, help='Strategy name, e.g. "Iron Condor"')
    parser.add_argument('--price', type=float, required=True, help='Current underlying price')
    parser.add_argument('--vol', type=float, required=True, help='Ambient volatility (0.30 = 30%%)')
    parser.add_argument('--target-price', type=float, default=None, help='Target underlying price')
    parser.add_argument('--target-date', type=str, default=None, help='Target expiry (YYYY-MM-DD)')
    parser.add_argument('--config', type=str, default=None, help='Path to JSON config file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose (DEBUG) logging')

    args = parser.parse_args()

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
        if args.target_date:
            chain = filter_chain_by_closest_expiry(chain, args.target_date)
        else:
            # Nearest expiry that has not passed yet
            live = [opt for opt in chain if opt.expiry >= as_of.date()]
            chain = filter_chain_by_closest_expiry(live, as_of.date())

        trade = build_strategy(
            args.strategy,
            chain,
            args.price,
            target_price=args.target_price,
            as_of=as_of,
            **config.analysis_kwargs()
        )
        if trade is None:
            print(f"Strategy '{args.strategy}' is not feasible for this chain")
            sys.exit(1)

        grid = calculate_profit_matrix(trade, args.price, args.vol, as_of=as_of, **config.matrix_kwargs())

        matrix_path = config.output_dir / config.output['matrix_filename']
        pd.DataFrame([p.to_dict() for p in grid]).to_csv(matrix_path, index=False)
        logger.info(f"Saved profit matrix to {matrix_path}")

        frame = profit_matrix_frame(grid)
        with pd.option_context('display.width', 200, 'display.max_columns', 30):
            print(f"\n{trade.name}: {trade.description} ({trade.expiry_label})")
            print(f"Net Debit: ${trade.net_debit:,.2f}\n")
            print(frame.round(0))
            print()

    except Exception as e:
        logger.error(f"Profit matrix simulation failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
