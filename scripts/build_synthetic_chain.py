"""
Write a deterministic synthetic option chain snapshot.

Usage:
    python scripts/build_synthetic_chain.py XYZ 100 data/xyz_chain.csv
    python scripts/build_synthetic_chain.py SPY 450 data/spy.parquet --days 30 60 90 --seed 7
"""

import sys
import argparse
import logging
from pathlib import Path
from datetime import date

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from strikelogic.data.chain_loader import available_expiries, save_option_chain
from strikelogic.data.synthetic import DEFAULT_EXPIRY_DAYS, generate_synthetic_multi_expiry_chain

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description='Generate a synthetic option chain snapshot (CSV or parquet)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
            Examples:
            python scripts/build_synthetic_chain.py XYZ 100 data/xyz_chain.csv
            python scripts/build_synthetic_chain.py SPY 450 data/spy.parquet --days 30 60
        """
    )

    parser.add_argument('ticker', type=str, help='Underlying ticker symbol')
    parser.add_argument('spot', type=float, help='Underlying spot price')
    parser.add_argument('output', type=str, help='Output file (.csv or .parquet)')
    parser.add_argument(
        '--days',
        type=int,
        nargs='+',
        default=list(DEFAULT_EXPIRY_DAYS),
        help='Days to expiry for each generated expiration'
    )
    parser.add_argument(
        '--as-of',
        type=str,
        default=None,
        help='Snapshot date (YYYY-MM-DD, default: today)'
    )
    parser.add_argument('--seed', type=int, default=42, help='Random seed for IV draws')
    parser.add_argument('--rate', type=float, default=0.05, help='Risk-free rate')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    as_of = date.fromisoformat(args.as_of) if args.as_of else date.today()

    chain = generate_synthetic_multi_expiry_chain(
        args.ticker,
        args.spot,
        expiry_days=args.days,
        as_of=as_of,
        risk_free_rate=args.rate,
        seed=args.seed
    )
    path = save_option_chain(chain, args.output)

    print(f"\nWrote {len(chain)} contracts to {path}")
    print(f"Expiries: {', '.join(e.isoformat() for e in available_expiries(chain))}\n")


if __name__ == '__main__':
    main()
