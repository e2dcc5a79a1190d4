"""
Option chain snapshots - load, save and filter chains of OptionQuote.

A snapshot is a long-format table with one row per contract:

    underlying, expiry, type, strike, bid, ask, last, implied_vol,
    delta, gamma, theta, vega

CSV and parquet are supported (parquet via pyarrow). ``type`` accepts
"Call"/"Put" in any case, or the single letters C/P.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import List, Protocol, Union

import pandas as pd
from dateutil import parser as date_parser

from strikelogic.core.models import OptionQuote, OptionType
from strikelogic.pricing.black_scholes import MIN_TIME_TO_EXPIRY, calculate_iv, time_to_expiry

logger = logging.getLogger(__name__)


REQUIRED_COLUMNS = ['expiry', 'type', 'strike', 'bid', 'ask']
OPTIONAL_COLUMNS = {
    'underlying': "",
    'last': 0.0,
    'implied_vol': 0.0,
    'delta': 0.0,
    'gamma': 0.0,
    'theta': 0.0,
    'vega': 0.0,
}
COLUMN_ORDER = [
    'underlying', 'expiry', 'type', 'strike', 'bid', 'ask', 'last',
    'implied_vol', 'delta', 'gamma', 'theta', 'vega',
]

_TYPE_ALIASES = {
    'call': OptionType.CALL,
    'c': OptionType.CALL,
    'put': OptionType.PUT,
    'p': OptionType.PUT,
}


class IChainSource(Protocol):
    """
    Interface for option chain sources.

    Implementations return the contracts of one underlying, optionally
    restricted to a single expiry.
    """

    def get_option_chain(self, expiry: Union[date, str, None] = None) -> List[OptionQuote]:
        ...

    def get_available_expiries(self) -> List[date]:
        ...


def _parse_option_type(value) -> OptionType:
    key = str(value).strip().lower()
    if key not in _TYPE_ALIASES:
        raise ValueError(f"Unknown option type '{value}', expected Call/Put")
    return _TYPE_ALIASES[key]


def chain_from_frame(df: pd.DataFrame) -> List[OptionQuote]:
    """
    Convert a snapshot DataFrame into OptionQuote objects (row order kept).

    Raises:
        ValueError: If required columns are missing or a row is invalid
    """
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Option chain is missing required columns: {missing}")

    df = df.copy()
    for col, default in OPTIONAL_COLUMNS.items():
        if col not in df.columns:
            df[col] = default
    df[list(OPTIONAL_COLUMNS)] = df[list(OPTIONAL_COLUMNS)].fillna(OPTIONAL_COLUMNS)
    df['expiry'] = pd.to_datetime(df['expiry']).dt.date

    chain = []
    for row in df.itertuples(index=False):
        chain.append(OptionQuote(
            strike=float(row.strike),
            expiry=row.expiry,
            option_type=_parse_option_type(row.type),
            bid=float(row.bid),
            ask=float(row.ask),
            last=float(row.last),
            implied_vol=float(row.implied_vol),
            delta=float(row.delta),
            gamma=float(row.gamma),
            theta=float(row.theta),
            vega=float(row.vega),
            underlying=str(row.underlying),
        ))
    return chain


def chain_to_frame(chain: List[OptionQuote]) -> pd.DataFrame:
    """Snapshot DataFrame for a chain (inverse of chain_from_frame)"""
    rows = [
        {
            'underlying': opt.underlying,
            'expiry': opt.expiry,
            'type': opt.option_type.value,
            'strike': opt.strike,
            'bid': opt.bid,
            'ask': opt.ask,
            'last': opt.last,
            'implied_vol': opt.implied_vol,
            'delta': opt.delta,
            'gamma': opt.gamma,
            'theta': opt.theta,
            'vega': opt.vega,
        }
        for opt in chain
    ]
    return pd.DataFrame(rows, columns=COLUMN_ORDER)


def load_option_chain(path: Union[str, Path]) -> List[OptionQuote]:
    """
    Load a chain snapshot from CSV or parquet.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the extension is not supported
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Option chain file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == '.parquet':
        df = pd.read_parquet(path)
    elif suffix == '.csv':
        df = pd.read_csv(path)
    else:
        raise ValueError(f"Unsupported chain file type '{suffix}' (use .csv or .parquet)")

    chain = chain_from_frame(df)
    logger.info(f"Loaded {len(chain)} contracts from {path}")
    return chain


def save_option_chain(chain: List[OptionQuote], path: Union[str, Path]) -> Path:
    """Write a chain snapshot to CSV or parquet based on the extension"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    df = chain_to_frame(chain)
    if path.suffix.lower() == '.parquet':
        df.to_parquet(path, index=False)
    else:
        df.to_csv(path, index=False)

    logger.info(f"Saved {len(chain)} contracts to {path}")
    return path


def available_expiries(chain: List[OptionQuote]) -> List[date]:
    """Distinct expiries in the chain, sorted ascending"""
    return sorted({opt.expiry for opt in chain})


def filter_chain_by_expiry(chain: List[OptionQuote], expiry: date) -> List[OptionQuote]:
    return [opt for opt in chain if opt.expiry == expiry]


def _parse_target_date(target: Union[date, datetime, str]):
    if isinstance(target, datetime):
        return target.date()
    if isinstance(target, date):
        return target
    try:
        return date_parser.parse(target).date()
    except (ValueError, OverflowError):
        return None


def filter_chain_by_closest_expiry(
    chain: List[OptionQuote],
    target_date: Union[date, datetime, str]
) -> List[OptionQuote]:
    """
    Contracts of the single expiry closest to ``target_date``.

    Ties go to the earlier expiry. An unparseable target string falls
    back to an exact match against ISO expiry strings.

    Example:
        >>> # Chain with expiries 2030-01-18 and 2030-02-15
        >>> sub = filter_chain_by_closest_expiry(chain, '2030-01-20')
        >>> {opt.expiry for opt in sub}
        {datetime.date(2030, 1, 18)}
    """
    target = _parse_target_date(target_date)
    if target is None:
        logger.warning(f"Could not parse target date '{target_date}', using exact match")
        return [opt for opt in chain if opt.expiry.isoformat() == str(target_date)]

    expiries = available_expiries(chain)
    if not expiries:
        return []

    best = min(expiries, key=lambda e: abs((e - target).days))
    logger.debug(f"Closest expiry to {target} is {best}")
    return filter_chain_by_expiry(chain, best)


def fill_missing_implied_vols(
    chain: List[OptionQuote],
    spot: float,
    as_of: datetime,
    risk_free_rate: float = 0.05,
    min_time_to_expiry: float = MIN_TIME_TO_EXPIRY,
    **iv_kwargs
) -> List[OptionQuote]:
    """
    Chain with implied_vol solved from the mid price where it is missing.

    Quotes that already carry a positive IV, or have no positive mid, are
    returned unchanged. Solved values are approximate (see calculate_iv).
    """
    filled = []
    solved = 0
    for opt in chain:
        if opt.implied_vol > 0 or opt.mid <= 0:
            filled.append(opt)
            continue

        years = time_to_expiry(opt.expiry, as_of, floor=min_time_to_expiry)
        iv = calculate_iv(opt.mid, opt.option_type, spot, opt.strike, years, risk_free_rate, **iv_kwargs)
        filled.append(replace(opt, implied_vol=round(iv, 4)))
        solved += 1

    if solved:
        logger.info(f"Solved implied volatility for {solved} quotes")
    return filled


class SnapshotChainSource:
    """
    Chain source backed by one snapshot file.

    The file is read once on construction; chains are served from memory.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._chain = load_option_chain(self.path)

    def get_option_chain(self, expiry: Union[date, str, None] = None) -> List[OptionQuote]:
        """Whole snapshot, or the contracts of the expiry closest to ``expiry``"""
        if expiry is None:
            return list(self._chain)
        return filter_chain_by_closest_expiry(self._chain, expiry)

    def get_available_expiries(self) -> List[date]:
        return available_expiries(self._chain)
