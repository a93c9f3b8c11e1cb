from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from core.columns import (
    CATEGORY_CHANGE_CANDIDATES,
    CATEGORY_NAME_CANDIDATES,
    DETAIL_METRIC_CANDIDATES,
    ENTITY_NAME_CANDIDATES,
    resolve_column,
)
from core.errors import EmptyDataset
from core.matching import TOP_N_ENTITIES, build_entity_index
from core.models import Category, CategoryTable, EnrichmentResult, EntityDetail, ReconciledDataset
from core.normalize import coerce_str_safe, is_aggregate_label, normalize_key, numericize, to_percent
from core.tables import TableData, read_table

logger = logging.getLogger(__name__)


DATA_DIR = Path(os.getenv("VERTICAL_DATA_DIR", str(Path(__file__).resolve().parents[1] / "data")))

CATEGORIES_FILE = "vertical_pct_change.csv"
CURRENT_ENTITIES_FILE = "advertiser25.csv"
MEMBERSHIP_FILE = "adv_verticals.csv"
PRIOR_ENTITIES_FILE = "advertiser24.csv"

MANDATORY_FILES = (CATEGORIES_FILE, CURRENT_ENTITIES_FILE, MEMBERSHIP_FILE)


def get_source_files(data_dir: Optional[Path] = None) -> List[Path]:
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    names = MANDATORY_FILES + (PRIOR_ENTITIES_FILE,)
    return [base / name for name in names if (base / name).is_file()]


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


# ---------------- Reconciliation ----------------
def build_category_table(table: TableData) -> CategoryTable:
    """Ranked verticals with their percent change, plus the overall baseline.

    The first row labelled like "Overall"/"Total" is the baseline and never a
    category; without one the baseline is the mean of the categories.
    """
    if table.empty:
        raise EmptyDataset(table.name)

    name_col = resolve_column(table.columns, CATEGORY_NAME_CANDIDATES, table=table.name)
    change_col = resolve_column(table.columns, CATEGORY_CHANGE_CANDIDATES, table=table.name)

    df = table.to_frame()[[name_col, change_col]].copy()
    df.columns = ["vertical", "pct_change_raw"]
    df = coerce_str_safe(df, ["vertical"])
    df = numericize(df, ["pct_change_raw"])
    usable = df.dropna(subset=["vertical", "pct_change_raw"])
    dropped = int(len(df) - len(usable))
    if usable.empty:
        raise EmptyDataset(table.name, f"has no usable rows. Check columns: {name_col}, {change_col}")
    if dropped:
        logger.info("%s: dropped %d rows without a name or a numeric change", table.name, dropped)

    converted = to_percent(usable["pct_change_raw"].tolist())

    overall: Optional[float] = None
    by_key: Dict[str, Category] = {}
    for name, pct in zip(usable["vertical"].astype(str).tolist(), converted):
        if is_aggregate_label(name):
            if overall is None:
                overall = pct
            continue
        key = normalize_key(name) or name
        by_key.pop(key, None)
        by_key[key] = Category(name=name, pct_change=pct)

    if not by_key:
        raise EmptyDataset(table.name, "has only aggregate rows")

    categories = sorted(by_key.values(), key=lambda c: c.pct_change, reverse=True)
    from_sentinel = overall is not None
    if overall is None:
        overall = sum(c.pct_change for c in categories) / max(1, len(categories))

    positives = tuple(sorted((c for c in categories if c.pct_change > 0), key=lambda c: c.pct_change, reverse=True))
    negatives = tuple(sorted((c for c in categories if c.pct_change < 0), key=lambda c: c.pct_change))

    return CategoryTable(
        categories=tuple(categories),
        overall_pct_change=float(overall),
        overall_from_sentinel=from_sentinel,
        positives=positives,
        negatives=negatives,
        columns={"vertical": name_col, "pct_change": change_col},
        dropped_rows=dropped,
    )


def _period_frame(table: TableData) -> pd.DataFrame:
    name_col = resolve_column(table.columns, ENTITY_NAME_CANDIDATES, table=table.name)
    picked = {metric: resolve_column(table.columns, cands, table=table.name) for metric, cands in DETAIL_METRIC_CANDIDATES.items()}
    df = table.to_frame()[[name_col] + list(picked.values())].copy()
    df.columns = ["advertiser"] + list(picked.keys())
    df = coerce_str_safe(df, ["advertiser"])
    df = numericize(df, list(picked.keys()))
    df = df.dropna(subset=["advertiser"])
    df["key"] = df["advertiser"].map(normalize_key).astype(object)
    return df.drop_duplicates(subset=["key"], keep="last")


def _opt(value: object) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def build_detail_index(current: Optional[TableData], prior: Optional[TableData]) -> EnrichmentResult:
    """Join current-period advertiser metrics to the prior period by normalized name.

    Any failure leaves the comparison panel without data instead of failing
    the load; the reason is kept on the result.
    """
    missing = None
    if current is None or prior is None:
        missing = "prior-period advertiser table is not available"
    elif current.empty or prior.empty:
        missing = f"{(current if current.empty else prior).name} has no rows"
    if missing is not None:
        logger.info("Year-over-year advertiser detail unavailable: %s", missing)
        return EnrichmentResult(details={}, failure=missing)

    try:
        cur = _period_frame(current)
        prev = _period_frame(prior).set_index("key")

        details: Dict[str, EntityDetail] = {}
        for r in cur.itertuples(index=False):
            prior_row = prev.loc[r.key] if r.key in prev.index else None
            details[r.key] = EntityDetail(
                name=str(r.advertiser),
                impressions_a=_opt(prior_row["impressions"]) if prior_row is not None else None,
                impressions_b=_opt(r.impressions),
                reach_a=_opt(prior_row["reach"]) if prior_row is not None else None,
                reach_b=_opt(r.reach),
                frequency_a=_opt(prior_row["frequency"]) if prior_row is not None else None,
                frequency_b=_opt(r.frequency),
            )
        return EnrichmentResult(details=details)
    except Exception as exc:
        logger.warning("Year-over-year advertiser detail unavailable: %s", exc)
        return EnrichmentResult(details={}, failure=f"{type(exc).__name__}: {exc}")


def reconcile(
    categories: TableData,
    entities: TableData,
    membership: TableData,
    prior: Optional[TableData] = None,
    *,
    top_n: int = TOP_N_ENTITIES,
    files: Tuple[str, ...] = (),
) -> ReconciledDataset:
    category_table = build_category_table(categories)
    if entities.empty:
        raise EmptyDataset(entities.name)
    if membership.empty:
        raise EmptyDataset(membership.name)
    index = build_entity_index(entities, membership, top_n=top_n)
    details = build_detail_index(entities, prior)
    logger.info(
        "Reconciled %d verticals, %d mapped verticals, %d advertiser details",
        len(category_table.categories),
        len(index.by_category),
        len(details.details),
    )
    return ReconciledDataset(categories=category_table, entities=index, details=details, files=files)


# ---------------- Public API (Streamlit + FastAPI use) ----------------
@lru_cache(maxsize=4)
def _load_dataset_cached(files_sig: Tuple[Tuple[str, float], ...]) -> ReconciledDataset:
    paths = {Path(name).name: Path(name) for name, _ in files_sig}
    for required in MANDATORY_FILES:
        if required not in paths:
            raise EmptyDataset(required, "was not found")

    prior: Optional[TableData] = None
    if PRIOR_ENTITIES_FILE in paths:
        try:
            prior = read_table(paths[PRIOR_ENTITIES_FILE])
        except Exception as exc:
            logger.warning("Could not read %s: %s", PRIOR_ENTITIES_FILE, exc)
            prior = None

    return reconcile(
        read_table(paths[CATEGORIES_FILE]),
        read_table(paths[CURRENT_ENTITIES_FILE]),
        read_table(paths[MEMBERSHIP_FILE]),
        prior,
        files=tuple(paths),
    )


def load_dataset(data_dir: Optional[Path] = None) -> ReconciledDataset:
    files = get_source_files(data_dir)
    if not files:
        base = Path(data_dir) if data_dir is not None else DATA_DIR
        raise EmptyDataset(str(base / CATEGORIES_FILE), "was not found")
    return _load_dataset_cached(file_signature(files))


def load_raw_tables(data_dir: Optional[Path] = None) -> Dict[str, TableData]:
    return {f.name: read_table(f) for f in get_source_files(data_dir)}
