"""
aggregation.py
Murder-count tables derived from the canonical shooting dataset.

Only rows flagged as murders are counted. A missing value is a group of its
own rather than being dropped, so every table's counts sum to the number of
murders. Combinations that never occur are absent rather than zero.
"""

import logging

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)


# ── Constants ─────────────────────────────────────────────────────────────────

CROSS_TAB_DIMENSIONS = {
    "by_age":  ("PerpAge",  "VictimAge"),
    "by_race": ("PerpRace", "VictimRace"),
    "by_sex":  ("PerpSex",  "VictimSex"),
}


# ── Helpers ───────────────────────────────────────────────────────────────────

def _murders(df: pd.DataFrame) -> pd.DataFrame:
    mask = df["Murder"].astype("boolean").fillna(False).to_numpy(dtype=bool)
    return df.loc[mask]


def _count_by(murders: pd.DataFrame, keys) -> pd.DataFrame:
    return (
        murders.groupby(keys, dropna=False)
        .size()
        .reset_index(name="Count")
        .astype({"Count": "int64"})
    )


# ── Tables ────────────────────────────────────────────────────────────────────

def murders_by_month(df: pd.DataFrame) -> pd.DataFrame:
    """One row per year-month that has at least one murder: Month, Count."""
    murders = _murders(df)
    month = pd.to_datetime(murders["Date"]).dt.to_period("M").dt.to_timestamp()
    table = _count_by(murders, month.rename("Month"))
    return table.sort_values("Month", kind="mergesort", ignore_index=True)


def murders_by_borough(df: pd.DataFrame) -> pd.DataFrame:
    """Borough, Count; highest count first, ties in borough name order."""
    table = _count_by(_murders(df), "Borough")
    return table.sort_values("Count", ascending=False, kind="mergesort", ignore_index=True)


def _perp_victim_table(df: pd.DataFrame, perp_col: str, victim_col: str) -> pd.DataFrame:
    return _count_by(_murders(df), [perp_col, victim_col])


def murders_by_age(df: pd.DataFrame) -> pd.DataFrame:
    return _perp_victim_table(df, *CROSS_TAB_DIMENSIONS["by_age"])


def murders_by_race(df: pd.DataFrame) -> pd.DataFrame:
    return _perp_victim_table(df, *CROSS_TAB_DIMENSIONS["by_race"])


def murders_by_sex(df: pd.DataFrame) -> pd.DataFrame:
    return _perp_victim_table(df, *CROSS_TAB_DIMENSIONS["by_sex"])


def aggregate_murders(df: pd.DataFrame) -> dict[str, pd.DataFrame]:
    """All five tables, keyed by_month, by_borough, by_age, by_race, by_sex."""
    tables = {
        "by_month":   murders_by_month(df),
        "by_borough": murders_by_borough(df),
        "by_age":     murders_by_age(df),
        "by_race":    murders_by_race(df),
        "by_sex":     murders_by_sex(df),
    }
    for name, table in tables.items():
        log.info(f"[{name}] {len(table):,} groups, {int(table['Count'].sum()):,} murders")
    return tables


# ── Trend ─────────────────────────────────────────────────────────────────────

def months_elapsed(months: pd.Series) -> np.ndarray:
    """Whole months between each entry and the first one."""
    months = pd.to_datetime(months)
    elapsed = (months.dt.year - months.dt.year.iloc[0]) * 12 + (months.dt.month - months.dt.month.iloc[0])
    return elapsed.to_numpy(dtype=float)


def fit_monthly_trend(by_month: pd.DataFrame):
    """
    Least-squares line through monthly counts.

    x is months elapsed since the first dated month, so the slope reads as
    murders per month per month. Returns (slope, intercept), or None when
    fewer than two dated months exist.
    """
    dated = by_month.dropna(subset=["Month"])
    if len(dated) < 2:
        return None

    slope, intercept = np.polyfit(months_elapsed(dated["Month"]), dated["Count"].to_numpy(dtype=float), 1)
    return float(slope), float(intercept)
