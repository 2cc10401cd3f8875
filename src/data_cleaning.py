"""
data_cleaning.py
Cleaning Pipeline for NYPD Shooting Incident Data

Design principles:
- Every transformation is logged with its affected-row count
- Stages are pure (DataFrame in → DataFrame out), no global state
- Sentinels are scrubbed by literal value, the same way in every column
- A single `run_pipeline()` call reproduces the canonical dataset end-to-end
"""

import logging

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_datetime64_any_dtype, is_numeric_dtype, is_timedelta64_dtype

from data_collection import DATA_URL, load_data
from pipeline_errors import MalformedRowError, SchemaMismatchError

# ── Logging Setup ─────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger(__name__)


# ── Constants ─────────────────────────────────────────────────────────────────

# Raw header of the historic file, in delivery order
RAW_COLUMNS = [
    "INCIDENT_KEY", "OCCUR_DATE", "OCCUR_TIME", "BORO", "PRECINCT",
    "JURISDICTION_CODE", "LOCATION_DESC", "STATISTICAL_MURDER_FLAG",
    "PERP_AGE_GROUP", "PERP_SEX", "PERP_RACE",
    "VIC_AGE_GROUP", "VIC_SEX", "VIC_RACE",
    "X_COORD_CD", "Y_COORD_CD", "Latitude", "Longitude", "Lon_Lat",
]

# 0-based: INCIDENT_KEY, PRECINCT, JURISDICTION_CODE, LOCATION_DESC, Latitude, Longitude, Lon_Lat
DROPPED_COLUMN_INDICES = (0, 4, 5, 6, 16, 17, 18)

RAW_TO_CANONICAL = {
    "OCCUR_DATE":              "Date",
    "OCCUR_TIME":              "Time",
    "BORO":                    "Borough",
    "STATISTICAL_MURDER_FLAG": "Murder",
    "PERP_AGE_GROUP":          "PerpAge",
    "PERP_SEX":                "PerpSex",
    "PERP_RACE":               "PerpRace",
    "VIC_AGE_GROUP":           "VictimAge",
    "VIC_SEX":                 "VictimSex",
    "VIC_RACE":                "VictimRace",
    "X_COORD_CD":              "Xcoord",
    "Y_COORD_CD":              "Ycoord",
}
CANONICAL_COLUMNS = list(RAW_TO_CANONICAL.values())

CATEGORICAL_COLUMNS = [
    "Borough", "PerpAge", "PerpSex", "PerpRace", "VictimAge", "VictimSex", "VictimRace",
]

# Exact, case-sensitive matches. 940 and 224 are impossible perp age groups in the source.
SENTINEL_VALUES = frozenset({"", "UNKNOWN", "U", "940", "224"})

DATE_FORMAT = "%m/%d/%Y"
TIME_FORMAT = "%H:%M:%S"

MURDER_FLAG_VALUES = {"true": True, "false": False}

MALFORMED_POLICIES = ("raise", "drop")

_UNPARSED = object()


# ── Audit Trail ───────────────────────────────────────────────────────────────

class AuditTrail:
    """Tracks every cleaning decision with its affected-row count."""

    def __init__(self, total_rows: int):
        self.total_rows = total_rows
        self.steps: list[dict] = []

    def record(self, step: str, description: str, changed: int, detail: str = ""):
        changed = int(changed)
        pct = changed / self.total_rows * 100 if self.total_rows else 0.0
        self.steps.append({
            "step": step,
            "description": description,
            "rows_affected": changed,
            "pct_affected": round(pct, 2),
            "detail": detail,
        })
        log.info(f"[{step}] {description} → {changed:,} rows affected ({pct:.1f}%) {detail}")

    def summary(self):
        print("\n" + "=" * 65)
        print("CLEANING AUDIT SUMMARY")
        print("=" * 65)
        print(f"{'Step':<22} {'Affected':>10} {'%':>7}  Description")
        print("-" * 65)
        for s in self.steps:
            print(f"{s['step']:<22} {s['rows_affected']:>10,} {s['pct_affected']:>6.1f}%  {s['description']}")
        print("=" * 65)


# ── Step 1: Project & Rename ──────────────────────────────────────────────────

def project_columns(
    df: pd.DataFrame,
    drop_indices=DROPPED_COLUMN_INDICES,
    names=CANONICAL_COLUMNS,
    audit: AuditTrail = None,
) -> pd.DataFrame:
    """
    Drop columns by position and rename the rest, in order, to `names`.

    Raises SchemaMismatchError if a drop position is outside the table or
    the number of kept columns differs from len(names).
    """
    n_cols = df.shape[1]
    out_of_range = sorted(i for i in drop_indices if not 0 <= i < n_cols)
    if out_of_range:
        raise SchemaMismatchError(
            f"Drop positions {out_of_range} fall outside a {n_cols}-column table"
        )

    dropped = set(drop_indices)
    keep = [i for i in range(n_cols) if i not in dropped]
    if len(keep) != len(names):
        raise SchemaMismatchError(
            f"{len(keep)} columns remain after dropping {len(dropped)} of {n_cols}, "
            f"expected {len(names)}: {list(names)}"
        )

    if list(names) == CANONICAL_COLUMNS:
        renamed = {df.columns[i]: name for i, name in zip(keep, names)}
        unexpected = {raw: new for raw, new in renamed.items() if RAW_TO_CANONICAL.get(raw) != new}
        if unexpected:
            log.warning(f"Raw headers differ from the known layout, renaming anyway: {unexpected}")

    projected = df.iloc[:, keep].copy()
    projected.columns = list(names)

    if audit is not None:
        audit.record("Column projection", f"{len(dropped)} columns dropped, {len(names)} renamed", 0,
                     f"({list(names)})")
    return projected


# ── Step 2: Sentinel Scrubbing ────────────────────────────────────────────────

def scrub_value(value):
    """Map one cell: a sentinel literal becomes NaN, anything else passes through."""
    if isinstance(value, str) and value in SENTINEL_VALUES:
        return np.nan
    return value


def scrub_sentinels(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    df = df.copy()
    text_columns = df.select_dtypes(include=["object", "string"]).columns
    total = 0
    for col in text_columns:
        hits = int(df[col].isin(SENTINEL_VALUES).sum())
        if not hits:
            continue
        df[col] = df[col].map(scrub_value)
        total += hits
        audit.record(f"Sentinels: {col}", "Placeholder literals → NaN", hits)

    log.info(f"Scrubbed {total:,} sentinel cells across {len(text_columns)} text columns")
    return df


# ── Step 3: Typed Columns ─────────────────────────────────────────────────────

def _reject_malformed(df: pd.DataFrame, bad: pd.Series, column: str,
                      on_malformed: str, audit: AuditTrail) -> pd.DataFrame:
    if not bad.any():
        return df
    if on_malformed == "raise":
        row = bad.idxmax()
        raise MalformedRowError(row, column, df.at[row, column])

    dropped = int(bad.sum())
    log.warning(f"Dropping {dropped:,} rows with unparseable {column}")
    audit.record(f"Malformed: {column}", "Unparseable rows dropped", dropped)
    return df.loc[~bad].copy()


def parse_dates(df: pd.DataFrame, audit: AuditTrail, on_malformed: str = "raise") -> pd.DataFrame:
    """
    OCCUR_DATE is MM/DD/YYYY text, OCCUR_TIME is HH:MM:SS text.
    Time is stored as an offset from midnight so (Date, Time) sorts natively.
    """
    df = df.copy()

    if not is_datetime64_any_dtype(df["Date"]):
        dates = pd.to_datetime(df["Date"], format=DATE_FORMAT, errors="coerce")
        df = _reject_malformed(df, df["Date"].notna() & dates.isna(), "Date", on_malformed, audit)
        df["Date"] = dates

    if not is_timedelta64_dtype(df["Time"]):
        clock = pd.to_datetime(df["Time"], format=TIME_FORMAT, errors="coerce")
        df = _reject_malformed(df, df["Time"].notna() & clock.isna(), "Time", on_malformed, audit)
        clock = clock.loc[df.index]
        df["Time"] = clock - clock.dt.normalize()

    return df


def _parse_flag(value):
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, str):
        return MURDER_FLAG_VALUES.get(value.strip().lower(), _UNPARSED)
    return None


def parse_murder_flag(df: pd.DataFrame, audit: AuditTrail, on_malformed: str = "raise") -> pd.DataFrame:
    df = df.copy()
    if is_bool_dtype(df["Murder"]):
        return df

    flags = df["Murder"].map(_parse_flag)
    bad = flags.map(lambda v: v is _UNPARSED).astype(bool)
    df = _reject_malformed(df, bad, "Murder", on_malformed, audit)
    df["Murder"] = flags.loc[df.index].astype("boolean")

    missing = int(df["Murder"].isna().sum())
    audit.record("Murder flag", "Missing flags after true/false → boolean", missing,
                 f"({int(df['Murder'].sum()):,} murders)")
    return df


def _strip_thousands(value):
    return value.replace(",", "") if isinstance(value, str) else value


def parse_coordinates(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    df = df.copy()
    for col in ("Xcoord", "Ycoord"):
        if is_numeric_dtype(df[col]):
            continue
        present = df[col].notna()
        numbers = pd.to_numeric(df[col].map(_strip_thousands), errors="coerce").astype("float64")
        coerced = int((present & numbers.isna()).sum())
        df[col] = numbers
        audit.record(f"Coordinates: {col}", "Non-numeric values → NaN", coerced)
    return df


# ── Step 4: Sort ──────────────────────────────────────────────────────────────

def sort_rows(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    # Two stable passes, secondary key first, give a stable (Date, Time) order
    df = df.sort_values("Time", kind="mergesort").sort_values("Date", kind="mergesort")
    moved = int((df.index.to_numpy() != np.arange(len(df))).sum()) if len(df) else 0
    audit.record("Sort", "Rows ordered by (Date, Time), missing last", moved)
    return df.reset_index(drop=True)


# ── Normalizer ────────────────────────────────────────────────────────────────

def normalize_rows(df: pd.DataFrame, audit: AuditTrail = None, on_malformed: str = "raise") -> pd.DataFrame:
    """
    Turn the projected table into the canonical dataset.

    Scrubs sentinels, parses the typed columns, then sorts. Already-typed
    columns are left alone, so a canonical frame passes through unchanged.

    Parameters
    ----------
    df           : output of project_columns()
    audit        : trail to record into; a fresh one is made if omitted
    on_malformed : "raise" aborts on the first unparseable value,
                   "drop" removes such rows and keeps going
    """
    if on_malformed not in MALFORMED_POLICIES:
        raise ValueError(f"on_malformed must be one of {MALFORMED_POLICIES}, got {on_malformed!r}")
    if audit is None:
        audit = AuditTrail(total_rows=len(df))

    df = df.reset_index(drop=True)
    df = scrub_sentinels(df, audit)
    df = parse_dates(df, audit, on_malformed)
    df = parse_murder_flag(df, audit, on_malformed)
    df = parse_coordinates(df, audit)
    df = sort_rows(df, audit)
    return df


# ── Pipeline Orchestrator ─────────────────────────────────────────────────────

def run_pipeline(source: str = DATA_URL, on_malformed: str = "raise") -> pd.DataFrame:
    """
    End-to-end cleaning: load, project, normalize.

    Parameters
    ----------
    source       : URL of the NYC Open Data CSV, or a local copy
    on_malformed : see normalize_rows()

    Returns
    -------
    Canonical DataFrame
    """
    log.info("=" * 60)
    log.info("NYPD SHOOTING DATA: CLEANING PIPELINE START")
    log.info("=" * 60)

    raw = load_data(source)
    audit = AuditTrail(total_rows=len(raw))

    df = project_columns(raw, audit=audit)
    df = normalize_rows(df, audit, on_malformed=on_malformed)

    log.info(f"Final shape: {df.shape[0]:,} rows × {df.shape[1]} columns")
    audit.summary()
    return df


# ── Entry Point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    run_pipeline()
