"""
Shared builders for raw and canonical shooting-incident frames.
"""

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from data_cleaning import RAW_COLUMNS, normalize_rows, project_columns


def raw_row(date="01/05/2020", time="14:30:00", boro="BROOKLYN", murder="true",
            perp_age="18-24", perp_sex="M", perp_race="BLACK",
            vic_age="25-44", vic_sex="M", vic_race="BLACK",
            x="1,006,343", y="234,270"):
    """One raw record in the column order of the historic file."""
    return [
        "228798151", date, time, boro, "75", "0", "", murder,
        perp_age, perp_sex, perp_race, vic_age, vic_sex, vic_race,
        x, y, "40.662965", "-73.730839", "POINT (-73.730839 40.662965)",
    ]


@pytest.fixture
def make_raw():
    """Build a raw frame from raw_row() keyword dicts."""
    def _make(*rows):
        return pd.DataFrame([raw_row(**r) for r in rows], columns=RAW_COLUMNS, dtype=str)
    return _make


@pytest.fixture
def make_canonical(make_raw):
    """Build a canonical frame by running raw rows through projection and normalization."""
    def _make(*rows, on_malformed="raise"):
        return normalize_rows(project_columns(make_raw(*rows)), on_malformed=on_malformed)
    return _make
