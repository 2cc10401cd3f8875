"""
data_collection.py
Fetches the NYPD Shooting Incident Data (Historic) CSV from NYC Open Data.

Every cell is kept as literal text: the cleaning stage decides what counts as
missing, so pandas must not turn "" or "NA" into NaN on the way in.
"""

import io
import logging
from pathlib import Path

import pandas as pd
import requests

from pipeline_errors import RetrievalError

log = logging.getLogger(__name__)


# ── Constants ─────────────────────────────────────────────────────────────────

DATA_URL = "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD"

# Seconds; the full historic file is a few MB
DEFAULT_TIMEOUT = 60


# ── Fetch ─────────────────────────────────────────────────────────────────────

def _is_url(source: str) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


def fetch_csv_text(url: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Download `url` and return the body, or raise RetrievalError."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()

    except requests.exceptions.HTTPError as http_error:
        code = http_error.response.status_code if http_error.response is not None else "?"
        if code == 404:
            message = f"Error 404: {url} not found"
        elif isinstance(code, int) and code >= 500:
            message = f"Error {code}: server failed while serving {url}"
        else:
            message = f"HTTP error {code} while fetching {url}"
        raise RetrievalError(message) from http_error

    except requests.exceptions.Timeout as timeout_error:
        raise RetrievalError(f"Timed out after {timeout}s fetching {url}") from timeout_error

    except requests.exceptions.RequestException as request_error:
        raise RetrievalError(f"Connection problem fetching {url}: {request_error}") from request_error

    content_type = response.headers.get("Content-Type", "")
    if "html" in content_type.lower():
        raise RetrievalError(f"Expected CSV from {url}, got {content_type}")
    if response.text.lstrip().startswith("<"):
        raise RetrievalError(f"Expected CSV from {url}, got markup")

    return response.text


# ── Load ──────────────────────────────────────────────────────────────────────

def load_data(source: str = DATA_URL, timeout: float = DEFAULT_TIMEOUT) -> pd.DataFrame:
    """
    Load the raw incident table from a URL or a local CSV copy.

    Parameters
    ----------
    source  : http(s) URL or path to a CSV file
    timeout : seconds to wait for the network call

    Returns
    -------
    Raw DataFrame, all cells as str
    """
    log.info(f"Loading: {source}")

    if _is_url(source):
        buffer = io.StringIO(fetch_csv_text(source, timeout=timeout))
    else:
        path = Path(source)
        if not path.is_file():
            raise RetrievalError(f"Data file not found: {source}")
        buffer = path

    try:
        df = pd.read_csv(buffer, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as empty:
        raise RetrievalError(f"No tabular data in {source}") from empty
    except pd.errors.ParserError as bad_csv:
        raise RetrievalError(f"Could not parse CSV from {source}: {bad_csv}") from bad_csv
    except UnicodeDecodeError as bad_bytes:
        raise RetrievalError(f"{source} is not UTF-8 text: {bad_bytes}") from bad_bytes
    except OSError as os_error:
        raise RetrievalError(f"Could not read {source}: {os_error}") from os_error

    log.info(f"Loaded {len(df):,} rows × {len(df.columns)} columns")
    return df
