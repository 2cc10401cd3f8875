"""
Tests for loading the raw shooting CSV from NYC Open Data or a local copy.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from data_collection import DEFAULT_TIMEOUT, load_data
from pipeline_errors import RetrievalError

URL = "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD"


def _response(text="OCCUR_DATE,BORO\n01/05/2020,\n", content_type="text/csv; charset=utf-8"):
    response = MagicMock()
    response.text = text
    response.headers = {"Content-Type": content_type}
    response.raise_for_status.return_value = None
    return response


@patch("data_collection.requests.get")
def test_load_data_from_url_keeps_cells_as_text(mock_get):
    """Empty cells must arrive as "" so the sentinel scrub can see them."""
    mock_get.return_value = _response()

    df = load_data(URL)

    mock_get.assert_called_once_with(URL, timeout=DEFAULT_TIMEOUT)
    assert list(df.columns) == ["OCCUR_DATE", "BORO"]
    assert df.loc[0, "OCCUR_DATE"] == "01/05/2020"
    assert df.loc[0, "BORO"] == ""


@patch("data_collection.requests.get")
def test_load_data_passes_timeout(mock_get):
    mock_get.return_value = _response()
    load_data(URL, timeout=5)
    mock_get.assert_called_once_with(URL, timeout=5)


@patch("data_collection.requests.get")
def test_http_error_is_retrieval_error(mock_get):
    response = _response()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(
        response=MagicMock(status_code=404)
    )
    mock_get.return_value = response

    with pytest.raises(RetrievalError, match="404"):
        load_data(URL)


@patch("data_collection.requests.get")
def test_server_error_is_retrieval_error(mock_get):
    response = _response()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(
        response=MagicMock(status_code=503)
    )
    mock_get.return_value = response

    with pytest.raises(RetrievalError, match="503"):
        load_data(URL)


@pytest.mark.parametrize("failure", [
    requests.exceptions.Timeout("read timed out"),
    requests.exceptions.ConnectionError("connection refused"),
])
@patch("data_collection.requests.get")
def test_transport_failure_is_retrieval_error(mock_get, failure):
    mock_get.side_effect = failure

    with pytest.raises(RetrievalError) as excinfo:
        load_data(URL)
    assert excinfo.value.__cause__ is failure


@patch("data_collection.requests.get")
def test_html_body_is_retrieval_error(mock_get):
    """A portal error page is not a table."""
    mock_get.return_value = _response("<html><body>Maintenance</body></html>", "text/html")

    with pytest.raises(RetrievalError, match="Expected CSV"):
        load_data(URL)


@patch("data_collection.requests.get")
def test_empty_body_is_retrieval_error(mock_get):
    mock_get.return_value = _response(text="")

    with pytest.raises(RetrievalError, match="No tabular data"):
        load_data(URL)


def test_load_data_from_local_file(tmp_path):
    path = tmp_path / "shootings.csv"
    path.write_text("OCCUR_DATE,PERP_SEX\n01/05/2020,U\n")

    df = load_data(str(path))

    assert len(df) == 1
    assert df.loc[0, "PERP_SEX"] == "U"


def test_missing_local_file_is_retrieval_error(tmp_path):
    with pytest.raises(RetrievalError, match="not found"):
        load_data(str(tmp_path / "absent.csv"))


@patch("data_collection.requests.get")
def test_markup_body_with_plain_content_type_is_retrieval_error(mock_get):
    """Some portals serve their error page as text/plain."""
    mock_get.return_value = _response("\n  <!DOCTYPE html><html>Rate limited</html>", "text/plain")

    with pytest.raises(RetrievalError, match="markup"):
        load_data(URL)


def test_non_utf8_local_file_is_retrieval_error(tmp_path):
    path = tmp_path / "shootings.csv"
    path.write_bytes(b"\xff\xfeO\x00C\x00C\x00U\x00R\x00\n\x00\xff\xff,\x00")

    with pytest.raises(RetrievalError) as excinfo:
        load_data(str(path))
    assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)


def test_directory_path_is_retrieval_error(tmp_path):
    with pytest.raises(RetrievalError):
        load_data(str(tmp_path))
