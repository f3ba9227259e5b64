"""
Unit tests for the TMDB catalog client: response parsing, endpoint mapping, and error translation.
"""

from unittest.mock import MagicMock

import pytest
import requests

from fakes import ROOT  # noqa: F401  (puts the project root on sys.path)

from src.catalog_client import CatalogError, TMDBClient, parse_movie_page
from src.models import MovieSummary


def fake_response(payload=None, status=200, bad_json=False):
	resp = MagicMock()
	resp.status_code = status
	if status >= 400:
		err = requests.HTTPError(f"{status} Error")
		err.response = resp
		resp.raise_for_status.side_effect = err
	if bad_json:
		resp.json.side_effect = ValueError("Expecting value")
	else:
		resp.json.return_value = payload
	return resp


def client_with(resp, api_key="0123456789abcdef0123456789abcdef"):
	session = MagicMock()
	session.headers = {}
	session.get.return_value = resp
	return TMDBClient(api_key, session=session), session


def test_parse_movie_page():
	page = parse_movie_page(
		{
			"page": 2,
			"total_pages": 7,
			"results": [
				{"id": 603, "title": "The Matrix", "poster_path": "/m.jpg"},
				{"id": 604, "title": "The Matrix Reloaded", "poster_path": None},
			],
		},
		requested_page=2,
	)
	assert page.current_page == 2
	assert page.total_pages == 7
	assert page.results[0] == MovieSummary(id="603", title="The Matrix", poster_path="/m.jpg")
	assert page.results[0].poster_url() == "https://image.tmdb.org/t/p/w185/m.jpg"
	assert page.results[1].poster_url() is None


def test_empty_results_still_one_page():
	page = parse_movie_page({"page": 1, "total_pages": 0, "results": []}, requested_page=1)
	assert page.results == ()
	assert page.total_pages == 1


def test_malformed_payloads_raise():
	for payload in [None, [], {"total_pages": 3}, {"results": "nope"}, {"results": [{"title": "no id"}]}]:
		with pytest.raises(CatalogError):
			parse_movie_page(payload, requested_page=1)


def test_endpoints_and_params():
	client, session = client_with(fake_response({"page": 1, "total_pages": 1, "results": []}))

	client.search("alien", 3)
	url, kwargs = session.get.call_args[0][0], session.get.call_args[1]
	assert url == "https://api.themoviedb.org/3/search/movie"
	assert kwargs["params"]["query"] == "alien"
	assert kwargs["params"]["page"] == 3
	assert kwargs["params"]["api_key"] == "0123456789abcdef0123456789abcdef"

	client.list_popular(1)
	assert session.get.call_args[0][0].endswith("/movie/popular")
	client.list_top_rated(2)
	assert session.get.call_args[0][0].endswith("/movie/top_rated")
	assert session.get.call_args[1]["params"]["page"] == 2


def test_bearer_token_goes_in_header():
	client, session = client_with(fake_response({"results": []}), api_key="aaa.bbb.ccc")
	client.list_popular(1)
	assert session.headers["Authorization"] == "Bearer aaa.bbb.ccc"
	assert "api_key" not in session.get.call_args[1]["params"]


def test_http_error_becomes_catalog_error():
	client, _ = client_with(fake_response(status=401))
	with pytest.raises(CatalogError) as exc:
		client.list_popular(1)
	assert exc.value.status_code == 401


def test_network_error_becomes_catalog_error():
	client, session = client_with(fake_response({"results": []}))
	session.get.side_effect = requests.ConnectionError("unreachable")
	with pytest.raises(CatalogError):
		client.search("x", 1)


def test_invalid_json_becomes_catalog_error():
	client, _ = client_with(fake_response(bad_json=True))
	with pytest.raises(CatalogError):
		client.list_top_rated(1)


def test_api_key_required():
	with pytest.raises(ValueError):
		TMDBClient("")


def test_requests_json_error_is_reported_as_bad_json():
	resp = fake_response()
	resp.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
	client, _ = client_with(resp)
	with pytest.raises(CatalogError) as exc:
		client.list_popular(1)
	assert "not valid JSON" in str(exc.value)
