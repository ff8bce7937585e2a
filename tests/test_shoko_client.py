"""Tests for the Shoko Server client."""

from unittest.mock import AsyncMock

import pytest

from malratings.core.exceptions import ApiError
from malratings.core.models import ShokoSeries
from malratings.providers.shoko import ShokoApiClient

SERIES = {
    "IDs": {"ID": 10, "ParentGroup": 3, "TopLevelGroup": 3, "AniDB": 9541},
    "Name": "Attack on Titan",
    "AniDB": {"ID": 9541, "Type": "TV", "Title": "Shingeki no Kyojin"},
    "Images": {"Posters": []},
}


@pytest.fixture()
def client() -> ShokoApiClient:
    return ShokoApiClient("http://shoko.local:8111/", api_key="key-123")


def test_extract_anidb_id_prefers_ids_block() -> None:
    series = ShokoSeries.model_validate(SERIES)
    assert ShokoApiClient.extract_anidb_id(series) == 9541


def test_extract_anidb_id_falls_back_to_anidb_info() -> None:
    series = ShokoSeries.model_validate(
        {"IDs": {"ID": 10, "AniDB": 0}, "AniDB": {"ID": 1234}}
    )
    assert ShokoApiClient.extract_anidb_id(series) == 1234


def test_extract_anidb_id_missing() -> None:
    series = ShokoSeries.model_validate({"Name": "Local Only"})
    assert ShokoApiClient.extract_anidb_id(series) is None


def test_api_key_header_and_url(client: ShokoApiClient) -> None:
    assert client._default_headers()["apikey"] == "key-123"
    assert client._url("/api/v3/Init/Status") == "http://shoko.local:8111/api/v3/Init/Status"

    anonymous = ShokoApiClient("http://shoko.local:8111")
    assert "apikey" not in anonymous._default_headers()


@pytest.mark.asyncio()
async def test_find_series_by_name(client: ShokoApiClient) -> None:
    client._get_json = AsyncMock(return_value=[SERIES])

    series = await client.find_series_by_name("Attack on Titan")

    assert [s.display_name for s in series] == ["Attack on Titan"]
    params = client._get_json.call_args.kwargs["params"]
    assert params == {"query": "Attack on Titan", "fuzzy": "true", "limit": 10}


@pytest.mark.asyncio()
async def test_find_series_by_name_accepts_envelope(client: ShokoApiClient) -> None:
    client._get_json = AsyncMock(return_value={"Total": 1, "Series": [SERIES]})

    series = await client.find_series_by_name("Attack on Titan")

    assert len(series) == 1
    assert series[0].ids is not None and series[0].ids.anidb == 9541


@pytest.mark.asyncio()
async def test_find_series_by_name_failure_is_empty(client: ShokoApiClient) -> None:
    client._get_json = AsyncMock(side_effect=ApiError("Shoko returned HTTP 500", status=500))

    assert await client.find_series_by_name("Attack on Titan") == []
    assert await client.find_series_by_name("") == []


@pytest.mark.asyncio()
async def test_find_series_by_path(client: ShokoApiClient) -> None:
    path = "/anime/Attack on Titan/S01E01.mkv"
    client._get_json = AsyncMock(
        side_effect=[
            [{"IDs": {"ID": 77}, "Path": path, "SeriesIDs": [10]}],
            SERIES,
        ]
    )

    series = await client.find_series_by_path(path)

    assert [s.ids.id for s in series if s.ids] == [10]
    file_url, series_url = (c.args[0] for c in client._get_json.call_args_list)
    assert file_url == (
        "http://shoko.local:8111/api/v3/File/PathEndsWith/"
        "%2Fanime%2FAttack%20on%20Titan%2FS01E01.mkv"
    )
    assert series_url == "http://shoko.local:8111/api/v3/Series/10"


@pytest.mark.asyncio()
async def test_find_series_by_path_unknown_file(client: ShokoApiClient) -> None:
    client._get_json = AsyncMock(return_value=[])
    assert await client.find_series_by_path("/anime/unknown.mkv") == []

    client._get_json = AsyncMock(side_effect=ApiError("Shoko returned HTTP 404", status=404))
    assert await client.find_series_by_path("/anime/unknown.mkv") == []


@pytest.mark.asyncio()
async def test_test_connection(client: ShokoApiClient) -> None:
    client._get_json = AsyncMock(return_value={"State": 2})
    assert await client.test_connection() is True

    client._get_json = AsyncMock(side_effect=ApiError("refused"))
    assert await client.test_connection() is False
