"""Tests for snapshot loading and fetching."""

import json

import httpx
import pytest

from conftest import SNAPSHOT_BASE_URL
from herdmetrics.core.client import RetryableError, SnapshotFetchError
from herdmetrics.data import snapshot
from herdmetrics.data.snapshot import SnapshotError, load_snapshot, parse_snapshot

EXPORT_URL = f"{SNAPSHOT_BASE_URL}/export.json"


class TestParseSnapshot:
    """Tests for the parse_snapshot function."""

    def test_dict_layout(self, sample_export):
        result = parse_snapshot(sample_export)

        assert len(result.animals) == 2
        assert len(result.breeding_seasons) == 1
        assert result.exported_at == "2026-05-30T12:00:00Z"

    def test_bare_animal_list(self, sample_export):
        result = parse_snapshot(sample_export["animals"])

        assert len(result.animals) == 2
        assert result.breeding_seasons == []

    def test_non_object_records_are_skipped(self):
        result = parse_snapshot({"animals": [{"id": "a"}, "junk", 42]})
        assert [a.id for a in result.animals] == ["a"]

    def test_records_without_id_use_their_tag(self):
        result = parse_snapshot({"animals": [{"brinco": "A"}, {"brinco": "B"}, {"nome": "no tag"}]})
        assert [a.id for a in result.animals] == ["brinco:a", "brinco:b"]

    def test_repeated_id_keeps_first_record(self):
        result = parse_snapshot({"animals": [{"id": "a", "brinco": "1"}, {"id": "a", "brinco": "2"}]})
        assert [a.tag for a in result.animals] == ["1"]

    def test_rejects_payload_without_animals(self):
        with pytest.raises(SnapshotError, match="no animal list"):
            parse_snapshot({"cattle": []})


class TestLoadSnapshot:
    """Tests for the load_snapshot function."""

    def test_loads_file(self, tmp_path, sample_export):
        path = tmp_path / "herd.json"
        path.write_text(json.dumps(sample_export), encoding="utf-8")

        result = load_snapshot(path)

        assert result.source == str(path)
        assert result.animals[0].tag == "101"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_snapshot(tmp_path / "missing.json")

    def test_invalid_json_raises_snapshot_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(SnapshotError, match="Invalid JSON"):
            load_snapshot(path)


class TestFetchSnapshot:
    """Tests for fetching snapshots over HTTP."""

    async def test_returns_decoded_json(self, mock_snapshot_server, sample_export):
        mock_snapshot_server.get("/export.json").mock(return_value=httpx.Response(200, json=sample_export))

        data = await snapshot.fetch_snapshot(EXPORT_URL)

        assert data["animals"][0]["id"] == "cow-1"
        request = mock_snapshot_server.calls[0].request
        assert request.headers["accept"] == "application/json"

    async def test_requires_url(self, monkeypatch):
        monkeypatch.setattr(snapshot.settings, "snapshot_url", None)

        with pytest.raises(ValueError, match="No snapshot URL"):
            await snapshot.fetch_snapshot()

    async def test_client_error_is_not_retried(self, mock_snapshot_server):
        route = mock_snapshot_server.get("/export.json").mock(return_value=httpx.Response(404, text="gone"))

        with pytest.raises(SnapshotFetchError, match="404"):
            await snapshot.fetch_snapshot(EXPORT_URL)

        assert route.call_count == 1

    async def test_server_error_is_retried_then_raised(self, mock_snapshot_server, monkeypatch):
        monkeypatch.setattr(snapshot.http_get_with_retry.retry, "sleep", _no_sleep)
        route = mock_snapshot_server.get("/export.json").mock(return_value=httpx.Response(503))

        with pytest.raises(RetryableError):
            await snapshot.fetch_snapshot(EXPORT_URL)

        assert route.call_count == 3

    async def test_recovers_after_transient_error(self, mock_snapshot_server, monkeypatch, sample_export):
        monkeypatch.setattr(snapshot.http_get_with_retry.retry, "sleep", _no_sleep)
        mock_snapshot_server.get("/export.json").mock(
            side_effect=[httpx.Response(502), httpx.Response(200, json=sample_export)]
        )

        data = await snapshot.fetch_snapshot(EXPORT_URL)

        assert len(data["animals"]) == 2

    async def test_non_json_body_raises(self, mock_snapshot_server):
        mock_snapshot_server.get("/export.json").mock(return_value=httpx.Response(200, text="<html>"))

        with pytest.raises(SnapshotError, match="not JSON"):
            await snapshot.fetch_snapshot(EXPORT_URL)


class TestCacheSnapshot:
    """Tests for the cache_snapshot function."""

    async def test_writes_validated_payload(self, mock_snapshot_server, tmp_path, sample_export):
        mock_snapshot_server.get("/export.json").mock(return_value=httpx.Response(200, json=sample_export))
        output = tmp_path / "cache" / "herd.json"

        result = await snapshot.cache_snapshot(EXPORT_URL, output)

        assert len(result.animals) == 2
        written = json.loads(output.read_text(encoding="utf-8"))
        assert written["animals"][1]["brinco"] == "201"
        assert "fetchedAt" in written

    async def test_bad_payload_does_not_overwrite_cache(self, mock_snapshot_server, tmp_path):
        mock_snapshot_server.get("/export.json").mock(return_value=httpx.Response(200, json={"oops": True}))
        output = tmp_path / "herd.json"
        output.write_text('{"animals": []}', encoding="utf-8")

        with pytest.raises(SnapshotError):
            await snapshot.cache_snapshot(EXPORT_URL, output)

        assert output.read_text(encoding="utf-8") == '{"animals": []}'


async def _no_sleep(_seconds):
    return None
