"""
test_loader.py — Tests for the four-source startup loader.

Sources are written to a temporary directory; one test serves them over a
MockTransport to cover the URL path.
"""

import json

import httpx
import pytest

from bpou_finder.loader import load_all_data
from bpou_finder.models import Coordinate, Layer
from bpou_finder.services import LookupCoordinator


@pytest.fixture
def data_dir(tmp_path, bpou_collection, cd_collection, bpou_contacts, cd_contacts):
    (tmp_path / "BPOUMap.geojson").write_text(json.dumps(bpou_collection), encoding="utf-8")
    (tmp_path / "CDMap.geojson").write_text(json.dumps(cd_collection), encoding="utf-8")
    (tmp_path / "bpouContacts.json").write_text(json.dumps(bpou_contacts), encoding="utf-8")
    (tmp_path / "cdContacts.json").write_text(json.dumps(cd_contacts), encoding="utf-8")
    return tmp_path


def _settings_for(settings, base):
    return settings.model_copy(update={"data_base": str(base)})


class TestLoadAllData:
    @pytest.mark.asyncio
    async def test_everything_loads(self, settings, data_dir):
        store = await load_all_data(_settings_for(settings, data_dir))
        assert store.features.count(Layer.BPOU) == 2
        assert store.features.count(Layer.CD) == 2
        assert len(store.contacts.bpou) == 2
        assert len(store.contacts.cd) == 2
        assert store.load_errors == []
        assert store.load_notice is None

    @pytest.mark.asyncio
    async def test_missing_bpou_map_is_isolated(self, settings, data_dir):
        (data_dir / "BPOUMap.geojson").unlink()
        store = await load_all_data(_settings_for(settings, data_dir))

        assert store.features.count(Layer.BPOU) == 0
        assert store.features.count(Layer.CD) == 2
        assert len(store.contacts.bpou) == 2
        assert store.load_notice == (
            "ERROR: Failed to load BPOU map data. The widget may not work correctly."
        )

        # CD lookups still work
        match = LookupCoordinator(store.features).locate(Coordinate(lat=44.95, lon=-93.15))
        assert match.bpou_name is None
        assert match.cd_id == "4"

    @pytest.mark.asyncio
    async def test_malformed_cd_map_is_isolated(self, settings, data_dir):
        (data_dir / "CDMap.geojson").write_text("{not json", encoding="utf-8")
        store = await load_all_data(_settings_for(settings, data_dir))
        assert store.features.count(Layer.BPOU) == 2
        assert store.features.count(Layer.CD) == 0
        assert len(store.load_errors) == 1
        assert "Congressional District map data" in store.load_notice

    @pytest.mark.asyncio
    async def test_failed_contacts_give_empty_tables(self, settings, data_dir):
        (data_dir / "cdContacts.json").unlink()
        store = await load_all_data(_settings_for(settings, data_dir))
        assert store.contacts.cd == {}
        assert len(store.contacts.bpou) == 2
        assert store.contacts.lookup_cd("4").is_empty()

    @pytest.mark.asyncio
    async def test_all_sources_fail(self, settings, tmp_path):
        store = await load_all_data(_settings_for(settings, tmp_path / "missing"))
        assert len(store.load_errors) == 4
        notice = store.load_notice
        assert notice.startswith("ERROR: ")
        assert "BPOU map data" in notice
        assert "Congressional District map data" in notice
        assert "BPOU contact information" in notice
        assert "Congressional District contact information" in notice

    @pytest.mark.asyncio
    async def test_url_sources(self, settings, bpou_collection, cd_collection, cd_contacts):
        payloads = {
            "/data/BPOUMap.geojson": bpou_collection,
            "/data/CDMap.geojson": cd_collection,
            "/data/cdContacts.json": cd_contacts,
        }

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path in payloads:
                return httpx.Response(200, json=payloads[request.url.path])
            return httpx.Response(404)

        cfg = settings.model_copy(update={"data_base": "https://widget.example.org/data/"})
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            store = await load_all_data(cfg, client=client)

        assert store.features.count(Layer.BPOU) == 2
        assert store.contacts.bpou == {}
        assert len(store.contacts.cd) == 2
        assert [e.source for e in store.load_errors] == [
            "https://widget.example.org/data/bpouContacts.json"
        ]
