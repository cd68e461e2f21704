"""Tests for wave tables, the instrument cache and the HTTP transport."""
import asyncio
import logging

import numpy as np
import pytest
import requests

from perpetuum import instruments
from perpetuum.errors import InstrumentError, InstrumentLoadError
from perpetuum.instruments import (
    DedupingInstrumentStore,
    HttpTransport,
    InstrumentCache,
    InstrumentStore,
    WaveTable,
    get_instrument,
)

from conftest import FakeTransport


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, headers=None, timeout=None):
        self.requests.append((url, headers, timeout))
        if self.error is not None:
            raise self.error
        return self.response


class TestWaveTable:
    def test_from_json(self, sine_doc):
        table = WaveTable.from_json(sine_doc, name="sine")
        assert table.name == "sine"
        assert table.real.dtype == np.float32
        assert table.imag.tolist() == [0.0, 1.0]

    @pytest.mark.parametrize(
        "doc",
        [
            {"real": [0, 1]},
            {"real": [0, 1], "imag": [0]},
            {"real": [0], "imag": [0]},
            {"real": [[0, 1]], "imag": [[0, 1]]},
            {"real": ["a", "b"], "imag": [0, 1]},
            {"real": [0, float("nan")], "imag": [0, 1]},
            ["not", "a", "mapping"],
        ],
    )
    def test_malformed(self, doc):
        with pytest.raises(InstrumentError):
            WaveTable.from_json(doc, name="bad")


class TestInstrumentCache:
    def test_get_put_contains(self, sine_doc):
        cache = InstrumentCache()
        table = WaveTable.from_json(sine_doc)
        assert cache.get("piano") is None
        assert "piano" not in cache
        cache.put("piano", table)
        assert "piano" in cache
        assert cache.get("piano") is table
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0

    def test_overwrite_warns(self, sine_doc, caplog):
        cache = InstrumentCache()
        cache.put("piano", WaveTable.from_json(sine_doc))
        with caplog.at_level(logging.WARNING, logger="perpetuum.instruments"):
            cache.put("piano", WaveTable.from_json(sine_doc))
        assert "Replacing cached instrument piano" in caplog.text


class TestInstrumentStore:
    def test_fetches_once(self, store, transport):
        first = asyncio.run(store.resolve("piano"))
        second = asyncio.run(store.resolve("piano"))
        assert first is second
        assert transport.calls == ["piano"]
        assert "piano" in store.cache

    def test_separate_identifiers(self, store, transport):
        asyncio.run(store.resolve("piano"))
        asyncio.run(store.resolve("organ"))
        assert transport.calls == ["piano", "organ"]

    def test_failure_propagates_and_is_not_cached(self):
        failing = FakeTransport(error=InstrumentLoadError("piano", "nope", 404))
        store = InstrumentStore(failing, InstrumentCache())
        with pytest.raises(InstrumentLoadError) as info:
            asyncio.run(store.resolve("piano"))
        assert info.value.body == "nope"
        assert "piano" not in store.cache

    def test_concurrent_misses_each_fetch(self, store, transport):
        async def both():
            return await asyncio.gather(store.resolve("piano"), store.resolve("piano"))

        asyncio.run(both())
        assert transport.calls == ["piano", "piano"]

    def test_deduping_store_shares_fetch(self, store, transport):
        deduped = DedupingInstrumentStore(store)

        async def both():
            return await asyncio.gather(deduped.resolve("piano"), deduped.resolve("piano"))

        a, b = asyncio.run(both())
        assert a is b
        assert transport.calls == ["piano"]
        assert deduped.cache is store.cache

    def test_get_instrument_uses_given_store(self, store, transport):
        table = asyncio.run(get_instrument("organ", store))
        assert table.name == "organ"
        assert transport.calls == ["organ"]

    def test_default_store_reads_settings(self, monkeypatch):
        monkeypatch.setattr(instruments, "_default_store", None)
        monkeypatch.setenv("PERPETUUM_INSTRUMENT_URL", "http://music.example/")
        monkeypatch.setenv("PERPETUUM_HTTP_TIMEOUT", "3")
        store = instruments.default_store()
        assert store.transport.url_for("piano") == "http://music.example/instruments/piano"
        assert store.transport.timeout == 3.0
        assert store.cache is instruments.INSTRUMENT_CACHE
        assert instruments.default_store() is store


class TestHttpTransport:
    def test_success(self, sine_doc):
        session = FakeSession(FakeResponse(200, sine_doc))
        transport = HttpTransport("http://host:8000/", session=session, timeout=2.5)
        assert transport("piano") == sine_doc
        url, headers, timeout = session.requests[0]
        assert url == "http://host:8000/instruments/piano"
        assert headers == {"Accept": "application/json"}
        assert timeout == 2.5

    def test_identifier_is_quoted(self):
        transport = HttpTransport("http://host", session=FakeSession())
        assert transport.url_for("grand piano/2") == "http://host/instruments/grand%20piano%2F2"

    def test_error_status_carries_body(self):
        session = FakeSession(FakeResponse(404, text='{"error": "no such instrument"}'))
        with pytest.raises(InstrumentLoadError) as info:
            HttpTransport("http://host", session=session)("kazoo")
        assert info.value.status == 404
        assert info.value.body == '{"error": "no such instrument"}'
        assert info.value.identifier == "kazoo"

    def test_non_200_success_is_still_an_error(self):
        session = FakeSession(FakeResponse(204, text=""))
        with pytest.raises(InstrumentLoadError):
            HttpTransport("http://host", session=session)("piano")

    def test_network_failure(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        with pytest.raises(InstrumentLoadError) as info:
            HttpTransport("http://host", session=session)("piano")
        assert info.value.status is None
        assert "refused" in info.value.body

    def test_bad_json(self):
        session = FakeSession(FakeResponse(200, None, text="<html>"))
        with pytest.raises(InstrumentError):
            HttpTransport("http://host", session=session)("piano")
