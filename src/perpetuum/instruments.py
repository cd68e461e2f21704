"""
Instrument wave tables, fetched once and kept for the life of the process.

An instrument document is JSON ``{"real": [...], "imag": [...]}``: the cosine
and sine Fourier coefficients of one cycle of the instrument's waveform,
served from ``/instruments/<name>``.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional
from urllib.parse import quote

import numpy as np
import requests

from perpetuum.errors import InstrumentError, InstrumentLoadError

_LOG = logging.getLogger("perpetuum.instruments")

Transport = Callable[[str], Mapping[str, Any]]


@dataclass(frozen=True, eq=False)
class WaveTable:
    real: np.ndarray
    imag: np.ndarray
    name: str = ""

    def __post_init__(self) -> None:
        try:
            real = np.asarray(self.real, dtype=np.float32)
            imag = np.asarray(self.imag, dtype=np.float32)
        except (TypeError, ValueError) as exc:
            raise InstrumentError(f"Wave table {self.name!r} has non-numeric coefficients") from exc
        if real.ndim != 1 or imag.ndim != 1:
            raise InstrumentError(f"Wave table {self.name!r} coefficients must be flat lists")
        if real.shape != imag.shape:
            raise InstrumentError(
                f"Wave table {self.name!r} has {real.shape[0]} real but {imag.shape[0]} imag coefficients"
            )
        if real.shape[0] < 2:
            raise InstrumentError(f"Wave table {self.name!r} needs at least 2 coefficients")
        if not (np.all(np.isfinite(real)) and np.all(np.isfinite(imag))):
            raise InstrumentError(f"Wave table {self.name!r} has non-finite coefficients")
        object.__setattr__(self, "real", real)
        object.__setattr__(self, "imag", imag)

    @classmethod
    def from_json(cls, doc: Mapping[str, Any], name: str = "") -> "WaveTable":
        if not isinstance(doc, Mapping) or "real" not in doc or "imag" not in doc:
            raise InstrumentError(f"Instrument {name!r} document needs 'real' and 'imag' arrays")
        return cls(real=doc["real"], imag=doc["imag"], name=name)


class InstrumentCache:
    """
    Identifier -> WaveTable.

    Written at most once per identifier in the normal course of things.
    Two resolutions racing for the same missing identifier both write;
    the last one wins, which is harmless since both carry the same table.
    """

    def __init__(self) -> None:
        self._tables: dict[str, WaveTable] = {}

    def get(self, identifier: str) -> Optional[WaveTable]:
        return self._tables.get(identifier)

    def put(self, identifier: str, table: WaveTable) -> None:
        if identifier in self._tables:
            _LOG.warning("Replacing cached instrument %s", identifier)
        self._tables[identifier] = table

    def clear(self) -> None:
        self._tables.clear()

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._tables

    def __len__(self) -> int:
        return len(self._tables)


# No need to reload instruments after the first time.
INSTRUMENT_CACHE = InstrumentCache()


class HttpTransport:
    """Blocking GET of ``{base_url}/instruments/{identifier}``."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, identifier: str) -> str:
        return f"{self.base_url}/instruments/{quote(identifier, safe='')}"

    def __call__(self, identifier: str) -> Mapping[str, Any]:
        url = self.url_for(identifier)
        _LOG.info("Fetching instrument %s from %s", identifier, url)
        try:
            response = self.session.get(
                url, headers={"Accept": "application/json"}, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise InstrumentLoadError(identifier, str(exc)) from exc
        if response.status_code != 200:
            raise InstrumentLoadError(identifier, response.text, response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise InstrumentError(f"Instrument {identifier!r} is not valid JSON") from exc


class InstrumentStore:
    """
    Resolves instrument names to wave tables, cache first.

    Misses run the blocking transport in a worker thread. Concurrent misses
    for one identifier each fetch; wrap the store in
    ``DedupingInstrumentStore`` to share a single request.
    """

    def __init__(self, transport: Transport, cache: Optional[InstrumentCache] = None) -> None:
        self.transport = transport
        self.cache = cache if cache is not None else InstrumentCache()

    async def resolve(self, identifier: str) -> WaveTable:
        cached = self.cache.get(identifier)
        if cached is not None:
            return cached
        doc = await asyncio.to_thread(self.transport, identifier)
        table = WaveTable.from_json(doc, name=identifier)
        self.cache.put(identifier, table)
        _LOG.info("Loaded instrument %s (%d partials)", identifier, table.real.shape[0])
        return table


class DedupingInstrumentStore:
    """Shares one in-flight resolution between concurrent callers."""

    def __init__(self, store: InstrumentStore) -> None:
        self.store = store
        self._pending: dict[str, "asyncio.Future[WaveTable]"] = {}

    @property
    def cache(self) -> InstrumentCache:
        return self.store.cache

    async def resolve(self, identifier: str) -> WaveTable:
        pending = self._pending.get(identifier)
        if pending is None:
            pending = asyncio.ensure_future(self.store.resolve(identifier))
            self._pending[identifier] = pending
            pending.add_done_callback(lambda _done: self._pending.pop(identifier, None))
        return await asyncio.shield(pending)


_default_store: Optional[InstrumentStore] = None


def default_store() -> InstrumentStore:
    """The process-wide store, built from settings on first use."""
    global _default_store
    if _default_store is None:
        from perpetuum.config import load_settings

        settings = load_settings()
        transport = HttpTransport(settings.instrument_url, timeout=settings.http_timeout)
        _default_store = InstrumentStore(transport, INSTRUMENT_CACHE)
    return _default_store


async def get_instrument(identifier: str, store: Optional[InstrumentStore] = None) -> WaveTable:
    """
    Load a named instrument's wave table.

    Raises InstrumentLoadError when the transport answers with anything but 200.
    """
    return await (store or default_store()).resolve(identifier)
