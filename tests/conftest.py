import pytest

from perpetuum.instruments import InstrumentCache, InstrumentStore


class FakeTransport:
    """Stands in for the HTTP transport and counts requests."""

    def __init__(self, docs=None, error=None):
        self.docs = docs or {}
        self.error = error
        self.calls = []

    def __call__(self, identifier):
        self.calls.append(identifier)
        if self.error is not None:
            raise self.error
        return self.docs[identifier]


@pytest.fixture
def sine_doc():
    return {"real": [0.0, 0.0], "imag": [0.0, 1.0]}


@pytest.fixture
def transport(sine_doc):
    return FakeTransport({"piano": sine_doc, "organ": {"real": [0, 1, 0.5], "imag": [0, 0, 0]}})


@pytest.fixture
def store(transport):
    return InstrumentStore(transport, InstrumentCache())


@pytest.fixture
def example_score():
    from perpetuum.score import Score

    return Score(
        bars_per_part=1,
        tempo=60,
        melody=["c4", "e4", "g4"],
        variation=["d4", "f4"],
        instrument="piano",
    )
