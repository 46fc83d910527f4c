import os
import tempfile
from dataclasses import replace

import pytest

# Keep test runs out of the real log directory
os.environ.setdefault("GAMESHELF_LOG_DIR", tempfile.mkdtemp(prefix="gameshelf-logs-"))
os.environ.setdefault("DEBUG_LOGGING", "false")

from gameshelf_app.metadata.models import (  # noqa: E402
    Attribution,
    Candidate,
    DataSource,
    GameSource,
    SearchMetadata,
)


class FakeProvider:
    """Stand-in for a metadata provider that records every call."""

    def __init__(self, provider_id, results=None, error=None):
        self.id = provider_id
        self.results = results or []
        self.error = error
        self.calls = []
        self.closed = False

    async def fetch(self, title):
        self.calls.append(title)
        if self.error is not None:
            raise self.error
        return list(self.results)

    async def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wikidata_game():
    def build(title="The Legend of Zelda: Breath of the Wild", source_id="Q22101565", **fields):
        values = dict(
            id=source_id or title,
            title=title,
            source=GameSource.WIKIDATA,
            source_id=source_id,
            data_source=DataSource(primary="wikidata", wikidata_id=source_id),
        )
        values.update(fields)
        return Candidate(**values)
    return build


@pytest.fixture
def wikipedia_game():
    def build(title="Celeste", **fields):
        url = "https://en.wikipedia.org/wiki/" + title.replace(" ", "_")
        values = dict(
            id=f"search_{title}",
            title=title,
            source=GameSource.WIKIPEDIA,
            source_id=title,
            data_source=DataSource(primary="wikipedia", attribution=url),
            attribution=Attribution(text=f'Information about "{title}" from Wikipedia', url=url),
        )
        values.update(fields)
        return Candidate(**values)
    return build


@pytest.fixture
def with_confidence():
    def build(candidate, confidence, query="q"):
        return replace(
            candidate,
            search_metadata=SearchMetadata(
                source=candidate.source.value,
                query=query,
                confidence=confidence,
            ),
        )
    return build
