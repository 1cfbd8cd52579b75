"""Pytest configuration and fixtures."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from radiocatalog.core.config import (
    CatalogConfig,
    LoggingConfig,
    RadioCatalogConfig,
    StreamConfig,
)
from radiocatalog.core.database import Catalog
from radiocatalog.core.models import Segment

AD_SPOT_ID = "6c8f4f47-3a6b-4a0c-9b7e-3f1d2c5e8a90"


def build_metadata(
    title: str = "Song",
    artist: str = "Band",
    song_spot: str = "M",
    media_base_id: int = 0,
    itunes_track_id: int = 0,
    amg_track_id: int = 0,
    amg_artist_id: int = 0,
    ta_id: int = 0,
    tp_id: int = 0,
    cartcut_id: int = 0,
    artwork_url: str = "",
    length: str = "00:00:00",
    uns_id: int = 0,
    spot_instance_id: str = "",
    offset: int | None = 0,
) -> str:
    """Build a segment metadata line as the station emits it."""
    payload = (
        f'song_spot=\\"{song_spot}\\" '
        f'MediaBaseId=\\"{media_base_id}\\" '
        f'itunesTrackId=\\"{itunes_track_id}\\" '
        f'amgTrackId=\\"{amg_track_id}\\" '
        f'amgArtistId=\\"{amg_artist_id}\\" '
        f'TAID=\\"{ta_id}\\" '
        f'TPID=\\"{tp_id}\\" '
        f'cartcutId=\\"{cartcut_id}\\" '
        f'amgArtworkURL=\\"{artwork_url}\\" '
        f'length=\\"{length}\\" '
        f'unsID=\\"{uns_id}\\" '
        f'spotInstanceId=\\"{spot_instance_id}\\"'
    )
    prefix = f"offset={offset}," if offset is not None else ""
    return f'{prefix}title="{title}",artist="{artist}",url="{payload}"'


@pytest.fixture
def metadata_line() -> Callable[..., str]:
    """Provide the metadata line builder."""
    return build_metadata


@pytest.fixture
def music_metadata() -> str:
    """Metadata of a catalogued song."""
    return build_metadata(title="Song", artist="Band", media_base_id=1, length="00:03:00")


@pytest.fixture
def talk_metadata() -> str:
    """Metadata of a talk section."""
    return build_metadata(title="Morning Show", artist="Host", song_spot="T")


@pytest.fixture
def ad_metadata() -> str:
    """Metadata of an advertisement spot."""
    return build_metadata(
        title="Spot",
        artist="Sponsor",
        song_spot="F",
        amg_track_id=-1,
        length="00:00:30",
        spot_instance_id=AD_SPOT_ID,
    )


@pytest.fixture
def make_segment() -> Callable[..., Segment]:
    """Provide a segment factory."""

    def _make(
        number: int = 1,
        uri: str | None = None,
        raw_metadata: str | None = None,
        duration_seconds: float = 10.0,
    ) -> Segment:
        return Segment(
            number=number,
            uri=uri or f"https://radio.example.com/live/seg{number}.aac",
            raw_metadata=raw_metadata,
            duration_seconds=duration_seconds,
        )

    return _make


@pytest.fixture
def test_config(tmp_path: Path) -> RadioCatalogConfig:
    """Provide test configuration."""
    return RadioCatalogConfig(
        stream=StreamConfig(idle_pause_seconds=1.0),
        catalog=CatalogConfig(path=tmp_path / "catalog.db"),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
    )


@pytest.fixture
def catalog(tmp_path: Path) -> Iterator[Catalog]:
    """Provide a connected catalog in a temporary directory."""
    db = Catalog(tmp_path / "catalog.db")
    db.connect()
    yield db
    db.close()
