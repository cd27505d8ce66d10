from pathlib import Path
from typing import Any, Dict, List

import pytest

from cinedex import app as app_module
from cinedex.config import AppConfig, SearchConfig, Settings
from cinedex.search.lifecycle import IndexState


class FakeDatabase:
    def __init__(self) -> None:
        self.calls: List[str] = []

    async def get_all_movies(self) -> List[Dict[str, Any]]:
        self.calls.append("movies")
        return [{"code": "m1", "title": "Metropolis", "production_year": 1927, "movie_type": "Feature"}]

    async def get_all_persons(self) -> List[Dict[str, Any]]:
        self.calls.append("persons")
        return [{"code": "p1", "full_name": "Fritz Lang", "activity": "Director"}]


def _settings(tmp_path: Path) -> Settings:
    return Settings(app=AppConfig(log_level="DEBUG"), search=SearchConfig(storage_dir=tmp_path))


@pytest.mark.asyncio
async def test_startup_initializes_and_populates_once(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    levels: List[str] = []
    monkeypatch.setattr(app_module, "configure_logging", lambda level: levels.append(level))
    database = FakeDatabase()

    state = await app_module.startup(_settings(tmp_path), database=database, populate=True)

    assert levels == ["DEBUG"]
    assert state.search.movies.manager.state is IndexState.READY
    assert state.search.persons.manager.state is IndexState.READY
    assert database.calls == ["movies", "persons"]
    assert (await state.search.movies.info())["totalDocs"] == 1

    # Indexes that already hold documents are left alone
    assert await state.populate_empty_indexes() == 0
    assert database.calls == ["movies", "persons"]


@pytest.mark.asyncio
async def test_startup_without_populate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(app_module, "configure_logging", lambda level: None)

    state = await app_module.startup(_settings(tmp_path), database=FakeDatabase())

    assert await state.search.movies.check_is_index_empty()
    assert await state.search.persons.check_is_index_empty()
