from pathlib import Path

import pytest
from loguru import logger
from pydantic import ValidationError

from cinedex.config import SearchConfig, Settings, load_settings
from cinedex.log import configure_logging


def test_defaults() -> None:
    search = SearchConfig()
    assert search.batch_size == 50
    assert search.index_path("movie") == Path("storage") / "search-movies"
    assert search.backup_path("person") == Path("storage") / "person-backup.gz"


def test_backup_dir_overrides_storage_dir(tmp_path: Path) -> None:
    search = SearchConfig(storage_dir=tmp_path / "idx", backup_dir=tmp_path / "bak")
    assert search.backup_path("movie") == tmp_path / "bak" / "movie-backup.gz"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CINEDEX_SEARCH__BATCH_SIZE", "25")
    monkeypatch.setenv("CINEDEX_SEARCH__STORAGE_DIR", str(tmp_path))
    monkeypatch.setenv("CINEDEX_APP__LOG_LEVEL", "DEBUG")

    settings = load_settings()

    assert isinstance(settings, Settings)
    assert settings.search.batch_size == 25
    assert settings.search.storage_dir == tmp_path
    assert settings.app.log_level == "DEBUG"


def test_invalid_batch_size_is_rejected() -> None:
    with pytest.raises(ValidationError):
        SearchConfig(batch_size=0)


def test_configure_logging_level(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("warning")
    logger.info("[Test] hidden")
    logger.warning("[Test] shown")

    err = capsys.readouterr().err
    assert "[Test] shown" in err
    assert "hidden" not in err
