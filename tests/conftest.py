from pathlib import Path

import pytest

import unscrambler_solver as solver
import unscrambler_utils as utils

SAMPLE_DICTIONARY = Path(__file__).resolve().parent.parent / "sample_data" / "german.dic"


@pytest.fixture(autouse=True)
def isolated_app_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    app_dir = tmp_path / "app"
    monkeypatch.setattr(utils, "APP_DIR", app_dir)
    monkeypatch.setattr(utils, "CONFIG_PATH", app_dir / "config.json")
    monkeypatch.setattr(utils, "CACHE_DIR", app_dir / "cache")
    monkeypatch.setattr(utils, "LOG_PATH", app_dir / "app.log")
    monkeypatch.setattr(solver, "CACHE_DIR", app_dir / "cache")
    return app_dir


@pytest.fixture
def sample_dictionary_path() -> Path:
    return SAMPLE_DICTIONARY
