from pathlib import Path

import pytest

from rpg_chargen.storage import Storage


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Fresh data directory per test."""
    return tmp_path / "data"


@pytest.fixture
def storage(data_dir: Path) -> Storage:
    return Storage(data_dir)
