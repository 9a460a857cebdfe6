import pytest

from fakes import FakeFetcher


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def fetcher(staging_dir):
    return FakeFetcher(staging_dir)
