import pytest


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    """Keep uploaded test files out of the project media directory."""
    settings.MEDIA_ROOT = str(tmp_path / 'media')


@pytest.fixture(autouse=True)
def no_ratelimit(settings):
    settings.RATELIMIT_ENABLE = False
