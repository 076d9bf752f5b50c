import pytest


class MemoryWriter(object):
    """Stands in for decompose.FileWriter, keeping files in a dict keyed on relative path
    """

    def __init__(self):
        self.files = {}

    def write(self, relpath, text):
        self.files[relpath] = text

    def append(self, relpath, text):
        self.files[relpath] = self.files.get(relpath, "") + text


@pytest.fixture
def writer():
    return MemoryWriter()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run in an empty folder with none of the tool's variables set
    """
    from dacpactool import config
    for name in config.ENVIRONMENT_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


