import pytest

from range_dashboard.backend import config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_PATH", str(tmp_path / "range.db"))
    monkeypatch.setattr(config, "FRAMES_DIR", str(tmp_path / "frames"))
    monkeypatch.setattr(config, "ROBOFLOW_API_KEY", "")
    monkeypatch.setattr(config, "ROBOFLOW_MODEL_ID", "")
    monkeypatch.setattr(config, "COACH_API_KEY", "")
    monkeypatch.setattr(config, "POLL_INTERVAL_S", 0.01)
    yield


class FakeResponse:
    def __init__(self, status=200, json_data=None, body=b"", headers=None):
        self.status = status
        self._json = json_data
        self._body = body
        self.headers = headers or {}

    async def json(self, content_type=None):
        if self._json is None:
            raise ValueError("no json body")
        return self._json

    async def text(self):
        return self._body.decode("utf-8", errors="ignore")

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeHTTP:
    """Stands in for aiohttp.ClientSession; responses are served in order."""

    def __init__(self):
        self.responses = []
        self.calls = []
        self.error = None

    def queue(self, response):
        self.responses.append(response)

    def __call__(self, *args, **kwargs):
        if self.error is not None:
            raise self.error
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def _request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.responses.pop(0)

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)


@pytest.fixture
def fake_http(monkeypatch):
    import aiohttp

    fake = FakeHTTP()
    monkeypatch.setattr(aiohttp, "ClientSession", fake)
    return fake


@pytest.fixture
def response():
    return FakeResponse
