import os
import tempfile

# Keep test runs out of the real logs directory
os.environ.setdefault("DASHBOARD_LOGS_DIR", tempfile.mkdtemp(prefix="dashboard_logs_"))

import httpx  # noqa: E402
import pytest  # noqa: E402

from trading_dashboard.config import settings  # noqa: E402
from trading_dashboard.services.api_client import DashboardAPIClient  # noqa: E402

BASE_URL = "http://bot.test"


@pytest.fixture(autouse=True, scope="session")
def use_test_client_config(tmp_path_factory):
    # Route persisted client settings to a temp file so tests never
    # overwrite the developer's user_config/client_config.json
    temp_dir = tmp_path_factory.mktemp("user_config")
    settings.CLIENT_CONFIG_PATH = temp_dir / "client_config.json"
    yield


class FakeBackend:
    """Routes requests to canned responses and records every call.

    A route value may be a JSON-able body (served with 200), an
    ``httpx.Response``, or an exception instance to raise.
    """

    def __init__(self, routes: dict[tuple[str, str], object]) -> None:
        self.routes = dict(routes)
        self.calls: list[tuple[str, str]] = []
        self.bodies: list[bytes] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        self.calls.append(key)
        self.bodies.append(request.content)
        if key not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        result = self.routes[key]
        if isinstance(result, Exception):
            raise result
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    def paths(self) -> list[str]:
        return [path for _, path in self.calls]


@pytest.fixture
def make_client():
    """Build a DashboardAPIClient backed by a FakeBackend."""

    def _make(routes: dict[tuple[str, str], object]) -> tuple[DashboardAPIClient, FakeBackend]:
        backend = FakeBackend(routes)
        http = httpx.AsyncClient(transport=httpx.MockTransport(backend))
        return DashboardAPIClient(BASE_URL, client=http), backend

    return _make
