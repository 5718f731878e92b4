from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from issue_tracker.core.config import Settings
from issue_tracker.main import create_app


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'issues.db'}", FRONTEND_ORIGINS="")


@pytest.fixture
def client(settings) -> Iterator[TestClient]:
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_issue(client) -> Callable[..., dict]:
    def _make(project: str = "apitest", **fields) -> dict:
        body = {
            "issue_title": "Test Issue Title",
            "issue_text": "This is a test issue text",
            "created_by": "Tester",
            **fields,
        }
        resp = client.post(f"/api/issues/{project}", json=body)
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _make
