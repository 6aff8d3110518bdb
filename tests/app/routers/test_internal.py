import httpx
import pytest
from fastapi.testclient import TestClient

from app.db import get_db
from app.main import create_app
from app.routers.utils.dependencies import get_host_adapter
from tests.fixtures.identity_fixtures import make_identity

LINK_BODY = {
    "user_id": "user-1",
    "gitlab_username": "alice",
    "token": {"access_token": "glpat-new", "refresh_token": "r"},
}


@pytest.fixture
def client(db, host):
    app = create_app(testing=True)
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_host_adapter] = lambda: host
    with TestClient(app) as test_client:
        yield test_client


def test_link_identity(client, vault, host):
    response = client.post("/internal/identities", json=LINK_BODY)

    assert response.status_code == 201
    body = response.json()
    assert body == {
        "user_id": "user-1",
        "gitlab_username": "alice",
        "settings": {"notifications": True, "daily_reminder": True},
    }
    assert "token" not in body
    assert vault.resolve("user-1").token.access_token == "glpat-new"
    assert host.props["user-1"] == {"gitlab_user": "alice"}


def test_link_identity_validates_body(client):
    response = client.post("/internal/identities", json={**LINK_BODY, "user_id": ""})
    assert response.status_code == 422


def test_lookup_by_gitlab_username(client, setup_identity):
    response = client.get(f"/internal/identities/by-gitlab/{setup_identity.gitlab_username}")
    assert response.status_code == 200
    assert response.json() == {
        "gitlab_username": setup_identity.gitlab_username,
        "user_id": setup_identity.user_id,
    }


def test_lookup_unknown_username(client):
    assert client.get("/internal/identities/by-gitlab/nobody").status_code == 404


def test_post_todo(client, vault, host, db, client_factory, monkeypatch):
    vault.store(make_identity("user-1", "alice"))
    monkeypatch.setattr(
        "app.commands.base_gitlab.default_client_factory", client_factory
    )

    response = client.post("/internal/todo/user-1")

    assert response.status_code == 200
    assert response.json() == {"data": {"posted": True, "post_id": "post-1"}}
    assert "You don't have any todos." in host.posts[0]["message"]


def test_post_todo_not_linked(client):
    assert client.post("/internal/todo/nobody").status_code == 404


def test_post_todo_upstream_failure(client, vault, monkeypatch, client_factory, gitlab_responses):
    vault.store(make_identity("user-1", "alice"))
    gitlab_responses["/todos"] = httpx.Response(500)
    monkeypatch.setattr(
        "app.commands.base_gitlab.default_client_factory", client_factory
    )
    assert client.post("/internal/todo/user-1").status_code == 502


def test_internal_token_is_checked(client, monkeypatch):
    monkeypatch.setenv("INTERNAL_API_TOKEN", "s3cret")
    assert client.get("/internal/identities/by-gitlab/alice").status_code == 403
    response = client.get(
        "/internal/identities/by-gitlab/alice", headers={"X-Internal-Token": "s3cret"}
    )
    assert response.status_code == 404
