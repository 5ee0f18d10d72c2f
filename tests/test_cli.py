"""CLI tests — commands run against a mocked HTTP backend.

Learn: _client() is patched to return an httpx.AsyncClient backed by
MockTransport, so each test sees exactly which requests the CLI made.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from taskify.cli import main as cli_module


@pytest.fixture
def backend(monkeypatch):
    """Install a fake backend; returns the list of requests it received."""
    seen: list[httpx.Request] = []
    routes: dict[tuple[str, str], httpx.Response] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return routes.get(
            (request.method, request.url.path),
            httpx.Response(404, json={"detail": "Not Found"}),
        )

    def fake_client() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://taskify.test"
        )

    monkeypatch.setattr(cli_module, "_client", fake_client)
    return seen, routes


def test_tasks_table(backend):
    seen, routes = backend
    routes[("GET", "/tasks")] = httpx.Response(200, json=[
        {"id": "b" * 32, "title": "B", "order": 1},
        {"id": "a" * 32, "title": "A", "order": 2},
    ])

    result = CliRunner().invoke(cli_module.main, ["tasks"])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith("ORDER")
    assert "B" in lines[2] and "A" in lines[3]


def test_tasks_empty(backend):
    _, routes = backend
    routes[("GET", "/tasks")] = httpx.Response(200, json=[])
    result = CliRunner().invoke(cli_module.main, ["tasks"])
    assert result.exit_code == 0
    assert "No tasks." in result.output


def test_add_task_posts_body(backend):
    seen, routes = backend
    routes[("POST", "/tasks")] = httpx.Response(
        201, json={"acknowledged": True, "insertedId": "abc"}
    )

    result = CliRunner().invoke(
        cli_module.main, ["add-task", "Write docs", "-o", "3", "-f", "category=To-Do"]
    )

    assert result.exit_code == 0, result.output
    assert "Task abc created" in result.output
    assert json.loads(seen[0].content) == {
        "title": "Write docs",
        "order": 3,
        "category": "To-Do",
    }


def test_add_task_rejects_bad_field(backend):
    result = CliRunner().invoke(cli_module.main, ["add-task", "X", "-f", "nokey"])
    assert result.exit_code != 0
    assert "key=value" in result.output


def test_delete_task_reports_malformed_id(backend):
    _, routes = backend
    routes[("DELETE", "/tasks/bad")] = httpx.Response(
        400, json={"error": "malformed_id", "detail": "'bad' is not a valid task id"}
    )

    result = CliRunner().invoke(cli_module.main, ["delete-task", "bad"])

    assert result.exit_code == 1
    assert "not a valid task id" in result.output


def test_delete_task_missing(backend):
    _, routes = backend
    routes[("DELETE", "/tasks/" + "c" * 32)] = httpx.Response(
        200, json={"acknowledged": True, "deletedCount": 0}
    )
    result = CliRunner().invoke(cli_module.main, ["delete-task", "c" * 32])
    assert result.exit_code == 0
    assert "No task with id" in result.output


def test_version():
    result = CliRunner().invoke(cli_module.main, ["--version"])
    assert result.exit_code == 0
    assert "taskify" in result.output
