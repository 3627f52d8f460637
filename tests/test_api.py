"""Tests for the HTTP control surface."""

import csv
import io

import pytest
from fastapi.testclient import TestClient

from catalog_scraper.api.deps import get_catalog_store, get_task_runner
from catalog_scraper.catalog.store import CatalogStore
from catalog_scraper.ingest.base import ProductRecord
from catalog_scraper.main import app
from catalog_scraper.worker.tasks import RunInProgressError, TaskRunner


class RecordingRunner(TaskRunner):
    """Claims the status like the real runner but never starts a run."""

    def __init__(self, status, store):
        super().__init__(status=status, store=store)
        self.starts = 0

    def start_run(self):
        if not self.status.try_start("Loading categories..."):
            raise RunInProgressError()
        self.starts += 1


@pytest.fixture
def store(tmp_path):
    return CatalogStore(tmp_path / "catalog.json")


@pytest.fixture
def runner(status, store):
    return RecordingRunner(status, store)


@pytest.fixture
def client(runner, store):
    app.dependency_overrides[get_task_runner] = lambda: runner
    app.dependency_overrides[get_catalog_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_start_then_conflict(client, runner):
    response = client.post("/api/runs")
    assert response.status_code == 202
    assert response.json()["running"] is True

    response = client.post("/api/runs")
    assert response.status_code == 409
    assert runner.starts == 1


def test_stop(client, runner):
    assert client.post("/api/runs/stop").status_code == 409

    runner.status.try_start()
    response = client.post("/api/runs/stop")
    assert response.status_code == 200
    assert response.json()["stop_requested"] is True


def test_status_snapshot(client):
    response = client.get("/api/runs/status")
    assert response.status_code == 200
    body = response.json()
    assert body["running"] is False
    assert set(body["sources"]) == {"shop", "farmid"}


def test_catalog_missing(client):
    assert client.get("/api/catalog").status_code == 404
    assert client.get("/api/catalog/download/csv").status_code == 404


def test_catalog_preview_and_downloads(client, store):
    store.save([ProductRecord(identity_key=str(i), title=f"Item {i}", price="1.00") for i in range(150)])

    body = client.get("/api/catalog").json()
    assert body["count"] == 150
    assert len(body["products"]) == 100
    assert body["products"][0]["productCode"] == "0"

    response = client.get("/api/catalog/download/csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert len(list(csv.DictReader(io.StringIO(response.text)))) == 150

    response = client.get("/api/catalog/download/json")
    assert response.status_code == 200
    assert len(response.json()) == 150

    assert client.get("/api/catalog/download/xlsx").status_code == 422


def test_metrics_exposed(client):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "catalog_pages_fetched" in response.text
