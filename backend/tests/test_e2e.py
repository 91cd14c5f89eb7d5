"""End-to-end tests for the Compose Graph API.

Covers the graph endpoint with a realistic multi-tier project, reference
warnings, decode failures, layout options and file import.
"""

import io

import pytest
from fastapi.testclient import TestClient

from config import settings
from main import app

client = TestClient(app)

# ---------------------------------------------------------------------------
# Fixture: multi-tier compose project
# ---------------------------------------------------------------------------
FULL_COMPOSE_SOURCE = """\
version: '3.8'
name: shop
services:
  proxy:
    image: nginx:1.25
    ports:
      - "80:80"
    networks: [front]
    depends_on: [api]
  api:
    build: ./api
    networks: [front, back]
    depends_on:
      db:
        condition: service_healthy
    volumes:
      - uploads:/srv/uploads
  db:
    image: postgres:15
    networks: [back]
    volumes:
      - pgdata:/var/lib/postgresql/data
  worker:
    image: shop/worker
networks:
  front:
    driver: bridge
  back:
    internal: true
volumes:
  pgdata:
  uploads:
  archive:
"""


def _post_graph(payload: dict) -> dict:
    resp = client.post("/api/graph", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _by_id(items: list[dict]) -> dict[str, dict]:
    return {item["id"]: item for item in items}


# ---------------------------------------------------------------------------
# 1. Health
# ---------------------------------------------------------------------------
def test_health():
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# 2. Graph endpoint
# ---------------------------------------------------------------------------
class TestGraphEndpoint:
    """Compose YAML through decoding, layout and serialisation."""

    def test_project_and_graph_returned(self):
        data = _post_graph({"source": FULL_COMPOSE_SOURCE})

        assert data["project"]["name"] == "shop"
        assert data["project"]["service_order"] == ["proxy", "api", "db", "worker"]
        assert data["warnings"] == []

        graph = data["graph"]
        assert graph["project"] == "shop"
        assert graph["layout"] == "custom"
        assert graph["direction"] == "LR"
        assert graph["viewport"]["zoom"] == 0.8

    def test_node_kinds(self):
        graph = _post_graph({"source": FULL_COMPOSE_SOURCE})["graph"]
        kinds = [n["type"] for n in graph["nodes"]]

        assert kinds.count("compose") == 1
        assert kinds.count("network") == 2
        assert kinds.count("services") == 4
        assert kinds.count("volume") == 3

    def test_edges_reference_existing_nodes(self):
        graph = _post_graph({"source": FULL_COMPOSE_SOURCE})["graph"]
        node_ids = {n["id"] for n in graph["nodes"]}

        for edge in graph["edges"]:
            assert edge["source"] in node_ids
            assert edge["target"] in node_ids

    def test_relations_drawn(self):
        graph = _post_graph({"source": FULL_COMPOSE_SOURCE})["graph"]
        edges = _by_id(graph["edges"])

        assert "edge-depends-services-proxy->services-api" in edges
        assert "edge-depends-services-api->services-db" in edges
        assert "edge-services-volume-services-db->volume-pgdata" in edges
        assert "edge-compose-services-docker-compose->services-worker" in edges
        assert "edge-compose-unused-volume-docker-compose->volume-archive" in edges

        membership = edges["edge-network-services-network-back->services-api"]
        assert membership["label"] == "back"
        assert membership["networkName"] == "back"
        assert membership["serviceName"] == "api"

    def test_unused_volume_marked(self):
        graph = _post_graph({"source": FULL_COMPOSE_SOURCE})["graph"]
        archive = _by_id(graph["nodes"])["volume-archive"]

        assert archive["data"]["status"] == "unused"
        assert archive["data"]["properties"]["used"] is False
        assert archive["style"] == {"opacity": 0.5}

    def test_project_name_override(self):
        data = _post_graph({"source": FULL_COMPOSE_SOURCE, "project_name": "staging"})
        assert data["graph"]["project"] == "staging"
        root = _by_id(data["graph"]["nodes"])["docker-compose"]
        assert root["data"]["label"] == "staging"

    def test_layout_options_camel_case(self):
        data = _post_graph({
            "source": "services:\n  web:\n    image: nginx\n",
            "options": {"columnGap": 600},
        })
        web = _by_id(data["graph"]["nodes"])["services-web"]
        assert web["position"]["x"] == 600

    def test_service_node_carries_runtime_settings(self):
        data = _post_graph({"source": """\
services:
  db:
    image: postgres:15
    healthcheck:
      test: ["CMD", "pg_isready"]
      retries: 5
    deploy:
      replicas: 2
    logging:
      driver: json-file
secrets:
  db_password:
    file: ./db_password.txt
"""})
        descriptor = _by_id(data["graph"]["nodes"])["services-db"]["data"]["services"]
        assert descriptor["healthcheck"]["retries"] == 5
        assert descriptor["deploy"]["replicas"] == 2
        assert descriptor["logging"]["driver"] == "json-file"
        assert data["project"]["secrets"]["db_password"]["file"] == "./db_password.txt"

    def test_warnings_for_unresolved_references(self):
        data = _post_graph({"source": """\
services:
  web:
    depends_on: [ghost]
    networks: [nowhere]
"""})
        assert len(data["warnings"]) == 2
        graph = data["graph"]
        assert len(graph["nodes"]) == 2
        assert [e["source"] for e in graph["edges"]] == ["docker-compose"]

    def test_layout_is_stable_across_requests(self):
        first = _post_graph({"source": FULL_COMPOSE_SOURCE})["graph"]
        second = _post_graph({"source": FULL_COMPOSE_SOURCE})["graph"]
        first.pop("created_at")
        second.pop("created_at")
        assert first == second


# ---------------------------------------------------------------------------
# 3. Decode failures
# ---------------------------------------------------------------------------
class TestGraphErrors:
    """Documents that cannot be decoded yield 400."""

    @pytest.mark.parametrize("source, message", [
        ("services:\n  web: [unclosed\n", "failed to parse YAML"),
        ("", "invalid YAML document"),
        ("- just\n- a list\n", "root node is not a mapping"),
        ("services:\n  web: nginx\n", "service configuration must be a map"),
    ])
    def test_rejected(self, source, message):
        resp = client.post("/api/graph", json={"source": source})
        assert resp.status_code == 400
        assert message in resp.json()["detail"]

    def test_missing_source(self):
        resp = client.post("/api/graph", json={})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# 4. File import
# ---------------------------------------------------------------------------
class TestImport:
    """Multipart upload of compose files."""

    def _upload(self, filename: str, content: bytes):
        return client.post(
            "/api/import",
            files={"file": (filename, io.BytesIO(content), "application/x-yaml")},
        )

    def test_import_uses_file_stem(self):
        resp = self._upload("inventory.yml", b"services:\n  web:\n    image: nginx\n")
        assert resp.status_code == 200
        data = resp.json()
        assert data["project"]["name"] == "inventory"
        assert data["graph"]["project"] == "inventory"

    def test_import_yaml_extension(self):
        resp = self._upload("compose.yaml", FULL_COMPOSE_SOURCE.encode())
        assert resp.status_code == 200
        assert len(resp.json()["graph"]["nodes"]) == 10

    def test_import_rejects_extension(self):
        resp = self._upload("compose.json", b"{}")
        assert resp.status_code == 400
        assert "Unsupported file extension" in resp.json()["detail"]

    def test_import_rejects_non_utf8(self):
        resp = self._upload("compose.yml", b"\xff\xfe\x00bad")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "File must be UTF-8 encoded"

    def test_import_rejects_oversized_file(self, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_bytes", 16)
        resp = self._upload("compose.yml", FULL_COMPOSE_SOURCE.encode())
        assert resp.status_code == 413

    def test_import_invalid_yaml(self):
        resp = self._upload("compose.yml", b"services:\n  web: [unclosed\n")
        assert resp.status_code == 400
