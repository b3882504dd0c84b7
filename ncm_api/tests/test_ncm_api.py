"""End-to-end tests for the /ncm HTTP endpoints (in-memory repository)."""

import pytest

from src.api.main import app
from src.core.deps import get_ncm_repository
from src.core.errors import PersistenceError


def _create(client, codigo="1234.56", descricao="Test", **extra):
    response = client.post("/ncm/", json={"codigo": codigo, "descricao": descricao, **extra})
    assert response.status_code == 201, response.text
    return response.json()


class BrokenRepository:
    def __getattr__(self, name):
        async def _fail(*args, **kwargs):
            raise PersistenceError("connection refused")

        return _fail


def test_create_returns_201_with_generated_id(client):
    body = _create(client, data_inicio="01/04/2022", tipo_ato_ini="Res Camex", numero_ato_ini="272", ano_ato_ini="2021")

    assert body["id_ncm"]
    assert body["codigo"] == "1234.56"
    assert body["descricao"] == "Test"
    assert body["data_inicio"] == "01/04/2022"
    assert body["data_fim"] is None
    assert body["tipo_ato_ini"] == "Res Camex"
    assert "code_normalized" not in body
    assert "code_no_symbols" not in body


def test_create_ignores_client_id(client):
    body = _create(client, id_ncm="mine")
    assert body["id_ncm"] != "mine"


@pytest.mark.parametrize("payload", [{"codigo": "1234"}, {"descricao": "x"}, {"codigo": " ", "descricao": "x"}])
def test_create_missing_fields_returns_400(client, payload):
    response = client.post("/ncm/", json=payload)
    assert response.status_code == 400
    assert response.json()["error"]["type"] == "http_error"


def test_create_malformed_body_returns_400(client):
    response = client.post("/ncm/", content="not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json()["error"]["type"] == "validation_error"


def test_get_by_code_normalizes_punctuation(client):
    created = _create(client)

    response = client.get("/ncm/code/1234.56")
    assert response.status_code == 200
    assert response.json() == created

    assert client.get("/ncm/code/123456").json()["id_ncm"] == created["id_ncm"]


def test_get_by_code_unknown_returns_404(client):
    assert client.get("/ncm/code/9999.99").status_code == 404


def test_get_by_id(client):
    created = _create(client)

    response = client.get(f"/ncm/{created['id_ncm']}")
    assert response.status_code == 200
    assert response.json() == created


def test_get_unknown_id_returns_404_envelope(client):
    response = client.get("/ncm/nonexistent-id", headers={"X-Correlation-ID": "abc-123"})

    assert response.status_code == 404
    body = response.json()
    assert body["status"] == 404
    assert body["correlation_id"] == "abc-123"
    assert body["path"] == "/ncm/nonexistent-id"
    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_blank_id_returns_400(client):
    assert client.get("/ncm/%20%20").status_code == 400


def test_get_by_text(client):
    _create(client, codigo="0101.21.00", descricao="Cavalos reprodutores")

    assert client.get("/ncm/text", params={"text": "CAVALOS"}).json()["codigo"] == "0101.21.00"
    assert client.get("/ncm/text", params={"text": "peixes"}).status_code == 404
    assert client.get("/ncm/text").status_code == 400
    assert client.get("/ncm/text", params={"text": "  "}).status_code == 400


def test_search_lists_matches(client):
    _create(client, codigo="0102.10.10", descricao="Bovinos reprodutores")
    _create(client, codigo="0101.21.00", descricao="Cavalos reprodutores")

    response = client.get("/ncm/search", params={"text": "reprodutores"})
    assert response.status_code == 200
    assert [n["codigo"] for n in response.json()] == ["0101.21.00", "0102.10.10"]

    assert client.get("/ncm/search", params={"text": "peixes"}).status_code == 404
    assert client.get("/ncm/search").status_code == 400


def test_list_by_codes(client):
    _create(client, codigo="0101.21.00")
    _create(client, codigo="0102.10.10")
    _create(client, codigo="0201.10.00")

    repeated = client.get("/ncm/codes", params=[("codes", "0101.21.00"), ("codes", "02011000")])
    assert repeated.status_code == 200
    assert [n["codigo"] for n in repeated.json()] == ["0101.21.00", "0201.10.00"]

    comma = client.get("/ncm/codes", params={"codes": "0102.10.10,0101.21.00"})
    assert [n["codigo"] for n in comma.json()] == ["0101.21.00", "0102.10.10"]

    assert client.get("/ncm/codes", params={"codes": "5555"}).status_code == 404
    assert client.get("/ncm/codes").status_code == 400


def test_list_all(client):
    assert client.get("/ncm/").status_code == 404

    _create(client, codigo="0201.10.00")
    _create(client, codigo="0101.21.00")

    response = client.get("/ncm/")
    assert response.status_code == 200
    assert [n["codigo"] for n in response.json()] == ["0101.21.00", "0201.10.00"]


def test_update_replaces_record(client):
    created = _create(client, data_inicio="2022-01-01")
    payload = {"id_ncm": created["id_ncm"], "codigo": "1234.57", "descricao": "Changed"}

    response = client.put("/ncm/", json=payload)
    assert response.status_code == 200
    assert response.json()["descricao"] == "Changed"

    fetched = client.get(f"/ncm/{created['id_ncm']}").json()
    assert fetched["codigo"] == "1234.57"
    assert fetched["data_inicio"] is None
    assert client.get("/ncm/code/123457").status_code == 200
    assert client.get("/ncm/code/123456").status_code == 404


def test_update_missing_description_returns_400(client):
    created = _create(client)
    response = client.put("/ncm/", json={"id_ncm": created["id_ncm"], "codigo": "1234.56"})
    assert response.status_code == 400


def test_update_missing_id_returns_400(client):
    assert client.put("/ncm/", json={"codigo": "1", "descricao": "x"}).status_code == 400


def test_update_unknown_id_returns_404(client):
    response = client.put("/ncm/", json={"id_ncm": "ghost", "codigo": "1", "descricao": "x"})
    assert response.status_code == 404


def test_delete(client):
    created = _create(client)

    response = client.delete(f"/ncm/{created['id_ncm']}")
    assert response.status_code == 204
    assert response.content == b""

    assert client.get(f"/ncm/{created['id_ncm']}").status_code == 404
    assert client.delete(f"/ncm/{created['id_ncm']}").status_code == 404


def test_bulk_insert(client, memory_repo):
    payload = [
        {"id_ncm": "a", "codigo": "0101.21.00", "descricao": "Cavalos"},
        {"id_ncm": "a", "codigo": "0102.10.10", "descricao": "Bovinos"},
        {"codigo": "0201.10.00", "descricao": "Carcaças"},
    ]

    response = client.post("/ncm/bulk", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert [n["codigo"] for n in body] == ["0101.21.00", "0201.10.00"]
    assert all(n["id_ncm"] for n in body)
    assert len(memory_repo.rows) == 2
    assert memory_repo.rows["a"].code == "0101.21.00"

    replay = client.post("/ncm/bulk", json=payload[:2])
    assert replay.status_code == 200
    assert replay.json() == []


def test_bulk_insert_rejects_empty_and_invalid(client):
    assert client.post("/ncm/bulk", json=[]).status_code == 400
    assert client.post("/ncm/bulk", json=[{"codigo": "1"}]).status_code == 400
    assert client.post("/ncm/bulk", json={"codigo": "1", "descricao": "x"}).status_code == 400


def test_persistence_failure_returns_500(client):
    app.dependency_overrides[get_ncm_repository] = lambda: BrokenRepository()

    assert client.get("/ncm/some-id").status_code == 500
    assert client.get("/ncm/").status_code == 500
    response = client.post("/ncm/", json={"codigo": "1", "descricao": "x"})
    assert response.status_code == 500
    assert "connection refused" in response.json()["error"]["message"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["message"] == "Healthy"
    assert response.headers["X-Correlation-ID"]
