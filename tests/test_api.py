"""End-to-end tests for the HTTP endpoints."""

import base64

import pytest

from tests.conftest import SALES_CSV


def _upload(client, content=SALES_CSV, name="sales"):
    response = client.post(
        "/datasets",
        json={
            "name": name,
            "description": None,
            "file_data": base64.b64encode(content.encode()).decode(),
            "file_name": "sales.csv",
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


def _create_analysis(client, dataset_id, **overrides):
    payload = {
        "dataset_id": dataset_id,
        "name": "promo effect",
        "target_variable": "revenue",
        "treatment_variables": ["promo"],
        "control_variables": [],
        "method": "pywhy",
    }
    payload.update(overrides)
    return client.post("/analyses", json=payload)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert "T" in body["timestamp"]


class TestDatasetEndpoints:
    def test_upload_and_get(self, client):
        dataset = _upload(client)

        assert dataset["status"] == "uploading"
        assert dataset["file_size"] == len(SALES_CSV.encode())
        assert dataset["processed_at"] is None

        response = client.get(f"/datasets/{dataset['id']}")
        assert response.status_code == 200
        assert response.json()["columns"] == []

    def test_upload_invalid_base64(self, client):
        response = client.post(
            "/datasets",
            json={"name": "x", "description": None, "file_data": "%%%", "file_name": "x.csv"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_upload_blank_name_is_validation_error(self, client, name):
        response = client.post(
            "/datasets",
            json={"name": name, "description": None, "file_data": "", "file_name": "x.csv"},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_upload_nul_in_file_name(self, client):
        response = client.post(
            "/datasets",
            json={"name": "x", "description": None, "file_data": "", "file_name": "a\u0000.csv"},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_multipart_upload(self, client):
        response = client.post(
            "/datasets/upload",
            data={"name": "from form", "description": ""},
            files={"file": ("sales.csv", SALES_CSV.encode(), "text/csv")},
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["name"] == "from form"
        assert body["description"] is None
        assert body["columns_count"] == 4

    def test_process_and_columns(self, client):
        dataset = _upload(client)

        response = client.post(f"/datasets/{dataset['id']}/process")
        assert response.status_code == 200
        processed = response.json()
        assert processed["status"] == "ready"
        assert len(processed["sample_rows"]) == 5
        assert "columns" not in processed

        detail = client.get(f"/datasets/{dataset['id']}").json()
        types = {c["column_name"]: c["data_type"] for c in detail["columns"]}
        assert types == {
            "region": "categorical",
            "spend": "numeric",
            "promo": "boolean",
            "revenue": "numeric",
        }

    def test_process_twice_is_invalid_state(self, client):
        dataset = _upload(client)
        client.post(f"/datasets/{dataset['id']}/process")

        response = client.post(f"/datasets/{dataset['id']}/process")

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "INVALID_STATE"

    def test_missing_dataset(self, client):
        response = client.get("/datasets/999")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"
        assert client.post("/datasets/999/process").status_code == 404

    def test_list_pagination(self, client):
        assert client.get("/datasets").json() == []

        ids = [_upload(client, name=f"ds{i}")["id"] for i in range(3)]

        listed = client.get("/datasets").json()
        assert [d["id"] for d in listed] == list(reversed(ids))
        assert [d["id"] for d in client.get("/datasets?limit=2&offset=1").json()] == [ids[1], ids[0]]

    def test_list_rejects_bad_pagination(self, client):
        assert client.get("/datasets?limit=0").status_code == 422
        assert client.get("/datasets?offset=-1").status_code == 422


class TestAnalysisEndpoints:
    def test_full_flow(self, client):
        dataset = _upload(client)
        client.post(f"/datasets/{dataset['id']}/process")

        created = _create_analysis(client, dataset["id"])
        assert created.status_code == 200
        analysis = created.json()
        assert analysis["status"] == "pending"

        run = client.post(f"/analyses/{analysis['id']}/run")
        assert run.status_code == 200
        completed = run.json()
        assert completed["status"] == "completed"
        assert completed["results"]["method_details"]["model_type"] == "pywhy"
        assert "promo" in completed["simple_explanation"]

        again = client.post(f"/analyses/{analysis['id']}/run").json()
        assert again["completed_at"] == completed["completed_at"]

        fetched = client.get(f"/analyses/{analysis['id']}").json()
        assert fetched == completed

    def test_run_with_unready_dataset(self, client):
        dataset = _upload(client)
        analysis = _create_analysis(client, dataset["id"]).json()

        response = client.post(f"/analyses/{analysis['id']}/run")

        assert response.status_code == 412
        assert response.json()["detail"]["code"] == "PRECONDITION_FAILED"
        assert client.get(f"/analyses/{analysis['id']}").json()["status"] == "failed"

    def test_run_while_running_conflicts(self, client, store):
        dataset = _upload(client)
        analysis = _create_analysis(client, dataset["id"]).json()
        store.analyses[analysis["id"]]["status"] = "running"

        response = client.post(f"/analyses/{analysis['id']}/run")

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "CONFLICT"

    def test_create_for_missing_dataset(self, client):
        response = _create_analysis(client, 999)
        assert response.status_code == 404

    def test_create_requires_treatment(self, client):
        dataset = _upload(client)
        response = _create_analysis(client, dataset["id"], treatment_variables=[])
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_create_rejects_unknown_method(self, client):
        dataset = _upload(client)
        response = _create_analysis(client, dataset["id"], method="magic")
        assert response.status_code == 422

    def test_list_filter(self, client):
        first = _upload(client, name="a")
        second = _upload(client, name="b")
        a1 = _create_analysis(client, first["id"]).json()
        _create_analysis(client, second["id"])

        filtered = client.get(f"/analyses?dataset_id={first['id']}").json()
        assert [a["id"] for a in filtered] == [a1["id"]]
        assert client.get("/analyses?dataset_id=999").json() == []
        assert len(client.get("/analyses").json()) == 2

    def test_missing_analysis(self, client):
        assert client.get("/analyses/5").status_code == 404
        assert client.post("/analyses/5/run").status_code == 404
