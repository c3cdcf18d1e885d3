"""Tests for the project endpoints."""

import io

from sgs.models.iam import Project

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n%%EOF\n"


def _buckets(s3_client):
  return [b["Name"] for b in s3_client.list_buckets()["Buckets"]]


class TestCreateProject:
  def test_create_project(self, client, s3_client, db_session, alice, session_headers):
    response = client.post(
      "/v1/projects", json={"bucket": "proj-abc"}, headers=session_headers(alice)
    )

    assert response.status_code == 201
    data = response.json()
    assert data["id"].startswith("prj_")
    assert data["bucket"] == "proj-abc"
    assert data["owner_id"] == alice.id
    assert "proj-abc" in _buckets(s3_client)
    assert Project.get_by_id(data["id"], db_session).bucket == "proj-abc"

  def test_duplicate_bucket(self, client, project, bob, session_headers):
    response = client.post(
      "/v1/projects", json={"bucket": "proj-abc"}, headers=session_headers(bob)
    )

    assert response.status_code == 409
    assert response.json()["code"] == "PROJECT_EXISTS"

  def test_invalid_bucket_name(self, client, s3_client, alice, session_headers):
    for bucket in ["Proj_ABC", "ab", "-leading-hyphen", "x" * 64]:
      response = client.post(
        "/v1/projects", json={"bucket": bucket}, headers=session_headers(alice)
      )
      assert response.status_code == 422, bucket
    assert _buckets(s3_client) == []

  def test_requires_authentication(self, client):
    assert client.post("/v1/projects", json={"bucket": "proj-abc"}).status_code == 401


class TestReadProjects:
  def test_list_with_stats(self, client, services, project, alice, bob, session_headers):
    services.saga.upload_file(project.id, "a.pdf", io.BytesIO(PDF_BYTES), alice.id)
    services.saga.upload_file(project.id, "b.pdf", io.BytesIO(PDF_BYTES), alice.id)
    services.saga.create_project(alice.id, "proj-empty")
    services.saga.create_project(bob.id, "proj-bob")

    response = client.get("/v1/projects", headers=session_headers(alice))

    assert response.status_code == 200
    projects = {p["bucket"]: p for p in response.json()["projects"]}
    assert set(projects) == {"proj-abc", "proj-empty"}
    assert projects["proj-abc"]["file_count"] == 2
    assert projects["proj-abc"]["total_file_size"] == 2 * len(PDF_BYTES)
    assert projects["proj-empty"]["file_count"] == 0
    assert projects["proj-empty"]["total_file_size"] == 0

  def test_get_missing_project(self, client, alice, session_headers):
    response = client.get("/v1/projects/prj_missing", headers=session_headers(alice))

    assert response.status_code == 404
    assert response.json()["code"] == "PROJECT_NOT_FOUND"


class TestDeleteProject:
  def test_delete_project(self, client, services, s3_client, db_session, project, alice, session_headers):
    services.saga.upload_file(project.id, "report.pdf", io.BytesIO(PDF_BYTES), alice.id)

    response = client.delete(f"/v1/projects/{project.id}", headers=session_headers(alice))

    assert response.status_code == 200
    assert response.json()["data"] == {"project_id": project.id, "bucket": "proj-abc"}
    assert Project.get_by_id(project.id, db_session) is None
    assert _buckets(s3_client) == []

  def test_only_owner_can_delete(self, client, s3_client, project, bob, session_headers):
    response = client.delete(f"/v1/projects/{project.id}", headers=session_headers(bob))

    assert response.status_code == 403
    assert _buckets(s3_client) == ["proj-abc"]

  def test_blob_failure_still_deletes(
    self, client, services, s3_client, db_session, project, alice, session_headers, monkeypatch
  ):
    from sgs.exceptions import StoreError

    def _raise(*args, **kwargs):
      raise StoreError("Blob store remove_bucket failed", operation="remove_bucket")

    monkeypatch.setattr(services.blob_store, "remove_bucket", _raise)

    response = client.delete(f"/v1/projects/{project.id}", headers=session_headers(alice))

    assert response.status_code == 200
    assert Project.get_by_id(project.id, db_session) is None
    # Left for the reconciler
    assert _buckets(s3_client) == ["proj-abc"]
