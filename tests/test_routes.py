"""HTTP surface: authentication, guards, search paging, scoped listings, audit."""
from datetime import timedelta

from conftest import PASSWORD, make_auth_headers


# ============================================
# Authentication and guards
# ============================================


def test_missing_token_is_401(client, world):
    response = client.get("/auth/me")

    assert response.status_code == 401
    assert response.json()["error"] == "UNAUTHENTICATED"


def test_malformed_token_is_401(client, world):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_expired_token_is_401(client, world):
    headers = make_auth_headers(world.admin_id, expires_in=timedelta(hours=-1))

    response = client.get("/auth/me", headers=headers)

    assert response.status_code == 401


def test_inactive_user_token_is_rejected(client, world):
    response = client.get("/auth/me", headers=make_auth_headers(world.inactive_id))

    assert response.status_code == 401


def test_missing_capability_is_403(client, world):
    response = client.get("/users", headers=make_auth_headers(world.engineer_id))

    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "FORBIDDEN"
    assert body["details"] == {"module": "users", "action": "view"}


def test_login_returns_token_and_audits(client, world):
    response = client.post("/auth/login", json={"username": "engineer", "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["username"] == "engineer"
    assert "password_hash" not in body["user"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert [r["name"] for r in me.json()["roles"]] == ["Engineer"]
    assert {(p["module"], p["action"]) for p in me.json()["permissions"]} == {
        ("documents", "view"),
        ("objects", "view"),
    }


def test_failed_login_is_audited_without_user(client, world):
    response = client.post("/auth/login", json={"username": "ghost", "password": "whatever"})
    assert response.status_code == 401

    audit = client.get(
        "/audit",
        params={"success": "false", "action": "login"},
        headers=make_auth_headers(world.admin_id),
    )

    assert audit.status_code == 200
    items = audit.json()["items"]
    assert len(items) == 1
    assert items[0]["user_id"] is None
    assert items[0]["details"] == {"username": "ghost", "reason": "unknown_user"}


def test_inactive_user_cannot_log_in(client, world):
    response = client.post("/auth/login", json={"username": "inactive", "password": PASSWORD})

    assert response.status_code == 401


def test_user_in_audit_trail_cannot_be_deleted(client, world):
    client.post("/auth/login", json={"username": "outsider", "password": PASSWORD})

    response = client.delete(f"/users/{world.outsider_id}", headers=make_auth_headers(world.admin_id))

    assert response.status_code == 409
    assert response.json()["details"]["references"] == {"audit_logs": 1}


# ============================================
# Search and scoped listings
# ============================================


def test_search_page_reports_total_and_has_more(client, world):
    headers = make_auth_headers(world.admin_id)

    first = client.get("/search/documents", params={"q": "pdf", "limit": 2}, headers=headers).json()
    last = client.get(
        "/search/documents", params={"q": "pdf", "limit": 2, "offset": 2}, headers=headers
    ).json()

    assert (first["total"], len(first["results"]), first["has_more"]) == (3, 2, True)
    assert (last["total"], len(last["results"]), last["has_more"]) == (3, 1, False)
    assert first["results"][0]["rank"] == 0.0


def test_search_rejects_overlong_query(client, world):
    response = client.get(
        "/search/documents", params={"q": "x" * 101}, headers=make_auth_headers(world.admin_id)
    )

    assert response.status_code == 422


def test_search_requires_document_view(client, world):
    response = client.get(
        "/search/documents", params={"q": "pump"}, headers=make_auth_headers(world.outsider_id)
    )

    assert response.status_code == 403


def test_my_documents_lists_one_row_per_grant(client, world):
    response = client.get("/my/documents", headers=make_auth_headers(world.admin_id))

    assert response.status_code == 200
    rows = response.json()
    pump = [r for r in rows if r["document"]["document_id"] == world.documents["pump-manual"]]
    assert len(pump) == 2
    assert {r["service"]["name"] for r in pump} == {"North Tech", "North Oper"}


def test_my_documents_empty_without_scope(client, world):
    response = client.get("/my/documents", headers=make_auth_headers(world.outsider_id))

    assert response.status_code == 200
    assert response.json() == []


# ============================================
# Documents
# ============================================


def test_invisible_document_is_403(client, world):
    response = client.get(
        f"/documents/{world.documents['valve-passport']}", headers=make_auth_headers(world.engineer_id)
    )

    assert response.status_code == 403


def test_download_streams_file_and_audits(client, world, upload_dir):
    (upload_dir / "pump-manual.pdf").write_bytes(b"%PDF-1.4 test")
    headers = make_auth_headers(world.admin_id)

    response = client.get(f"/documents/{world.documents['pump-manual']}/download", headers=headers)

    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 test"
    assert "pump-manual.pdf" in response.headers["content-disposition"]

    audit = client.get("/audit", params={"action": "download"}, headers=headers).json()
    assert [i["resource_id"] for i in audit["items"]] == [world.documents["pump-manual"]]


def test_edit_grant_does_not_bypass_capability(client, world):
    document_id = world.documents["pump-manual"]
    client.post(
        f"/documents/{document_id}/services/{world.north_tech_id}",
        json={"can_view": True, "can_edit": True, "can_delete": True},
        headers=make_auth_headers(world.admin_id),
    )
    engineer = make_auth_headers(world.engineer_id)

    assert client.patch(f"/documents/{document_id}", json={"name": "x"}, headers=engineer).status_code == 403
    assert client.delete(f"/documents/{document_id}", headers=engineer).status_code == 403


def test_file_replacement_shows_up_in_versions(client, world):
    document_id = world.documents["pump-manual"]
    response = client.patch(
        f"/documents/{document_id}",
        json={"file_path": "pump-manual-v2.pdf", "change_note": "new scan"},
        headers=make_auth_headers(world.admin_id),
    )
    assert response.json()["version"] == 2

    versions = client.get(
        f"/documents/{document_id}/versions", headers=make_auth_headers(world.engineer_id)
    ).json()
    assert [(v["version"], v["file_path"], v["changes"]) for v in versions] == [
        (1, "pump-manual.pdf", "new scan")
    ]
    assert versions[0]["replaced_by"] == world.admin_id

    hidden = client.get(
        f"/documents/{world.documents['valve-passport']}/versions",
        headers=make_auth_headers(world.engineer_id),
    )
    assert hidden.status_code == 403


def test_deleting_service_in_use_is_409_with_references(client, world):
    response = client.delete(f"/services/{world.north_tech_id}", headers=make_auth_headers(world.admin_id))

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "RESOURCE_IN_USE"
    assert body["details"]["references"]["document_grants"] == 2


def test_object_service_link_changes_are_audited(client, world):
    headers = make_auth_headers(world.admin_id)
    path = f"/objects/{world.object_id}/services/{world.east_tech_id}"

    assert client.post(path, json={"is_primary": False}, headers=headers).status_code == 200
    assert client.delete(path, headers=headers).status_code == 200

    items = client.get("/audit", params={"resource": "object_access"}, headers=headers).json()["items"]
    assert sorted((i["action"], i["resource_id"]) for i in items) == [
        ("delete", world.object_id),
        ("update", world.object_id),
    ]
    assert all(i["details"]["service_id"] == world.east_tech_id for i in items)


# ============================================
# Audit export and health
# ============================================


def test_audit_export_is_csv_with_bom(client, world):
    headers = make_auth_headers(world.admin_id)
    client.post("/auth/login", json={"username": "admin", "password": "nope"})

    response = client.get("/audit/export", headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.content.startswith("\ufeff".encode("utf-8"))
    assert "failure" in response.content.decode("utf-8-sig")


def test_audit_requires_capability(client, world):
    response = client.get("/audit", headers=make_auth_headers(world.engineer_id))

    assert response.status_code == 403


def test_health_reports_database(client, world):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "Healthy"
    assert body["database"]["healthy"] is True
