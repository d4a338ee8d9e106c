"""Tests for the /roles endpoints."""
import pytest
from fastapi.testclient import TestClient

from hrm_authz.models.role import Role

MISSING_ID = "00000000-0000-4000-8000-000000000000"


def _body(response):
    return response.json()["response"]


class TestAuthentication:

    def test_missing_token_is_401_envelope(self, client: TestClient):
        response = client.get("/roles")
        assert response.status_code == 401
        header = response.json()["header"]
        assert header["responseCode"] == 401
        assert header["responseMessage"] == "Authentication required"
        assert response.json()["response"] is None

    def test_garbage_token_is_401(self, client: TestClient):
        response = client.get("/roles", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_token_without_role_is_401(self, client: TestClient):
        from hrm_authz.core.security import create_access_token
        token = create_access_token(data={"sub": "someone"})
        response = client.get("/roles", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestPermissions:
    """Role gate on reads and mutations."""

    def test_provider_tier_can_read(self, client, hr_staff_headers, system_roles):
        response = client.get("/roles", headers=hr_staff_headers)
        assert response.status_code == 200
        assert len(_body(response)) == 8

    def test_client_tier_cannot_read(self, client, company_admin_headers, system_roles):
        response = client.get("/roles", headers=company_admin_headers)
        assert response.status_code == 403
        assert response.json()["header"]["responseCode"] == 403

    def test_hr_staff_cannot_mutate(self, client, hr_staff_headers):
        response = client.post(
            "/roles",
            headers=hr_staff_headers,
            json={"role_key": "auditor", "name": "Auditor", "hierarchy_level": 4}
        )
        assert response.status_code == 403

    def test_display_name_role_claim_is_accepted(self, client, headers_for):
        response = client.post(
            "/roles",
            headers=headers_for("Provider Admin"),
            json={"role_key": "auditor", "name": "Auditor", "hierarchy_level": 4}
        )
        assert response.status_code == 201

    def test_permission_checked_before_body_validation(self, client, employee_headers):
        response = client.post("/roles", headers=employee_headers, json={"name": "missing fields"})
        assert response.status_code == 403

    def test_permission_checked_before_uuid_format(self, client, employee_headers):
        response = client.get("/roles/not-a-uuid", headers=employee_headers)
        assert response.status_code == 403

    def test_invalid_uuid_is_400(self, client, super_admin_headers):
        response = client.get("/roles/not-a-uuid", headers=super_admin_headers)
        assert response.status_code == 400
        assert response.json()["header"]["responseMessage"] == "Invalid role ID format. Must be a valid UUID."


class TestRoleCRUD:

    def test_create_role(self, client, super_admin_headers, system_roles):
        response = client.post(
            "/roles",
            headers=super_admin_headers,
            json={
                "role_key": "payroll_lead",
                "name": "Payroll Lead",
                "hierarchy_level": 6,
                "parent_role_id": system_roles["company_admin"].id,
                "permissions": {"canViewPayroll": True, "exports": ["csv"]},
            }
        )
        assert response.status_code == 201
        payload = response.json()
        assert payload["header"]["responseCode"] == 201
        assert payload["header"]["responseMessage"] == "Role created successfully"
        role = payload["response"]
        assert role["role_key"] == "payroll_lead"
        assert role["parent_role_id"] == system_roles["company_admin"].id
        assert role["is_system_role"] is False
        assert role["created_by"] == "super-admin-1"
        assert role["permissions"] == {"canViewPayroll": True, "exports": ["csv"]}

    def test_create_missing_fields_is_400(self, client, super_admin_headers):
        response = client.post("/roles", headers=super_admin_headers, json={"name": "No key"})
        assert response.status_code == 400
        header = response.json()["header"]
        assert header["responseMessage"] == "Validation failed"
        assert "role_key" in header["responseDetail"]

    def test_create_level_out_of_range_is_400(self, client, super_admin_headers):
        response = client.post(
            "/roles",
            headers=super_admin_headers,
            json={"role_key": "too_low", "name": "Too Low", "hierarchy_level": 9}
        )
        assert response.status_code == 400

    def test_create_duplicate_key_is_400(self, client, super_admin_headers, system_roles):
        response = client.post(
            "/roles",
            headers=super_admin_headers,
            json={"role_key": "employee", "name": "Employee 2", "hierarchy_level": 8}
        )
        assert response.status_code == 400

    def test_create_with_missing_parent_is_404(self, client, super_admin_headers):
        response = client.post(
            "/roles",
            headers=super_admin_headers,
            json={"role_key": "lost", "name": "Lost", "hierarchy_level": 5, "parent_role_id": MISSING_ID}
        )
        assert response.status_code == 404

    def test_get_role(self, client, hr_staff_headers, system_roles):
        role_id = system_roles["hrbp"].id
        response = client.get(f"/roles/{role_id}", headers=hr_staff_headers)
        assert response.status_code == 200
        assert _body(response)["role_key"] == "hrbp"
        assert _body(response)["can_view_payroll"] is True

    def test_get_missing_role_is_404(self, client, hr_staff_headers):
        response = client.get(f"/roles/{MISSING_ID}", headers=hr_staff_headers)
        assert response.status_code == 404
        assert response.json()["header"]["responseMessage"] == "Role not found"

    def test_get_by_key(self, client, hr_staff_headers, system_roles):
        response = client.get("/roles/key/department_head", headers=hr_staff_headers)
        assert response.status_code == 200
        assert _body(response)["id"] == system_roles["department_head"].id

    def test_list_filters(self, client, hr_staff_headers, system_roles, custom_role_tree):
        response = client.get("/roles?is_system_role=false", headers=hr_staff_headers)
        assert [r["role_key"] for r in _body(response)] == ["regional_lead", "team_lead", "associate"]

        response = client.get("/roles?hierarchy_level=5", headers=hr_staff_headers)
        assert [r["role_key"] for r in _body(response)] == ["company_admin", "team_lead"]

    def test_by_hierarchy_level(self, client, hr_staff_headers, system_roles):
        response = client.get("/roles/hierarchy-level/7", headers=hr_staff_headers)
        assert response.status_code == 200
        assert [r["role_key"] for r in _body(response)] == ["manager"]

    def test_by_hierarchy_level_non_integer_is_400(self, client, hr_staff_headers):
        response = client.get("/roles/hierarchy-level/top", headers=hr_staff_headers)
        assert response.status_code == 400

    def test_update_role(self, client, provider_admin_headers, custom_role_tree):
        role_id = custom_role_tree["associate"].id
        response = client.put(
            f"/roles/{role_id}",
            headers=provider_admin_headers,
            json={"name": "Associate II", "can_approve_leaves": True}
        )
        assert response.status_code == 200
        body = _body(response)
        assert body["name"] == "Associate II"
        assert body["can_approve_leaves"] is True
        assert body["updated_by"] == "provider-admin-1"
        assert body["parent_role_id"] == custom_role_tree["team"].id

    def test_update_null_parent_detaches(self, client, provider_admin_headers, custom_role_tree):
        role_id = custom_role_tree["team"].id
        response = client.put(f"/roles/{role_id}", headers=provider_admin_headers, json={"parent_role_id": None})
        assert response.status_code == 200
        assert _body(response)["parent_role_id"] is None

    def test_update_cycle_is_400(self, client, provider_admin_headers, custom_role_tree):
        response = client.put(
            f"/roles/{custom_role_tree['regional'].id}",
            headers=provider_admin_headers,
            json={"parent_role_id": custom_role_tree["associate"].id, "hierarchy_level": 8}
        )
        assert response.status_code == 400
        assert response.json()["header"]["responseMessage"] == "Circular reference detected in role hierarchy"

    def test_update_system_role_is_403(self, client, super_admin_headers, system_roles):
        response = client.put(
            f"/roles/{system_roles['employee'].id}",
            headers=super_admin_headers,
            json={"name": "Staff"}
        )
        assert response.status_code == 403

    def test_delete_role(self, client, super_admin_headers, db_session, custom_role_tree):
        role_id = custom_role_tree["associate"].id
        response = client.delete(f"/roles/{role_id}", headers=super_admin_headers)
        assert response.status_code == 200
        assert response.json()["header"]["responseMessage"] == "Role deleted successfully"
        db_session.expire_all()
        assert db_session.query(Role).filter(Role.id == role_id).first() is None

    def test_delete_role_with_children_is_400(self, client, super_admin_headers, custom_role_tree):
        response = client.delete(f"/roles/{custom_role_tree['regional'].id}", headers=super_admin_headers)
        assert response.status_code == 400

    def test_delete_system_role_is_403(self, client, super_admin_headers, system_roles):
        response = client.delete(f"/roles/{system_roles['super_admin'].id}", headers=super_admin_headers)
        assert response.status_code == 403


class TestHierarchyEndpoints:

    def test_hierarchy(self, client, hr_staff_headers, custom_role_tree):
        response = client.get(f"/roles/{custom_role_tree['team'].id}/hierarchy", headers=hr_staff_headers)
        assert response.status_code == 200
        assert [r["role_key"] for r in _body(response)] == ["regional_lead", "team_lead", "associate"]

    def test_parents(self, client, hr_staff_headers, custom_role_tree):
        response = client.get(f"/roles/{custom_role_tree['associate'].id}/parents", headers=hr_staff_headers)
        assert [r["role_key"] for r in _body(response)] == ["regional_lead", "team_lead"]

    def test_children(self, client, hr_staff_headers, custom_role_tree):
        response = client.get(f"/roles/{custom_role_tree['associate'].id}/children", headers=hr_staff_headers)
        assert response.status_code == 200
        assert _body(response) == []

    def test_hierarchy_of_missing_role_is_404(self, client, hr_staff_headers):
        response = client.get(f"/roles/{MISSING_ID}/hierarchy", headers=hr_staff_headers)
        assert response.status_code == 404


class TestAccessEndpoints:

    def test_assign_menu_access(self, client, super_admin_headers, custom_role_tree):
        role_id = custom_role_tree["team"].id
        response = client.post(
            f"/roles/{role_id}/menu-access",
            headers=super_admin_headers,
            json={"menu_ids": ["dashboard", "leave"]}
        )
        assert response.status_code == 200
        assert _body(response) == {"id": role_id, "menu_access": ["dashboard", "leave"]}

    def test_update_permissions(self, client, super_admin_headers, custom_role_tree):
        role_id = custom_role_tree["team"].id
        response = client.put(
            f"/roles/{role_id}/permissions",
            headers=super_admin_headers,
            json={"permissions": {"can_approve_leaves": True}}
        )
        assert response.status_code == 200
        assert _body(response)["permissions"] == {"can_approve_leaves": True}

    @pytest.mark.parametrize("permissions", [{"canViewPayroll": "yes"}, {"can_manage_companies": 1}])
    def test_update_permissions_rejects_non_boolean_flags(
        self, client, super_admin_headers, custom_role_tree, permissions
    ):
        response = client.put(
            f"/roles/{custom_role_tree['team'].id}/permissions",
            headers=super_admin_headers,
            json={"permissions": permissions}
        )
        assert response.status_code == 400

    def test_initialize_endpoint(self, client, super_admin_headers, db_session):
        response = client.post("/roles/initialize", headers=super_admin_headers)
        assert response.status_code == 200
        assert len(_body(response)["created"]) == 8
        assert _body(response)["total_system_roles"] == 8

        response = client.post("/roles/initialize", headers=super_admin_headers)
        assert _body(response)["created"] == []

    def test_initialize_requires_admin(self, client, hr_staff_headers):
        response = client.post("/roles/initialize", headers=hr_staff_headers)
        assert response.status_code == 403
