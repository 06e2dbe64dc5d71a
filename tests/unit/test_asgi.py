"""
Unit tests for the FastAPI ASGI application — REST endpoints.

Uses FastAPI's TestClient over create_app() with an injected, populated
Cache and a mocked StoreWriter, so the lifespan (settings, database) is
never exercised.
"""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from railway import ErrorCode
from railway.result import Result

from pocket_http_db.asgi import HEALTH_MESSAGE, create_app
from pocket_http_db.cache import Cache

API_KEY = "test-key"
AUTH = {"Authorization": API_KEY}


@pytest.fixture()
def writer() -> MagicMock:
    writer = MagicMock()
    writer.update_application.return_value = Result.success(1)
    writer.remove_application.return_value = Result.success(1)
    writer.update_first_date_surpassed.return_value = Result.success(1)
    writer.update_load_balancer.return_value = Result.success(1)
    writer.activate_blockchain.return_value = Result.success(1)
    return writer


@pytest.fixture()
def client(cache: Cache, writer: MagicMock) -> TestClient:
    """TestClient without running the lifespan (no real startup)."""
    app = create_app(cache=cache, writer=writer, api_keys=frozenset({API_KEY}))
    return TestClient(app, raise_server_exceptions=False)


# ─────────────────────── Authorization ───────────────────────


class TestAuthorization:
    def test_health_check_needs_no_key(self, client: TestClient) -> None:
        """
        GIVEN no Authorization header
        WHEN GET / is called
        THEN the health message is returned with 200.
        """
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == HEALTH_MESSAGE

    def test_missing_key_is_unauthorized(self, client: TestClient) -> None:
        response = client.get("/application")

        assert response.status_code == 401
        assert response.text == "Unauthorized"

    def test_unknown_key_is_unauthorized(self, client: TestClient) -> None:
        response = client.get("/pay_plan", headers={"Authorization": "wrong"})

        assert response.status_code == 401

    def test_no_configured_keys_rejects_everything_but_health(
        self, cache: Cache, writer: MagicMock,
    ) -> None:
        client = TestClient(create_app(cache=cache, writer=writer))

        assert client.get("/application", headers={"Authorization": ""}).status_code == 401
        assert client.get("/").status_code == 200


# ─────────────────────── Applications ───────────────────────


class TestApplicationRoutes:
    def test_list_applications(self, client: TestClient) -> None:
        response = client.get("/application", headers=AUTH)

        assert response.status_code == 200
        assert {item["application_id"] for item in response.json()} == {"app1", "app2", "app3"}

    def test_limits_route_is_not_taken_for_an_id(self, client: TestClient) -> None:
        """
        GIVEN the fixed /application/limits path next to /application/{id}
        WHEN GET /application/limits is called
        THEN the limits view is returned.
        """
        response = client.get("/application/limits", headers=AUTH)

        assert response.status_code == 200
        limits = {item["app_id"]: item["daily_limit"] for item in response.json()}
        assert limits == {"app1": 250000, "app2": 0, "app3": 0}

    def test_get_application(self, client: TestClient) -> None:
        response = client.get("/application/app1", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "name-app1"
        assert body["status"] == "IN_SERVICE"
        assert body["limits"]["plan_type"] == "FREETIER_V0"

    def test_get_unknown_application_is_404(self, client: TestClient) -> None:
        response = client.get("/application/missing", headers=AUTH)

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == ErrorCode.NOT_FOUND.value
        assert "missing" in body["message"]

    def test_create_application(self, client: TestClient, writer: MagicMock) -> None:
        """
        GIVEN a store that assigns id "app10"
        WHEN POST /application is called on FREETIER_V0
        THEN the created application is returned with its limits.
        """
        writer.write_application.side_effect = lambda app: Result.success(
            replace(app, application_id="app10"),
        )

        response = client.post(
            "/application",
            headers=AUTH,
            json={"user_id": "user3", "name": "new", "pay_plan_type": "FREETIER_V0"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["application_id"] == "app10"
        assert body["limits"]["daily_limit"] == 250000
        assert client.get("/user/user3/application", headers=AUTH).status_code == 200

    def test_create_application_ignores_limits_in_body(
        self, client: TestClient, writer: MagicMock,
    ) -> None:
        """
        GIVEN a create request without pay plan that sends its own limits
        WHEN POST /application is called
        THEN the served limits are the empty plan's, not the submitted ones.
        """
        writer.write_application.side_effect = lambda app: Result.success(
            replace(app, application_id="app10"),
        )

        response = client.post(
            "/application",
            headers=AUTH,
            json={"user_id": "user3", "limits": {"plan_type": "ENTERPRISE", "daily_limit": 999999999}},
        )

        assert response.status_code == 200
        assert response.json()["limits"]["plan_type"] == ""
        assert response.json()["limits"]["daily_limit"] == 0

    def test_create_application_store_failure_is_500(
        self, client: TestClient, writer: MagicMock,
    ) -> None:
        writer.write_application.return_value = Result.failure(
            ErrorCode.DATABASE_ERROR, "Failed to write application",
        )

        response = client.post("/application", headers=AUTH, json={"name": "new"})

        assert response.status_code == 500
        assert response.json()["error_code"] == ErrorCode.DATABASE_ERROR.value

    def test_update_pay_plan(self, client: TestClient) -> None:
        response = client.put(
            "/application/app1", headers=AUTH, json={"pay_plan_type": "TEST_PLAN_10K"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["limits"]["daily_limit"] == 10000
        assert body["pay_plan_type"] == ""

    def test_remove_with_changes_is_400(self, client: TestClient) -> None:
        response = client.put(
            "/application/app1", headers=AUTH, json={"name": "x", "remove": True},
        )

        assert response.status_code == 400

    def test_remove_application(self, client: TestClient) -> None:
        response = client.put("/application/app2", headers=AUTH, json={"remove": True})

        assert response.status_code == 200
        assert response.json()["status"] == "AWAITING_GRACE_PERIOD"

    def test_invalid_status_is_rejected_by_validation(self, client: TestClient) -> None:
        response = client.put("/application/app1", headers=AUTH, json={"status": "BOGUS"})

        assert response.status_code == 422

    def test_first_date_surpassed(self, client: TestClient) -> None:
        response = client.post(
            "/application/first_date_surpassed",
            headers=AUTH,
            json={"application_ids": ["app1", "app2"], "first_date_surpassed": "2022-06-01T00:00:00"},
        )

        assert response.status_code == 200
        assert [item["first_date_surpassed"] for item in response.json()] == [
            "2022-06-01T00:00:00",
            "2022-06-01T00:00:00",
        ]

    def test_first_date_surpassed_unknown_id_is_404(self, client: TestClient) -> None:
        response = client.post(
            "/application/first_date_surpassed",
            headers=AUTH,
            json={"application_ids": ["ghost"], "first_date_surpassed": "2022-06-01T00:00:00"},
        )

        assert response.status_code == 404


# ─────────────────────── Load balancers and users ───────────────────────


class TestLoadBalancerRoutes:
    def test_get_load_balancer_lists_applications(self, client: TestClient) -> None:
        response = client.get("/load_balancer/lb1", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert [app["application_id"] for app in body["applications"]] == ["app1", "app2"]
        assert body["application_ids"] == []

    def test_update_load_balancer_name(self, client: TestClient) -> None:
        response = client.put("/load_balancer/lb1", headers=AUTH, json={"name": "renamed"})

        assert response.status_code == 200
        assert response.json()["name"] == "renamed"

    def test_create_with_unknown_member_is_500(
        self, client: TestClient, writer: MagicMock,
    ) -> None:
        """
        GIVEN a store that accepted a load balancer naming an uncached application
        WHEN POST /load_balancer is called
        THEN the inconsistency surfaces as a 500.
        """
        writer.write_load_balancer.side_effect = lambda lb: Result.success(
            replace(lb, lb_id="lb2"),
        )

        response = client.post(
            "/load_balancer", headers=AUTH, json={"name": "x", "application_ids": ["ghost"]},
        )

        assert response.status_code == 500
        assert "inconsistent reference" in response.json()["message"]

    def test_user_routes(self, client: TestClient) -> None:
        assert client.get("/user/user1/load_balancer", headers=AUTH).status_code == 200
        assert client.get("/user/nobody/load_balancer", headers=AUTH).status_code == 404
        assert client.get("/user/nobody/application", headers=AUTH).status_code == 404


# ─────────────────────── Blockchains, pay plans, redirects ───────────────────────


class TestBlockchainRoutes:
    def test_list_and_get(self, client: TestClient) -> None:
        assert len(client.get("/blockchain", headers=AUTH).json()) == 1
        assert client.get("/blockchain/0021", headers=AUTH).json()["ticker"] == "ETH"
        assert client.get("/blockchain/9999", headers=AUTH).status_code == 404

    def test_activate_returns_flag(self, client: TestClient, writer: MagicMock) -> None:
        response = client.post("/blockchain/0021/activate", headers=AUTH, json=False)

        assert response.status_code == 200
        assert response.json() is False
        writer.activate_blockchain.assert_called_once_with("0021", False)

    def test_create_blockchain(self, client: TestClient, writer: MagicMock) -> None:
        writer.write_blockchain.side_effect = lambda chain: Result.success(chain)

        response = client.post(
            "/blockchain",
            headers=AUTH,
            json={"blockchain_id": "0040", "ticker": "ONE", "blockchain_aliases": ["harmony"]},
        )

        assert response.status_code == 200
        assert response.json()["blockchain_aliases"] == ["harmony"]

    def test_redirect_for_unknown_blockchain_is_500(
        self, client: TestClient, writer: MagicMock,
    ) -> None:
        writer.write_redirect.side_effect = lambda redirect: Result.success(redirect)

        response = client.post(
            "/redirect",
            headers=AUTH,
            json={"blockchain_id": "9999", "alias": "x", "loadbalancer": "lb1", "domain": "x.io"},
        )

        assert response.status_code == 500


class TestPayPlanRoutes:
    def test_list_pay_plans(self, client: TestClient) -> None:
        response = client.get("/pay_plan", headers=AUTH)

        assert {plan["plan_type"] for plan in response.json()} == {
            "FREETIER_V0",
            "PAY_AS_YOU_GO_V0",
            "TEST_PLAN_10K",
        }

    def test_get_pay_plan_upper_cases_type(self, client: TestClient) -> None:
        response = client.get("/pay_plan/test_plan_10k", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"plan_type": "TEST_PLAN_10K", "daily_limit": 10000}
