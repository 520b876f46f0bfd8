"""
Discount API tests.

Verifies:
- Public tier listing
- Points balance and redemption for the logged-in user only
- Redemption error bodies
"""

import pytest

from storefront.services import discount_service


class TestDiscountOptions:

    def test_options_are_public(self, client, db_session):
        response = client.get("/api/discount/options")
        assert response.status_code == 200
        assert response.get_json() == [
            {"points": 20, "discount": 10},
            {"points": 40, "discount": 15},
            {"points": 60, "discount": 20},
            {"points": 80, "discount": 25},
        ]


class TestPoints:

    def test_requires_authentication(self, client, db_session):
        assert client.get("/api/discount/points").status_code == 401

    def test_balance(self, client, make_user, auth_headers):
        user = make_user("saver", discount_points=42)
        response = client.get("/api/discount/points", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.get_json() == {"points": 42}


class TestApplyDiscount:

    def test_redeem(self, client, make_user, auth_headers):
        user = make_user("saver", discount_points=45)
        headers = auth_headers(user)

        response = client.post("/api/discount/apply", json={"discount": 15}, headers=headers)
        assert response.status_code == 200
        assert response.get_json() == {"discount": 15, "updatedPoints": 5}

        assert client.get("/api/discount/points", headers=headers).get_json() == {"points": 5}

    def test_insufficient_points(self, client, make_user, auth_headers):
        user = make_user("short", discount_points=10)
        headers = auth_headers(user)

        response = client.post("/api/discount/apply", json={"discount": 10}, headers=headers)
        assert response.status_code == 400
        body = response.get_json()
        assert body["error"] == "Not enough discount points"
        assert body["details"] == {"required": 20, "available": 10}

        assert client.get("/api/discount/points", headers=headers).get_json() == {"points": 10}

    @pytest.mark.parametrize("body,error", [
        ({}, "Discount value is required"),
        ({"discount": 0}, "Discount value is required"),
        ({"discount": 12}, "Invalid discount option"),
        ({"discount": "lots"}, "Invalid discount option"),
    ])
    def test_invalid_requests(self, client, make_user, auth_headers, body, error):
        user = make_user("saver", discount_points=100)
        response = client.post("/api/discount/apply", json=body, headers=auth_headers(user))
        assert response.status_code == 400
        assert response.get_json() == {"error": error}

    def test_requires_authentication(self, client, db_session):
        assert client.post("/api/discount/apply", json={"discount": 10}).status_code == 401


class TestHistory:

    def test_history_after_order_and_redeem(self, client, shopper_headers, order_payload):
        client.post("/api/orders", json=order_payload("shopper", total=800), headers=shopper_headers)
        client.post("/api/discount/apply", json={"discount": 10}, headers=shopper_headers)

        response = client.get("/api/discount/history", headers=shopper_headers)
        assert response.status_code == 200
        history = response.get_json()
        assert [(row["type"], row["points"], row["balanceAfter"]) for row in history] == [
            ("REDEEM", -20, 0),
            ("EARN", 20, 20),
        ]

    def test_limit_is_clamped(self, client, shopper_headers):
        response = client.get("/api/discount/history?limit=0", headers=shopper_headers)
        assert response.status_code == 200
        assert response.get_json() == []

    def test_unexpected_failure_is_a_json_500(self, client, shopper_headers, monkeypatch):
        def _boom(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(discount_service, "points_history", _boom)

        response = client.get("/api/discount/history", headers=shopper_headers)
        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}
