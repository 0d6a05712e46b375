"""
Tests for the /services catalog.
"""
NEW_SERVICE = {"name": "Window Washing", "description": "Inside and out", "price": 40}


class TestCatalog:

    def test_public_list_hides_inactive(self, client, service, db):
        assert [s["name"] for s in client.get("/services").json()] == ["Deep Cleaning"]

        service.active = False
        db.commit()
        assert client.get("/services").json() == []
        # still reachable by id
        assert client.get(f"/services/{service.id}").status_code == 200

    def test_admin_sees_everything(self, client, admin_headers, service, db):
        service.active = False
        db.commit()
        assert len(client.get("/services/admin/all", headers=admin_headers).json()) == 1

    def test_unknown_service(self, client):
        assert client.get("/services/999").status_code == 404


class TestAdminWrites:

    def test_create_with_default_icon(self, client, admin_headers):
        r = client.post("/services", json=NEW_SERVICE, headers=admin_headers)

        assert r.status_code == 201
        assert r.json()["icon_name"] == "WrenchIcon"
        assert r.json()["active"] is True

    def test_create_requires_admin(self, client, customer_headers):
        assert client.post("/services", json=NEW_SERVICE, headers=customer_headers).status_code == 403

    def test_negative_price_rejected(self, client, admin_headers):
        r = client.post("/services", json={**NEW_SERVICE, "price": -1}, headers=admin_headers)
        assert r.status_code == 422

    def test_partial_update(self, client, admin_headers, service):
        r = client.patch(f"/services/{service.id}", json={"price": 95}, headers=admin_headers)

        assert r.status_code == 200
        assert r.json()["price"] == 95
        assert r.json()["name"] == "Deep Cleaning"

    def test_delete_unused(self, client, admin_headers, service):
        r = client.delete(f"/services/{service.id}", headers=admin_headers)

        assert r.json() == {"ok": True, "deactivated": False}
        assert client.get(f"/services/{service.id}").status_code == 404

    def test_delete_with_bookings_deactivates(self, client, admin_headers, customer_headers, service):
        client.post(
            "/bookings",
            json={"service_id": service.id, "date": "2024-06-11", "time": "10:00"},
            headers=customer_headers,
        )

        r = client.delete(f"/services/{service.id}", headers=admin_headers)

        assert r.json() == {"ok": True, "deactivated": True}
        assert client.get(f"/services/{service.id}").json()["active"] is False
