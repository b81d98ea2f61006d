import uuid


class TestDashboard:
    def test_initial_state(self, client, signed_in):
        body = client.get("/api/v1/dashboard/").json()
        assert body["selected_property_id"] is None
        assert body["documents_heading"] == "All Documents"
        assert body["show_property_form"] is False
        assert body["property_version"] == 0
        assert body["document_version"] == 0
        assert body["owner"] == {
            "full_name": "Olivia Owner",
            "verification_status": "pending",
            "badge": {"color": "yellow", "text": "Pending"},
        }

    def test_verified_badge(self, client, backend):
        backend.add_account("v@example.com", "pw", full_name="Vera", verification_status="verified")
        client.post("/api/v1/auth/sign-in", json={"email": "v@example.com", "password": "pw"})
        badge = client.get("/api/v1/dashboard/").json()["owner"]["badge"]
        assert badge == {"color": "green", "text": "Verified"}

    def test_missing_profile_renders_without_owner(self, client, signed_in, backend):
        backend.tables["house_owners"].clear()
        resp = client.get("/api/v1/dashboard/")
        assert resp.status_code == 200
        assert resp.json()["owner"] is None

    def test_profile_failure_renders_without_owner(self, client, signed_in, backend):
        backend.fail_on["select:house_owners"] = "timeout"
        assert client.get("/api/v1/dashboard/").json()["owner"] is None

    def test_property_insert_bumps_version_and_closes_panel(self, client, signed_in, api):
        client.put("/api/v1/dashboard/panel", json={"show_property_form": True})
        api.add_property(client)
        body = client.get("/api/v1/dashboard/").json()
        assert body["property_version"] == 1
        assert body["show_property_form"] is False
        assert body["document_version"] == 0

    def test_upload_bumps_document_version_only(self, client, signed_in, api):
        doc = api.upload(client).json()["document"]
        client.delete(f"/api/v1/documents/{doc['id']}", params={"confirm": "true"})
        body = client.get("/api/v1/dashboard/").json()
        assert body["document_version"] == 1
        assert body["property_version"] == 0

    def test_select_unknown_property(self, client, signed_in):
        resp = client.put("/api/v1/dashboard/selection", json={"property_id": str(uuid.uuid4())})
        assert resp.status_code == 404

    def test_selection_filters_document_list(self, client, signed_in, api):
        home = api.add_property(client, name="Home")
        shop = api.add_property(client, name="Shop", property_type="commercial")
        api.upload(client, "home.pdf", property_id=home["id"])
        api.upload(client, "shop.pdf", property_id=shop["id"])
        api.upload(client, "passport.png")

        all_docs = client.get("/api/v1/dashboard/documents").json()
        assert {d["file_name"] for d in all_docs} == {"home.pdf", "shop.pdf", "passport.png"}

        state = client.put("/api/v1/dashboard/selection", json={"property_id": shop["id"]}).json()
        assert state["documents_heading"] == "Property Documents"
        docs = client.get("/api/v1/dashboard/documents").json()
        assert [d["file_name"] for d in docs] == ["shop.pdf"]

    def test_sign_in_starts_fresh_state(self, client, signed_in, api):
        prop = api.add_property(client)
        client.put("/api/v1/dashboard/selection", json={"property_id": prop["id"]})
        client.post("/api/v1/auth/sign-out")
        client.post(
            "/api/v1/auth/sign-in",
            json={"email": "olivia@example.com", "password": "hunter22"},
        )
        assert client.get("/api/v1/dashboard/").json()["selected_property_id"] is None


class TestLeaseScenario:
    def test_lease_listed_under_its_property(self, client, signed_in, api):
        villa = api.add_property(client, name="Sunset Villa")
        api.add_property(client, name="Harbor Loft", property_type="apartment")
        client.put("/api/v1/dashboard/selection", json={"property_id": villa["id"]})

        resp = api.upload(client, "lease.pdf", b"L" * (2 * 1024 * 1024), document_type="property_deed")
        assert resp.status_code == 201

        docs = client.get("/api/v1/dashboard/documents").json()
        assert len(docs) == 1
        assert docs[0]["file_name"] == "lease.pdf"
        assert docs[0]["document_type_label"] == "Property Deed"
        assert docs[0]["file_size_label"] == "2.0 MB"
