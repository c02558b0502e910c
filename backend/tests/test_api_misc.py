from datetime import date, timedelta

from wealthify.services.money import add_months, month_key

TODAY = date.today()


def _budget(client, income=5000, expenses=1500):
    client.post("/income", json={"name": "Salary", "expected_monthly": income})
    client.post("/expenses", json={"name": "Rent", "category": "HOUSING", "amount": expenses})


class TestHealth:
    def test_health(self, make_client):
        resp = make_client().get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}


class TestBalance:
    def test_starts_at_zero(self, client):
        body = client.get("/balance").json()
        assert body["current_balance_cents"] == 0
        assert body["entries"] == []

    def test_first_update_sets_starting_balance(self, client):
        first = client.post("/balance", json={"balance": 2500.75, "notes": "opening"}).json()
        assert first["current_balance_cents"] == 250075
        assert first["starting_balance_cents"] == 250075
        assert first["current_balance"] == 2500.75

        second = client.post("/balance", json={"balance": 3000}).json()
        assert second["current_balance_cents"] == 300000
        assert second["starting_balance_cents"] == 250075

        newest = second["entries"][0]
        assert newest["entry_type"] == "MANUAL_UPDATE"
        assert newest["previous_amount_cents"] == 250075
        assert newest["change_amount_cents"] == 49925

    def test_negative_rejected(self, client):
        assert client.post("/balance", json={"balance": -5}).status_code == 422

    def test_only_last_ten_entries(self, client):
        for i in range(12):
            client.post("/balance", json={"balance": 100 + i})
        assert len(client.get("/balance").json()["entries"]) == 10

    def test_balance_on_user(self, client):
        client.post("/balance", json={"balance": 42})
        assert client.get("/auth/me").json()["current_balance_cents"] == 4200


class TestPurchasePlans:
    def _create(self, client, **kw) -> dict:
        payload = {
            "name": "First home",
            "purchase_type": "house",
            "target_amount": 450000,
            "current_saved": 20000,
            "desired_timeline_months": 36,
            "down_payment_ratio": 0.1,
        }
        payload.update(kw)
        resp = client.post("/purchase-plans", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()

    def test_create_and_list(self, client):
        plan = self._create(client)
        assert plan["target_amount_cents"] == 45000000
        assert plan["is_active"] is True
        assert [p["id"] for p in client.get("/purchase-plans").json()] == [plan["id"]]

    def test_update_with_id_in_body(self, client):
        plan = self._create(client)
        resp = client.put(
            "/purchase-plans",
            json={"id": plan["id"], "current_saved": 25000, "notes": "raised deposit"},
        )
        assert resp.status_code == 200
        assert resp.json()["current_saved_cents"] == 2500000
        assert resp.json()["notes"] == "raised deposit"
        assert resp.json()["target_amount_cents"] == 45000000

    def test_delete_is_soft(self, client, db):
        from wealthify.models import PurchasePlan

        plan = self._create(client)
        assert client.delete(f"/purchase-plans/{plan['id']}").status_code == 204
        assert client.get("/purchase-plans").json() == []
        assert client.put("/purchase-plans", json={"id": plan["id"], "name": "x"}).status_code == 404
        assert db.get(PurchasePlan, plan["id"]).is_active is False

    def test_invalid_type(self, client):
        resp = client.post(
            "/purchase-plans",
            json={"name": "Boat", "purchase_type": "boat", "target_amount": 1, "desired_timeline_months": 1},
        )
        assert resp.status_code == 422


class TestSnapshotsApi:
    def test_create_and_list(self, client):
        _budget(client)
        resp = client.post("/snapshots")
        assert resp.status_code == 201
        snap = resp.json()
        assert snap["month"] == month_key(TODAY)
        assert snap["total_savings_cents"] == 350000

        again = client.post("/snapshots").json()
        assert again["id"] == snap["id"]
        assert [s["id"] for s in client.get("/snapshots").json()] == [snap["id"]]


class TestDashboard:
    def test_shape(self, client):
        _budget(client)
        client.post("/balance", json={"balance": 6000})
        client.post(
            "/goals",
            json={
                "name": "Emergency fund",
                "target_amount": 9000,
                "target_date": (TODAY + timedelta(days=200)).isoformat(),
                "category": "EMERGENCY_FUND",
            },
        )

        resp = client.get("/dashboard")
        assert resp.status_code == 200
        body = resp.json()
        assert body["balance"]["current_balance_cents"] == 600000
        assert body["budget"]["total_income_cents"] == 500000
        assert body["budget"]["emergency_fund_months"] == 4
        assert len(body["ledger"]) == 6
        assert body["current_month"]["month"] == month_key(TODAY)
        assert body["current_month"]["income_cents"] == 500000
        assert [g["name"] for g in body["goals"]["top"]] == ["Emergency fund"]
        assert body["goals"]["allocations"][0]["recommended_cents"] == 350000
        assert body["balance"]["calculated_balance_cents"] == 950000
        assert body["lifestyle"]["recurring_expenses_cents"] == 150000
        assert body["lifestyle"]["emergency_fund_needed_cents"] == 900000


class TestAnalytics:
    def test_trends(self, client):
        _budget(client)
        body = client.get("/analytics/trends", params={"months": 3}).json()
        assert [r["month"] for r in body["ledger"]] == [
            month_key(add_months(TODAY, -2)), month_key(add_months(TODAY, -1)), month_key(TODAY),
        ]
        assert body["snapshots"] == []

    def test_insights(self, client):
        _budget(client)
        resp = client.get("/analytics/insights")
        assert resp.status_code == 200
        titles = [i["title"] for i in resp.json()]
        assert "Excellent Savings Rate!" in titles
        assert "Build Emergency Fund" in titles

    def test_comparison_empty_without_history(self, client):
        assert client.get("/analytics/comparison").json() == []

    def test_runway(self, client):
        _budget(client, income=1000, expenses=2000)
        client.post("/balance", json={"balance": 3000})
        body = client.get("/analytics/runway").json()
        assert body["sustainable"] is False
        assert body["total_runway_months"] == 1.5
        assert body["emergency_fund_months"] == 1.5

    def test_projections(self, client):
        _budget(client)
        rows = client.get("/analytics/projections", params={"months": 2}).json()
        assert [r["projected_balance_cents"] for r in rows] == [350000, 700000]

    def test_risk(self, client):
        _budget(client)
        client.post("/balance", json={"balance": 6000})
        body = client.get("/analytics/risk").json()
        assert body["risk_level"] == "moderate"
        assert body["risk_factors"] == ["Single income source"]
        assert body["emergency_fund_months"] == 4
        assert body["income_streams"] == 1

    def test_goal_allocations(self, client):
        _budget(client)
        body = client.get("/analytics/goal-allocations").json()
        assert body["available_monthly_savings_cents"] == 350000
        assert body["allocations"] == []

    def test_affordability(self, client):
        _budget(client)
        resp = client.post("/analytics/affordability", json={"target_amount": 7000})
        assert resp.status_code == 200
        body = resp.json()
        assert body["timeline_months"] == 2
        assert body["feasible"] is True

    def test_lifestyle(self, client):
        _budget(client)
        client.post("/income", json={"name": "Bonus", "expected_monthly": 1000, "frequency": "ONE_TIME"})
        body = client.get("/analytics/lifestyle").json()
        assert body["recurring_income_cents"] == 500000
        assert body["one_time_income_cents"] == 100000
        assert body["recurring_burn_rate"] == 30
        assert body["income_source_count"] == 1
        assert body["risk_score"] == 20
        assert body["sustainability_rating"] == "good"

    def test_burn_scenarios(self, client):
        _budget(client)
        body = client.get("/analytics/burn-scenarios").json()
        assert body["current"] == 30
        assert body["income_down_20"] == 37.5
        assert body["expenses_up_25"] == 37.5

    def test_accumulated_balance(self, client):
        client.post("/balance", json={"balance": 1000})
        _budget(client)
        body = client.get("/analytics/accumulated-balance").json()
        assert body["starting_balance_cents"] == 100000
        assert [r["month"] for r in body["monthly_breakdown"]] == [month_key(TODAY)]
        assert body["current_calculated_balance_cents"] == 450000

    def test_accumulated_balance_bad_month(self, client):
        resp = client.get("/analytics/accumulated-balance", params={"from_month": "2025-13"})
        assert resp.status_code == 422

    def test_lifestyle_affordability_with_given_goals(self, client):
        _budget(client)
        resp = client.post(
            "/analytics/lifestyle-affordability",
            json={"goals": [{"amount": 12000, "months_to_target": 12}]},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["monthly_goal_allocation_cents"] == 100000
        assert body["remaining_after_goals_cents"] == 250000
        assert body["current_affordability"] == "excellent"

    def test_lifestyle_affordability_defaults_to_open_goals(self, client):
        _budget(client, income=2000, expenses=1500)
        client.post(
            "/goals",
            json={
                "name": "Car",
                "target_amount": 12000,
                "target_date": (TODAY + timedelta(days=360)).isoformat(),
            },
        )
        body = client.post("/analytics/lifestyle-affordability", json={}).json()
        assert body["monthly_goal_allocation_cents"] == 100000
        assert body["remaining_after_goals_cents"] == -50000
        assert body["current_affordability"] == "stressed"
        assert body["recommended_income_increase_cents"] == 70000
