from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from main import app, get_db
from services import local_today
from storage import BUDGETS_KEY, EXPENSES_KEY, LocalStorage


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _post_expense(client: TestClient, **overrides) -> dict:
    payload = {
        "amount": 12.5,
        "description": "Lunch",
        "category": "food",
        "date": local_today().isoformat(),
    }
    payload.update(overrides)
    resp = client.post("/api/expenses", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_and_fetch_expense(client):
    created = _post_expense(client, tags="Work, work")
    assert created["amount"] == 12.5
    assert created["type"] == "expense"
    assert created["tags"] == ["Work"]

    resp = client.get(f"/api/expenses/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == created


def test_invalid_expense_is_rejected(client):
    resp = client.post("/api/expenses", json={"amount": 10, "category": "food"})
    assert resp.status_code == 422
    assert client.get("/api/expenses").json() == []


def test_amounts_beyond_cents_are_rejected(client):
    resp = client.post(
        "/api/expenses",
        json={"amount": "12.345", "description": "Lunch", "category": "food"},
    )
    assert resp.status_code == 422
    assert client.get("/api/expenses").json() == []


def test_list_filters(client):
    _post_expense(client, description="Groceries")
    _post_expense(client, description="Paycheck", category="income", type="income")

    assert [e["description"] for e in client.get("/api/expenses?q=groc").json()] == ["Groceries"]
    assert [e["description"] for e in client.get("/api/expenses?type=income").json()] == ["Paycheck"]
    assert client.get("/api/expenses?type=bogus").status_code == 422


def test_update_and_delete_expense(client):
    created = _post_expense(client)

    resp = client.put(f"/api/expenses/{created['id']}", json={"amount": 20})
    assert resp.status_code == 200
    assert resp.json()["amount"] == 20.0
    assert resp.json()["id"] == created["id"]

    assert client.delete(f"/api/expenses/{created['id']}").status_code == 204
    assert client.get(f"/api/expenses/{created['id']}").status_code == 404
    assert client.delete(f"/api/expenses/{created['id']}").status_code == 404
    assert client.put("/api/expenses/missing", json={"amount": 1}).status_code == 404
    assert client.get("/api/dashboard").json()["summary"]["total_expenses"] == 0


def test_category_and_date_range_routes(client):
    today = local_today()
    _post_expense(client, category="bills", date=(today - timedelta(days=40)).isoformat())
    _post_expense(client, category="food")

    assert len(client.get("/api/expenses/category/bills").json()) == 1

    resp = client.get(
        "/api/expenses/date-range",
        params={"start": (today - timedelta(days=1)).isoformat(), "end": today.isoformat()},
    )
    assert resp.status_code == 200
    assert [e["category"] for e in resp.json()] == ["food"]

    bad = client.get(
        "/api/expenses/date-range",
        params={"start": today.isoformat(), "end": (today - timedelta(days=1)).isoformat()},
    )
    assert bad.status_code == 400


def test_budget_routes(client):
    assert client.post("/api/budgets", json={"category": "food", "limit": 100}).status_code == 201
    client.post("/api/budgets", json={"category": "food", "limit": 50, "period": "weekly"})

    budgets = client.get("/api/budgets").json()
    assert budgets == [{"category": "food", "limit": 50.0, "period": "weekly"}]

    resp = client.put("/api/budgets/food", json={"limit": 80})
    assert resp.json()["limit"] == 80.0
    assert client.put("/api/budgets/travel", json={"limit": 80}).status_code == 404

    _post_expense(client, amount=70)
    status = client.get("/api/budgets/status").json()
    assert status[0]["spent"] == 70.0
    assert status[0]["percentage"] == 87.5
    assert status[0]["status"] == "near"

    comparison = client.get("/api/analytics/budget-comparison").json()
    assert comparison == status

    assert client.delete("/api/budgets/food").status_code == 204
    assert client.delete("/api/budgets/food").status_code == 404


def test_zero_limit_budget_can_change_period(client, session_factory):
    with session_factory() as session:
        LocalStorage(session).set_item(
            BUDGETS_KEY, '[{"category": "food", "limit": 0, "period": "monthly"}]'
        )

    resp = client.put("/api/budgets/food", json={"period": "weekly"})
    assert resp.status_code == 200
    assert resp.json() == {"category": "food", "limit": 0.0, "period": "weekly"}


def test_analytics_routes(client):
    _post_expense(client, amount=30, category="food")
    _post_expense(client, amount=10, category="transport")

    spending = client.get("/api/analytics/spending-by-category").json()
    assert spending["period"] == "this_month"
    assert spending["total"] == 40.0
    assert [c["category"] for c in spending["categories"]] == ["food", "transport"]

    assert client.get("/api/analytics/spending-by-category?period=nope").status_code == 400

    trends = client.get("/api/analytics/monthly-trends").json()
    assert len(trends) == 6
    assert trends[-1]["expenses"] == 40.0
    assert client.get("/api/analytics/monthly-trends?months=0").status_code == 422


def test_dashboard_and_insights(client):
    _post_expense(client, amount=75, category="travel")
    _post_expense(client, amount=500, description="Salary", category="income", type="income")

    summary = client.get("/api/dashboard").json()["summary"]
    assert summary["balance"] == 425.0
    assert summary["category_totals"] == {"travel": 75.0}

    report = client.get("/api/insights").json()
    titles = [i["title"] for i in report["insights"]]
    assert "Travel is your top expense" in titles
    assert "Average transaction: $75.00" in titles
    assert report["stats"]["total_transactions"] == 2


def test_corrupt_storage_returns_server_error(client, session_factory):
    with session_factory() as session:
        LocalStorage(session).set_item(EXPENSES_KEY, "not json")

    resp = client.get("/api/expenses")
    assert resp.status_code == 500
    assert "malformed" in resp.json()["detail"]
