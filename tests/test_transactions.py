"""
Commit and rollback tests.

Verifies:
- A failed commit is reported as an error and leaves nothing behind
- commit_session never retries a commit after rolling back
- run_in_transaction replays the whole unit of work after a lock failure
"""

import pytest
from sqlalchemy.exc import OperationalError

from bakery.extensions import db
from bakery.models import InventoryMovement, Warehouse
from bakery.services import concurrency, inventory_service


@pytest.fixture
def flaky_commit(monkeypatch):
    """Make the next commit fail with a lock error; later commits go through."""
    real_commit = db.session.commit
    calls = {"count": 0}

    def commit():
        calls["count"] += 1
        if calls["count"] == 1:
            raise OperationalError("COMMIT", {}, Exception("database is locked"))
        return real_commit()

    monkeypatch.setattr(db.session, "commit", commit)
    monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)
    return calls


class TestCommitSession:

    def test_failed_commit_is_not_reported_as_success(self, client, db_session, manager_headers, flaky_commit):
        resp = client.post("/api/warehouses", headers=manager_headers, json={"name": "Lost WH"})
        assert resp.status_code == 500
        assert resp.get_json() == {"message": "Internal server error"}
        assert flaky_commit["count"] == 1
        assert db_session.query(Warehouse).filter_by(name="Lost WH").count() == 0

    def test_next_request_commits_normally(self, client, db_session, manager_headers, flaky_commit):
        client.post("/api/warehouses", headers=manager_headers, json={"name": "Lost WH"})
        resp = client.post("/api/warehouses", headers=manager_headers, json={"name": "Kept WH"})
        assert resp.status_code == 201
        assert [w.name for w in db_session.query(Warehouse)] == ["Kept WH"]

    def test_rolls_back_and_raises(self, db_session, flaky_commit):
        db_session.add(Warehouse(name="Pending WH"))
        with pytest.raises(OperationalError):
            concurrency.commit_session()
        assert flaky_commit["count"] == 1
        assert db_session.query(Warehouse).count() == 0


class TestRunInTransaction:

    def test_replays_unit_of_work(self, db_session, stock, flaky_commit):
        inventory, movement = inventory_service.adjust_inventory(stock.id, adjust_type="add", quantity=5)
        assert flaky_commit["count"] == 2
        assert inventory.quantity == 55
        assert movement.quantity == 5

        db_session.expire_all()
        types = [m.movement_type for m in db_session.query(InventoryMovement).filter_by(inventory_id=stock.id)]
        assert types == ["STOCK_IN", "ADD"]
