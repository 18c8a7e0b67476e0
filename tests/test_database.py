import importlib

import config
import database


def test_transactions_are_off_by_default(monkeypatch):
    monkeypatch.delenv("MONGO_TRANSACTIONS", raising=False)
    try:
        assert importlib.reload(config).MONGO_TRANSACTIONS is False
    finally:
        importlib.reload(config)


def test_transaction_yields_no_session_when_disabled(monkeypatch):
    monkeypatch.setattr(database, "client", object())
    monkeypatch.setattr(config, "MONGO_TRANSACTIONS", False)
    with database.transaction() as session:
        assert session is None


def test_soft_delete_and_restore_round(mongo):
    oid = database.brands.insert({"name": "Acme", "slug": "acme"})
    assert database.brands.soft_delete(oid, None)
    assert database.brands.get(oid) is None
    assert not database.brands.soft_delete(oid, None)
    docs, total = database.brands.paginate({}, 1, 10, deleted=True)
    assert total == 1 and docs[0]["deleted_at"] is not None
    assert database.brands.restore(oid)
    assert database.brands.get(oid)["deleted_by"] is None
