"""
Tests for shared helpers: entity scopes, money rounding and the engine wiring
"""

import pytest
import threading
from decimal import Decimal

from sqlalchemy.pool import StaticPool

import app.database.database as database
import app.database.ledger as ledger_module
from app.common.locks import EntityLocks
from app.common.money import document_total, line_total
from app.database.database import get_engine, make_engine


class TestEntityLocks:

    def test_scope_is_reentrant(self):
        locks = EntityLocks()
        with locks.customer("c1"):
            with locks.hold(("customer", "c1"), ("product", "p1")):
                assert ("customer", "c1") in locks
                assert ("product", "p1") in locks

    def test_released_scopes_are_dropped(self):
        locks = EntityLocks()
        with locks.invoice("i1"):
            assert ("invoice", "i1") in locks
            assert len(locks) == 1
        assert ("invoice", "i1") not in locks
        assert len(locks) == 0

    def test_many_invoices_do_not_accumulate(self):
        locks = EntityLocks()
        for number in range(500):
            with locks.invoice(f"inv-{number}"):
                pass
        assert len(locks) == 0

    def test_opposite_order_does_not_deadlock(self):
        locks = EntityLocks()
        a, b = ("customer", "a"), ("product", "b")
        barrier = threading.Barrier(2)
        counter = {"value": 0}

        def worker(first, second):
            barrier.wait()
            for _ in range(2000):
                with locks.hold(first, second):
                    counter["value"] += 1

        threads = [
            threading.Thread(target=worker, args=(a, b)),
            threading.Thread(target=worker, args=(b, a)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert not any(thread.is_alive() for thread in threads)
        assert counter["value"] == 4000

    def test_scope_excludes_other_threads(self):
        locks = EntityLocks()
        entered = threading.Event()

        def contender():
            with locks.product("p1"):
                entered.set()

        with locks.product("p1"):
            thread = threading.Thread(target=contender)
            thread.start()
            assert not entered.wait(timeout=0.2)
        thread.join(timeout=5)
        assert entered.is_set()


class TestMoney:

    def test_line_total_keeps_cents(self):
        assert line_total("10.495", 1) == Decimal("10.50")
        assert line_total(Decimal("17.70"), 1000) == Decimal("17700.00")

    def test_document_total_rounds_lines_first(self):
        # 3 x 0.335 rounds to 0.34 each before the document rounding
        assert document_total([("0.335", 1)] * 3) == Decimal("1")
        assert document_total([("10.495", 1)]) == Decimal("11")
        assert document_total([]) == Decimal("0")


class TestEngine:

    def test_engine_is_shared(self):
        assert get_engine() is get_engine()

    def test_sql_ledger_reuses_shared_engine(self, monkeypatch):
        engine = make_engine("sqlite://", poolclass=StaticPool)

        def no_new_engines(*args, **kwargs):
            raise AssertionError("a second engine was created")

        monkeypatch.setattr(ledger_module, "get_engine", lambda: engine)
        monkeypatch.setattr(database, "create_engine", no_new_engines)

        store = ledger_module.build_ledger_store("sql")
        assert store.customers.list() == []

    def test_migrate_uses_shared_engine(self, monkeypatch, capsys):
        import migrate
        from sqlalchemy import inspect

        engine = make_engine("sqlite://", poolclass=StaticPool)
        monkeypatch.setattr(migrate, "get_engine", lambda: engine)

        migrate.create_tables()
        assert "Tables created: customers" in capsys.readouterr().out
        assert "invoices" in inspect(engine).get_table_names()

        migrate.drop_tables()
        assert capsys.readouterr().out.strip() == "Tables dropped"
        assert inspect(engine).get_table_names() == []
