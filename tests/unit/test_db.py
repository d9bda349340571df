"""
Tests for the persistence kernel: money helpers, engine lifecycle and
session_scope.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from settlement_kernel.db.engine import (
    create_tables,
    get_engine,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from settlement_kernel.db.types import round_money, to_money
from settlement_kernel.services.sequence_service import SequenceCounter


class TestMoney:
    def test_float_rejected(self):
        with pytest.raises(TypeError):
            to_money(0.1)

    @pytest.mark.parametrize("value,expected", [
        ("12.30", Decimal("12.30")),
        (5, Decimal("5")),
        (Decimal("1.005"), Decimal("1.005")),
    ])
    def test_coercion(self, value, expected):
        assert to_money(value) == expected

    def test_round_half_up(self):
        assert round_money(Decimal("1.005")) == Decimal("1.01")
        assert round_money(Decimal("-1.005")) == Decimal("-1.01")


class TestEngineLifecycle:
    def test_uninitialized_engine(self):
        reset_engine()

        with pytest.raises(RuntimeError):
            get_engine()

    def test_sqlite_memory(self):
        engine = init_engine_from_url("sqlite://")
        try:
            assert engine.dialect.name == "sqlite"
            assert get_engine() is engine
        finally:
            reset_engine()


class TestSessionScope:
    @pytest.fixture(autouse=True)
    def _engine(self):
        init_engine_from_url("sqlite://")
        create_tables()
        yield
        reset_engine()

    def test_commits_on_success(self):
        with session_scope() as session:
            session.add(SequenceCounter(name="HX20240115", current_value=3))

        with session_scope() as session:
            counter = session.execute(select(SequenceCounter)).scalar_one()
            assert counter.current_value == 3

    def test_rolls_back_and_reraises(self):
        with pytest.raises(RuntimeError, match="boom"):
            with session_scope() as session:
                session.add(SequenceCounter(name="HX20240115", current_value=1))
                session.flush()
                raise RuntimeError("boom")

        with session_scope() as session:
            assert session.execute(select(SequenceCounter)).first() is None
