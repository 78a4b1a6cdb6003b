import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from conftest import add_all, make_session, march_sessions, run
from payout_server.domain.period import Period
from payout_server.models.registry import Reader
from payout_server.services import ledger_service

MARCH = Period.for_month(3, 2024)


def test_unpaid_earnings_sums_sessions_in_month(SessionLocal):
    (reader,) = add_all(SessionLocal, Reader(display_name="Luna", preferred_currency="USD"))
    sessions = add_all(SessionLocal, *march_sessions(reader))
    add_all(SessionLocal, make_session(reader, "7.00", datetime(2024, 3, 5), currency="EUR"))

    earnings = run(SessionLocal, ledger_service.unpaid_earnings, reader.id, "USD", MARCH)

    assert earnings.amount == Decimal("45.00")
    assert earnings.sessions_count == 3
    assert earnings.sessions == [s.id for s in sessions[:3]]


def test_unpaid_earnings_is_idempotent(SessionLocal):
    (reader,) = add_all(SessionLocal, Reader(display_name="Luna", preferred_currency="USD"))
    add_all(SessionLocal, *march_sessions(reader))

    first = run(SessionLocal, ledger_service.unpaid_earnings, reader.id, "USD", MARCH)
    second = run(SessionLocal, ledger_service.unpaid_earnings, reader.id, "USD", MARCH)

    assert first.amount == second.amount
    assert first.sessions == second.sessions


def test_unbounded_period_includes_every_unpaid_session(SessionLocal):
    (reader,) = add_all(SessionLocal, Reader(display_name="Luna", preferred_currency="USD"))
    add_all(SessionLocal, *march_sessions(reader))

    earnings = run(SessionLocal, ledger_service.unpaid_earnings, reader.id, "USD", None)

    assert earnings.amount == Decimal("144.00")
    assert earnings.first_completed_at == datetime(2024, 3, 2, 10, 0)
    assert earnings.last_completed_at == datetime(2024, 4, 1, 0, 0)


def test_no_sessions_is_zero_not_an_error(SessionLocal):
    (reader,) = add_all(SessionLocal, Reader(display_name="Luna", preferred_currency="ARS"))

    earnings = run(SessionLocal, ledger_service.unpaid_earnings, reader.id, "ARS", MARCH)

    assert earnings.amount == 0
    assert earnings.sessions == []


def test_earnings_by_service_kind(SessionLocal):
    (reader,) = add_all(SessionLocal, Reader(display_name="Luna", preferred_currency="USD"))
    add_all(
        SessionLocal,
        make_session(reader, "2.50", datetime(2024, 3, 1), service_kind="flash_1carta"),
        make_session(reader, "2.50", datetime(2024, 3, 2), service_kind="flash_1carta"),
        make_session(reader, "20.00", datetime(2024, 3, 3), service_kind="carta_astral"),
    )

    rows = run(SessionLocal, ledger_service.earnings_by_service_kind, "USD", MARCH)

    assert [r["service_kind"] for r in rows] == ["carta_astral", "flash_1carta"]
    assert rows[1]["amount"] == Decimal("5.00")
    assert rows[1]["sessions_count"] == 2
    assert rows[1]["name"] == "Pregunta Flash"


def test_top_readers_tie_break(SessionLocal):
    readers = add_all(
        SessionLocal,
        Reader(display_name="A", preferred_currency="USD"),
        Reader(display_name="B", preferred_currency="USD"),
        Reader(display_name="C", preferred_currency="USD"),
        Reader(display_name="D", preferred_currency="USD"),
    )
    a, b, c, d = readers
    day = datetime(2024, 3, 15)
    add_all(
        SessionLocal,
        make_session(a, "15.00", day),
        make_session(a, "15.00", day),
        make_session(b, "10.00", day),
        make_session(b, "10.00", day),
        make_session(b, "10.00", day),
        make_session(c, "10.00", day),
        make_session(c, "10.00", day),
        make_session(c, "10.00", day),
        make_session(d, "50.00", day),
    )

    top = run(SessionLocal, ledger_service.top_readers, "USD", MARCH, limit=3)

    assert [row["reader_id"] for row in top] == [d.id, b.id, c.id]
    assert top[0]["amount"] == Decimal("50.00")
