"""
Pytest configuration and shared fixtures.
"""

from datetime import date, datetime, time, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from agenda.db import build_engine, create_db_and_tables, get_session
from agenda.main import app
from agenda.models import BusinessHours, Client, Professional, Service, Shop

SHOP_TZ = ZoneInfo("America/Sao_Paulo")

# 2030-01-07 is a Monday; NOW sits a week earlier
MONDAY = date(2030, 1, 7)
NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


def local(day: date, hour: int, minute: int = 0) -> datetime:
    """Wall-clock time in the shop's timezone."""
    return datetime.combine(day, time(hour, minute), tzinfo=SHOP_TZ)


def hhmm(slot_start: datetime) -> str:
    return slot_start.astimezone(SHOP_TZ).strftime("%H:%M")


def next_monday(weeks_ahead: int = 1) -> date:
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7 + 7 * weeks_ahead)


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so separate threads get separate connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'agenda_test.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def seeded(session):
    """Shop open Mon-Fri 09:00-19:00, closed Sunday, no row for Saturday."""
    shop = Shop(name="Barbearia Central", slug="central", timezone="America/Sao_Paulo")
    session.add(shop)
    session.commit()
    session.refresh(shop)

    for weekday in range(1, 6):
        session.add(
            BusinessHours(shop_id=shop.id, weekday=weekday, start_time=time(9, 0), end_time=time(19, 0))
        )
    session.add(BusinessHours(shop_id=shop.id, weekday=0, closed=True))

    professional = Professional(shop_id=shop.id, name="Ana")
    other_professional = Professional(shop_id=shop.id, name="Rui")
    client = Client(shop_id=shop.id, name="Bruno", phone="+55 11 99999-0000")
    haircut = Service(shop_id=shop.id, name="Haircut", duration_minutes=30, price=40.0)
    beard = Service(shop_id=shop.id, name="Beard trim", duration_minutes=15, price=25.0)
    session.add_all([professional, other_professional, client, haircut, beard])
    session.commit()
    for row in (professional, other_professional, client, haircut, beard):
        session.refresh(row)

    return SimpleNamespace(
        shop=shop,
        professional=professional,
        other_professional=other_professional,
        client=client,
        haircut=haircut,
        beard=beard,
    )


@pytest.fixture
def api(engine):
    """TestClient bound to the per-test database."""

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()
