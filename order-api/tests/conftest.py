"""
Shared fixtures: in-memory SQLite, frozen clock, recording gateway, catalog.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_KEY", "test-admin-key")
os.environ.setdefault("AGENT_KEY", "test-agent-key")
os.environ.setdefault("PUBLIC_BASE_URL", "https://pedidos.test")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orderdesk.core.clock import FixedClock
from orderdesk.db import models  # noqa: F401
from orderdesk.db.base import Base
from orderdesk.db.models import (
    FulfillmentType,
    GroupRole,
    OptionGroup,
    OptionItem,
    Order,
    OrderItem,
    OrderItemOption,
    OrderStatus,
    PaymentMethod,
    PricingRule,
    Product,
    Store,
    StoreBotConfig,
    StorePaymentSettings,
)
from orderdesk.services.messaging import MessagingError
from orderdesk.services.orders import generate_receipt_token

NOW = datetime(2025, 6, 15, 12, 0, 0)


class FakeGateway:
    """Records every message; can fail on demand or run a hook mid-send."""

    def __init__(self, fail=False, fail_if=None, on_send=None):
        self.fail = fail
        self.fail_if = fail_if
        self.on_send = on_send
        self.sent = []
        self.attempts = 0

    def send_text(self, store_ref, phone, text):
        self.attempts += 1
        if self.on_send:
            self.on_send(store_ref, phone, text)
        if self.fail or (self.fail_if and self.fail_if(store_ref, phone, text)):
            raise MessagingError("gateway down")
        self.sent.append((store_ref, phone, text))


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def store(db):
    s = Store(slug="pizzaria-do-ze", name="Pizzaria do Zé", is_active=True, created_at=NOW)
    db.add(s)
    db.flush()
    db.add(StoreBotConfig(store_id=s.store_id, enabled=True))
    db.add(StorePaymentSettings(store_id=s.store_id, pix_key="pix@ze.com.br", pix_name="José", pix_bank="Banco X"))
    db.commit()
    db.refresh(s)
    return s


@pytest.fixture
def catalog(db, store):
    """pizza: MAX_OPTION, half: HALF_SUM, burger: SUM."""

    def product(name, rule, base, groups):
        p = Product(
            store_id=store.store_id,
            name=name,
            pricing_rule=rule,
            base_price_cents=base,
            is_active=True,
            created_at=NOW,
        )
        for g_order, (g_name, role, items) in enumerate(groups):
            g = OptionGroup(name=g_name, role=role, sort_order=g_order)
            for i_order, (i_name, delta) in enumerate(items):
                g.items.append(OptionItem(name=i_name, price_delta_cents=delta, sort_order=i_order))
            p.option_groups.append(g)
        db.add(p)
        return p

    pizza = product("Pizza Grande", PricingRule.MAX_OPTION, 0, [
        ("Sabores", GroupRole.FLAVOR, [("Calabresa", 1200), ("Quatro Queijos", 1500)]),
        ("Borda", GroupRole.ADDON, [("Catupiry", 200)]),
    ])
    half = product("Pizza Meio a Meio", PricingRule.HALF_SUM, 0, [
        ("Sabores", GroupRole.FLAVOR, [("Camarão", 4000), ("Frango", 2600)]),
        ("Borda", GroupRole.ADDON, [("Cheddar", 200)]),
    ])
    burger = product("X-Burger", PricingRule.SUM, 1000, [
        ("Extras", GroupRole.ADDON, [("Bacon", 200), ("Cheddar", 300)]),
    ])
    db.commit()

    def option_ids(p, *names):
        by_name = {item.name: item.option_item_id for g in p.option_groups for item in g.items}
        return [by_name[n] for n in names]

    return {"pizza": pizza, "half": half, "burger": burger, "option_ids": option_ids}


@pytest.fixture
def make_order(db, store):
    """Insert an order directly, bypassing pricing."""

    def _make(
        status=OrderStatus.NEW,
        created_at=NOW,
        printing_claimed_at=None,
        customer_notified_at=None,
        customer_phone="(11) 98765-4321",
        payment_method=PaymentMethod.CARD,
        fulfillment_type=FulfillmentType.PICKUP,
        change_for_cents=None,
        table_ref=None,
        total_cents=2500,
    ):
        if status != OrderStatus.NEW and printing_claimed_at is None:
            printing_claimed_at = created_at + timedelta(seconds=5)
        order = Order(
            store_id=store.store_id,
            status=status,
            customer_name="Maria",
            customer_phone=customer_phone,
            fulfillment_type=fulfillment_type,
            payment_method=payment_method,
            change_for_cents=change_for_cents,
            total_cents=total_cents,
            table_ref=table_ref,
            receipt_token=generate_receipt_token(),
            created_at=created_at,
            printing_claimed_at=printing_claimed_at,
            customer_notified_at=customer_notified_at,
            items=[
                OrderItem(
                    product_id=1,
                    product_name="Pizza Grande",
                    quantity=1,
                    unit_price_cents=total_cents,
                    options=[
                        OrderItemOption(group_name="Sabores", item_name="Calabresa", price_delta_cents=1200),
                        OrderItemOption(group_name="Borda", item_name="Catupiry", price_delta_cents=200),
                    ],
                )
            ],
        )
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


@pytest.fixture
def client(session_factory, clock, gateway):
    from fastapi.testclient import TestClient

    from orderdesk.api.deps import get_clock, get_db, get_gateway
    from orderdesk.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
