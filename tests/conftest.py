import threading
from decimal import Decimal

import pytest

from payouts import create_app
from payouts.extensions import db
from payouts.fx import FxFetchError, FxRate, FxRateCache
from payouts.models import Month, MonthlyBasis, TeamMember, User
from payouts.models.basis import ensure_basis_type_options


class StubFetcher:
    """Counts calls; returns the given rate or raises when rate is None."""

    def __init__(self, rate=0.92, as_of="2024-07-31", source="primary", delay=None):
        self.rate = rate
        self.as_of = as_of
        self.source = source
        self.calls = 0
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
        if self.delay is not None:
            self.delay.wait(5)
        if self.rate is None:
            raise FxFetchError("provider down")
        return FxRate(self.rate, self.as_of, self.source)


@pytest.fixture
def primary():
    return StubFetcher()


@pytest.fixture
def fx_cache(primary):
    return FxRateCache([("primary", primary)], ttl_seconds=600, fallback_rate=0.92)


@pytest.fixture
def app(tmp_path, fx_cache):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{(tmp_path / 'test.db').as_posix()}",
        "FX_API_URL": "http://fx.invalid/latest?from=USD&to=EUR",
        "FX_INTERNAL_URL": None,
    })
    app.extensions["fx_cache"] = fx_cache
    with app.app_context():
        db.create_all()
        ensure_basis_type_options()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(email, role, password="pass"):
    u = User(email=email, role=role, is_active=True)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def admin(app):
    return _user("admin@example.com", "admin")


@pytest.fixture
def finance(app):
    return _user("finance@example.com", "finance")


@pytest.fixture
def viewer(app):
    return _user("viewer@example.com", "viewer")


@pytest.fixture
def login(client):
    def _login(user, password="pass"):
        res = client.post("/auth/login", json={"email": user.email, "password": password})
        assert res.status_code == 200
        return client
    return _login


@pytest.fixture
def month(app):
    m = Month(month_key="2024-07", month_name="July 2024")
    db.session.add(m)
    db.session.commit()
    return m


@pytest.fixture
def make_member(app):
    def _make(name="Anna", payout_type="percentage", pct="0.1", flat=None, currency="eur", status="active", **kw):
        m = TeamMember(
            name=name,
            payout_type=payout_type,
            payout_percentage=Decimal(pct) if pct is not None else None,
            payout_flat_fee=Decimal(flat) if flat is not None else None,
            currency=currency,
            status=status,
            department=kw.get("department", "chatting"),
            role=kw.get("role", "chatter"),
            category=kw.get("category", "chatters"),
        )
        db.session.add(m)
        db.session.commit()
        return m
    return _make


@pytest.fixture
def add_basis(app):
    def _add(member, month, basis_type, amount_eur, amount_usd=None):
        r = MonthlyBasis(
            team_member_id=member.id,
            month_id=month.id,
            basis_type=basis_type,
            amount_eur=Decimal(str(amount_eur)) if amount_eur is not None else None,
            amount_usd=Decimal(str(amount_usd)) if amount_usd is not None else None,
        )
        db.session.add(r)
        db.session.commit()
        return r
    return _add
