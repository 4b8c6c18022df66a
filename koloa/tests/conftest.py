import os

# avant tout import koloa: config lit l'environnement à l'import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("PIN_PEPPER", "koloa-test-pepper")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from koloa.app.api.deps import get_db  # noqa: E402
from koloa.app.db.base import Base  # noqa: E402
from koloa.app.db.session import build_engine  # noqa: E402
from koloa.app.db.models.core_types import OrderType, Role  # noqa: E402
from koloa.app.db.models.models_v1 import InventoryItem, User  # noqa: E402
from koloa.app.main import app  # noqa: E402
from koloa.services import orders as ledger  # noqa: E402
from koloa.services.auth import hash_pin, login_throttle  # noqa: E402

ADMIN_PIN = "0000"
USER_PIN = "1234"


@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    Base SQLite jetable (un fichier par test).

    Un fichier plutôt qu'une base en mémoire: la session du test, celle de la
    requête et celle du journal API ont chacune leur connexion et voient les
    mêmes données committées.
    """
    eng = build_engine(f"sqlite:///{tmp_path / 'koloa.db'}")
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def reset_login_throttle():
    login_throttle.clear()
    yield
    login_throttle.clear()


@pytest.fixture(scope="function")
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    previous_factory = app.state.session_factory
    app.dependency_overrides[get_db] = override_get_db
    app.state.session_factory = session_factory
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
        app.state.session_factory = previous_factory


# ---------- FACTORIES ----------
@pytest.fixture
def make_user(db_session):
    def _make(name: str = "Ana", code: str = USER_PIN, role: Role = Role.user, **extra) -> User:
        user = User(name=name, pin_hash=hash_pin(code), role=role, **extra)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_item(db_session):
    def _make(
        name: str = "Love 66",
        brand: str = "Adalya",
        stock: int = 10,
        price: str = "4.50",
        min_stock: int = 0,
        category: str = "tabaco",
        weight: int = 50,
    ) -> InventoryItem:
        item = InventoryItem(
            category=category,
            brand=brand,
            name=name,
            weight=weight,
            stock=stock,
            min_stock=min_stock,
            price=Decimal(price),
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture
def make_order(db_session):
    """Crée une commande via le registre (lignes: [(item, quantité), ...])."""

    def _make(user: User, lines, order_type: OrderType = OrderType.general, brand=None, notes=None):
        order = ledger.create_order(
            db_session,
            order_type=order_type,
            brand=brand,
            items=[ledger.RequestedLine(it.id, qty) for it, qty in lines],
            notes=notes,
            user=user,
        )
        db_session.commit()
        return order

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user(name="Administrador", code=ADMIN_PIN, role=Role.admin)


@pytest.fixture
def staff(make_user) -> User:
    return make_user(name="Ana", code=USER_PIN, role=Role.user)


@pytest.fixture
def login_as(client):
    def _login(code: str) -> dict:
        res = client.post("/api/auth/login", json={"code": code})
        assert res.status_code == 200, res.text
        return {"Authorization": f"Bearer {res.json()['token']}"}

    return _login


@pytest.fixture
def admin_headers(admin, login_as) -> dict:
    return login_as(ADMIN_PIN)


@pytest.fixture
def user_headers(staff, login_as) -> dict:
    return login_as(USER_PIN)


@pytest.fixture
def break_commits(monkeypatch):
    """
    Renvoie une fonction qui fait échouer tout commit ORM à partir de son appel
    et renvoie la liste des rollbacks observés.

    Le journal API est coupé: son propre rollback fausserait le décompte.
    """
    from koloa.app.core import config

    def _break() -> list:
        monkeypatch.setattr(config, "API_LOG_ENABLED", False)
        rollbacks = []
        original_rollback = Session.rollback

        def _commit(self):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        def _rollback(self):
            rollbacks.append(self)
            return original_rollback(self)

        monkeypatch.setattr(Session, "commit", _commit)
        monkeypatch.setattr(Session, "rollback", _rollback)
        return rollbacks

    return _break
