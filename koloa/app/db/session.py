from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from koloa.app.core.config import DATABASE_URL


def build_engine(url: str):
    connect_args = {}
    if make_url(url).get_backend_name() == "sqlite":
        # les endpoints sync tournent dans le threadpool de FastAPI
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
