from pathlib import Path
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.dependencies import get_auth_provider
from app.api.errors import register_exception_handlers
from app.api.routes import budget, transactions
from app.domain.models import UserIdentity
from app.domain.services.config_engine import ConfigEngine
from app.infrastructure.auth.supabase_auth import StaticAuthProvider
from app.infrastructure.db import models  # noqa: F401
from app.infrastructure.db.database import Base, get_db

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        future=True,
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture()
def config_engine() -> ConfigEngine:
    engine = ConfigEngine(CONFIG_DIR)
    engine.load_all()
    return engine


@pytest.fixture()
def auth_state():
    """Mutable signed-in identity shared with the app fixture."""
    return {"user": UserIdentity(id="user-1", email="user1@example.com")}


@pytest.fixture()
async def app(db_session, config_engine, auth_state) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(budget.router, prefix="/api/v1/budget", tags=["Budget"])
    app.include_router(transactions.router, prefix="/api/v1/budget", tags=["Transactions"])

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_provider] = lambda: StaticAuthProvider(auth_state["user"])
    app.state.config_engine = config_engine

    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
