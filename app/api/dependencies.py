"""
FastAPI dependencies: auth provider, data gateway and the budget session.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain.models import UserIdentity
from app.domain.services.config_engine import ConfigEngine
from app.domain.services.profile_merger import COMBINED_PROFILE
from app.infrastructure.auth.supabase_auth import StaticAuthProvider, SupabaseAuthProvider
from app.infrastructure.budget_gateway import SqlBudgetGateway
from app.infrastructure.db.database import get_db
from app.infrastructure.fallback_gateway import FallbackBudgetGateway
from app.infrastructure.local_store import LocalBudgetStore
from app.services.budget_service import BudgetService

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


def load_config_engine() -> ConfigEngine:
    config_dir = Path(settings.CONFIG_DIR) if settings.CONFIG_DIR else DEFAULT_CONFIG_DIR
    engine = ConfigEngine(config_dir)
    engine.load_all()
    return engine


def get_config_engine(request: Request) -> ConfigEngine:
    engine = getattr(request.app.state, "config_engine", None)
    if engine is None:
        engine = load_config_engine()
        request.app.state.config_engine = engine
    return engine


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_auth_provider(authorization: Optional[str] = Header(None)):
    if settings.AUTH_MODE == "static":
        return StaticAuthProvider(UserIdentity(id=settings.LOCAL_USER_ID))
    if not settings.SUPABASE_URL or not settings.SUPABASE_ANON_KEY:
        logger.warning("SUPABASE_URL / SUPABASE_ANON_KEY not set; treating request as signed out")
        return StaticAuthProvider(None)
    return SupabaseAuthProvider(
        base_url=settings.SUPABASE_URL,
        anon_key=settings.SUPABASE_ANON_KEY,
        access_token=_bearer_token(authorization),
        timeout=settings.AUTH_TIMEOUT_SECONDS,
    )


def get_gateway(db: AsyncSession = Depends(get_db)):
    if settings.STORAGE_MODE == "local":
        return LocalBudgetStore(Path(settings.LOCAL_STORE_DIR))
    remote = SqlBudgetGateway(db)
    if settings.STORAGE_MODE == "remote_with_local_fallback":
        return FallbackBudgetGateway(remote, LocalBudgetStore(Path(settings.LOCAL_STORE_DIR)))
    return remote


async def get_budget_service(
    profile: str,
    year: int,
    month: int,
    members: Optional[str] = Query(None, description="Comma-separated profiles for the combined view"),
    gateway=Depends(get_gateway),
    auth=Depends(get_auth_provider),
    config_engine: ConfigEngine = Depends(get_config_engine),
) -> BudgetService:
    """
    Budget session for the profile/period in the URL, already loaded.

    `combined` selects the merged read-only view over `members`.
    """
    service = BudgetService(
        gateway=gateway,
        auth=auth,
        tag_catalog=config_engine.tag_catalog,
        allocation_tolerance=config_engine.allocation_tolerance,
    )
    if profile.lower() == COMBINED_PROFILE:
        service.select_combined([m for m in (members or "").split(",") if m.strip()])
    else:
        service.select_profile(profile)
    service.select_period(year, month)
    await service.refresh()
    return service
