"""
Custom Tag Repository
User-defined tags per profile and budget category
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import BudgetCategory
from app.infrastructure.db.models import CustomTagModel


class CustomTagRepository:
    """Repository for custom expense tags"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_profile(self, user_id: str, profile: str) -> list[tuple[BudgetCategory, str]]:
        result = await self.session.execute(
            select(CustomTagModel)
            .where(CustomTagModel.user_id == user_id, CustomTagModel.profile_name == profile)
            .order_by(CustomTagModel.category, CustomTagModel.tag)
        )
        return [(BudgetCategory(m.category), m.tag) for m in result.scalars().all()]

    async def add(self, user_id: str, profile: str, category: BudgetCategory, tag: str) -> bool:
        """
        Returns:
            False if the tag already existed
        """
        result = await self.session.execute(
            select(CustomTagModel.id).where(
                CustomTagModel.user_id == user_id,
                CustomTagModel.profile_name == profile,
                CustomTagModel.category == category.value,
                CustomTagModel.tag == tag,
            )
        )
        if result.first() is not None:
            return False
        self.session.add(CustomTagModel(
            user_id=user_id,
            profile_name=profile,
            category=category.value,
            tag=tag,
        ))
        await self.session.flush()
        return True
