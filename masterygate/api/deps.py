"""
FastAPI dependencies for database sessions and the learning service.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from masterygate.config import get_settings
from masterygate.database import async_session_maker
from masterygate.engines.progression.requirements import LevelRequirementTable
from masterygate.kernel.catalog import ConceptCatalog
from masterygate.kernel.storage.sql import SqlLearningStore
from masterygate.orchestration.learning_service import LearningService
from masterygate.orchestration.locks import LearnerLockRegistry


async def get_db() -> AsyncSession:
    """Dependency that yields database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]


@lru_cache
def get_catalog() -> ConceptCatalog:
    """Concept catalog, loaded once per process."""
    path = get_settings().catalog_path
    return ConceptCatalog.from_json_file(path) if path else ConceptCatalog.default()


@lru_cache
def get_requirements() -> LevelRequirementTable:
    """Level requirement table, loaded once per process."""
    path = get_settings().requirements_path
    return LevelRequirementTable.from_json_file(path) if path else LevelRequirementTable.default()


@lru_cache
def get_lock_registry() -> LearnerLockRegistry:
    """Process-wide per-learner locks."""
    return LearnerLockRegistry()


Catalog = Annotated[ConceptCatalog, Depends(get_catalog)]
Requirements = Annotated[LevelRequirementTable, Depends(get_requirements)]
Locks = Annotated[LearnerLockRegistry, Depends(get_lock_registry)]


async def get_learning_service(
    db: DbSession,
    catalog: Catalog,
    requirements: Requirements,
    locks: Locks,
) -> LearningService:
    """Learning service bound to the request's database session."""
    return LearningService(
        SqlLearningStore(db),
        catalog=catalog,
        requirements=requirements,
        policy=get_settings().policy,
        locks=locks,
    )


Service = Annotated[LearningService, Depends(get_learning_service)]
