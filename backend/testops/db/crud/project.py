from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import Project


async def get_project_by_id(session: AsyncSession, project_id: int) -> Project | None:
    """Get project by ID."""
    result = await session.scalars(select(Project).where(Project.id == project_id))
    return result.first()


async def create_project(session: AsyncSession, project: Project) -> Project:
    """Create a new project."""
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project
