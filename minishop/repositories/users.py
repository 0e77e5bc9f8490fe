from sqlalchemy import func, select

from minishop.models import Role, User, user_roles
from minishop.repositories.base import Repository


class UserRepository(Repository[User]):
    """
    Lookups for the identity store.

    ``get_roles`` is the only method the token issuer relies on.
    """

    model = User

    async def get_by_username(self, username: str) -> User | None:
        return await self.first(func.lower(User.username) == username.lower())

    async def get_by_email(self, email: str) -> User | None:
        return await self.first(func.lower(User.email) == email.lower())

    async def get_roles(self, user_id: int) -> list[str]:
        q = (
            select(Role.name)
            .join(user_roles, user_roles.c.role_id == Role.id)
            .where(user_roles.c.user_id == user_id)
            .order_by(Role.name)
        )
        result = await self.session.execute(q)
        return list(result.scalars().all())

    async def get_or_create_role(self, name: str) -> Role:
        result = await self.session.execute(select(Role).where(Role.name == name))
        role = result.scalar_one_or_none()
        if role is None:
            role = Role(name=name)
            self.session.add(role)
            await self.session.flush()
        return role
