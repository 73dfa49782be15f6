"""Repository for User operations.

Provides database access for the users table. Account creation goes
through insert_if_absent(); racing promotions for the same email yield
one row and no IntegrityError.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.models.user import User


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static with no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def username_exists(db: AsyncSession, username: str) -> bool:
        """Check whether a username is already taken.

        Args:
            db: Async database session.
            username: Normalized username.

        Returns:
            True if a user holds the username.
        """
        stmt = select(User.id).where(User.username == username).limit(1)
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def insert_if_absent(
        db: AsyncSession,
        *,
        email: str,
        name: str,
        password_hash: str,
        role: str,
        username: str | None = None,
        avatar: str | None = None,
    ) -> User | None:
        """Create a user unless one already exists for the email.

        Uses INSERT ... ON CONFLICT (email) DO NOTHING, so a concurrent
        insert for the same address never raises a duplicate-key error.

        Args:
            db: Async database session.
            email: User email address (normalized to lowercase).
            name: Display name.
            password_hash: bcrypt hash.
            role: Account role.
            username: Unique handle.
            avatar: Avatar image URL.

        Returns:
            The created User, or None if a user with this email existed.
        """
        stmt = (
            insert(User)
            .values(
                email=email.strip().lower(),
                name=name,
                password_hash=password_hash,
                role=role,
                username=username,
                avatar=avatar,
            )
            .on_conflict_do_nothing(index_elements=[User.email])
            .returning(User)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
