# app/services/user_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import UserUpdate, UserRoleUpdate


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - enforce app rules (email owned by Supabase, role constraints)
      - orchestrate repository operations
      - map domain errors to HTTP errors
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def get_me(self, current_user: User) -> User:
        """Return the current authenticated user."""
        return current_user

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits.
        Currently, only `name` is editable.
        """
        if payload.name is not None:
            current_user.name = payload.name

        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        skip: int,
        limit: int,
        role: str | None = None,
    ) -> list[User]:
        """List users with pagination (admin only)."""
        return self.repo.list(session, skip=skip, limit=limit, role=role)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Get a user by id (admin only).

        Raises:
            HTTPException(404): if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def update_role(
        self,
        session: Session,
        current_user: User,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change a user's role (admin only).

        An admin cannot demote themselves, so the store always keeps
        at least the acting admin.
        """
        user = self.get_user(session, user_id)
        if user.id == current_user.id and payload.role != "admin":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot remove your own admin role",
            )
        user.role = payload.role
        return self.repo.update(session, user)
