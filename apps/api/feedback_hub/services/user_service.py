"""User service - mirror identities issued by the identity provider."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from feedback_hub.db.models import User


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.get(User, user_id)


def sync_user(
    db: Session,
    user_id: UUID,
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """
    Create or refresh the local row for an authenticated identity.

    Names already on file are kept when the provider omits them.
    """
    user = get_user_by_id(db, user_id)
    if user is None:
        user = User(
            id=user_id,
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Another request created the row first
            db.rollback()
            user = get_user_by_id(db, user_id)
            if user is None:
                raise
        return user

    changed = False
    if user.email != email.lower():
        user.email = email.lower()
        changed = True
    if first_name and user.first_name != first_name:
        user.first_name = first_name
        changed = True
    if last_name and user.last_name != last_name:
        user.last_name = last_name
        changed = True
    if changed:
        db.commit()
    return user
