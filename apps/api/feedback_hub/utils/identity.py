"""Deterministic user ids for locally minted identities."""

from uuid import NAMESPACE_URL, UUID, uuid5


def dev_user_id(email: str) -> UUID:
    """Stable id for an email, used by dev login and the issue-token command."""
    return uuid5(NAMESPACE_URL, f"mailto:{email.strip().lower()}")
