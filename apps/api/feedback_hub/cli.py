"""CLI tools for Feedback Hub administration."""

from uuid import UUID

import click

from feedback_hub.core.security import create_session_token
from feedback_hub.db.session import SessionLocal
from feedback_hub.services import vote_service
from feedback_hub.utils.identity import dev_user_id


@click.group()
def cli():
    """Feedback Hub CLI tools."""
    pass


@cli.command()
def recount_votes():
    """
    Repair ticket vote counters that drifted from the votes table.

    Example:
        python -m feedback_hub.cli recount-votes
    """
    db = SessionLocal()
    try:
        fixed = vote_service.reconcile_vote_counts(db)
        if fixed:
            click.echo(f"✓ Corrected vote count on {fixed} ticket(s)")
        else:
            click.echo("✓ All vote counts already consistent")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Email claim for the token")
@click.option("--user-id", type=click.UUID, default=None, help="User id (derived from email if omitted)")
@click.option("--first-name", default=None)
@click.option("--last-name", default=None)
def issue_token(email: str, user_id: UUID | None, first_name: str | None, last_name: str | None):
    """
    Mint a session token for local testing.

    Send it as the feedback_session cookie.

    Example:
        python -m feedback_hub.cli issue-token --email dev@example.com
    """
    user_id = user_id or dev_user_id(email)
    click.echo(create_session_token(user_id, email.strip().lower(), first_name, last_name))


if __name__ == "__main__":
    cli()
