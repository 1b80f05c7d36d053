"""Background job modules for periodic election tasks."""

from app.jobs.election_auto_close import election_auto_close

__all__ = ["election_auto_close"]
