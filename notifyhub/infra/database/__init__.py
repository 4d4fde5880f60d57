"""SQLAlchemy async plumbing for the scheduler store."""

from notifyhub.infra.database.base import Base, IntegerPKMixin, UTCDateTime, utcnow
from notifyhub.infra.database.session import Database

__all__ = ["Base", "Database", "IntegerPKMixin", "UTCDateTime", "utcnow"]
