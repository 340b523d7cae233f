# Models package init
"""
Dear Diary Backend — ORM Models
=================================

Importing this package registers every table with `Base.metadata`, which
Alembic autogenerate and the test suite's create_all() both rely on.
"""

from deardiary.models.diary import DiaryEntry
from deardiary.models.session import UserSession
from deardiary.models.user import User

__all__ = ["DiaryEntry", "User", "UserSession"]
