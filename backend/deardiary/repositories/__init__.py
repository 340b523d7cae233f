# Repositories package init
"""
Dear Diary Backend — Repositories
===================================

What:  Thin persistence layer; one stateless class per table.
How:   Each method receives the request's AsyncSession, so the transaction
       boundary stays in `get_db_session`. SQLAlchemy failures are logged and
       re-raised as DatabaseError, which carries no SQL to the client.

Repository Inventory:
    - users.py:    UserRepository     (create, lookup, password update)
    - entries.py:  EntryRepository    (owner-scoped CRUD and paged search)
    - sessions.py: SessionRepository  (token digests and expiry)
"""
