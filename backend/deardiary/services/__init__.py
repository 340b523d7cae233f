# Services package init
"""
Dear Diary Backend — Services Layer
=====================================

What:  Business rules between the routes (HTTP) and the repositories (SQL).
How:   Services are plain classes whose collaborators (hasher, page-size
       policy, repositories) are passed to the constructor. Routes get them
       from deardiary.dependencies, and tests build their own.

Service Inventory:
    - security.py:      PasswordHasher (bcrypt) and session token helpers
    - auth_service.py:  AuthService (register, login, logout, password change,
                        session validation)
    - diary_service.py: DiaryService (owner-scoped CRUD, search, pagination)
"""
