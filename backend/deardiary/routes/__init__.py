# Routes package init
"""
Dear Diary Backend — API Routes Package
=========================================

Route Inventory:
    - auth.py:     POST /api/auth/register | login | logout | change-password
                   GET  /api/auth/session
    - diaries.py:  GET/POST /api/diaries
                   GET/PUT/DELETE /api/diaries/{id}
    - health.py:   GET  /health

Routes stay thin: read the request, call a service, set cookies and status
codes. Validation, ownership and pagination rules live in the services.
"""
