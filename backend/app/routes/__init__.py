"""
MemoTap Backend — API Routes Package
======================================

Route Inventory:
    - recordings.py: POST /api/recordings/process, GET/PUT/DELETE /api/recordings[/{id}]
    - tasks.py:      /api/tasks CRUD
    - notes.py:      /api/notes CRUD
    - reminders.py:  /api/reminders CRUD
    - health.py:     GET /health (database + key pool)

Routes stay thin: read the request, call a service, return its schema.
"""
