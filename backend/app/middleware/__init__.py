"""
MemoTap Backend — Middleware Package
======================================

Cross-cutting concerns applied to every request.

Execution order (outermost first):
    Rate Limit → Request ID → Access Log → GZip → CORS → route

    - Rate Limit rejects before any work is done, so its 429 carries no
      request id
    - Request ID is set before the access logger reads it
"""
