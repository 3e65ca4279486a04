# Routes package init
"""
BookAPI Backend - API Routes Package
=====================================

Route Inventory:
    - books.py:    GET/POST/PUT/DELETE /books   (CRUD, id via ?id=)
    - health.py:   GET /healthz                 (liveness, no DB access)
    - metrics.py:  GET /metrics                 (in-memory metrics snapshot)

Routes stay thin: parse the request, call the gateway, pick the status code.
Errors are raised as BookAPIError subclasses and rendered by the handlers
registered in main.py.
"""
