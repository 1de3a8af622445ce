# Middleware package init
"""
SportConnect Backend — Middleware Package
=========================================

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    Starlette runs middleware in reverse order of registration, so
    create_app() adds CORS first and RequestID last.
"""
