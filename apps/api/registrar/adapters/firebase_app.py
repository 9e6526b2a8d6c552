"""Shared Firebase Admin SDK bootstrap for the auth, identity and store adapters."""

from __future__ import annotations

from types import ModuleType


def ensure_firebase_app(project_id: str | None = None) -> ModuleType:
    """Import ``firebase_admin`` and initialize the default app once per process.

    Raises ``ImportError`` when the SDK is not installed; callers translate it
    into their own adapter error.
    """
    import firebase_admin

    if not firebase_admin._apps:
        if project_id:
            firebase_admin.initialize_app(options={"projectId": project_id})
        else:
            firebase_admin.initialize_app()
    return firebase_admin


__all__ = ["ensure_firebase_app"]
