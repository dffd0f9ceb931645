from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Request

from core.providers import providers_from_request


# -----------------------------
# Canonical provider access
# -----------------------------

def get_providers(request: Request) -> Any:
    """
    Canonical runtime provider resolver.

    Source of truth: request.app.state.providers
    """
    return providers_from_request(request)


# -----------------------------
# Canonical service deps
# -----------------------------

def get_storage(request: Request) -> Any:
    """
    Canonical StorageProvider dependency.
    """
    return get_providers(request).storage


StorageDep = Annotated[Any, Depends(get_storage)]


def get_admission(request: Request) -> Any:
    """
    Request-scoped AdmissionController over the shared storage + policy.
    """
    from quota.admission import AdmissionController

    p = get_providers(request)
    return AdmissionController(p.storage, p.quota_policy)


AdmissionDep = Annotated[Any, Depends(get_admission)]


def get_messaging(request: Request) -> Any:
    """
    Canonical MessagingProvider dependency (None when credentials are missing).
    """
    return getattr(get_providers(request), "messaging", None)


MessagingDep = Annotated[Any, Depends(get_messaging)]


def get_app_settings(request: Request) -> Any:
    return get_providers(request).settings


SettingsDep = Annotated[Any, Depends(get_app_settings)]
