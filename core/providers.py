from __future__ import annotations

from fastapi import FastAPI, Request


def providers_from_request(request: Request):
    """
    Canonical provider accessor for ALL routers.

    Providers are attached once during app startup as request.app.state.providers.
    """
    try:
        return request.app.state.providers
    except Exception as exc:
        raise RuntimeError("Providers not initialized on app.state (startup/lifespan not executed).") from exc


def init_providers(app: FastAPI, providers=None):
    """
    Canonical provider initialization.
    Called once during app startup/lifespan. Attaches Providers onto app.state.
    Tests pass a prebuilt Providers to skip env resolution.
    """
    if providers is None:
        from providers.factory import build_providers

        providers = build_providers()
    app.state.providers = providers
    return app.state.providers
