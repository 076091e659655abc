# routers/deps.py
from fastapi import Request

from marcha.core.config import Settings
from marcha.core.midtrans import MidtransClient
from marcha.services.orchestrator import ReconciliationOrchestrator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> MidtransClient:
    return request.app.state.gateway


def get_orchestrator(request: Request) -> ReconciliationOrchestrator:
    return request.app.state.orchestrator
