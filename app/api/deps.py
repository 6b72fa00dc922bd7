"""
Dependency wiring for the API.

Each component is built from an explicit Settings instance. Tests swap any
of these through ``app.dependency_overrides``.
"""

from fastapi import Depends

from app.config import Settings, settings
from app.engine.callback import CallbackIngestor
from app.engine.initiator import PaymentInitiator
from app.engine.poller import StatusPoller
from app.engine.webhook import WebhookIngestor
from app.providers.base import PaymentGateway
from app.providers.edviron import EdvironGateway
from app.providers.signing import SignatureService


def get_settings() -> Settings:
    return settings


def get_gateway(config: Settings = Depends(get_settings)) -> PaymentGateway:
    return EdvironGateway(config)


def get_signer(config: Settings = Depends(get_settings)) -> SignatureService:
    return SignatureService(config)


def get_poller(
    gateway: PaymentGateway = Depends(get_gateway),
    signer: SignatureService = Depends(get_signer),
    config: Settings = Depends(get_settings),
) -> StatusPoller:
    return StatusPoller(gateway, signer, config)


def get_initiator(
    gateway: PaymentGateway = Depends(get_gateway),
    signer: SignatureService = Depends(get_signer),
    config: Settings = Depends(get_settings),
) -> PaymentInitiator:
    return PaymentInitiator(gateway, signer, config)


def get_callback_ingestor(
    poller: StatusPoller = Depends(get_poller),
    config: Settings = Depends(get_settings),
) -> CallbackIngestor:
    return CallbackIngestor(poller, config)


def get_webhook_ingestor(signer: SignatureService = Depends(get_signer)) -> WebhookIngestor:
    return WebhookIngestor(signer)
