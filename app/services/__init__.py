# app/services/__init__.py
"""
Service layer initialization.
Provides the long-lived service handles, built once per process.
"""
import threading
from typing import Optional

from app.core.config import (
    DISPATCH_MAX_WORKERS,
    EVOLUTION_API_KEY,
    EVOLUTION_API_URL,
    EVOLUTION_TIMEOUT_SECONDS,
    MEDIA_SERVICE_TOKEN,
    MEDIA_SERVICE_URL,
)
from app.core.redis_client import get_redis_client
from app.db.session import InstanceSessionLocal, SessionLocal
from app.services.auto_message_dispatcher import AutoMessageDispatcher
from app.services.evolution_client import EvolutionClient
from app.services.group_cache import GroupCache
from app.services.group_service import GroupService
from app.services.instance_service import InstanceResolver
from app.services.media_service import MediaClient
from app.services.webhook_service import WebhookService
from app.ws.manager import notify_groups_updated

_evolution_client: Optional[EvolutionClient] = None
_media_client: Optional[MediaClient] = None
_group_cache: Optional[GroupCache] = None
_instance_resolver: Optional[InstanceResolver] = None
_dispatcher: Optional[AutoMessageDispatcher] = None

# Getters run in threadpool workers and call each other while holding this
_handles_lock = threading.RLock()


def get_evolution_client() -> EvolutionClient:
    global _evolution_client
    if _evolution_client is None:
        with _handles_lock:
            if _evolution_client is None:
                _evolution_client = EvolutionClient(EVOLUTION_API_URL, EVOLUTION_API_KEY, EVOLUTION_TIMEOUT_SECONDS)
    return _evolution_client


def get_media_client() -> MediaClient:
    global _media_client
    if _media_client is None:
        with _handles_lock:
            if _media_client is None:
                _media_client = MediaClient(MEDIA_SERVICE_URL, MEDIA_SERVICE_TOKEN)
    return _media_client


def get_group_cache() -> GroupCache:
    global _group_cache
    if _group_cache is None:
        with _handles_lock:
            if _group_cache is None:
                _group_cache = GroupCache(get_redis_client())
    return _group_cache


def get_instance_resolver() -> InstanceResolver:
    global _instance_resolver
    if _instance_resolver is None:
        with _handles_lock:
            if _instance_resolver is None:
                _instance_resolver = InstanceResolver(InstanceSessionLocal)
    return _instance_resolver


def get_auto_message_dispatcher() -> AutoMessageDispatcher:
    global _dispatcher
    if _dispatcher is None:
        with _handles_lock:
            if _dispatcher is None:
                _dispatcher = AutoMessageDispatcher(
                    get_evolution_client(),
                    get_instance_resolver(),
                    SessionLocal,
                    max_workers=DISPATCH_MAX_WORKERS,
                )
    return _dispatcher


def get_group_service() -> GroupService:
    return GroupService(
        get_evolution_client(),
        get_instance_resolver(),
        get_group_cache(),
        media_client=get_media_client(),
        notifier=notify_groups_updated,
    )


def get_webhook_service() -> WebhookService:
    return WebhookService(
        get_evolution_client(),
        get_instance_resolver(),
        get_auto_message_dispatcher(),
        SessionLocal,
    )


def shutdown_services() -> None:
    """Stop accepting dispatches; in-flight delayed sends are abandoned."""
    global _dispatcher
    with _handles_lock:
        if _dispatcher is not None:
            _dispatcher.shutdown(wait=False)
            _dispatcher = None


__all__ = [
    'get_evolution_client',
    'get_media_client',
    'get_group_cache',
    'get_instance_resolver',
    'get_auto_message_dispatcher',
    'get_group_service',
    'get_webhook_service',
    'shutdown_services',
]
