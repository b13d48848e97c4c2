"""
Reconciler Factory
Centralizes the logic for selecting storage adapters from configuration.
"""

import logging

from fluentia.application.config import AppConfig
from fluentia.application.reconciler import ReconcilerPool, SyncReconciler
from fluentia.domain.ports import KeyValueStore, RemoteProgressStore
from fluentia.infrastructure.adapters.kv_store import JsonFileKeyValueStore
from fluentia.infrastructure.adapters.memory_remote import MemoryProgressStore
from fluentia.infrastructure.adapters.supabase import SupabaseProgressStore
from fluentia.infrastructure.cache import LocalProgressCache

logger = logging.getLogger(__name__)


def build_local_store(config: AppConfig) -> KeyValueStore:
    return JsonFileKeyValueStore(config.storage_path)


def build_remote_store(config: AppConfig) -> RemoteProgressStore | None:
    """
    Returns the RemoteProgressStore named by config, or None to run local-only.
    """
    if config.remote_backend == "memory":
        return MemoryProgressStore()

    if config.remote_backend == "supabase":
        if not config.supabase_url or not config.supabase_key:
            logger.warning(
                "remote_backend=supabase but supabase_url/supabase_key is missing; "
                "running local-only"
            )
            return None
        return SupabaseProgressStore(
            url=config.supabase_url,
            api_key=config.supabase_key,
            table=config.progress_table,
            timeout=config.request_timeout,
        )

    return None


def build_reconciler(config: AppConfig) -> SyncReconciler:
    cache = LocalProgressCache(build_local_store(config))
    return SyncReconciler(cache=cache, remote=build_remote_store(config))


def build_reconciler_pool(config: AppConfig) -> ReconcilerPool:
    """Per-learner reconcilers for the HTTP server, sharing one store and remote."""
    return ReconcilerPool(store=build_local_store(config), remote=build_remote_store(config))
