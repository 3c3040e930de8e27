"""Wires settings into the concrete store, workflow and services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from kitabghar.auth.store import OperatorStore
from kitabghar.catalog.service import CatalogService
from kitabghar.config import Settings
from kitabghar.likes.counter import LikeCounter
from kitabghar.likes.voter import IpLookupResolver, RemoteAddressResolver
from kitabghar.moderation.inventory import CopyCountInventory
from kitabghar.moderation.policy import resolve_policy
from kitabghar.moderation.workflow import ModerationWorkflow
from kitabghar.notifications.dispatcher import (
    EdgeFunctionDispatcher,
    LogOnlyDispatcher,
    NotificationDispatcher,
)
from kitabghar.records.store import JsonRecordStore, RecordStore
from kitabghar.records.supabase import SupabaseRecordStore
from kitabghar.security.audit_log import AuditLogger
from kitabghar.submissions import SubmissionService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the CLI and the web portal need, built once per process."""

    settings: Settings
    store: RecordStore
    operators: OperatorStore
    audit: AuditLogger
    workflow: ModerationWorkflow
    likes: LikeCounter
    submissions: SubmissionService
    catalog: CatalogService
    remote_resolver: RemoteAddressResolver
    ip_lookup: Optional[IpLookupResolver] = None

    async def aclose(self) -> None:
        await self.store.aclose()


def build_store(settings: Settings) -> RecordStore:
    if settings.store_backend == "supabase":
        if not (settings.supabase_url and settings.supabase_key):
            raise ValueError("KITABGHAR_STORE=supabase needs SUPABASE_URL and SUPABASE_KEY")
        return SupabaseRecordStore(settings.supabase_url, settings.supabase_key)
    if settings.store_backend != "json":
        raise ValueError(f"Unknown store backend '{settings.store_backend}'")
    return JsonRecordStore(settings.store_dir)


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    if settings.hosted_functions_enabled:
        return EdgeFunctionDispatcher(settings.supabase_url, settings.supabase_key)
    return LogOnlyDispatcher()


def build_services(settings: Optional[Settings] = None) -> Services:
    settings = settings or Settings.from_env()
    store = build_store(settings)
    audit = AuditLogger(settings.audit_dir)
    policy = resolve_policy(settings.transition_policy)
    inventory = CopyCountInventory(store) if settings.track_inventory else None

    logger.info(
        "Using %s store, '%s' transition policy, inventory tracking %s",
        settings.store_backend,
        policy.name,
        "on" if inventory else "off",
    )
    return Services(
        settings=settings,
        store=store,
        operators=OperatorStore(
            settings.auth_dir,
            session_ttl_hours=settings.session_ttl_hours,
            bcrypt_rounds=settings.bcrypt_rounds,
        ),
        audit=audit,
        workflow=ModerationWorkflow(
            store,
            dispatcher=build_dispatcher(settings),
            policy=policy,
            inventory=inventory,
            audit=audit,
        ),
        likes=LikeCounter(store),
        submissions=SubmissionService(store),
        catalog=CatalogService(store, audit=audit),
        remote_resolver=RemoteAddressResolver(),
        ip_lookup=IpLookupResolver() if settings.voter_identity == "ip_lookup" else None,
    )
