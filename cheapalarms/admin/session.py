"""
Admin Session

Facade over one ApiClient, one QueryCache, the cached queries and every
mutation coordinator. The cache is owned by the session and handed to each
coordinator explicitly.

Usage:
    async with AdminSession(ApiClient(cookies={"ca_jwt": token})) as admin:
        page = await admin.queries.estimates(status="sent")
        outcome = await admin.bulk_delete_estimates(["e1", "e2"], scope="local")
        print(outcome.notice)
"""

import logging
from typing import Any, Iterable, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from cheapalarms.admin.mutations import (
    AdminMutations,
    BulkVariables,
    EmailVariables,
    EstimateUpdate,
    ItemVariables,
    PaymentVariables,
    TrashVariables,
)
from cheapalarms.admin.queries import AdminQueries
from cheapalarms.cache import MutationOutcome, QueryCache
from cheapalarms.models import Scope
from cheapalarms.services.transport import ApiClient

ScopeArg = Union[Scope, str]


class AdminSession:
    """Admin data layer bound to one authenticated gateway client"""

    def __init__(self, client: Optional[ApiClient] = None, cache: Optional[QueryCache] = None):
        self.client = client or ApiClient()
        self.cache = cache or QueryCache()
        self.queries = AdminQueries(self.cache, self.client)
        self.mutations = AdminMutations(self.cache, self.client)
        self.scheduler: Optional[AsyncIOScheduler] = None

    async def __aenter__(self) -> "AdminSession":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def start(self) -> None:
        """Start the periodic cache garbage collection (needs a running loop)"""
        if self.scheduler is not None:
            return
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.cache.collect_garbage,
            "interval",
            seconds=max(self.cache.gc_time, 1),
            id="query_cache_gc",
            name="Query cache garbage collection",
            replace_existing=True,
        )
        self.scheduler.start()
        logging.debug(f"Admin session started, cache GC every {self.cache.gc_time}s")

    async def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
        await self.cache.cancel_queries()
        await self.client.close()

    # ========================================================================
    # Estimates
    # ========================================================================

    async def bulk_delete_estimates(
        self, ids: Iterable[Any], scope: ScopeArg = Scope.BOTH, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.bulk_delete_estimates(
            BulkVariables(tuple(ids), Scope(scope), location_id)
        )

    async def delete_estimate(
        self, estimate_id: str, scope: ScopeArg = Scope.BOTH, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.delete_estimate(
            ItemVariables(estimate_id, Scope(scope), location_id)
        )

    async def bulk_restore_estimates(
        self, ids: Iterable[Any], location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.bulk_restore_estimates(
            BulkVariables(tuple(ids), location_id=location_id)
        )

    async def restore_estimate(
        self, estimate_id: str, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.restore_estimate(
            ItemVariables(estimate_id, location_id=location_id)
        )

    async def empty_trash(self, location_id: Optional[str] = None) -> MutationOutcome:
        return await self.mutations.empty_trash(TrashVariables(location_id))

    async def update_estimate(
        self,
        estimate_id: str,
        items: list,
        discount: Optional[dict] = None,
        terms_notes: Optional[str] = None,
        location_id: Optional[str] = None,
    ) -> MutationOutcome:
        return await self.mutations.update_estimate(
            EstimateUpdate(estimate_id, location_id, list(items), discount, terms_notes)
        )

    async def send_estimate(self, estimate_id: str, location_id: Optional[str] = None) -> MutationOutcome:
        return await self.mutations.send_estimate(ItemVariables(estimate_id, location_id=location_id))

    async def sync_estimate(self, estimate_id: str, location_id: Optional[str] = None) -> MutationOutcome:
        return await self.mutations.sync_estimate(ItemVariables(estimate_id, location_id=location_id))

    async def create_invoice_from_estimate(
        self, estimate_id: str, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.create_invoice_from_estimate(
            ItemVariables(estimate_id, location_id=location_id)
        )

    # ========================================================================
    # Invoices
    # ========================================================================

    async def bulk_delete_invoices(
        self, ids: Iterable[Any], scope: ScopeArg = Scope.BOTH, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.bulk_delete_invoices(
            BulkVariables(tuple(ids), Scope(scope), location_id)
        )

    async def delete_invoice(
        self, invoice_id: str, scope: ScopeArg = Scope.BOTH, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.delete_invoice(
            ItemVariables(invoice_id, Scope(scope), location_id)
        )

    async def sync_invoice(self, invoice_id: str, location_id: Optional[str] = None) -> MutationOutcome:
        return await self.mutations.sync_invoice(ItemVariables(invoice_id, location_id=location_id))

    # ========================================================================
    # Xero
    # ========================================================================

    async def sync_payment(
        self,
        invoice_id: str,
        transaction_id: Optional[str] = None,
        location_id: Optional[str] = None,
    ) -> MutationOutcome:
        return await self.mutations.sync_payment(
            PaymentVariables(invoice_id, transaction_id, location_id)
        )

    async def disconnect_xero(self) -> MutationOutcome:
        return await self.mutations.disconnect_xero(None)

    # ========================================================================
    # Users and contacts
    # ========================================================================

    async def bulk_delete_users(
        self, ids: Iterable[Any], scope: ScopeArg = Scope.BOTH, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.bulk_delete_users(
            BulkVariables(tuple(ids), Scope(scope), location_id)
        )

    async def delete_user(
        self, user_id: str, scope: ScopeArg = Scope.BOTH, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.delete_user(ItemVariables(user_id, Scope(scope), location_id))

    async def delete_ghl_contact(
        self, contact_id: str, location_id: Optional[str] = None
    ) -> MutationOutcome:
        return await self.mutations.delete_ghl_contact(
            ItemVariables(contact_id, Scope.GHL, location_id)
        )

    async def delete_by_email(self, email: str, location_id: Optional[str] = None) -> MutationOutcome:
        return await self.mutations.delete_by_email(EmailVariables(email, location_id))
