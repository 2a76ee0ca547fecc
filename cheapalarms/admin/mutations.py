"""
Admin Mutations

One OptimisticMutation subclass per admin write operation. Bulk operations
share BulkMutation, single-item scoped deletes share ScopedDelete; the rest
fill in the coordinator hooks directly.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from cheapalarms.admin.keys import (
    ADMIN_ESTIMATES,
    ADMIN_ESTIMATES_TRASH,
    ADMIN_INVOICE,
    ADMIN_INVOICES,
    GHL_CONTACTS,
    WP_USERS,
    XERO_AUTHORIZE,
    XERO_STATUS,
    estimate_key,
    invoice_key,
)
from cheapalarms.cache import OptimisticMutation, OptimisticUpdate, QueryKey
from cheapalarms.config import (
    CONFIRM_BULK_DELETE,
    CONFIRM_BULK_RESTORE,
    CONFIRM_DELETE,
    CONFIRM_DELETE_ALL,
    CONFIRM_EMPTY_TRASH,
    settings,
)
from cheapalarms.error_handler import PartialFailure, RemoteError
from cheapalarms.models import (
    BulkResult,
    DeleteByEmailResult,
    Estimate,
    LineItem,
    Scope,
    ScopedResult,
)
from cheapalarms.notices import (
    Notice,
    NoticeLevel,
    partial_notice,
    plural,
    success_notice,
)
from cheapalarms.services.transport import ensure_ok, error_message
from cheapalarms.utils.validators import normalize_email, require_id, require_ids

SYSTEM_NAMES = {"local": "CheapAlarms", "ghl": "GoHighLevel"}


# ============================================================================
# Variables
# ============================================================================


@dataclass(frozen=True)
class BulkVariables:
    ids: tuple
    scope: Scope = Scope.BOTH
    location_id: Optional[str] = None


@dataclass(frozen=True)
class ItemVariables:
    id: str
    scope: Scope = Scope.BOTH
    location_id: Optional[str] = None


@dataclass(frozen=True)
class TrashVariables:
    location_id: Optional[str] = None


@dataclass(frozen=True)
class EmailVariables:
    email: str
    location_id: Optional[str] = None


@dataclass(frozen=True)
class PaymentVariables:
    invoice_id: str
    transaction_id: Optional[str] = None
    location_id: Optional[str] = None


@dataclass(frozen=True)
class EstimateUpdate:
    estimate_id: str
    location_id: Optional[str] = None
    items: list = field(default_factory=list)
    # None keeps the estimate's current value
    discount: Optional[dict] = None
    terms_notes: Optional[str] = None


# ============================================================================
# Optimistic transforms
# ============================================================================


def _item_id(item: Any) -> str:
    value = item.get("id") if isinstance(item, dict) else getattr(item, "id", None)
    return str(value)


def drop_items(
    ids: Iterable[Any], count_field: str = "total", items_field: str = "items"
) -> Callable[[Any], Any]:
    """
    Transform removing ids from a cached list page (or a bare list).

    The count is decremented by the number of rows actually removed.
    """
    targets = {str(i) for i in ids}

    def transform(data: Any) -> Any:
        if isinstance(data, list):
            return [item for item in data if _item_id(item) not in targets]
        if not isinstance(data, dict):
            return data

        items = data.get(items_field) or []
        kept = [item for item in items if _item_id(item) not in targets]
        updated = {**data, items_field: kept}
        if isinstance(data.get(count_field), int):
            updated[count_field] = max(0, data[count_field] - (len(items) - len(kept)))
        return updated

    return transform


def clear_items(data: Any) -> Any:
    if not isinstance(data, dict):
        return data
    return {**data, "items": [], "count": 0}


def patch_estimate(update: EstimateUpdate) -> Callable[[Any], Any]:
    def transform(data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        patched = {**data, "items": [dict(item) for item in update.items]}
        if update.discount is not None:
            patched["discount"] = dict(update.discount)
        if update.terms_notes is not None:
            patched["termsNotes"] = update.terms_notes
        return patched

    return transform


# ============================================================================
# Shared bases
# ============================================================================


class BulkMutation(OptimisticMutation[BulkVariables, BulkResult]):
    """POST {confirm, <ids_field>: [...], scope} and read a BulkResult"""

    path = ""
    ids_field = "ids"
    confirm = CONFIRM_BULK_DELETE
    sends_scope = True
    failure_title = "Bulk delete failed"

    noun = "item"
    verb = "Deleted"
    action = "delete"

    list_key: QueryKey = ()
    count_field = "total"
    affected: tuple = ()

    def validate(self, variables: BulkVariables) -> None:
        require_ids(variables.ids, self.ids_field)

    def guard_ids(self, variables: BulkVariables) -> frozenset:
        return frozenset(str(i) for i in variables.ids)

    def optimistic_updates(self, variables: BulkVariables) -> list[OptimisticUpdate]:
        return [OptimisticUpdate(self.list_key, drop_items(variables.ids, self.count_field))]

    def cancel_keys(self, variables: BulkVariables) -> list[QueryKey]:
        return list(self.affected)

    async def mutate(self, variables: BulkVariables) -> BulkResult:
        body: dict[str, Any] = {
            "confirm": self.confirm,
            self.ids_field: require_ids(variables.ids, self.ids_field),
        }
        if self.sends_scope:
            body["scope"] = variables.scope.value
        if variables.location_id:
            body["locationId"] = variables.location_id

        payload = await self.client.post(self.path, body)
        result = BulkResult.model_validate(payload if isinstance(payload, dict) else {})

        # ok: false still counts when some rows went through
        if result.ok or (result.succeeded and result.errors):
            return result
        raise RemoteError(
            error_message(payload, f"Failed to {self.action} {self.noun}s"),
            status=200,
            body=payload,
        )

    def partial_failure(
        self, variables: BulkVariables, result: BulkResult
    ) -> Optional[PartialFailure]:
        if not result.errors:
            return None
        errors = [error.model_dump() for error in result.errors]
        return PartialFailure(
            result.succeeded,
            errors,
            total=max(len(variables.ids), result.succeeded + len(errors)),
        )

    def success_notice(
        self, variables: BulkVariables, result: BulkResult, partial: Optional[PartialFailure]
    ) -> Notice:
        if partial is not None:
            return partial_notice(self.verb, self.noun, partial, self.action)
        return self.complete_notice(variables, result)

    def complete_notice(self, variables: BulkVariables, result: BulkResult) -> Notice:
        return success_notice(f"{self.verb} {plural(self.noun, result.succeeded)}")


class ScopedDelete(OptimisticMutation[ItemVariables, ScopedResult]):
    """
    POST {confirm: DELETE, scope} to a single-item delete route.

    Success needs top-level ok plus ok from every system the scope names.
    Some systems ok is a partial success; none ok is a RemoteError.
    """

    path_template = ""
    id_field = "id"
    noun = "Item"
    failure_title = "Delete failed"

    list_key: QueryKey = ()
    count_field = "total"
    items_field = "items"
    affected: tuple = ()
    fixed_scope: Optional[Scope] = None

    def scope_of(self, variables: ItemVariables) -> Scope:
        return self.fixed_scope or variables.scope

    def validate(self, variables: ItemVariables) -> None:
        require_id(variables.id, self.id_field)

    def guard_ids(self, variables: ItemVariables) -> frozenset:
        return frozenset({str(variables.id)})

    def optimistic_updates(self, variables: ItemVariables) -> list[OptimisticUpdate]:
        return [
            OptimisticUpdate(
                self.list_key,
                drop_items([variables.id], self.count_field, self.items_field),
            )
        ]

    def cancel_keys(self, variables: ItemVariables) -> list[QueryKey]:
        return list(self.affected)

    def invalidate_keys(
        self, variables: ItemVariables, result: Optional[ScopedResult]
    ) -> list[QueryKey]:
        return list(self.affected)

    def request_body(self, variables: ItemVariables) -> dict:
        body = {"confirm": CONFIRM_DELETE, "scope": self.scope_of(variables).value}
        if variables.location_id:
            body["locationId"] = variables.location_id
        return body

    async def mutate(self, variables: ItemVariables) -> ScopedResult:
        path = self.path_template.format(id=require_id(variables.id, self.id_field))
        payload = await self.client.post(path, self.request_body(variables))
        result = ScopedResult.model_validate(payload if isinstance(payload, dict) else {})

        if result.succeeded_systems(self.scope_of(variables)):
            return result
        raise RemoteError(
            result.first_error() or error_message(payload, "Delete failed"),
            status=200,
            body=payload,
        )

    def partial_failure(
        self, variables: ItemVariables, result: ScopedResult
    ) -> Optional[PartialFailure]:
        if result.is_success(self.scope_of(variables)):
            return None
        errors = result.failed_systems(self.scope_of(variables))
        if not errors:
            # Every requested system is ok but the backend still said ok: false
            errors = [{"id": "ok", "message": result.first_error() or "Backend reported failure"}]
        return PartialFailure(
            len(result.succeeded_systems(self.scope_of(variables))),
            errors,
            total=len(self.scope_of(variables).systems),
        )

    def success_notice(
        self, variables: ItemVariables, result: ScopedResult, partial: Optional[PartialFailure]
    ) -> Notice:
        if partial is None:
            return self.complete_notice(variables)

        succeeded = result.succeeded_systems(self.scope_of(variables))
        done = ", ".join(SYSTEM_NAMES[name] for name in succeeded)
        return Notice(
            NoticeLevel.WARNING,
            f"{self.noun} deleted from {done} only",
            "; ".join(f"{SYSTEM_NAMES.get(e['id'], e['id'])}: {e['message']}" for e in partial.errors),
            duration=6.0,
        )

    def complete_notice(self, variables: ItemVariables) -> Notice:
        return success_notice(f"{self.noun} deleted successfully")


# ============================================================================
# Estimates
# ============================================================================


class BulkDeleteEstimates(BulkMutation):
    name = "bulk_delete_estimates"
    path = "/api/admin/estimates/bulk-delete"
    ids_field = "estimateIds"
    noun = "estimate"
    list_key = ADMIN_ESTIMATES
    affected = (ADMIN_ESTIMATES, ADMIN_ESTIMATES_TRASH)

    def complete_notice(self, variables: BulkVariables, result: BulkResult) -> Notice:
        if variables.scope.touches_local:
            return success_notice(
                f"Moved {plural('estimate', result.deleted)} to trash",
                f"You can restore them from the Trash tab within {settings.trash_retention_days} days.",
            )
        return success_notice(
            f"Deleted {plural('estimate', result.deleted)} from GHL",
            "The estimates have been removed from GoHighLevel.",
        )


class BulkRestoreEstimates(BulkMutation):
    name = "bulk_restore_estimates"
    path = "/api/admin/estimates/bulk-restore"
    ids_field = "estimateIds"
    confirm = CONFIRM_BULK_RESTORE
    sends_scope = False
    failure_title = "Bulk restore failed"
    noun = "estimate"
    verb = "Restored"
    action = "restore"
    list_key = ADMIN_ESTIMATES_TRASH
    count_field = "count"
    affected = (ADMIN_ESTIMATES_TRASH, ADMIN_ESTIMATES)

    def complete_notice(self, variables: BulkVariables, result: BulkResult) -> Notice:
        return success_notice(
            f"Restored {plural('estimate', result.restored)}",
            "All estimates moved back to active list.",
        )


class DeleteEstimate(ScopedDelete):
    name = "delete_estimate"
    path_template = "/api/admin/estimates/{id}/delete"
    id_field = "estimateId"
    noun = "Estimate"
    list_key = ADMIN_ESTIMATES

    def cancel_keys(self, variables: ItemVariables) -> list[QueryKey]:
        return [ADMIN_ESTIMATES, ADMIN_ESTIMATES_TRASH]

    def invalidate_keys(
        self, variables: ItemVariables, result: Optional[ScopedResult]
    ) -> list[QueryKey]:
        return [ADMIN_ESTIMATES, ADMIN_ESTIMATES_TRASH, estimate_key(variables.id)]

    def complete_notice(self, variables: ItemVariables) -> Notice:
        if variables.scope.touches_local:
            return success_notice(
                "Estimate moved to trash",
                f"You can restore it from the Trash tab within {settings.trash_retention_days} days.",
            )
        return success_notice(
            "Estimate deleted from GHL", "The estimate has been removed from GoHighLevel."
        )


class RestoreEstimate(OptimisticMutation[ItemVariables, dict]):
    name = "restore_estimate"
    failure_title = "Restore failed"

    def validate(self, variables: ItemVariables) -> None:
        require_id(variables.id, "estimateId")

    def guard_ids(self, variables: ItemVariables) -> frozenset:
        return frozenset({str(variables.id)})

    def optimistic_updates(self, variables: ItemVariables) -> list[OptimisticUpdate]:
        return [OptimisticUpdate(ADMIN_ESTIMATES_TRASH, drop_items([variables.id], "count"))]

    def cancel_keys(self, variables: ItemVariables) -> list[QueryKey]:
        return [ADMIN_ESTIMATES_TRASH, ADMIN_ESTIMATES]

    def invalidate_keys(self, variables: ItemVariables, result: Optional[dict]) -> list[QueryKey]:
        return [ADMIN_ESTIMATES, ADMIN_ESTIMATES_TRASH, estimate_key(variables.id)]

    async def mutate(self, variables: ItemVariables) -> dict:
        body = {"locationId": variables.location_id} if variables.location_id else {}
        payload = await self.client.post(f"/api/admin/estimates/{variables.id}/restore", body)
        return ensure_ok(payload, "Failed to restore estimate")

    def success_notice(self, variables: ItemVariables, result: dict, partial) -> Notice:
        return success_notice(
            "Estimate restored",
            "Estimate moved back to active list. Portal meta will regenerate on next sync.",
        )


class EmptyTrash(OptimisticMutation[TrashVariables, BulkResult]):
    name = "empty_trash"
    failure_title = "Failed to empty trash"

    def optimistic_updates(self, variables: TrashVariables) -> list[OptimisticUpdate]:
        return [OptimisticUpdate(ADMIN_ESTIMATES_TRASH, clear_items)]

    def cancel_keys(self, variables: TrashVariables) -> list[QueryKey]:
        return [ADMIN_ESTIMATES_TRASH, ADMIN_ESTIMATES]

    async def mutate(self, variables: TrashVariables) -> BulkResult:
        body = {"confirm": CONFIRM_EMPTY_TRASH}
        if variables.location_id:
            body["locationId"] = variables.location_id
        payload = await self.client.post("/api/admin/estimates/trash/empty", body)
        result = BulkResult.model_validate(payload if isinstance(payload, dict) else {})
        if result.ok or (result.deleted and result.errors):
            return result
        raise RemoteError(
            error_message(payload, "Failed to empty trash. Please try again."),
            status=200,
            body=payload,
        )

    def partial_failure(self, variables: TrashVariables, result: BulkResult) -> Optional[PartialFailure]:
        if not result.errors:
            return None
        return PartialFailure(result.deleted, [error.model_dump() for error in result.errors])

    def success_notice(
        self, variables: TrashVariables, result: BulkResult, partial: Optional[PartialFailure]
    ) -> Notice:
        items = plural("item", result.deleted)
        if partial is not None:
            errors = f"{partial.failed} error{'' if partial.failed == 1 else 's'}"
            return Notice(
                NoticeLevel.WARNING,
                f"Trash emptied with {errors}. {items} deleted.",
                duration=7.0,
            )
        return success_notice(f"Trash emptied successfully. {items} permanently deleted.")


def _format_date(value: Any, default: date) -> str:
    if not value:
        return default.isoformat()
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return default.isoformat()


def build_update_payload(current: dict, update: EstimateUpdate) -> dict:
    """
    Full estimate body for PUT /ca/v1/estimate/update.

    GoHighLevel replaces the whole estimate, so fields the caller did not
    change are copied from the current estimate.
    """
    estimate = Estimate.model_validate({"id": update.estimate_id, **current})
    today = date.today()

    items = []
    for raw in update.items:
        line = LineItem.model_validate(raw)
        items.append(
            {
                "name": line.name,
                "description": line.description,
                "currency": line.currency or estimate.currency,
                "amount": line.amount,
                "qty": line.qty,
            }
        )

    if update.discount is not None:
        discount = update.discount
    else:
        discount = current.get("discount") or {"type": "percentage", "value": 0}

    return {
        "estimateId": update.estimate_id,
        "altId": update.location_id or estimate.location_id,
        "altType": "location",
        "name": (estimate.title or "Estimate")[:40],
        "title": estimate.title or "ESTIMATE",
        "businessDetails": current.get("businessDetails") or [{"name": "Cheap Alarms"}],
        "currency": estimate.currency,
        "discount": discount,
        "contactDetails": {
            "name": estimate.contact.name,
            "email": estimate.contact.email,
            "phoneNo": estimate.contact.phone,
        },
        "issueDate": _format_date(estimate.issue_date, today),
        "expiryDate": _format_date(estimate.expiry_date, today + timedelta(days=30)),
        "frequencySettings": current.get("frequencySettings") or {"enabled": False},
        "liveMode": current.get("liveMode", True),
        "items": items,
        "termsNotes": update.terms_notes if update.terms_notes is not None else estimate.terms_notes,
    }


class UpdateEstimate(OptimisticMutation[EstimateUpdate, dict]):
    name = "update_estimate"
    failure_title = "Failed to update estimate"

    def validate(self, variables: EstimateUpdate) -> None:
        require_id(variables.estimate_id, "estimateId")

    def guard_ids(self, variables: EstimateUpdate) -> frozenset:
        return frozenset({str(variables.estimate_id)})

    def optimistic_updates(self, variables: EstimateUpdate) -> list[OptimisticUpdate]:
        return [OptimisticUpdate(estimate_key(variables.estimate_id), patch_estimate(variables))]

    def invalidate_keys(self, variables: EstimateUpdate, result: Optional[dict]) -> list[QueryKey]:
        return [estimate_key(variables.estimate_id), ADMIN_ESTIMATES]

    async def mutate(self, variables: EstimateUpdate) -> dict:
        current = ensure_ok(
            await self.client.get(
                f"/api/admin/estimates/{variables.estimate_id}",
                params={"locationId": variables.location_id},
            ),
            "Invalid estimate data",
        )
        payload = await self.client.put(
            "/api/estimate/update", build_update_payload(current, variables)
        )
        return payload if isinstance(payload, dict) else {}

    def success_notice(self, variables: EstimateUpdate, result: dict, partial) -> Notice:
        return success_notice("Estimate updated")


class EstimateAction(OptimisticMutation[ItemVariables, dict]):
    """Server-side action on one estimate with no optimistic edit"""

    action = ""
    done_title = ""

    def validate(self, variables: ItemVariables) -> None:
        require_id(variables.id, "estimateId")

    def guard_ids(self, variables: ItemVariables) -> frozenset:
        return frozenset({str(variables.id)})

    def cancel_keys(self, variables: ItemVariables) -> list[QueryKey]:
        return []

    def invalidate_keys(self, variables: ItemVariables, result: Optional[dict]) -> list[QueryKey]:
        return [estimate_key(variables.id), ADMIN_ESTIMATES]

    async def mutate(self, variables: ItemVariables) -> dict:
        payload = await self.client.post(
            f"/api/admin/estimates/{variables.id}/{self.action}",
            params={"locationId": variables.location_id},
        )
        return payload if isinstance(payload, dict) else {}

    def success_notice(self, variables: ItemVariables, result: dict, partial) -> Notice:
        return success_notice(self.done_title)


class SendEstimate(EstimateAction):
    name = "send_estimate"
    action = "send"
    failure_title = "Failed to send estimate"
    done_title = "Estimate sent"


class SyncEstimate(EstimateAction):
    name = "sync_estimate"
    action = "sync"
    failure_title = "Failed to sync estimate"
    done_title = "Estimate synced from GoHighLevel"


class CreateInvoiceFromEstimate(EstimateAction):
    name = "create_invoice_from_estimate"
    action = "create-invoice"
    failure_title = "Failed to create invoice"
    done_title = "Invoice created"

    def invalidate_keys(self, variables: ItemVariables, result: Optional[dict]) -> list[QueryKey]:
        keys = [estimate_key(variables.id), ADMIN_ESTIMATES, ADMIN_INVOICES]
        invoice = (result or {}).get("invoice")
        if isinstance(invoice, dict) and invoice.get("id"):
            keys.append(invoice_key(invoice["id"]))
        return keys


# ============================================================================
# Invoices
# ============================================================================


class BulkDeleteInvoices(BulkMutation):
    name = "bulk_delete_invoices"
    path = "/api/admin/invoices/bulk-delete"
    ids_field = "invoiceIds"
    noun = "invoice"
    list_key = ADMIN_INVOICES
    affected = (ADMIN_INVOICES,)

    def complete_notice(self, variables: BulkVariables, result: BulkResult) -> Notice:
        if variables.scope is Scope.GHL:
            description = "The invoices have been removed from GoHighLevel."
        else:
            description = "The invoices have been deleted."
        return success_notice(f"Deleted {plural('invoice', result.deleted)} successfully", description)


class DeleteInvoice(ScopedDelete):
    name = "delete_invoice"
    path_template = "/api/admin/invoices/{id}/delete"
    id_field = "invoiceId"
    noun = "Invoice"
    list_key = ADMIN_INVOICES

    def cancel_keys(self, variables: ItemVariables) -> list[QueryKey]:
        return [ADMIN_INVOICES]

    def invalidate_keys(
        self, variables: ItemVariables, result: Optional[ScopedResult]
    ) -> list[QueryKey]:
        return [ADMIN_INVOICES, invoice_key(variables.id)]


class SyncInvoice(OptimisticMutation[ItemVariables, dict]):
    name = "sync_invoice"
    failure_title = "Failed to sync invoice"

    def validate(self, variables: ItemVariables) -> None:
        require_id(variables.id, "invoiceId")

    def guard_ids(self, variables: ItemVariables) -> frozenset:
        return frozenset({str(variables.id)})

    def cancel_keys(self, variables: ItemVariables) -> list[QueryKey]:
        return []

    def invalidate_keys(self, variables: ItemVariables, result: Optional[dict]) -> list[QueryKey]:
        return [invoice_key(variables.id), ADMIN_INVOICES]

    async def mutate(self, variables: ItemVariables) -> dict:
        payload = await self.client.post(
            f"/api/admin/invoices/{variables.id}/sync",
            params={"locationId": variables.location_id},
        )
        return payload if isinstance(payload, dict) else {}

    def success_notice(self, variables: ItemVariables, result: dict, partial) -> Notice:
        return success_notice("Invoice synced to Xero")


# ============================================================================
# Xero
# ============================================================================


class DisconnectXero(OptimisticMutation[None, dict]):
    name = "disconnect_xero"
    failure_title = "Failed to disconnect Xero"

    def invalidate_keys(self, variables: None, result: Optional[dict]) -> list[QueryKey]:
        return [XERO_STATUS]

    async def mutate(self, variables: None) -> dict:
        payload = await self.client.post("/api/xero/disconnect")
        # An authorization URL issued for the old connection is not reusable
        self.cache.remove_queries(XERO_AUTHORIZE)
        return payload if isinstance(payload, dict) else {}

    def success_notice(self, variables: None, result: dict, partial) -> Notice:
        return success_notice("Xero disconnected")


class SyncPayment(OptimisticMutation[PaymentVariables, dict]):
    """Push a recorded payment onto the invoice's existing Xero copy"""

    name = "sync_payment"
    failure_title = "Failed to sync payment to Xero"

    def validate(self, variables: PaymentVariables) -> None:
        require_id(variables.invoice_id, "invoiceId")

    def guard_ids(self, variables: PaymentVariables) -> frozenset:
        return frozenset({str(variables.invoice_id)})

    def invalidate_keys(
        self, variables: PaymentVariables, result: Optional[dict]
    ) -> list[QueryKey]:
        return [ADMIN_INVOICE, ADMIN_INVOICES]

    async def mutate(self, variables: PaymentVariables) -> dict:
        body = {
            "invoiceId": variables.invoice_id,
            "locationId": variables.location_id,
            "transactionId": variables.transaction_id,
        }
        payload = await self.client.post(
            "/api/xero/sync-payment", {k: v for k, v in body.items() if v is not None}
        )
        return payload if isinstance(payload, dict) else {}

    def success_notice(self, variables: PaymentVariables, result: dict, partial) -> Notice:
        return success_notice("Payment synced to Xero")


# ============================================================================
# Users and contacts
# ============================================================================


class BulkDeleteUsers(BulkMutation):
    name = "bulk_delete_users"
    path = "/api/admin/users/bulk-delete"
    ids_field = "userIds"
    noun = "user"
    list_key = WP_USERS
    affected = (WP_USERS, GHL_CONTACTS)

    def complete_notice(self, variables: BulkVariables, result: BulkResult) -> Notice:
        if variables.scope is Scope.GHL:
            description = "The contacts have been removed from GoHighLevel."
        else:
            description = "The users have been deleted."
        return success_notice(f"Deleted {plural('user', result.deleted)} successfully", description)


class DeleteUser(ScopedDelete):
    name = "delete_user"
    path_template = "/api/admin/users/{id}/delete"
    id_field = "userId"
    noun = "User"
    list_key = WP_USERS
    affected = (WP_USERS, GHL_CONTACTS)

    def complete_notice(self, variables: ItemVariables) -> Notice:
        return success_notice("User/contact deleted successfully")


class DeleteGhlContact(ScopedDelete):
    name = "delete_ghl_contact"
    path_template = "/api/admin/ghl/contacts/{id}/delete"
    id_field = "contactId"
    noun = "GHL contact"
    list_key = GHL_CONTACTS
    items_field = "contacts"
    affected = (GHL_CONTACTS,)
    fixed_scope = Scope.GHL


class DeleteByEmail(OptimisticMutation[EmailVariables, DeleteByEmailResult]):
    """Remove a customer's contact, estimates, invoices and WordPress user"""

    name = "delete_by_email"
    failure_title = "Delete failed"

    def validate(self, variables: EmailVariables) -> None:
        normalize_email(variables.email)

    def guard_ids(self, variables: EmailVariables) -> frozenset:
        return frozenset({normalize_email(variables.email).lower()})

    def cancel_keys(self, variables: EmailVariables) -> list[QueryKey]:
        return []

    def invalidate_keys(
        self, variables: EmailVariables, result: Optional[DeleteByEmailResult]
    ) -> list[QueryKey]:
        return [WP_USERS, GHL_CONTACTS, ADMIN_ESTIMATES, ADMIN_INVOICES]

    async def mutate(self, variables: EmailVariables) -> DeleteByEmailResult:
        body = {"email": normalize_email(variables.email), "confirm": CONFIRM_DELETE_ALL}
        if variables.location_id:
            body["locationId"] = variables.location_id

        payload = await self.client.post("/api/admin/data/delete-by-email", body)
        result = DeleteByEmailResult.model_validate(payload if isinstance(payload, dict) else {})
        if not result.ok and not result.failures() and result.error:
            raise RemoteError(result.error, status=200, body=payload)
        return result

    def partial_failure(
        self, variables: EmailVariables, result: DeleteByEmailResult
    ) -> Optional[PartialFailure]:
        failures = result.failures()
        if not failures:
            return None
        return PartialFailure(
            len(result.summary()),
            failures,
            context={"correlation_id": result.correlation_id},
        )

    def success_notice(
        self,
        variables: EmailVariables,
        result: DeleteByEmailResult,
        partial: Optional[PartialFailure],
    ) -> Notice:
        if partial is not None:
            return Notice(
                NoticeLevel.WARNING,
                "Deletion partially failed",
                result.error or ", ".join(item["message"] for item in partial.errors),
                duration=7.0,
            )

        parts = result.summary()
        if not parts:
            return success_notice("No data found to delete for this email")
        return success_notice(f"Complete deletion successful: {', '.join(parts)}")


# ============================================================================
# Registry
# ============================================================================


class AdminMutations:
    """One coordinator per write operation, all sharing one cache and client"""

    def __init__(self, cache, client):
        self.bulk_delete_estimates = BulkDeleteEstimates(cache, client)
        self.delete_estimate = DeleteEstimate(cache, client)
        self.bulk_restore_estimates = BulkRestoreEstimates(cache, client)
        self.restore_estimate = RestoreEstimate(cache, client)
        self.empty_trash = EmptyTrash(cache, client)
        self.update_estimate = UpdateEstimate(cache, client)
        self.send_estimate = SendEstimate(cache, client)
        self.sync_estimate = SyncEstimate(cache, client)
        self.create_invoice_from_estimate = CreateInvoiceFromEstimate(cache, client)
        self.bulk_delete_invoices = BulkDeleteInvoices(cache, client)
        self.delete_invoice = DeleteInvoice(cache, client)
        self.sync_invoice = SyncInvoice(cache, client)
        self.sync_payment = SyncPayment(cache, client)
        self.disconnect_xero = DisconnectXero(cache, client)
        self.bulk_delete_users = BulkDeleteUsers(cache, client)
        self.delete_user = DeleteUser(cache, client)
        self.delete_ghl_contact = DeleteGhlContact(cache, client)
        self.delete_by_email = DeleteByEmail(cache, client)

    def all(self) -> list[OptimisticMutation]:
        return list(vars(self).values())
