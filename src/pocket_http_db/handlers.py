"""
Handlers — write-confirmed orchestration of store and cache.

Every write follows the same railway:

  validate(request)
    → store write (StoreWriter)
      → cache apply_* (only reached when the store succeeded)

A failure at any stage short-circuits the rest, so a rejected or failed
store write never reaches the cache. Reads go to the cache only.

Every failed write is logged here with structlog.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

import structlog
from railway import ErrorCode, FailureDescription
from railway.result import Result

from pocket_http_db.cache import Cache, check_nested_redirects
from pocket_http_db.domain.models import (
    Application,
    Blockchain,
    LoadBalancer,
    PayPlan,
    Redirect,
    UpdateApplication,
    UpdateFirstDateSurpassed,
    UpdateLoadBalancer,
)
from pocket_http_db.domain.ports import StoreWriter

log = structlog.get_logger()

T = TypeVar("T")


def _log_failure(operation: str, **context: object) -> Callable[[FailureDescription], None]:
    def _log(failure: FailureDescription) -> None:
        log.error(
            f"handlers.{operation}_failed",
            error_code=failure.code.value,
            error=failure.message,
            **context,
        )

    return _log


def _reject_contradictory(remove: bool, has_changes: bool) -> Result[bool]:
    if remove and has_changes:
        return Result.failure(
            ErrorCode.VALIDATION_ERROR, "remove cannot be combined with field changes",
        )
    return Result.success(remove)


# ─────────────────────── Reads ───────────────────────


def get_application(cache: Cache, application_id: str) -> Result[Application]:
    return Result.from_optional(
        cache.get_application(application_id),
        f"application not found: {application_id!r}",
        ErrorCode.NOT_FOUND,
    )


def get_load_balancer(cache: Cache, lb_id: str) -> Result[LoadBalancer]:
    return Result.from_optional(
        cache.get_load_balancer(lb_id),
        f"load balancer not found: {lb_id!r}",
        ErrorCode.NOT_FOUND,
    )


def get_blockchain(cache: Cache, blockchain_id: str) -> Result[Blockchain]:
    return Result.from_optional(
        cache.get_blockchain(blockchain_id),
        f"blockchain not found: {blockchain_id!r}",
        ErrorCode.NOT_FOUND,
    )


def get_pay_plan(cache: Cache, plan_type: str) -> Result[PayPlan]:
    """Plan types are stored upper-case; the lookup is case-insensitive."""
    return Result.from_optional(
        cache.get_pay_plan(plan_type.upper()),
        f"pay plan not found: {plan_type!r}",
        ErrorCode.NOT_FOUND,
    )


def _non_empty(items: list[T], message: str) -> Result[list[T]]:
    if not items:
        return Result.failure(ErrorCode.NOT_FOUND, message)
    return Result.success(items)


def list_applications_by_user(cache: Cache, user_id: str) -> Result[list[Application]]:
    """
    Applications of one user. The cache answers an empty list for unknown
    users; at the API boundary that is reported as not found.
    """
    return _non_empty(
        cache.list_applications_by_user(user_id),
        f"no applications found for user {user_id!r}",
    )


def list_load_balancers_by_user(cache: Cache, user_id: str) -> Result[list[LoadBalancer]]:
    return _non_empty(
        cache.list_load_balancers_by_user(user_id),
        f"no load balancers found for user {user_id!r}",
    )


# ─────────────────────── Applications ───────────────────────


def create_application(
    writer: StoreWriter, cache: Cache, app: Application,
) -> Result[Application]:
    return (
        writer.write_application(app)
        .flat_map(cache.apply_create_application)
        .peek_failure(_log_failure("create_application"))
    )


def update_application(
    writer: StoreWriter,
    cache: Cache,
    application_id: str,
    update: UpdateApplication,
) -> Result[Application]:
    """
    Update or soft-remove an application.

    The application must already be cached; a `remove` request is written
    through StoreWriter.remove_application, any other through
    StoreWriter.update_application.
    """

    def _write(remove: bool) -> Result[int]:
        if remove:
            return writer.remove_application(application_id)
        return writer.update_application(application_id, update)

    return (
        _reject_contradictory(update.remove, update.has_changes)
        .flat_map(lambda remove: get_application(cache, application_id).map(lambda _: remove))
        .flat_map(_write)
        .flat_map(lambda _: cache.apply_update_application(application_id, update))
        .peek_failure(_log_failure("update_application", application_id=application_id))
    )


def _all_cached(cache: Cache, application_ids: Sequence[str]) -> Result[int]:
    missing = [i for i in application_ids if cache.get_application(i) is None]
    if missing:
        return Result.failure(ErrorCode.NOT_FOUND, f"{', '.join(missing)} not found")
    return Result.success(len(application_ids))


def update_first_date_surpassed(
    writer: StoreWriter, cache: Cache, update: UpdateFirstDateSurpassed,
) -> Result[list[Application]]:
    return (
        Result.success(update)
        .ensure(
            lambda u: bool(u.application_ids),
            ErrorCode.VALIDATION_ERROR,
            "no application IDs on input",
        )
        .ensure(
            lambda u: u.first_date_surpassed is not None,
            ErrorCode.VALIDATION_ERROR,
            "first date surpassed is required",
        )
        .flat_map(lambda u: _all_cached(cache, u.application_ids))
        .flat_map(lambda _: writer.update_first_date_surpassed(update))
        .flat_map(lambda _: cache.apply_update_first_date_surpassed(update))
        .peek_failure(_log_failure("update_first_date_surpassed"))
    )


# ─────────────────────── Load balancers ───────────────────────


def create_load_balancer(
    writer: StoreWriter, cache: Cache, lb: LoadBalancer,
) -> Result[LoadBalancer]:
    return (
        writer.write_load_balancer(lb)
        .flat_map(cache.apply_create_load_balancer)
        .peek_failure(_log_failure("create_load_balancer"))
    )


def update_load_balancer(
    writer: StoreWriter,
    cache: Cache,
    lb_id: str,
    update: UpdateLoadBalancer,
) -> Result[LoadBalancer]:
    def _write(remove: bool) -> Result[int]:
        if remove:
            return writer.remove_load_balancer(lb_id)
        return writer.update_load_balancer(lb_id, update)

    return (
        _reject_contradictory(update.remove, update.has_changes)
        .flat_map(lambda remove: get_load_balancer(cache, lb_id).map(lambda _: remove))
        .flat_map(_write)
        .flat_map(lambda _: cache.apply_update_load_balancer(lb_id, update))
        .peek_failure(_log_failure("update_load_balancer", lb_id=lb_id))
    )


# ─────────────────────── Blockchains and redirects ───────────────────────


def create_blockchain(
    writer: StoreWriter, cache: Cache, blockchain: Blockchain,
) -> Result[Blockchain]:
    """Nested redirects must belong to the new blockchain; checked before the store write."""
    return (
        check_nested_redirects(blockchain)
        .flat_map(writer.write_blockchain)
        .flat_map(cache.apply_create_blockchain)
        .peek_failure(_log_failure("create_blockchain"))
    )


def activate_blockchain(
    writer: StoreWriter, cache: Cache, blockchain_id: str, active: bool,
) -> Result[Blockchain]:
    return (
        get_blockchain(cache, blockchain_id)
        .flat_map(lambda _: writer.activate_blockchain(blockchain_id, active))
        .flat_map(lambda _: cache.apply_activate_blockchain(blockchain_id, active))
        .peek_failure(_log_failure("activate_blockchain", blockchain_id=blockchain_id))
    )


def create_redirect(
    writer: StoreWriter, cache: Cache, redirect: Redirect,
) -> Result[Redirect]:
    return (
        writer.write_redirect(redirect)
        .flat_map(cache.apply_create_redirect)
        .peek_failure(_log_failure("create_redirect", blockchain_id=redirect.blockchain_id))
    )
