"""
Cache — the complete in-memory mirror of the gateway configuration.

Every read of the service is served from here. Writes never start here:
a handler writes to the store first and, only after the store confirmed,
replays the same change into the cache through one of the apply_* methods.
The cache itself never calls the store except for the single bulk read in
populate(), and it never logs (observability belongs to the handlers).

Indices:
  applications    application_id → Application
  load_balancers  lb_id          → LoadBalancer (membership kept as ids)
  blockchains     blockchain_id  → Blockchain
  pay_plans       plan_type      → PayPlan
  apps_by_user    user_id        → {application_id}
  lbs_by_user     user_id        → {lb_id}

Consistency model:
  - Cached values are frozen snapshots. A mutation computes a new value and
    installs it, together with every index change it implies, while holding
    the exclusive side of one ReadWriteLock. A reader therefore sees either
    the whole pre-update or the whole post-update state.
  - Load balancer views resolve their member applications at read time,
    under the same read lock, so they always list current applications.
  - Application.limits is derived data, recomputed on every cache mutation
    of the application. A PayPlan change in the store is NOT propagated to
    applications already on that plan until their next update.

Partial updates use the zero-value sentinel: an update field holding None
or an empty string is "leave unchanged". A field therefore cannot be
cleared back to empty through apply_update_*.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

from railway import ErrorCode
from railway.result import Result

from pocket_http_db.domain.models import (
    Application,
    AppLimits,
    AppStatus,
    Blockchain,
    Dataset,
    LoadBalancer,
    PayPlan,
    Redirect,
    UpdateApplication,
    UpdateFirstDateSurpassed,
    UpdateLoadBalancer,
)
from pocket_http_db.domain.ports import StoreReader
from pocket_http_db.rwlock import ReadWriteLock

REMOVED_APPLICATION_STATUS = AppStatus.AWAITING_GRACE_PERIOD


class CacheNotPopulatedError(RuntimeError):
    """Raised when the mirror is used before a successful populate()."""


# ─────────────────────── Failure helpers ───────────────────────


def _not_found(kind: str, identifier: str) -> Result[Any]:
    return Result.failure(ErrorCode.NOT_FOUND, f"{kind} not found: {identifier!r}")


def _inconsistent_reference(kind: str, identifier: str) -> Result[Any]:
    return Result.failure(
        ErrorCode.TECHNICAL_ERROR,
        f"inconsistent reference: {kind} {identifier!r} is not cached",
    )


def _invalid(message: str) -> Result[Any]:
    return Result.failure(ErrorCode.VALIDATION_ERROR, message)


# ─────────────────────── Derived fields ───────────────────────


def assemble_limits(app: Application, plan_type: str, daily_limit: int) -> AppLimits:
    """Build the AppLimits of an application for the given plan values."""
    return AppLimits(
        plan_type=plan_type,
        daily_limit=daily_limit,
        app_id=app.application_id,
        app_name=app.name,
        app_user_id=app.user_id,
        public_key=app.gateway_aat.application_public_key,
        notification_settings=app.notification_settings,
        first_date_surpassed=app.first_date_surpassed,
    )


def _with_limits(app: Application, plan: PayPlan | None) -> Application:
    """
    Return `app` with fresh limits and no raw pay_plan_type.

    With no plan given, the plan values already held in app.limits are kept
    and only the denormalized application fields are refreshed.
    """
    if plan is not None:
        plan_type, daily_limit = plan.plan_type, plan.daily_limit
    elif app.limits is not None:
        plan_type, daily_limit = app.limits.plan_type, app.limits.daily_limit
    else:
        plan_type, daily_limit = "", 0
    return replace(app, pay_plan_type="", limits=assemble_limits(app, plan_type, daily_limit))


def _merge_application(current: Application, update: UpdateApplication) -> Application:
    """Sentinel merge: copy every non-zero update field over the cached value."""
    changes: dict[str, Any] = {}
    if update.name:
        changes["name"] = update.name
    if update.status:
        changes["status"] = update.status
    if update.first_date_surpassed is not None:
        changes["first_date_surpassed"] = update.first_date_surpassed
    if update.gateway_settings is not None:
        changes["gateway_settings"] = update.gateway_settings
    if update.notification_settings is not None:
        changes["notification_settings"] = update.notification_settings
    return replace(current, **changes)


def _merge_load_balancer(current: LoadBalancer, update: UpdateLoadBalancer) -> LoadBalancer:
    changes: dict[str, Any] = {}
    if update.name:
        changes["name"] = update.name
    if update.sticky_options is not None:
        changes["sticky_options"] = update.sticky_options
    return replace(current, **changes)


def check_nested_redirects(blockchain: Blockchain) -> Result[Blockchain]:
    """Fail unless every nested redirect names `blockchain` as its chain."""
    foreign = sorted({
        r.blockchain_id for r in blockchain.redirects
        if r.blockchain_id != blockchain.blockchain_id
    })
    if foreign:
        return _invalid(
            f"redirects of blockchain {blockchain.blockchain_id!r} "
            f"name other blockchains: {', '.join(foreign)}"
        )
    return Result.success(blockchain)


def _move_owner(index: dict[str, set[str]], entity_id: str, old_user: str, new_user: str) -> None:
    """Keep a user → ids bucket index in step with an ownership change."""
    if old_user and old_user != new_user:
        bucket = index.get(old_user)
        if bucket is not None:
            bucket.discard(entity_id)
            if not bucket:
                del index[old_user]
    if new_user:
        index.setdefault(new_user, set()).add(entity_id)


# ─────────────────────── Cache ───────────────────────


class Cache:
    """
    In-memory mirror with write-confirmed mutation.

    Lookups return the cached snapshot or None. Mutations return
    Result[...] holding the post-mutation snapshot, or a failure with:
      - ErrorCode.NOT_FOUND         unknown identifier
      - ErrorCode.TECHNICAL_ERROR   inconsistent reference (store/mirror drift)
      - ErrorCode.VALIDATION_ERROR  contradictory or incomplete request
    A failed mutation leaves the cache unchanged.
    """

    def __init__(self, reader: StoreReader) -> None:
        self._reader = reader
        self._lock = ReadWriteLock()
        self._populated = False
        self._applications: dict[str, Application] = {}
        self._load_balancers: dict[str, LoadBalancer] = {}
        self._blockchains: dict[str, Blockchain] = {}
        self._pay_plans: dict[str, PayPlan] = {}
        self._apps_by_user: dict[str, set[str]] = {}
        self._lbs_by_user: dict[str, set[str]] = {}

    @property
    def is_populated(self) -> bool:
        return self._populated

    # ──────────────────────── Population ────────────────────────

    def populate(self) -> Result[int]:
        """
        Rebuild every index from one bulk read of the store.

        Holds the exclusive lock for the whole run. On failure the store's
        failure is returned unchanged and the cache stays unusable: every
        later read raises CacheNotPopulatedError until a populate succeeds.

        Returns Result[int] with the number of entities loaded.
        """
        with self._lock.write_locked():
            self._populated = False
            return self._reader.read_all().flat_map(self._install_dataset)

    def _install_dataset(self, dataset: Dataset) -> Result[int]:
        pay_plans = {plan.plan_type: plan for plan in dataset.pay_plans}

        applications: dict[str, Application] = {}
        apps_by_user: dict[str, set[str]] = {}
        for raw in dataset.applications:
            plan = None
            if raw.pay_plan_type:
                plan = pay_plans.get(raw.pay_plan_type)
                if plan is None:
                    return _inconsistent_reference("pay plan", raw.pay_plan_type)
            applications[raw.application_id] = _with_limits(raw, plan)
            _move_owner(apps_by_user, raw.application_id, "", raw.user_id)

        load_balancers: dict[str, LoadBalancer] = {}
        lbs_by_user: dict[str, set[str]] = {}
        for lb in dataset.load_balancers:
            for app_id in lb.application_ids:
                if app_id not in applications:
                    return _inconsistent_reference("application", app_id)
            load_balancers[lb.lb_id] = replace(lb, applications=())
            _move_owner(lbs_by_user, lb.lb_id, "", lb.user_id)

        self._pay_plans = pay_plans
        self._blockchains = {chain.blockchain_id: chain for chain in dataset.blockchains}
        self._applications = applications
        self._apps_by_user = apps_by_user
        self._load_balancers = load_balancers
        self._lbs_by_user = lbs_by_user
        self._populated = True
        return Result.success(dataset.total_items)

    @contextmanager
    def _reading(self) -> Iterator[None]:
        with self._lock.read_locked():
            self._require_populated()
            yield

    @contextmanager
    def _writing(self) -> Iterator[None]:
        with self._lock.write_locked():
            self._require_populated()
            yield

    def _require_populated(self) -> None:
        if not self._populated:
            raise CacheNotPopulatedError("cache has not been populated from the store")

    # ──────────────────────── Lookup ────────────────────────

    def get_application(self, application_id: str) -> Application | None:
        with self._reading():
            return self._applications.get(application_id)

    def get_load_balancer(self, lb_id: str) -> LoadBalancer | None:
        with self._reading():
            lb = self._load_balancers.get(lb_id)
            return None if lb is None else self._view(lb)

    def get_blockchain(self, blockchain_id: str) -> Blockchain | None:
        with self._reading():
            return self._blockchains.get(blockchain_id)

    def get_pay_plan(self, plan_type: str) -> PayPlan | None:
        with self._reading():
            return self._pay_plans.get(plan_type)

    def list_applications(self) -> list[Application]:
        with self._reading():
            return list(self._applications.values())

    def list_application_limits(self) -> list[AppLimits]:
        """Limits of every cached application, in index order."""
        with self._reading():
            return [app.limits for app in self._applications.values() if app.limits is not None]

    def list_load_balancers(self) -> list[LoadBalancer]:
        with self._reading():
            return [self._view(lb) for lb in self._load_balancers.values()]

    def list_blockchains(self) -> list[Blockchain]:
        with self._reading():
            return list(self._blockchains.values())

    def list_pay_plans(self) -> list[PayPlan]:
        with self._reading():
            return list(self._pay_plans.values())

    def list_applications_by_user(self, user_id: str) -> list[Application]:
        """Applications owned by `user_id`; empty when the user owns none."""
        with self._reading():
            ids = sorted(self._apps_by_user.get(user_id, ()))
            return [self._applications[app_id] for app_id in ids]

    def list_load_balancers_by_user(self, user_id: str) -> list[LoadBalancer]:
        """Load balancers owned by `user_id`; empty when the user owns none."""
        with self._reading():
            ids = sorted(self._lbs_by_user.get(user_id, ()))
            return [self._view(self._load_balancers[lb_id]) for lb_id in ids]

    def _view(self, lb: LoadBalancer) -> LoadBalancer:
        """Materialize member applications; caller holds the lock."""
        members = tuple(
            self._applications[app_id]
            for app_id in lb.application_ids
            if app_id in self._applications
        )
        return replace(lb, applications=members, application_ids=())

    # ──────────────────────── Applications ────────────────────────

    def apply_create_application(self, app: Application) -> Result[Application]:
        """
        Insert an application the store has just persisted.

        A set pay_plan_type is resolved against the cached pay plans into
        `limits` and then cleared. An unknown plan fails with an
        inconsistent reference and nothing is inserted. Limits carried by
        `app` itself are discarded; without a plan they are ("", 0).
        """
        if not app.application_id:
            return _invalid("application id is required")
        fresh = replace(app, limits=None)
        with self._writing():
            if fresh.pay_plan_type:
                return self._plan(fresh.pay_plan_type).map(
                    lambda plan: self._install_application(_with_limits(fresh, plan))
                )
            return Result.success(self._install_application(_with_limits(fresh, None)))

    def apply_update_application(
        self, application_id: str, update: UpdateApplication,
    ) -> Result[Application]:
        """
        Merge a confirmed partial update into the cached application.

        A request flagged `remove` is routed to apply_remove_application and
        must carry no field changes.
        """
        if update.remove:
            if update.has_changes:
                return _invalid("remove cannot be combined with field changes")
            return self.apply_remove_application(application_id)

        with self._writing():
            current = self._applications.get(application_id)
            if current is None:
                return _not_found("application", application_id)
            merged = _merge_application(current, update)
            if update.pay_plan_type:
                return self._plan(update.pay_plan_type).map(
                    lambda plan: self._install_application(_with_limits(merged, plan))
                )
            return Result.success(self._install_application(_with_limits(merged, None)))

    def apply_remove_application(self, application_id: str) -> Result[Application]:
        """Soft removal: the application stays indexed in the grace-period status."""
        with self._writing():
            current = self._applications.get(application_id)
            if current is None:
                return _not_found("application", application_id)
            return Result.success(
                self._install_application(replace(current, status=REMOVED_APPLICATION_STATUS))
            )

    def apply_update_first_date_surpassed(
        self, update: UpdateFirstDateSurpassed,
    ) -> Result[list[Application]]:
        """
        Stamp first_date_surpassed on a batch of applications.

        All or nothing: if any id is unknown no application is touched.
        """
        if not update.application_ids:
            return _invalid("no application IDs on input")
        if update.first_date_surpassed is None:
            return _invalid("first date surpassed is required")

        with self._writing():
            missing = [i for i in update.application_ids if i not in self._applications]
            if missing:
                return _not_found("application", ", ".join(missing))
            return Result.success([
                self._install_application(
                    _with_limits(
                        replace(
                            self._applications[app_id],
                            first_date_surpassed=update.first_date_surpassed,
                        ),
                        None,
                    )
                )
                for app_id in update.application_ids
            ])

    def _plan(self, plan_type: str) -> Result[PayPlan]:
        plan = self._pay_plans.get(plan_type)
        if plan is None:
            return _inconsistent_reference("pay plan", plan_type)
        return Result.success(plan)

    def _install_application(self, app: Application) -> Application:
        previous = self._applications.get(app.application_id)
        self._applications[app.application_id] = app
        _move_owner(
            self._apps_by_user,
            app.application_id,
            previous.user_id if previous is not None else "",
            app.user_id,
        )
        return app

    # ──────────────────────── Load balancers ────────────────────────

    def apply_create_load_balancer(self, lb: LoadBalancer) -> Result[LoadBalancer]:
        """
        Insert a load balancer the store has just persisted.

        Every member id must name a cached application. Returns the view
        with `applications` resolved and `application_ids` cleared.
        """
        if not lb.lb_id:
            return _invalid("load balancer id is required")
        with self._writing():
            missing = [i for i in lb.application_ids if i not in self._applications]
            if missing:
                return _inconsistent_reference("application", ", ".join(missing))
            return Result.success(self._view(self._install_load_balancer(replace(lb, applications=()))))

    def apply_update_load_balancer(
        self, lb_id: str, update: UpdateLoadBalancer,
    ) -> Result[LoadBalancer]:
        """Merge a confirmed partial update into the cached load balancer."""
        if update.remove:
            if update.has_changes:
                return _invalid("remove cannot be combined with field changes")
            return self.apply_remove_load_balancer(lb_id)

        with self._writing():
            current = self._load_balancers.get(lb_id)
            if current is None:
                return _not_found("load balancer", lb_id)
            merged = _merge_load_balancer(current, update)
            return Result.success(self._view(self._install_load_balancer(merged)))

    def apply_remove_load_balancer(self, lb_id: str) -> Result[LoadBalancer]:
        """Soft removal: the owner is cleared and the balancer leaves its user bucket."""
        with self._writing():
            current = self._load_balancers.get(lb_id)
            if current is None:
                return _not_found("load balancer", lb_id)
            return Result.success(self._view(self._install_load_balancer(replace(current, user_id=""))))

    def _install_load_balancer(self, lb: LoadBalancer) -> LoadBalancer:
        previous = self._load_balancers.get(lb.lb_id)
        self._load_balancers[lb.lb_id] = lb
        _move_owner(
            self._lbs_by_user,
            lb.lb_id,
            previous.user_id if previous is not None else "",
            lb.user_id,
        )
        return lb

    # ──────────────────────── Blockchains ────────────────────────

    def apply_create_blockchain(self, blockchain: Blockchain) -> Result[Blockchain]:
        if not blockchain.blockchain_id:
            return _invalid("blockchain id is required")
        checked = check_nested_redirects(blockchain)
        if checked.is_failure():
            return checked
        with self._writing():
            self._blockchains[blockchain.blockchain_id] = blockchain
            return Result.success(blockchain)

    def apply_activate_blockchain(self, blockchain_id: str, active: bool) -> Result[Blockchain]:
        with self._writing():
            current = self._blockchains.get(blockchain_id)
            if current is None:
                return _not_found("blockchain", blockchain_id)
            updated = replace(current, active=active)
            self._blockchains[blockchain_id] = updated
            return Result.success(updated)

    def apply_create_redirect(self, redirect: Redirect) -> Result[Redirect]:
        """Append a persisted redirect to its blockchain's redirect list."""
        with self._writing():
            chain = self._blockchains.get(redirect.blockchain_id)
            if chain is None:
                return _inconsistent_reference("blockchain", redirect.blockchain_id)
            self._blockchains[chain.blockchain_id] = replace(
                chain, redirects=(*chain.redirects, redirect),
            )
            return Result.success(redirect)
