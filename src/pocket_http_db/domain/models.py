"""
Domain models — immutable records for the gateway configuration entities.

These are pure value objects with no behavior beyond self-description.
They represent the rows of the relational store after the nested tables
(gateway AAT, settings, sticky options, sync-check options, redirects,
load balancer membership) have been folded into their parent entity.

All models are frozen dataclasses and sequences are tuples.

Update models follow the zero-value sentinel convention: a field left at its
zero value (None, empty string) means "leave unchanged".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class AppStatus(StrEnum):
    """Lifecycle states of a gateway application."""

    AWAITING_FREETIER_FUNDS = "AWAITING_FREETIER_FUNDS"
    AWAITING_FREETIER_STAKE = "AWAITING_FREETIER_STAKE"
    AWAITING_FUNDS = "AWAITING_FUNDS"
    AWAITING_FUNDS_REMOVAL = "AWAITING_FUNDS_REMOVAL"
    AWAITING_GRACE_PERIOD = "AWAITING_GRACE_PERIOD"
    AWAITING_SLOT_FUNDS = "AWAITING_SLOT_FUNDS"
    AWAITING_SLOT_STAKE = "AWAITING_SLOT_STAKE"
    AWAITING_STAKE = "AWAITING_STAKE"
    AWAITING_UNSTAKE = "AWAITING_UNSTAKE"
    DECOMISSIONED = "DECOMISSIONED"
    IN_SERVICE = "IN_SERVICE"
    ORPHANED = "ORPHANED"
    READY = "READY"
    SWAPPABLE = "SWAPPABLE"


# ─────────────────────── Pay plans ───────────────────────


@dataclass(frozen=True, slots=True)
class PayPlan:
    """A relay quota tier. Maps to the `pay_plans` table."""

    plan_type: str
    daily_limit: int = 0


# ─────────────────────── Blockchains ───────────────────────


@dataclass(frozen=True, slots=True)
class SyncCheckOptions:
    """Node sync-check configuration of a blockchain (0 or 1 per chain)."""

    blockchain_id: str = ""
    sync_check: str = ""
    body: str = ""
    path: str = ""
    result_key: str = ""
    allowance: int = 0


@dataclass(frozen=True, slots=True)
class Redirect:
    """
    A domain alias routed to a load balancer for one blockchain.

    Append-only. `blockchain_id` must reference a cached Blockchain.
    """

    blockchain_id: str
    alias: str
    loadbalancer: str
    domain: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Blockchain:
    """
    A relay chain served by the gateway.

    Maps to the `blockchains` table, with `sync_check_options` and
    `redirects` folded in from their child tables.
    """

    blockchain_id: str
    active: bool = False
    altruist: str = ""
    blockchain: str = ""
    blockchain_aliases: tuple[str, ...] = ()
    chain_id: str = ""
    chain_id_check: str = ""
    description: str = ""
    enforce_result: str = ""
    log_limit_blocks: int = 0
    network: str = ""
    path: str = ""
    request_timeout: int = 0
    ticker: str = ""
    sync_check_options: SyncCheckOptions | None = None
    redirects: tuple[Redirect, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ─────────────────────── Applications ───────────────────────


@dataclass(frozen=True, slots=True)
class GatewayAAT:
    """
    Application Authentication Token material. Written once at creation.

    The private key never shows up in repr output.
    """

    address: str = ""
    application_public_key: str = ""
    application_signature: str = ""
    client_public_key: str = ""
    private_key: str = field(default="", repr=False)
    version: str = ""


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """Per-application request filtering (secret key and whitelists)."""

    secret_key: str = field(default="", repr=False)
    secret_key_required: bool = False
    whitelist_blockchains: tuple[str, ...] = ()
    whitelist_contracts: str = ""
    whitelist_methods: str = ""
    whitelist_origins: tuple[str, ...] = ()
    whitelist_user_agents: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class NotificationSettings:
    """Quota usage thresholds the owner wants to be notified about."""

    signed_up: bool = False
    on_quarter: bool = False
    on_half: bool = False
    on_three_quarters: bool = False
    on_full: bool = False


@dataclass(frozen=True, slots=True)
class AppLimits:
    """
    Derived relay limits of an application.

    Never persisted as such: assembled by the cache from the application's
    resolved PayPlan plus denormalized copies of the application's identity.
    """

    plan_type: str = ""
    daily_limit: int = 0
    app_id: str = ""
    app_name: str = ""
    app_user_id: str = ""
    public_key: str = ""
    notification_settings: NotificationSettings | None = None
    first_date_surpassed: datetime | None = None


@dataclass(frozen=True, slots=True)
class Application:
    """
    A gateway application owned by a user.

    `pay_plan_type` is the source reference read from the store; once the
    cache has assembled `limits` from it, the cached copy carries an empty
    `pay_plan_type` so the plan is only visible through `limits`.
    """

    application_id: str = ""
    user_id: str = ""
    name: str = ""
    status: AppStatus | None = None
    pay_plan_type: str = ""
    contact_email: str = ""
    description: str = ""
    owner: str = ""
    url: str = ""
    dummy: bool = False
    gateway_aat: GatewayAAT = field(default_factory=GatewayAAT)
    gateway_settings: GatewaySettings = field(default_factory=GatewaySettings)
    notification_settings: NotificationSettings = field(default_factory=NotificationSettings)
    first_date_surpassed: datetime | None = None
    limits: AppLimits | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class UpdateApplication:
    """
    Partial update of an Application.

    Zero-valued fields are treated as absent. Nested settings, when present,
    replace the cached object wholesale. `remove` requests a soft removal and
    must not be combined with field changes.
    """

    name: str = ""
    status: AppStatus | None = None
    pay_plan_type: str = ""
    first_date_surpassed: datetime | None = None
    gateway_settings: GatewaySettings | None = None
    notification_settings: NotificationSettings | None = None
    remove: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(
            self.name
            or self.status
            or self.pay_plan_type
            or self.first_date_surpassed is not None
            or self.gateway_settings is not None
            or self.notification_settings is not None
        )


@dataclass(frozen=True, slots=True)
class UpdateFirstDateSurpassed:
    """Batch update of the date on which applications first exceeded their limit."""

    application_ids: tuple[str, ...] = ()
    first_date_surpassed: datetime | None = None


# ─────────────────────── Load balancers ───────────────────────


@dataclass(frozen=True, slots=True)
class StickyOptions:
    """Session stickiness of a load balancer (0 or 1 per load balancer)."""

    duration: str = ""
    sticky_max: int = 0
    stickiness: bool = False
    origins: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LoadBalancer:
    """
    A named group of applications relaying together.

    The store carries membership as `application_ids`. Views returned by the
    cache carry the resolved `applications` instead and an empty id list.
    """

    lb_id: str = ""
    user_id: str = ""
    name: str = ""
    request_timeout: int = 0
    gigastake: bool = False
    gigastake_redirect: bool = False
    sticky_options: StickyOptions = field(default_factory=StickyOptions)
    application_ids: tuple[str, ...] = ()
    applications: tuple[Application, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class UpdateLoadBalancer:
    """Partial update of a LoadBalancer. Same conventions as UpdateApplication."""

    name: str = ""
    sticky_options: StickyOptions | None = None
    remove: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.name or self.sticky_options is not None)


# ─────────────────────── Bulk read ───────────────────────


@dataclass(frozen=True, slots=True)
class Dataset:
    """
    The complete configuration as returned by one bulk read of the store.

    Applications still carry their raw `pay_plan_type`; load balancers carry
    `application_ids` only.
    """

    pay_plans: tuple[PayPlan, ...] = ()
    blockchains: tuple[Blockchain, ...] = ()
    applications: tuple[Application, ...] = ()
    load_balancers: tuple[LoadBalancer, ...] = ()

    @property
    def total_items(self) -> int:
        return (
            len(self.pay_plans)
            + len(self.blockchains)
            + len(self.applications)
            + len(self.load_balancers)
        )
