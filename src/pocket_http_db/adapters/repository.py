"""
PostgreSQL store adapter — bulk read and per-entity writes.

Implements the StoreReader and StoreWriter ports using
psycopg (v3) with parameterized queries.

Reading: one connection, one query per table, child rows folded into their
parent entity in Python:
  pay_plans                                   → PayPlan
  blockchains + sync_check_options + redirects → Blockchain
  applications + gateway_aat + gateway_settings + notification_settings
                                              → Application
  loadbalancers + stickiness_options + lb_apps → LoadBalancer

Writing: one ACID transaction per operation. Creates return the persisted
record with its generated identifier and database timestamps; updates
return the number of affected parent rows.

No ORM: plain parameterized SQL.
"""

from __future__ import annotations

import secrets
from collections import defaultdict
from collections.abc import Callable
from dataclasses import replace
from typing import Any, TypeVar

import psycopg
import structlog
from psycopg.rows import dict_row
from railway import ErrorCode
from railway.result import Result
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pocket_http_db.domain.models import (
    Application,
    AppStatus,
    Blockchain,
    Dataset,
    GatewayAAT,
    GatewaySettings,
    LoadBalancer,
    NotificationSettings,
    PayPlan,
    Redirect,
    StickyOptions,
    SyncCheckOptions,
    UpdateApplication,
    UpdateFirstDateSurpassed,
    UpdateLoadBalancer,
)

log = structlog.get_logger()

T = TypeVar("T")

type _Row = dict[str, Any]
type _Cursor = psycopg.Cursor[_Row]

# ─────────────────────── Read queries ───────────────────────

_SELECT_PAY_PLANS = "SELECT plan_type, daily_limit FROM pay_plans"

_SELECT_BLOCKCHAINS = """
SELECT blockchain_id, active, altruist, blockchain, blockchain_aliases, chain_id,
       chain_id_check, description, enforce_result, log_limit_blocks, network,
       path, request_timeout, ticker, created_at, updated_at
FROM blockchains
"""

_SELECT_SYNC_CHECK_OPTIONS = """
SELECT blockchain_id, synccheck, body, path, result_key, allowance
FROM sync_check_options
"""

_SELECT_REDIRECTS = """
SELECT blockchain_id, alias, loadbalancer, domain, created_at, updated_at
FROM redirects ORDER BY id
"""

_SELECT_APPLICATIONS = """
SELECT application_id, user_id, name, status, pay_plan_type, contact_email,
       description, owner, url, dummy, first_date_surpassed, created_at, updated_at
FROM applications
"""

_SELECT_GATEWAY_AAT = """
SELECT application_id, address, public_key, private_key, signature,
       client_public_key, version
FROM gateway_aat
"""

_SELECT_GATEWAY_SETTINGS = """
SELECT application_id, secret_key, secret_key_required, whitelist_blockchains,
       whitelist_contracts, whitelist_methods, whitelist_origins, whitelist_user_agents
FROM gateway_settings
"""

_SELECT_NOTIFICATION_SETTINGS = """
SELECT application_id, signed_up, on_quarter, on_half, on_three_quarters, on_full
FROM notification_settings
"""

_SELECT_LOAD_BALANCERS = """
SELECT lb_id, user_id, name, request_timeout, gigastake, gigastake_redirect,
       created_at, updated_at
FROM loadbalancers
"""

_SELECT_STICKINESS_OPTIONS = """
SELECT lb_id, duration, sticky_max, stickiness, origins FROM stickiness_options
"""

_SELECT_LB_APPS = "SELECT lb_id, app_id FROM lb_apps ORDER BY id"

# ─────────────────────── Write statements ───────────────────────

_INSERT_APPLICATION = """
INSERT INTO applications (
    application_id, user_id, name, status, pay_plan_type, contact_email,
    description, owner, url, dummy, first_date_surpassed, created_at, updated_at
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, now(), now())
RETURNING created_at, updated_at
"""

_INSERT_GATEWAY_AAT = """
INSERT INTO gateway_aat (
    application_id, address, public_key, private_key, signature, client_public_key, version
) VALUES (%s, %s, %s, %s, %s, %s, %s)
"""

_UPSERT_GATEWAY_SETTINGS = """
INSERT INTO gateway_settings (
    application_id, secret_key, secret_key_required, whitelist_blockchains,
    whitelist_contracts, whitelist_methods, whitelist_origins, whitelist_user_agents
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
ON CONFLICT (application_id) DO UPDATE SET
    secret_key = EXCLUDED.secret_key,
    secret_key_required = EXCLUDED.secret_key_required,
    whitelist_blockchains = EXCLUDED.whitelist_blockchains,
    whitelist_contracts = EXCLUDED.whitelist_contracts,
    whitelist_methods = EXCLUDED.whitelist_methods,
    whitelist_origins = EXCLUDED.whitelist_origins,
    whitelist_user_agents = EXCLUDED.whitelist_user_agents
"""

_UPSERT_NOTIFICATION_SETTINGS = """
INSERT INTO notification_settings (
    application_id, signed_up, on_quarter, on_half, on_three_quarters, on_full
) VALUES (%s, %s, %s, %s, %s, %s)
ON CONFLICT (application_id) DO UPDATE SET
    signed_up = EXCLUDED.signed_up,
    on_quarter = EXCLUDED.on_quarter,
    on_half = EXCLUDED.on_half,
    on_three_quarters = EXCLUDED.on_three_quarters,
    on_full = EXCLUDED.on_full
"""

_UPDATE_APPLICATION = "UPDATE applications SET {assignments} WHERE application_id = %s"

_REMOVE_APPLICATION = """
UPDATE applications SET status = %s, updated_at = now() WHERE application_id = %s
"""

_UPDATE_FIRST_DATE_SURPASSED = """
UPDATE applications SET first_date_surpassed = %s, updated_at = now()
WHERE application_id = ANY(%s)
"""

_INSERT_LOAD_BALANCER = """
INSERT INTO loadbalancers (
    lb_id, user_id, name, request_timeout, gigastake, gigastake_redirect,
    created_at, updated_at
) VALUES (%s, %s, %s, %s, %s, %s, now(), now())
RETURNING created_at, updated_at
"""

_UPSERT_STICKINESS_OPTIONS = """
INSERT INTO stickiness_options (lb_id, duration, sticky_max, stickiness, origins)
VALUES (%s, %s, %s, %s, %s)
ON CONFLICT (lb_id) DO UPDATE SET
    duration = EXCLUDED.duration,
    sticky_max = EXCLUDED.sticky_max,
    stickiness = EXCLUDED.stickiness,
    origins = EXCLUDED.origins
"""

_INSERT_LB_APP = "INSERT INTO lb_apps (lb_id, app_id) VALUES (%s, %s)"

_UPDATE_LOAD_BALANCER_NAME = """
UPDATE loadbalancers SET name = %s, updated_at = now() WHERE lb_id = %s
"""

_TOUCH_LOAD_BALANCER = "UPDATE loadbalancers SET updated_at = now() WHERE lb_id = %s"

_REMOVE_LOAD_BALANCER = """
UPDATE loadbalancers SET user_id = '', updated_at = now() WHERE lb_id = %s
"""

_INSERT_BLOCKCHAIN = """
INSERT INTO blockchains (
    blockchain_id, active, altruist, blockchain, blockchain_aliases, chain_id,
    chain_id_check, description, enforce_result, log_limit_blocks, network,
    path, request_timeout, ticker, created_at, updated_at
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, now(), now())
RETURNING created_at, updated_at
"""

_INSERT_SYNC_CHECK_OPTIONS = """
INSERT INTO sync_check_options (blockchain_id, synccheck, body, path, result_key, allowance)
VALUES (%s, %s, %s, %s, %s, %s)
"""

_ACTIVATE_BLOCKCHAIN = """
UPDATE blockchains SET active = %s, updated_at = now() WHERE blockchain_id = %s
"""

_INSERT_REDIRECT = """
INSERT INTO redirects (blockchain_id, alias, loadbalancer, domain, created_at, updated_at)
VALUES (%s, %s, %s, %s, now(), now())
RETURNING created_at, updated_at
"""


def new_id() -> str:
    """24 hex characters, the identifier format of existing applications and load balancers."""
    return secrets.token_hex(12)


def _text(row: _Row, column: str) -> str:
    return row[column] or ""


def _texts(row: _Row, column: str) -> tuple[str, ...]:
    return tuple(row[column] or ())


# ─────────────────────── Row mapping ───────────────────────


def _to_blockchain(
    row: _Row,
    sync_checks: dict[str, SyncCheckOptions],
    redirects: dict[str, list[Redirect]],
) -> Blockchain:
    chain_id = row["blockchain_id"]
    return Blockchain(
        blockchain_id=chain_id,
        active=bool(row["active"]),
        altruist=_text(row, "altruist"),
        blockchain=_text(row, "blockchain"),
        blockchain_aliases=_texts(row, "blockchain_aliases"),
        chain_id=_text(row, "chain_id"),
        chain_id_check=_text(row, "chain_id_check"),
        description=_text(row, "description"),
        enforce_result=_text(row, "enforce_result"),
        log_limit_blocks=row["log_limit_blocks"] or 0,
        network=_text(row, "network"),
        path=_text(row, "path"),
        request_timeout=row["request_timeout"] or 0,
        ticker=_text(row, "ticker"),
        sync_check_options=sync_checks.get(chain_id),
        redirects=tuple(redirects.get(chain_id, ())),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _to_application(
    row: _Row,
    aats: dict[str, GatewayAAT],
    settings: dict[str, GatewaySettings],
    notifications: dict[str, NotificationSettings],
) -> Application:
    app_id = row["application_id"]
    return Application(
        application_id=app_id,
        user_id=_text(row, "user_id"),
        name=_text(row, "name"),
        status=AppStatus(row["status"]) if row["status"] else None,
        pay_plan_type=_text(row, "pay_plan_type"),
        contact_email=_text(row, "contact_email"),
        description=_text(row, "description"),
        owner=_text(row, "owner"),
        url=_text(row, "url"),
        dummy=bool(row["dummy"]),
        gateway_aat=aats.get(app_id, GatewayAAT()),
        gateway_settings=settings.get(app_id, GatewaySettings()),
        notification_settings=notifications.get(app_id, NotificationSettings()),
        first_date_surpassed=row["first_date_surpassed"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _to_load_balancer(
    row: _Row,
    sticky: dict[str, StickyOptions],
    members: dict[str, list[str]],
) -> LoadBalancer:
    lb_id = row["lb_id"]
    return LoadBalancer(
        lb_id=lb_id,
        user_id=_text(row, "user_id"),
        name=_text(row, "name"),
        request_timeout=row["request_timeout"] or 0,
        gigastake=bool(row["gigastake"]),
        gigastake_redirect=bool(row["gigastake_redirect"]),
        sticky_options=sticky.get(lb_id, StickyOptions()),
        application_ids=tuple(members.get(lb_id, ())),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PsycopgStore:
    """
    Read and write the gateway configuration in PostgreSQL.

    Implements both the StoreReader and the StoreWriter port.
    All exceptions are caught at this adapter boundary via Result.from_computation()
    and surface as ErrorCode.DATABASE_ERROR failures.
    """

    def __init__(self, dsn: str, retry_attempts: int = 3) -> None:
        self._dsn = dsn
        self._retry_attempts = retry_attempts

    def _in_transaction(self, work: Callable[[_Cursor], T]) -> T:
        """Run `work` in one transaction; psycopg rolls back if it raises."""
        with (
            psycopg.connect(self._dsn) as conn,
            conn.transaction(),
            conn.cursor(row_factory=dict_row) as cur,
        ):
            return work(cur)

    # ──────────────────────── StoreReader ────────────────────────

    def read_all(self) -> Result[Dataset]:
        """
        Read every entity in one consistent snapshot.

        Transient connection failures are retried before giving up.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=1, min=0.1, max=30),
            retry=retry_if_exception_type(psycopg.OperationalError),
            reraise=True,
        )
        return Result.from_computation(
            lambda: retrying(self._read_dataset),
            ErrorCode.DATABASE_ERROR,
            "Failed to read the configuration dataset",
        )

    def _read_dataset(self) -> Dataset:
        """One bulk read attempt; retried by read_all."""
        with psycopg.connect(self._dsn) as conn:
            # REPEATABLE READ: every table is read from the same snapshot
            conn.isolation_level = psycopg.IsolationLevel.REPEATABLE_READ
            with conn.transaction(), conn.cursor(row_factory=dict_row) as cur:
                dataset = Dataset(
                    pay_plans=self._read_pay_plans(cur),
                    blockchains=self._read_blockchains(cur),
                    applications=self._read_applications(cur),
                    load_balancers=self._read_load_balancers(cur),
                )
        log.info(
            "repository.dataset_read",
            pay_plans=len(dataset.pay_plans),
            blockchains=len(dataset.blockchains),
            applications=len(dataset.applications),
            load_balancers=len(dataset.load_balancers),
        )
        return dataset

    def _read_pay_plans(self, cur: _Cursor) -> tuple[PayPlan, ...]:
        cur.execute(_SELECT_PAY_PLANS)
        return tuple(
            PayPlan(plan_type=row["plan_type"], daily_limit=row["daily_limit"])
            for row in cur.fetchall()
        )

    def _read_blockchains(self, cur: _Cursor) -> tuple[Blockchain, ...]:
        cur.execute(_SELECT_SYNC_CHECK_OPTIONS)
        sync_checks = {
            row["blockchain_id"]: SyncCheckOptions(
                blockchain_id=row["blockchain_id"],
                sync_check=_text(row, "synccheck"),
                body=_text(row, "body"),
                path=_text(row, "path"),
                result_key=_text(row, "result_key"),
                allowance=row["allowance"] or 0,
            )
            for row in cur.fetchall()
        }

        cur.execute(_SELECT_REDIRECTS)
        redirects: dict[str, list[Redirect]] = defaultdict(list)
        for row in cur.fetchall():
            redirects[row["blockchain_id"]].append(Redirect(**row))

        cur.execute(_SELECT_BLOCKCHAINS)
        return tuple(_to_blockchain(row, sync_checks, redirects) for row in cur.fetchall())

    def _read_applications(self, cur: _Cursor) -> tuple[Application, ...]:
        cur.execute(_SELECT_GATEWAY_AAT)
        aats = {
            row["application_id"]: GatewayAAT(
                address=row["address"],
                application_public_key=row["public_key"],
                application_signature=row["signature"],
                client_public_key=row["client_public_key"],
                private_key=_text(row, "private_key"),
                version=_text(row, "version"),
            )
            for row in cur.fetchall()
        }

        cur.execute(_SELECT_GATEWAY_SETTINGS)
        settings = {
            row["application_id"]: GatewaySettings(
                secret_key=_text(row, "secret_key"),
                secret_key_required=bool(row["secret_key_required"]),
                whitelist_blockchains=_texts(row, "whitelist_blockchains"),
                whitelist_contracts=_text(row, "whitelist_contracts"),
                whitelist_methods=_text(row, "whitelist_methods"),
                whitelist_origins=_texts(row, "whitelist_origins"),
                whitelist_user_agents=_texts(row, "whitelist_user_agents"),
            )
            for row in cur.fetchall()
        }

        cur.execute(_SELECT_NOTIFICATION_SETTINGS)
        notifications = {
            row.pop("application_id"): NotificationSettings(
                **{flag: bool(value) for flag, value in row.items()}
            )
            for row in cur.fetchall()
        }

        cur.execute(_SELECT_APPLICATIONS)
        return tuple(
            _to_application(row, aats, settings, notifications) for row in cur.fetchall()
        )

    def _read_load_balancers(self, cur: _Cursor) -> tuple[LoadBalancer, ...]:
        cur.execute(_SELECT_STICKINESS_OPTIONS)
        sticky = {
            row["lb_id"]: StickyOptions(
                duration=_text(row, "duration"),
                sticky_max=row["sticky_max"] or 0,
                stickiness=bool(row["stickiness"]),
                origins=_texts(row, "origins"),
            )
            for row in cur.fetchall()
        }

        cur.execute(_SELECT_LB_APPS)
        members: dict[str, list[str]] = defaultdict(list)
        for row in cur.fetchall():
            members[row["lb_id"]].append(row["app_id"])

        cur.execute(_SELECT_LOAD_BALANCERS)
        return tuple(_to_load_balancer(row, sticky, members) for row in cur.fetchall())

    # ──────────────────────── StoreWriter: applications ────────────────────────

    def write_application(self, app: Application) -> Result[Application]:
        return Result.from_computation(
            lambda: self._in_transaction(lambda cur: self._insert_application(cur, app)),
            ErrorCode.DATABASE_ERROR,
            "Failed to write application",
        )

    def _insert_application(self, cur: _Cursor, app: Application) -> Application:
        app_id = app.application_id or new_id()
        cur.execute(
            _INSERT_APPLICATION,
            (
                app_id,
                app.user_id,
                app.name,
                app.status.value if app.status else None,
                app.pay_plan_type or None,
                app.contact_email,
                app.description,
                app.owner,
                app.url,
                app.dummy,
                app.first_date_surpassed,
            ),
        )
        stamps = cur.fetchone()
        aat = app.gateway_aat
        cur.execute(
            _INSERT_GATEWAY_AAT,
            (
                app_id,
                aat.address,
                aat.application_public_key,
                aat.private_key,
                aat.application_signature,
                aat.client_public_key,
                aat.version,
            ),
        )
        self._upsert_gateway_settings(cur, app_id, app.gateway_settings)
        self._upsert_notification_settings(cur, app_id, app.notification_settings)
        log.info("repository.application_written", application_id=app_id)
        return replace(
            app,
            application_id=app_id,
            created_at=stamps["created_at"],
            updated_at=stamps["updated_at"],
        )

    def _upsert_gateway_settings(
        self, cur: _Cursor, app_id: str, settings: GatewaySettings,
    ) -> None:
        cur.execute(
            _UPSERT_GATEWAY_SETTINGS,
            (
                app_id,
                settings.secret_key,
                settings.secret_key_required,
                list(settings.whitelist_blockchains),
                settings.whitelist_contracts,
                settings.whitelist_methods,
                list(settings.whitelist_origins),
                list(settings.whitelist_user_agents),
            ),
        )

    def _upsert_notification_settings(
        self, cur: _Cursor, app_id: str, settings: NotificationSettings,
    ) -> None:
        cur.execute(
            _UPSERT_NOTIFICATION_SETTINGS,
            (
                app_id,
                settings.signed_up,
                settings.on_quarter,
                settings.on_half,
                settings.on_three_quarters,
                settings.on_full,
            ),
        )

    def update_application(self, application_id: str, update: UpdateApplication) -> Result[int]:
        """Write the non-zero fields of `update`; nested settings are upserted whole."""
        return Result.from_computation(
            lambda: self._in_transaction(
                lambda cur: self._update_application(cur, application_id, update)
            ),
            ErrorCode.DATABASE_ERROR,
            "Failed to update application",
        )

    def _update_application(
        self, cur: _Cursor, application_id: str, update: UpdateApplication,
    ) -> int:
        assignments = ["updated_at = now()"]
        params: list[Any] = []
        if update.name:
            assignments.append("name = %s")
            params.append(update.name)
        if update.status:
            assignments.append("status = %s")
            params.append(update.status.value)
        if update.pay_plan_type:
            assignments.append("pay_plan_type = %s")
            params.append(update.pay_plan_type)
        if update.first_date_surpassed is not None:
            assignments.append("first_date_surpassed = %s")
            params.append(update.first_date_surpassed)

        cur.execute(
            _UPDATE_APPLICATION.format(assignments=", ".join(assignments)),
            (*params, application_id),
        )
        rows = cur.rowcount
        if update.gateway_settings is not None:
            self._upsert_gateway_settings(cur, application_id, update.gateway_settings)
        if update.notification_settings is not None:
            self._upsert_notification_settings(cur, application_id, update.notification_settings)
        log.info("repository.application_updated", application_id=application_id, rows=rows)
        return rows

    def remove_application(self, application_id: str) -> Result[int]:
        return Result.from_computation(
            lambda: self._execute(
                _REMOVE_APPLICATION, (AppStatus.AWAITING_GRACE_PERIOD.value, application_id),
            ),
            ErrorCode.DATABASE_ERROR,
            "Failed to remove application",
        )

    def update_first_date_surpassed(self, update: UpdateFirstDateSurpassed) -> Result[int]:
        return Result.from_computation(
            lambda: self._execute(
                _UPDATE_FIRST_DATE_SURPASSED,
                (update.first_date_surpassed, list(update.application_ids)),
            ),
            ErrorCode.DATABASE_ERROR,
            "Failed to update first date surpassed",
        )

    # ──────────────────────── StoreWriter: load balancers ────────────────────────

    def write_load_balancer(self, lb: LoadBalancer) -> Result[LoadBalancer]:
        return Result.from_computation(
            lambda: self._in_transaction(lambda cur: self._insert_load_balancer(cur, lb)),
            ErrorCode.DATABASE_ERROR,
            "Failed to write load balancer",
        )

    def _insert_load_balancer(self, cur: _Cursor, lb: LoadBalancer) -> LoadBalancer:
        lb_id = lb.lb_id or new_id()
        cur.execute(
            _INSERT_LOAD_BALANCER,
            (
                lb_id,
                lb.user_id,
                lb.name,
                lb.request_timeout,
                lb.gigastake,
                lb.gigastake_redirect,
            ),
        )
        stamps = cur.fetchone()
        self._upsert_sticky_options(cur, lb_id, lb.sticky_options)
        for app_id in lb.application_ids:
            cur.execute(_INSERT_LB_APP, (lb_id, app_id))
        log.info(
            "repository.load_balancer_written",
            lb_id=lb_id,
            applications=len(lb.application_ids),
        )
        return LoadBalancer(
            lb_id=lb_id,
            user_id=lb.user_id,
            name=lb.name,
            request_timeout=lb.request_timeout,
            gigastake=lb.gigastake,
            gigastake_redirect=lb.gigastake_redirect,
            sticky_options=lb.sticky_options,
            application_ids=lb.application_ids,
            created_at=stamps["created_at"],
            updated_at=stamps["updated_at"],
        )

    def _upsert_sticky_options(self, cur: _Cursor, lb_id: str, options: StickyOptions) -> None:
        cur.execute(
            _UPSERT_STICKINESS_OPTIONS,
            (lb_id, options.duration, options.sticky_max, options.stickiness, list(options.origins)),
        )

    def update_load_balancer(self, lb_id: str, update: UpdateLoadBalancer) -> Result[int]:
        return Result.from_computation(
            lambda: self._in_transaction(
                lambda cur: self._update_load_balancer(cur, lb_id, update)
            ),
            ErrorCode.DATABASE_ERROR,
            "Failed to update load balancer",
        )

    def _update_load_balancer(self, cur: _Cursor, lb_id: str, update: UpdateLoadBalancer) -> int:
        if update.name:
            cur.execute(_UPDATE_LOAD_BALANCER_NAME, (update.name, lb_id))
        else:
            cur.execute(_TOUCH_LOAD_BALANCER, (lb_id,))
        rows = cur.rowcount
        if update.sticky_options is not None:
            self._upsert_sticky_options(cur, lb_id, update.sticky_options)
        log.info("repository.load_balancer_updated", lb_id=lb_id, rows=rows)
        return rows

    def remove_load_balancer(self, lb_id: str) -> Result[int]:
        return Result.from_computation(
            lambda: self._execute(_REMOVE_LOAD_BALANCER, (lb_id,)),
            ErrorCode.DATABASE_ERROR,
            "Failed to remove load balancer",
        )

    # ──────────────────────── StoreWriter: blockchains ────────────────────────

    def write_blockchain(self, blockchain: Blockchain) -> Result[Blockchain]:
        return Result.from_computation(
            lambda: self._in_transaction(lambda cur: self._insert_blockchain(cur, blockchain)),
            ErrorCode.DATABASE_ERROR,
            "Failed to write blockchain",
        )

    def _insert_blockchain(self, cur: _Cursor, chain: Blockchain) -> Blockchain:
        cur.execute(
            _INSERT_BLOCKCHAIN,
            (
                chain.blockchain_id,
                chain.active,
                chain.altruist,
                chain.blockchain,
                list(chain.blockchain_aliases),
                chain.chain_id,
                chain.chain_id_check,
                chain.description,
                chain.enforce_result,
                chain.log_limit_blocks,
                chain.network,
                chain.path,
                chain.request_timeout,
                chain.ticker,
            ),
        )
        stamps = cur.fetchone()
        options = chain.sync_check_options
        if options is not None:
            cur.execute(
                _INSERT_SYNC_CHECK_OPTIONS,
                (
                    chain.blockchain_id,
                    options.sync_check,
                    options.body,
                    options.path,
                    options.result_key,
                    options.allowance,
                ),
            )
        redirects = tuple(self._insert_redirect(cur, redirect) for redirect in chain.redirects)
        log.info("repository.blockchain_written", blockchain_id=chain.blockchain_id)
        return replace(
            chain,
            redirects=redirects,
            created_at=stamps["created_at"],
            updated_at=stamps["updated_at"],
        )

    def activate_blockchain(self, blockchain_id: str, active: bool) -> Result[int]:
        return Result.from_computation(
            lambda: self._execute(_ACTIVATE_BLOCKCHAIN, (active, blockchain_id)),
            ErrorCode.DATABASE_ERROR,
            "Failed to activate blockchain",
        )

    def write_redirect(self, redirect: Redirect) -> Result[Redirect]:
        return Result.from_computation(
            lambda: self._in_transaction(lambda cur: self._insert_redirect(cur, redirect)),
            ErrorCode.DATABASE_ERROR,
            "Failed to write redirect",
        )

    def _insert_redirect(self, cur: _Cursor, redirect: Redirect) -> Redirect:
        cur.execute(
            _INSERT_REDIRECT,
            (redirect.blockchain_id, redirect.alias, redirect.loadbalancer, redirect.domain),
        )
        stamps = cur.fetchone()
        log.info(
            "repository.redirect_written",
            blockchain_id=redirect.blockchain_id,
            domain=redirect.domain,
        )
        return Redirect(
            blockchain_id=redirect.blockchain_id,
            alias=redirect.alias,
            loadbalancer=redirect.loadbalancer,
            domain=redirect.domain,
            created_at=stamps["created_at"],
            updated_at=stamps["updated_at"],
        )

    # ──────────────────────── Helpers ────────────────────────

    def _execute(self, statement: str, params: tuple[Any, ...]) -> int:
        """Single-statement write, returning the affected row count."""

        def _run(cur: _Cursor) -> int:
            cur.execute(statement, params)
            return cur.rowcount

        return self._in_transaction(_run)
