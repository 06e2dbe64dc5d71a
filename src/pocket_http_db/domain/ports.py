"""
Ports — Protocol-based interfaces for the durable store.

These define WHAT the service needs from the system of record without
specifying HOW it's done. Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters satisfy
the contract by implementing the methods, without inheritance.

The two ports have different consumers:
  1. StoreReader → used once by Cache.populate() at startup
  2. StoreWriter → used by the request handlers, never by the Cache

The ordering "store write succeeds, then cache mutation applied" is
enforced by the handlers, not by either port.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from railway.result import Result

from pocket_http_db.domain.models import (
    Application,
    Blockchain,
    Dataset,
    LoadBalancer,
    Redirect,
    UpdateApplication,
    UpdateFirstDateSurpassed,
    UpdateLoadBalancer,
)


@runtime_checkable
class StoreReader(Protocol):
    """
    Port: read the full current dataset in one pass.

    Returns Result[Dataset] with every pay plan, blockchain, application and
    load balancer, nested records attached. Any I/O or decode failure is a
    Result.failure with ErrorCode.DATABASE_ERROR.
    """

    def read_all(self) -> Result[Dataset]: ...


@runtime_checkable
class StoreWriter(Protocol):
    """
    Port: per-entity durable writes.

    Create operations return the fully populated persisted record
    (generated identifiers and timestamps filled in). Update and removal
    operations return the number of affected rows.
    """

    def write_application(self, app: Application) -> Result[Application]: ...

    def update_application(self, application_id: str, update: UpdateApplication) -> Result[int]: ...

    def remove_application(self, application_id: str) -> Result[int]: ...

    def update_first_date_surpassed(self, update: UpdateFirstDateSurpassed) -> Result[int]: ...

    def write_load_balancer(self, lb: LoadBalancer) -> Result[LoadBalancer]: ...

    def update_load_balancer(self, lb_id: str, update: UpdateLoadBalancer) -> Result[int]: ...

    def remove_load_balancer(self, lb_id: str) -> Result[int]: ...

    def write_blockchain(self, blockchain: Blockchain) -> Result[Blockchain]: ...

    def activate_blockchain(self, blockchain_id: str, active: bool) -> Result[int]: ...

    def write_redirect(self, redirect: Redirect) -> Result[Redirect]: ...
