"""
Shared test fixtures and helpers for the pocket-http-db test suite.

Provides a small but complete configuration dataset and a Cache populated
from it through a mocked StoreReader.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from railway import ErrorCode
from railway.result import Result

from pocket_http_db.cache import Cache
from pocket_http_db.domain.models import (
    Application,
    AppStatus,
    Blockchain,
    Dataset,
    GatewayAAT,
    LoadBalancer,
    NotificationSettings,
    PayPlan,
    StickyOptions,
)

CREATED_AT = datetime(2022, 3, 1, 12, 0, 0)


def make_application(
    application_id: str,
    user_id: str = "user1",
    pay_plan_type: str = "FREETIER_V0",
    **overrides: object,
) -> Application:
    """Build a raw Application, as read from the store."""
    fields: dict[str, object] = {
        "application_id": application_id,
        "user_id": user_id,
        "name": f"name-{application_id}",
        "status": AppStatus.IN_SERVICE,
        "pay_plan_type": pay_plan_type,
        "contact_email": f"{application_id}@example.com",
        "gateway_aat": GatewayAAT(
            address=f"addr-{application_id}",
            application_public_key=f"pk-{application_id}",
            application_signature=f"sig-{application_id}",
            client_public_key=f"client-{application_id}",
            private_key=f"secret-{application_id}",
        ),
        "notification_settings": NotificationSettings(signed_up=True, on_full=True),
        "created_at": CREATED_AT,
        "updated_at": CREATED_AT,
    }
    fields.update(overrides)
    return Application(**fields)  # type: ignore[arg-type]


def sample_dataset() -> Dataset:
    """
    Three pay plans, one blockchain, three applications, one load balancer.

      app1  user1  FREETIER_V0       member of lb1
      app2  user1  PAY_AS_YOU_GO_V0  member of lb1
      app3  user2  (no plan)
    """
    return Dataset(
        pay_plans=(
            PayPlan(plan_type="FREETIER_V0", daily_limit=250000),
            PayPlan(plan_type="PAY_AS_YOU_GO_V0", daily_limit=0),
            PayPlan(plan_type="TEST_PLAN_10K", daily_limit=10000),
        ),
        blockchains=(
            Blockchain(
                blockchain_id="0021",
                active=True,
                blockchain="eth-mainnet",
                blockchain_aliases=("eth-mainnet", "eth"),
                chain_id="1",
                ticker="ETH",
            ),
        ),
        applications=(
            make_application("app1"),
            make_application("app2", pay_plan_type="PAY_AS_YOU_GO_V0"),
            make_application("app3", user_id="user2", pay_plan_type=""),
        ),
        load_balancers=(
            LoadBalancer(
                lb_id="lb1",
                user_id="user1",
                name="main",
                request_timeout=2000,
                sticky_options=StickyOptions(duration="60", sticky_max=300, stickiness=True),
                application_ids=("app1", "app2"),
            ),
        ),
    )


@pytest.fixture()
def make_app() -> Callable[..., Application]:
    """Factory for raw applications, as read from the store."""
    return make_application


@pytest.fixture()
def dataset() -> Dataset:
    return sample_dataset()


@pytest.fixture()
def reader(dataset: Dataset) -> MagicMock:
    """StoreReader whose bulk read returns the sample dataset."""
    reader = MagicMock()
    reader.read_all.return_value = Result.success(dataset)
    return reader


@pytest.fixture()
def failing_reader() -> MagicMock:
    reader = MagicMock()
    reader.read_all.return_value = Result.failure(
        ErrorCode.DATABASE_ERROR, "Failed to read the configuration dataset",
    )
    return reader


@pytest.fixture()
def cache(reader: MagicMock) -> Cache:
    """A Cache populated from the sample dataset."""
    populated = Cache(reader)
    result = populated.populate()
    assert result.is_success()
    return populated
