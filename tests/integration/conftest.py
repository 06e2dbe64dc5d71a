"""
Integration test fixtures — PostgreSQL testcontainer and schema setup.

Provides a real PostgreSQL instance for each test session via testcontainers,
with the gateway configuration schema (event triggers omitted).
Each test gets a clean database holding only the seeded pay plans.
"""

from __future__ import annotations

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

DDL = """
CREATE TABLE pay_plans (
    id INT GENERATED ALWAYS AS IDENTITY,
    plan_type VARCHAR NOT NULL UNIQUE,
    daily_limit INT NOT NULL,
    PRIMARY KEY (plan_type)
);

CREATE TABLE blockchains (
    id INT GENERATED ALWAYS AS IDENTITY,
    blockchain_id VARCHAR NOT NULL UNIQUE,
    active BOOLEAN,
    altruist VARCHAR,
    blockchain VARCHAR,
    blockchain_aliases VARCHAR[],
    chain_id VARCHAR,
    chain_id_check VARCHAR,
    description VARCHAR,
    enforce_result VARCHAR,
    log_limit_blocks INT,
    network VARCHAR,
    path VARCHAR,
    request_timeout INT,
    ticker VARCHAR,
    created_at TIMESTAMP NULL,
    updated_at TIMESTAMP NULL,
    PRIMARY KEY (blockchain_id)
);

CREATE TABLE redirects (
    id INT GENERATED ALWAYS AS IDENTITY,
    blockchain_id VARCHAR NOT NULL REFERENCES blockchains(blockchain_id),
    alias VARCHAR NOT NULL,
    loadbalancer VARCHAR NOT NULL,
    domain VARCHAR NOT NULL,
    created_at TIMESTAMP NULL,
    updated_at TIMESTAMP NULL,
    UNIQUE (blockchain_id, domain),
    PRIMARY KEY (id)
);

CREATE TABLE sync_check_options (
    id INT GENERATED ALWAYS AS IDENTITY,
    blockchain_id VARCHAR NOT NULL UNIQUE REFERENCES blockchains(blockchain_id),
    syncCheck VARCHAR,
    allowance INT,
    body VARCHAR,
    path VARCHAR,
    result_key VARCHAR,
    PRIMARY KEY (id)
);

CREATE TABLE loadbalancers (
    id INT GENERATED ALWAYS AS IDENTITY,
    lb_id VARCHAR NOT NULL UNIQUE,
    user_id VARCHAR,
    name VARCHAR,
    request_timeout INT,
    gigastake BOOLEAN,
    gigastake_redirect BOOLEAN,
    created_at TIMESTAMP NULL,
    updated_at TIMESTAMP NULL,
    PRIMARY KEY (id)
);

CREATE TABLE stickiness_options (
    id INT GENERATED ALWAYS AS IDENTITY,
    lb_id VARCHAR NOT NULL UNIQUE REFERENCES loadbalancers(lb_id),
    duration TEXT,
    sticky_max INT,
    stickiness BOOLEAN,
    origins VARCHAR[],
    PRIMARY KEY (id)
);

CREATE TABLE applications (
    id INT GENERATED ALWAYS AS IDENTITY,
    application_id VARCHAR NOT NULL UNIQUE,
    contact_email VARCHAR,
    description TEXT,
    name VARCHAR,
    status VARCHAR,
    pay_plan_type VARCHAR REFERENCES pay_plans(plan_type),
    owner VARCHAR,
    url VARCHAR,
    user_id VARCHAR,
    dummy BOOLEAN,
    first_date_surpassed TIMESTAMP NULL,
    created_at TIMESTAMP NULL,
    updated_at TIMESTAMP NULL,
    PRIMARY KEY (application_id)
);

CREATE TABLE gateway_aat (
    id INT GENERATED ALWAYS AS IDENTITY,
    application_id VARCHAR NOT NULL UNIQUE REFERENCES applications(application_id),
    address VARCHAR NOT NULL,
    public_key VARCHAR NOT NULL,
    private_key VARCHAR,
    signature VARCHAR NOT NULL,
    client_public_key VARCHAR NOT NULL,
    version VARCHAR,
    PRIMARY KEY (id)
);

CREATE TABLE gateway_settings (
    id INT GENERATED ALWAYS AS IDENTITY,
    application_id VARCHAR NOT NULL UNIQUE REFERENCES applications(application_id),
    secret_key VARCHAR,
    secret_key_required BOOLEAN,
    whitelist_blockchains VARCHAR[],
    whitelist_contracts VARCHAR,
    whitelist_methods VARCHAR,
    whitelist_origins VARCHAR[],
    whitelist_user_agents VARCHAR[],
    PRIMARY KEY (id)
);

CREATE TABLE notification_settings (
    id INT GENERATED ALWAYS AS IDENTITY,
    application_id VARCHAR NOT NULL UNIQUE REFERENCES applications(application_id),
    signed_up BOOLEAN,
    on_quarter BOOLEAN,
    on_half BOOLEAN,
    on_three_quarters BOOLEAN,
    on_full BOOLEAN,
    PRIMARY KEY (id)
);

CREATE TABLE lb_apps (
    id INT GENERATED ALWAYS AS IDENTITY,
    lb_id VARCHAR NOT NULL REFERENCES loadbalancers(lb_id),
    app_id VARCHAR NOT NULL REFERENCES applications(application_id),
    UNIQUE (lb_id, app_id),
    PRIMARY KEY (id)
);
"""

TRUNCATE_ALL = """
TRUNCATE lb_apps, notification_settings, gateway_settings, gateway_aat, applications,
         stickiness_options, loadbalancers, sync_check_options, redirects, blockchains,
         pay_plans CASCADE;
"""

SEED_PAY_PLANS = """
INSERT INTO pay_plans (plan_type, daily_limit)
VALUES
    ('FREETIER_V0', 250000),
    ('PAY_AS_YOU_GO_V0', 0),
    ('TEST_PLAN_V0', 100),
    ('TEST_PLAN_10K', 10000),
    ('TEST_PLAN_90K', 90000);
"""


@pytest.fixture(scope="session")
def postgres_container() -> PostgresContainer:
    """Start a PostgreSQL container for the entire test session."""
    with PostgresContainer("postgres:16-alpine") as pg:
        dsn = pg.get_connection_url().replace("postgresql+psycopg2", "postgresql")
        with psycopg.connect(dsn) as conn:
            conn.execute(DDL)
            conn.commit()
        yield pg


@pytest.fixture()
def dsn(postgres_container: PostgresContainer) -> str:
    """Return a psycopg-compatible DSN over a freshly truncated and seeded schema."""
    connection_url = postgres_container.get_connection_url().replace(
        "postgresql+psycopg2", "postgresql"
    )
    with psycopg.connect(connection_url) as conn:
        conn.execute(TRUNCATE_ALL)
        conn.execute(SEED_PAY_PLANS)
        conn.commit()
    return connection_url
