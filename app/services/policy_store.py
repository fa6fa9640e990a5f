"""Read access to per-tenant tyre threshold policies.

Policies are owned by tenant administration; the engine only reads them.
Each evaluation takes one point-in-time snapshot and nothing is cached
between calls, so an administrator's change applies to the next evaluation.
"""

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from pydantic import ValidationError as PydanticValidationError

from app.config import get_settings
from app.core.errors import PolicyNotConfiguredError, PolicyStoreUnavailableError
from app.core.logging import log_db_query, log_error
from app.models.policy import TenantTyrePolicy
from app.services.db import get_supabase_client
from supabase import Client

logger = logging.getLogger(__name__)

POLICY_COLUMNS = (
    "tenant_id, "
    "summer_min_tread_mm, winter_min_tread_mm, allseason_min_tread_mm, "
    "summer_warning_tread_mm, winter_warning_tread_mm, allseason_warning_tread_mm, "
    "max_tyre_age_years, notify_customer_on_low_tread, notify_customer_on_old_tyres"
)


class PolicyStore(Protocol):
    def get_policy(self, tenant_id: str) -> TenantTyrePolicy: ...


def policy_from_row(tenant_id: str, row: Mapping[str, Any]) -> TenantTyrePolicy:
    """Build a policy from a stored row, rejecting incomplete or incoherent rows."""
    data = dict(row)
    data["tenant_id"] = tenant_id
    try:
        return TenantTyrePolicy(**data)
    except PydanticValidationError as e:
        logger.warning("Invalid tyre policy for tenant=%s: %s", tenant_id, e)
        raise PolicyNotConfiguredError(
            f"Tyre policy for tenant {tenant_id} is incomplete or invalid",
            details={
                "tenant_id": tenant_id,
                "fields": sorted({".".join(map(str, err["loc"])) for err in e.errors()}),
            },
        ) from e


class SupabasePolicyStore:
    """Policy store backed by the ``tyre_policy_settings`` Supabase table."""

    def __init__(
        self,
        client_factory: Callable[[], Client] = get_supabase_client,
        table: str | None = None,
    ) -> None:
        self._client_factory = client_factory
        self.table = table or get_settings().policy_table

    def get_policy(self, tenant_id: str) -> TenantTyrePolicy:
        client = self._client_factory()
        start = time.time()
        try:
            result = (
                client.table(self.table)
                .select(POLICY_COLUMNS)
                .eq("tenant_id", tenant_id)
                .limit(1)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as e:
            log_error("Policy read failed", e, table=self.table, tenant=tenant_id)
            raise PolicyStoreUnavailableError(
                f"Tyre policy for tenant {tenant_id} could not be read",
                details={"tenant_id": tenant_id},
            ) from e
        log_db_query(
            "select_policy", self.table, (time.time() - start) * 1000, tenant_id=tenant_id
        )

        rows = result.data if isinstance(result.data, list) else []
        if not rows or not isinstance(rows[0], dict):
            raise PolicyNotConfiguredError(
                f"No tyre policy configured for tenant {tenant_id}",
                details={"tenant_id": tenant_id},
            )
        return policy_from_row(tenant_id, rows[0])


class StaticPolicyStore:
    """In-memory policy store for local runs and tests."""

    def __init__(self, rows: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._rows = dict(rows or {})

    def set_policy(self, tenant_id: str, row: Mapping[str, Any]) -> None:
        self._rows[tenant_id] = dict(row)

    def get_policy(self, tenant_id: str) -> TenantTyrePolicy:
        row = self._rows.get(tenant_id)
        if row is None:
            raise PolicyNotConfiguredError(
                f"No tyre policy configured for tenant {tenant_id}",
                details={"tenant_id": tenant_id},
            )
        return policy_from_row(tenant_id, row)
