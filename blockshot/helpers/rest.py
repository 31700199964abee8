"""Cosmos SDK REST (LCD) query client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from blockshot.helpers.constants import MSG_SEND_TYPE, SEND_AUTHORIZATION_TYPE
from blockshot.helpers.logging import get_logger
from blockshot.helpers.parsers import parse_amount, parse_timestamp
from blockshot.helpers.rest_models import (
    BalanceResponse,
    GrantsResponse,
    RestUnbondingDelegation,
    UnbondingDelegationsResponse,
)
from blockshot.models import AuthorizationGrant, Coin


if TYPE_CHECKING:
    from datetime import datetime

    import httpx


logger = get_logger(__name__)


class CosmosRestClient:
    """Read-only queries against a Cosmos SDK REST gateway."""

    def __init__(self, rest_url: str, timeout: float = 10.0) -> None:
        """Initialize REST client.

        Args:
            rest_url: Base URL of the REST gateway (e.g. https://lcd.example.com)
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rest_url is empty or None
        """
        if not rest_url:
            msg = "REST URL cannot be empty"
            raise ValueError(msg)

        self.rest_url = rest_url.rstrip("/")
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return self.rest_url

    async def _get(
        self,
        client: httpx.AsyncClient,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await client.get(
            f"{self.rest_url}{path}", params=params, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    async def get_balance(
        self, client: httpx.AsyncClient, address: str, denom: str
    ) -> int:
        """Get the spendable balance of ``denom`` held by ``address``.

        Raises:
            httpx.HTTPError: If the request fails
        """
        data = await self._get(
            client,
            f"/cosmos/bank/v1beta1/balances/{address}/by_denom",
            {"denom": denom},
        )
        balance = BalanceResponse.model_validate(data).balance
        return parse_amount(balance.amount) if balance else 0

    async def get_unbonding_delegations(
        self, client: httpx.AsyncClient, delegator: str
    ) -> list[RestUnbondingDelegation]:
        """Get every unbonding delegation of ``delegator``, following pages.

        Raises:
            httpx.HTTPError: If a request fails
        """
        path = f"/cosmos/staking/v1beta1/delegators/{delegator}/unbonding_delegations"
        delegations: list[RestUnbondingDelegation] = []
        params: dict[str, Any] = {}

        while True:
            page = UnbondingDelegationsResponse.model_validate(
                await self._get(client, path, params or None)
            )
            delegations.extend(page.unbonding_responses)
            next_key = page.pagination.next_key if page.pagination else None
            if not next_key:
                break
            params = {"pagination.key": next_key}

        logger.debug(
            "Found %d unbonding delegation(s) for %s", len(delegations), delegator
        )
        return delegations

    async def get_grants(
        self,
        client: httpx.AsyncClient,
        granter: str,
        grantee: str,
        msg_type_url: str = MSG_SEND_TYPE,
    ) -> list[AuthorizationGrant]:
        """Get the authz grants from ``granter`` to ``grantee``.

        Grants with an unparseable expiration are skipped with a warning.

        Raises:
            httpx.HTTPError: If the request fails
        """
        data = await self._get(
            client,
            "/cosmos/authz/v1beta1/grants",
            {"granter": granter, "grantee": grantee, "msg_type_url": msg_type_url},
        )
        grants: list[AuthorizationGrant] = []
        for raw in GrantsResponse.model_validate(data).grants:
            try:
                expiration = (
                    parse_timestamp(raw.expiration)
                    if raw.expiration is not None
                    else None
                )
            except ValueError as e:
                logger.warning("Skipping grant with invalid expiration: %s", e)
                continue

            grants.append(
                AuthorizationGrant(
                    authorization_type=raw.authorization.type_url,
                    spend_limit=[
                        Coin(denom=c.denom, amount=parse_amount(c.amount))
                        for c in raw.authorization.spend_limit
                    ],
                    expiration=expiration,
                )
            )
        return grants


def active_spend_limits(
    grants: list[AuthorizationGrant], now: datetime | None = None
) -> list[Coin]:
    """Spend limits of the first active send authorization, or an empty list.

    Example:
        ```python
        grants = await rest.get_grants(client, granter, grantee)
        limits = active_spend_limits(grants)
        # [Coin(denom="uatom", amount=1000000)]
        ```
    """
    for grant in grants:
        if grant.authorization_type == SEND_AUTHORIZATION_TYPE and grant.is_active(
            now
        ):
            return list(grant.spend_limit)
    return []


__all__ = [
    "CosmosRestClient",
    "active_spend_limits",
]
