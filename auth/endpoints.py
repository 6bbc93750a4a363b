"""Endpoint groups and the credentials each one requires."""

from __future__ import annotations

from enum import Enum

LOGIN_PATH = "/auth/v2/token"
REFRESH_PATH = "/auth/token/refresh"


class AuthRequirement(str, Enum):
    """What a request to an endpoint group must carry."""

    NONE = "NONE"
    BEARER = "BEARER"
    BEARER_AND_SIGNATURE = "BEARER_AND_SIGNATURE"  # bearer header + signed body


class EndpointGroup(str, Enum):
    """Closed set of API host groups."""

    EXCHANGE = "exchange"
    AUTH = "auth"
    ACCOUNT = "account"
    TRADE = "trade"

    @property
    def auth_requirement(self) -> AuthRequirement:
        return _REQUIREMENTS[self]

    @property
    def requires_bearer(self) -> bool:
        return self.auth_requirement is not AuthRequirement.NONE

    @property
    def requires_signature(self) -> bool:
        return self.auth_requirement is AuthRequirement.BEARER_AND_SIGNATURE


_REQUIREMENTS: dict[EndpointGroup, AuthRequirement] = {
    EndpointGroup.EXCHANGE: AuthRequirement.NONE,
    EndpointGroup.AUTH: AuthRequirement.NONE,
    EndpointGroup.ACCOUNT: AuthRequirement.BEARER,
    EndpointGroup.TRADE: AuthRequirement.BEARER_AND_SIGNATURE,
}

_PRODUCTION_URLS: dict[EndpointGroup, str] = {
    EndpointGroup.AUTH: "https://auth.api.sui-prod.bluefin.io",
    EndpointGroup.EXCHANGE: "https://api.sui-prod.bluefin.io",
    EndpointGroup.ACCOUNT: "https://api.sui-prod.bluefin.io",
    EndpointGroup.TRADE: "https://trade.api.sui-prod.bluefin.io",
}

_STAGING_URLS: dict[EndpointGroup, str] = {
    EndpointGroup.AUTH: "https://auth.api.sui-staging.bluefin.io",
    EndpointGroup.EXCHANGE: "https://api.sui-staging.bluefin.io",
    EndpointGroup.ACCOUNT: "https://api.sui-staging.bluefin.io",
    EndpointGroup.TRADE: "https://trade.api.sui-staging.bluefin.io",
}


def base_url(group: EndpointGroup, sandbox: bool = False) -> str:
    """Host for *group* in production or staging."""
    table = _STAGING_URLS if sandbox else _PRODUCTION_URLS
    return table[group]
