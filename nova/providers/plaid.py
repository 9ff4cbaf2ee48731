from __future__ import annotations

import httpx
import structlog

from ..config import settings
from ..errors import AuthError, ExternalServiceError, NetworkError, RateLimitError
from ..pipeline.models import AccountBalance
from ..utils import retry_call, to_money

log = structlog.get_logger()

AUTH_ERROR_TYPES = {"ITEM_ERROR", "INVALID_INPUT"}
RATE_LIMIT_ERROR_TYPES = {"RATE_LIMIT_EXCEEDED"}
TRANSIENT_ERROR_TYPES = {"API_ERROR", "INSTITUTION_ERROR"}

LINK_COUNTRY_CODES = ["US"]


class PlaidClient:
    """Thin Plaid REST client: balances, link tokens and public token exchange."""

    def __init__(
        self,
        client_id: str | None,
        secret: str | None,
        base_url: str,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 1.0,
        client_name: str = "Nova",
        client_user_id: str = "nova-user",
        link_products=("transactions",),
        transport: httpx.BaseTransport | None = None,
    ):
        self.client_id = client_id
        self.secret = secret
        self.base = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = max(1, int(retry_attempts))
        self.retry_backoff_seconds = retry_backoff_seconds
        self.client_name = client_name
        self.client_user_id = client_user_id
        self.link_products = list(link_products)
        self.transport = transport

    @classmethod
    def from_settings(cls, **overrides) -> "PlaidClient":
        kwargs = dict(
            client_id=settings.plaid_client_id,
            secret=settings.plaid_secret,
            base_url=settings.plaid_url(),
            timeout=settings.http_timeout_seconds,
            retry_attempts=settings.http_retry_attempts,
            retry_backoff_seconds=settings.http_retry_backoff_seconds,
            client_name=settings.plaid_client_name,
            client_user_id=settings.plaid_client_user_id,
            link_products=settings.link_products(),
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    def _headers(self) -> dict:
        return {
            "PLAID-CLIENT-ID": self.client_id or "",
            "PLAID-SECRET": self.secret or "",
            "Content-Type": "application/json",
        }

    def _post(self, path: str, payload: dict) -> dict:
        if not self.client_id or not self.secret:
            raise AuthError("plaid client credentials not configured", code="MISSING_CREDENTIALS")
        url = f"{self.base}{path}"

        def _call():
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                try:
                    r = client.post(url, json=payload, headers=self._headers())
                except httpx.TimeoutException as e:
                    raise NetworkError(f"timeout calling {path}", code="TIMEOUT") from e
                except httpx.TransportError as e:
                    raise NetworkError(f"transport error calling {path}: {e}", code="TRANSPORT") from e
                except httpx.HTTPError as e:
                    raise NetworkError(f"http error calling {path}: {e}", code="HTTP_ERROR") from e
            return _parse_response(r, path)

        # Auth errors are final; transient failures get bounded retries.
        return retry_call(
            _call,
            attempts=self.retry_attempts,
            base_delay=self.retry_backoff_seconds,
            retry_on=(NetworkError, RateLimitError),
        )

    def get_balances(self, access_token: str) -> list[AccountBalance]:
        data = self._post("/accounts/balance/get", {"access_token": access_token})
        accounts = data.get("accounts")
        if not isinstance(accounts, list):
            raise ExternalServiceError("accounts missing from balance response", code="MALFORMED_RESPONSE")
        out = []
        for account in accounts:
            if not isinstance(account, dict):
                continue
            balances = account.get("balances")
            if not isinstance(balances, dict):
                balances = {}
            out.append(
                AccountBalance(
                    subtype=account.get("subtype"),
                    current=to_money(balances.get("current")),
                    account_id=account.get("account_id"),
                    name=account.get("name") or account.get("official_name"),
                )
            )
        return out

    def create_link_token(self) -> dict:
        return self._post(
            "/link/token/create",
            {
                "user": {"client_user_id": self.client_user_id},
                "client_name": self.client_name,
                "products": self.link_products,
                "country_codes": LINK_COUNTRY_CODES,
                "language": "en",
            },
        )

    def exchange_public_token(self, public_token: str) -> str:
        data = self._post("/item/public_token/exchange", {"public_token": public_token})
        access_token = data.get("access_token")
        if not access_token:
            raise ExternalServiceError("access_token missing from exchange response", code="MALFORMED_RESPONSE")
        return access_token


def _parse_response(r: httpx.Response, path: str) -> dict:
    try:
        body = r.json()
    except ValueError:
        body = None
    if r.status_code == 200:
        if not isinstance(body, dict):
            raise ExternalServiceError(f"non-json response from {path}", code="MALFORMED_RESPONSE")
        return body
    body = body if isinstance(body, dict) else {}
    error_type = body.get("error_type")
    error_code = body.get("error_code")
    message = body.get("error_message") or r.text[:300] or f"http {r.status_code}"
    log.warning("plaid_request_failed", path=path, status=r.status_code, error_type=error_type, error_code=error_code)
    if r.status_code == 429 or error_type in RATE_LIMIT_ERROR_TYPES:
        raise RateLimitError(message, code=error_code or "RATE_LIMIT")
    if r.status_code in (401, 403) or error_type in AUTH_ERROR_TYPES:
        raise AuthError(message, code=error_code)
    if r.status_code >= 500 or error_type in TRANSIENT_ERROR_TYPES:
        raise NetworkError(message, code=error_code)
    raise ExternalServiceError(message, code=error_code)
