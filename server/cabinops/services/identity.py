"""Best-effort customer profile lookup against the identity provider."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import httpx

from ..core.config import settings
from ..core.observability import metrics_collector
from ..schemas.customer import CustomerProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityLookup:
    """Outcome of one lookup: a profile, or nothing, and whether the provider failed."""

    profile: Optional[CustomerProfile] = None
    failed: bool = False


def parse_profile(payload: dict[str, Any]) -> Optional[CustomerProfile]:
    """
    Build a profile from a provider user record.

    Accepts Clerk-style records (``first_name``, ``email_addresses``, ...) as
    well as flat ``{id, name, email, phone, imageUrl}`` records.
    """
    user_id = payload.get("id")
    if not user_id:
        return None

    name = payload.get("name") or " ".join(
        part for part in (payload.get("first_name"), payload.get("last_name")) if part
    ) or payload.get("username") or ""

    email = payload.get("email")
    if email is None:
        addresses = payload.get("email_addresses") or []
        primary_id = payload.get("primary_email_address_id")
        primary = next((a for a in addresses if a.get("id") == primary_id), None)
        if primary is None and addresses:
            primary = addresses[0]
        email = primary.get("email_address") if primary else None

    phone = payload.get("phone")
    if phone is None:
        numbers = payload.get("phone_numbers") or []
        phone = numbers[0].get("phone_number") if numbers else None

    return CustomerProfile(
        id=str(user_id),
        name=name,
        email=email,
        phone=phone,
        image_url=payload.get("image_url") or payload.get("imageUrl"),
    )


def _records(body: Any) -> list[dict[str, Any]]:
    # Batch endpoints answer with a bare list or with {"data": [...]}
    if isinstance(body, dict):
        body = body.get("data", [])
    return [record for record in body or [] if isinstance(record, dict)]


class IdentityResolver:
    """
    HTTP client for the customer profile service.

    Every call is attempted once. Transport errors, timeouts and non-2xx
    answers are logged and counted and reported as a failed lookup; they never
    propagate to the caller.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.identity_api_url) or None
        self.api_key = api_key if api_key is not None else settings.identity_api_key
        self.timeout = timeout if timeout is not None else settings.identity_timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(
            base_url=self.base_url.rstrip("/"),
            headers=headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    def _record_failure(self, operation: str, error: Exception, **context: Any) -> None:
        metrics_collector.record_identity_lookup_failure()
        logger.warning(
            "Customer profile lookup failed",
            extra={"operation": operation, "error": str(error), **context}
        )

    async def resolve(self, customer_id: Optional[str]) -> IdentityLookup:
        """
        Look up one customer profile.

        Args:
            customer_id: Opaque customer identifier

        Returns:
            IdentityLookup; ``failed`` is set only when the provider errored
        """
        if not customer_id or not self.enabled:
            return IdentityLookup()

        try:
            async with self._client() as client:
                response = await client.get(f"/users/{customer_id}")
                if response.status_code == 404:
                    return IdentityLookup()
                response.raise_for_status()
                return IdentityLookup(profile=parse_profile(response.json()))
        except (httpx.HTTPError, ValueError) as e:
            self._record_failure("resolve", e, customer_id=customer_id)
            return IdentityLookup(failed=True)

    async def resolve_many(self, customer_ids: Iterable[str]) -> dict[str, IdentityLookup]:
        """
        Look up several profiles with one batch request.

        Returns:
            Mapping of each requested id to its lookup; ids the provider does
            not know map to an empty, non-failed lookup
        """
        ids = sorted({customer_id for customer_id in customer_ids if customer_id})
        if not ids or not self.enabled:
            return {customer_id: IdentityLookup() for customer_id in ids}

        try:
            async with self._client() as client:
                response = await client.get("/users", params=[("user_id", i) for i in ids])
                response.raise_for_status()
                records = _records(response.json())
        except (httpx.HTTPError, ValueError) as e:
            self._record_failure("resolve_many", e, customer_count=len(ids))
            return {customer_id: IdentityLookup(failed=True) for customer_id in ids}

        profiles = {}
        for record in records:
            profile = parse_profile(record)
            if profile is not None:
                profiles[profile.id] = profile

        return {customer_id: IdentityLookup(profile=profiles.get(customer_id)) for customer_id in ids}

    async def search_customer_ids(self, query: str) -> list[str]:
        """
        Ids of customers whose name or email matches ``query``.

        A failed search yields no ids, so listing falls back to matching on
        cabin name and customer id alone.
        """
        if not query or not self.enabled:
            return []

        try:
            async with self._client() as client:
                response = await client.get("/users", params={"query": query})
                response.raise_for_status()
                records = _records(response.json())
        except (httpx.HTTPError, ValueError) as e:
            self._record_failure("search", e)
            return []

        return [str(record["id"]) for record in records if record.get("id")]

    async def find_by_email(self, email: str) -> IdentityLookup:
        """
        Look up the customer registered under an exact email address.

        Returns:
            IdentityLookup with the first matching profile, if any
        """
        if not email or not self.enabled:
            return IdentityLookup()

        try:
            async with self._client() as client:
                response = await client.get("/users", params={"email_address": email, "limit": 1})
                response.raise_for_status()
                records = _records(response.json())
        except (httpx.HTTPError, ValueError) as e:
            self._record_failure("find_by_email", e)
            return IdentityLookup(failed=True)

        profiles = [profile for profile in map(parse_profile, records) if profile is not None]
        return IdentityLookup(profile=profiles[0] if profiles else None)
