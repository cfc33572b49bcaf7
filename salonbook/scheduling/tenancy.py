"""Per-request tenant context for the scheduling operations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..models import Client, Salon
from .errors import InvalidInput, StoreUnavailable
from .lead_time import LeadTimePolicy
from .slots import DEFAULT_STEP_MINUTES


@dataclass(frozen=True)
class TenantContext:
    """Validated salon (and optionally client) a request acts on behalf of."""

    salon_id: int
    lead_time: LeadTimePolicy
    client_id: Optional[int] = None
    slot_step_minutes: int = DEFAULT_STEP_MINUTES

    def require_client(self) -> int:
        if self.client_id is None:
            raise InvalidInput("client_id is required")
        return self.client_id


def resolve_tenant(
    token: Optional[str],
    client_id: Optional[int] = None,
    slot_step_minutes: int = DEFAULT_STEP_MINUTES,
) -> TenantContext:
    """Build the context for a salon portal token, checking the client belongs to it."""
    token = (token or "").strip()
    if not token:
        raise InvalidInput("token is required")

    try:
        salon = Salon.query.filter_by(portal_token=token).first()
        if salon is None:
            raise InvalidInput("invalid portal link")

        if client_id is not None:
            client = Client.query.filter_by(client_id=client_id, salon_id=salon.salon_id).first()
            if client is None:
                raise InvalidInput("client is not registered at this salon")
    except SQLAlchemyError as exc:
        raise StoreUnavailable("could not load salon") from exc

    return TenantContext(
        salon_id=salon.salon_id,
        lead_time=LeadTimePolicy.for_salon(salon),
        client_id=client_id,
        slot_step_minutes=slot_step_minutes,
    )
