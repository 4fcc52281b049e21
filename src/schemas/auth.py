"""The acting principal, resolved from the session by the identity layer."""

from __future__ import annotations

from pydantic import ConfigDict

from src.models.enums import PartnerTier, UserRole
from src.schemas.common import ApiModel


class Principal(ApiModel):
    """Already-authenticated actor passed explicitly to every operation.

    `role` stays a plain string so an unrecognized role reaches the state
    machine and is denied there instead of failing session parsing.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    partner_id: str | None = None
    role: str
    partner_tier: PartnerTier | None = None

    @property
    def is_sovra_admin(self) -> bool:
        return self.role == UserRole.SOVRA_ADMIN.value

    @property
    def is_partner_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
