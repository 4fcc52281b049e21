"""Tests for deal persistence and lifecycle operations.

DB access is mocked: get_deal/has_quote are patched and the AsyncSession
is an AsyncMock, so these tests exercise ownership, edit windows, status
changes and the events emitted after commit.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.orm.exc import StaleDataError

from src.errors import ConflictError, ForbiddenError, NotFoundError, TransitionDenied, ValidationError
from src.models.deal import Deal
from src.models.enums import DealStatus, GovernmentLevel, PartnerTier
from src.schemas.auth import Principal
from src.schemas.deals import DealCreate, DealUpdate, DenialReason, MeddicScores
from src.schemas.events import EventType
from src.services import deals as service

SALES = Principal(user_id="user-1", partner_id="partner-1", role="sales", partner_tier=PartnerTier.GOLD)
OTHER_SALES = Principal(user_id="user-2", partner_id="partner-1", role="sales", partner_tier=PartnerTier.GOLD)
PARTNER_ADMIN = Principal(user_id="user-3", partner_id="partner-1", role="admin", partner_tier=PartnerTier.GOLD)
VIEWER = Principal(user_id="user-4", partner_id="partner-1", role="viewer")
FOREIGN = Principal(user_id="user-9", partner_id="partner-2", role="admin", partner_tier=PartnerTier.SILVER)
SOVRA = Principal(user_id="ops-1", role="sovra_admin")


# ── Helpers ──────────────────────────────────────────────────────────


def _make_db():
    db = AsyncMock()
    db.add = MagicMock()
    return db


def _make_deal(status: DealStatus = DealStatus.PENDING_APPROVAL, **overrides) -> Deal:
    now = datetime.now(timezone.utc)
    values = {
        "id": uuid.uuid4(),
        "partner_id": "partner-1",
        "created_by": "user-1",
        "client_name": "Municipalidad de Rosario",
        "country": "Argentina",
        "government_level": GovernmentLevel.MUNICIPALITY.value,
        "population": 1_300_000,
        "contact_name": "Ana Pérez",
        "contact_role": "CIO",
        "contact_email": "ana@rosario.gob.ar",
        "contact_phone": None,
        "description": "Digital identity rollout for city services",
        "partner_generated_lead": True,
        "status": status.value,
        "status_changed_at": now,
        "status_changed_by": "user-1",
        "created_at": now,
        "updated_at": now,
        "row_version": 1,
    }
    values.update(overrides)
    return Deal(**values)


@pytest.fixture
def mock_emit():
    with patch("src.services.deals.emit", new_callable=AsyncMock) as emit:
        yield emit


def _patch_load(deal: Deal | None, quote: bool = False):
    return (
        patch("src.services.deals.get_deal", new_callable=AsyncMock, return_value=deal),
        patch("src.services.deals.has_quote", new_callable=AsyncMock, return_value=quote),
    )


def _emitted(mock_emit) -> list[EventType]:
    return [call.args[0].event_type for call in mock_emit.await_args_list]


# ── Access ───────────────────────────────────────────────────────────


class TestAccess:
    def test_partner_sees_own_deal(self):
        service.check_access(SALES, _make_deal())

    def test_other_partner_forbidden(self):
        with pytest.raises(ForbiddenError):
            service.check_access(FOREIGN, _make_deal())

    def test_sovra_admin_sees_everything(self):
        service.check_access(SOVRA, _make_deal(partner_id="anyone"))

    def test_owner_is_creator_or_partner_admin(self):
        deal = _make_deal()
        service.check_owner(SALES, deal)
        service.check_owner(PARTNER_ADMIN, deal)
        with pytest.raises(ForbiddenError):
            service.check_owner(OTHER_SALES, deal)

    @pytest.mark.asyncio()
    async def test_missing_deal(self):
        with patch("src.services.deals.get_deal", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NotFoundError, match="Deal not found"):
                await service.require_deal(_make_db(), uuid.uuid4(), SALES)


# ── create_deal ──────────────────────────────────────────────────────


def _deal_create() -> DealCreate:
    return DealCreate(
        client_name="Municipalidad de Córdoba",
        country="Argentina",
        government_level=GovernmentLevel.MUNICIPALITY,
        population=1_500_000,
        contact_name="Luis Gómez",
        contact_role="Secretario de Modernización",
        contact_email="Luis@Cordoba.gob.ar",
        contact_phone="",
        description="Citizen wallet and digital ID pilot",
        partner_generated_lead=False,
    )


class TestCreateDeal:
    @pytest.mark.asyncio()
    async def test_starts_pending_approval(self, mock_emit):
        db = _make_db()
        deal = await service.create_deal(db, SALES, _deal_create())

        assert deal.status == DealStatus.PENDING_APPROVAL.value
        assert deal.partner_id == "partner-1"
        assert deal.created_by == "user-1"
        assert deal.contact_email == "luis@cordoba.gob.ar"
        assert deal.contact_phone is None
        db.add.assert_called_once_with(deal)
        db.commit.assert_awaited_once()
        assert _emitted(mock_emit) == [EventType.DEAL_CREATED]

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("principal", [SOVRA, VIEWER])
    async def test_only_partner_writers(self, principal, mock_emit):
        with pytest.raises(ForbiddenError):
            await service.create_deal(_make_db(), principal, _deal_create())
        mock_emit.assert_not_awaited()


# ── update_deal: status changes ──────────────────────────────────────


class TestStatusChange:
    @pytest.mark.asyncio()
    async def test_sovra_admin_approves(self, mock_emit):
        deal = _make_deal()
        db = _make_db()
        load, quote = _patch_load(deal)
        with load, quote:
            updated = await service.update_deal(db, SOVRA, deal.id, DealUpdate(status=DealStatus.APPROVED))

        assert updated.status == "approved"
        assert updated.status_changed_by == "ops-1"
        assert updated.rejection_reason is None
        db.commit.assert_awaited_once()
        assert _emitted(mock_emit) == [EventType.DEAL_STATUS_CHANGED, EventType.DEAL_APPROVED]
        payload = mock_emit.await_args_list[0].args[0].data
        assert payload["from_status"] == "pending_approval"
        assert payload["to_status"] == "approved"

    @pytest.mark.asyncio()
    async def test_partner_cannot_approve(self, mock_emit):
        deal = _make_deal()
        db = _make_db()
        load, quote = _patch_load(deal)
        with load, quote, pytest.raises(TransitionDenied) as exc_info:
            await service.update_deal(db, SALES, deal.id, DealUpdate(status=DealStatus.APPROVED))

        assert exc_info.value.reason == DenialReason.FORBIDDEN
        assert exc_info.value.status_code == 403
        assert deal.status == "pending_approval"
        db.commit.assert_not_awaited()
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_reject_requires_reason(self, mock_emit):
        deal = _make_deal()
        load, quote = _patch_load(deal)
        with load, quote, pytest.raises(ValidationError, match="reason is required"):
            await service.update_deal(_make_db(), SOVRA, deal.id, DealUpdate(status=DealStatus.REJECTED, notes="  "))
        assert deal.status == "pending_approval"

    @pytest.mark.asyncio()
    async def test_reject_stores_reason(self, mock_emit):
        deal = _make_deal()
        load, quote = _patch_load(deal)
        with load, quote:
            await service.update_deal(
                _make_db(), SOVRA, deal.id, DealUpdate(status=DealStatus.REJECTED, notes="Duplicate registration")
            )
        assert deal.status == "rejected"
        assert deal.rejection_reason == "Duplicate registration"
        assert EventType.DEAL_REJECTED in _emitted(mock_emit)

    @pytest.mark.asyncio()
    async def test_negotiation_needs_quote(self, mock_emit):
        deal = _make_deal(DealStatus.APPROVED)
        load, quote = _patch_load(deal, quote=False)
        with load, quote, pytest.raises(TransitionDenied) as exc_info:
            await service.update_deal(_make_db(), SALES, deal.id, DealUpdate(status=DealStatus.NEGOTIATION))
        assert exc_info.value.reason == DenialReason.QUOTE_REQUIRED
        assert exc_info.value.status_code == 400

        load, quote = _patch_load(deal, quote=True)
        with load, quote:
            await service.update_deal(_make_db(), SALES, deal.id, DealUpdate(status=DealStatus.NEGOTIATION))
        assert deal.status == "negotiation"

    @pytest.mark.asyncio()
    async def test_non_creator_sales_cannot_move_deal(self, mock_emit):
        deal = _make_deal(DealStatus.APPROVED)
        load, quote = _patch_load(deal, quote=True)
        with load, quote, pytest.raises(ForbiddenError):
            await service.update_deal(_make_db(), OTHER_SALES, deal.id, DealUpdate(status=DealStatus.NEGOTIATION))

    @pytest.mark.asyncio()
    async def test_won_carries_meddic_for_rating(self, mock_emit):
        deal = _make_deal(DealStatus.AWARDED, metrics=4, champion=5)
        load, quote = _patch_load(deal, quote=True)
        with load, quote:
            await service.update_deal(_make_db(), PARTNER_ADMIN, deal.id, DealUpdate(status=DealStatus.WON))
        won = mock_emit.await_args_list[-1].args[0]
        assert won.event_type == EventType.DEAL_WON
        assert won.data["meddic"]["metrics"] == 4
        assert won.data["created_by"] == "user-1"

    @pytest.mark.asyncio()
    async def test_stale_write_is_conflict(self, mock_emit):
        deal = _make_deal()
        db = _make_db()
        db.commit.side_effect = StaleDataError("row_version mismatch")
        load, quote = _patch_load(deal)
        with load, quote, pytest.raises(ConflictError):
            await service.update_deal(db, SOVRA, deal.id, DealUpdate(status=DealStatus.APPROVED))
        db.rollback.assert_awaited_once()
        mock_emit.assert_not_awaited()


# ── update_deal: field edits ─────────────────────────────────────────


class TestFieldEdits:
    @pytest.mark.asyncio()
    async def test_edit_while_pending(self, mock_emit):
        deal = _make_deal()
        load, quote = _patch_load(deal)
        with load, quote:
            await service.update_deal(_make_db(), SALES, deal.id, DealUpdate(population=1_400_000))
        assert deal.population == 1_400_000
        event = mock_emit.await_args_list[0].args[0]
        assert event.event_type == EventType.DEAL_UPDATED
        assert event.data["changes"]["population"] == {"old": 1_300_000, "new": 1_400_000}

    @pytest.mark.asyncio()
    async def test_edit_after_approval_refused(self, mock_emit):
        deal = _make_deal(DealStatus.APPROVED)
        load, quote = _patch_load(deal)
        with load, quote, pytest.raises(ValidationError, match="before approval"):
            await service.update_deal(_make_db(), SALES, deal.id, DealUpdate(country="Chile"))
        assert deal.country == "Argentina"

    @pytest.mark.asyncio()
    async def test_sovra_admin_cannot_edit_fields(self, mock_emit):
        deal = _make_deal()
        load, quote = _patch_load(deal)
        with load, quote, pytest.raises(ForbiddenError):
            await service.update_deal(_make_db(), SOVRA, deal.id, DealUpdate(country="Chile"))

    @pytest.mark.asyncio()
    async def test_required_field_cannot_be_cleared(self, mock_emit):
        deal = _make_deal()
        load, quote = _patch_load(deal)
        with load, quote, pytest.raises(ValidationError):
            await service.update_deal(_make_db(), SALES, deal.id, DealUpdate(country=None))

    @pytest.mark.asyncio()
    async def test_resubmit_with_edits(self, mock_emit):
        deal = _make_deal(DealStatus.MORE_INFO, rejection_reason="Need the population source")
        load, quote = _patch_load(deal)
        with load, quote:
            await service.update_deal(
                _make_db(),
                SALES,
                deal.id,
                DealUpdate(description="Population per 2022 census, digital ID rollout", status="pending_approval"),
            )
        assert deal.status == "pending_approval"
        assert deal.rejection_reason is None
        assert _emitted(mock_emit) == [EventType.DEAL_UPDATED, EventType.DEAL_STATUS_CHANGED]

    @pytest.mark.asyncio()
    async def test_empty_update_is_noop(self, mock_emit):
        deal = _make_deal()
        db = _make_db()
        load, quote = _patch_load(deal)
        with load, quote:
            await service.update_deal(db, SALES, deal.id, DealUpdate())
        db.commit.assert_not_awaited()
        mock_emit.assert_not_awaited()


# ── MEDDIC & transitions ─────────────────────────────────────────────


class TestMeddic:
    @pytest.mark.asyncio()
    async def test_partial_update_keeps_other_scores(self, mock_emit):
        deal = _make_deal(DealStatus.NEGOTIATION, metrics=2, champion=3)
        load, _ = _patch_load(deal)
        with load:
            await service.update_meddic(_make_db(), SALES, deal.id, MeddicScores(metrics=4))
        assert deal.metrics == 4
        assert deal.champion == 3
        assert deal.status == "negotiation"
        assert _emitted(mock_emit) == [EventType.DEAL_MEDDIC_UPDATED]


class TestAvailableTransitions:
    @pytest.mark.asyncio()
    async def test_sovra_admin_on_pending(self):
        deal = _make_deal()
        load, quote = _patch_load(deal)
        with load, quote:
            result = await service.available_transitions(_make_db(), SOVRA, deal.id)
        assert result.targets == [DealStatus.APPROVED, DealStatus.REJECTED, DealStatus.MORE_INFO]
        assert result.has_quote is False

    @pytest.mark.asyncio()
    async def test_non_owner_sales_gets_nothing(self):
        deal = _make_deal(DealStatus.AWARDED)
        load, quote = _patch_load(deal, quote=True)
        with load, quote:
            result = await service.available_transitions(_make_db(), OTHER_SALES, deal.id)
        assert result.targets == []

    @pytest.mark.asyncio()
    async def test_creator_on_awarded(self):
        deal = _make_deal(DealStatus.AWARDED)
        load, quote = _patch_load(deal, quote=True)
        with load, quote:
            result = await service.available_transitions(_make_db(), SALES, deal.id)
        assert result.targets == [DealStatus.WON, DealStatus.LOST]
