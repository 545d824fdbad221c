"""Tests for services/audit.py."""

from __future__ import annotations

from sqlalchemy.exc import OperationalError
from sqlmodel import select

from models.models import AuditAction, SubscriptionAuditLog
from services.audit import AuditTrail


class TestAppend:
    def test_append_persists_entry(self, session, factory):
        user = factory.user()

        entry = AuditTrail(session).append(
            AuditAction.UPGRADE, user_id=user.id, old_tier="free", new_tier="freelancer"
        )

        assert entry is not None
        assert entry.id is not None
        assert entry.action == "upgrade"

    def test_append_accepts_plain_string_action(self, session):
        entry = AuditTrail(session).append("custom_note", details="manual correction")

        assert entry.action == "custom_note"

    def test_failed_write_is_swallowed(self, session, monkeypatch):
        trail = AuditTrail(session)

        def broken_commit():
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(session, "commit", broken_commit)

        assert trail.append(AuditAction.CREATE, new_tier="free") is None
        monkeypatch.undo()
        assert session.exec(select(SubscriptionAuditLog)).all() == []


class TestListing:
    def test_company_entries_newest_first(self, session, factory):
        company = factory.company()
        other = factory.company()
        trail = AuditTrail(session)
        first = trail.append(AuditAction.CREATE, company_id=company.id, new_tier="free")
        trail.append(AuditAction.CREATE, company_id=other.id, new_tier="free")
        second = trail.append(AuditAction.UPGRADE, company_id=company.id, old_tier="free", new_tier="enterprise")

        entries = trail.list_for_company(company.id)

        assert [e.id for e in entries] == [second.id, first.id]

    def test_limit_is_applied(self, session, factory):
        user = factory.user()
        trail = AuditTrail(session)
        for _ in range(5):
            trail.append(AuditAction.CHANGE_TIER, user_id=user.id)

        assert len(trail.list_for_user(user.id, limit=3)) == 3
