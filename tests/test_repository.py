"""Tests for services/repository.py."""

from __future__ import annotations

from models.models import Project, Team, utcnow
from services.repository import EntityStore, intersects


class TestRepository:
    def test_create_update_and_get(self, session, factory):
        user = factory.user()
        store = EntityStore(session)

        project = store.projects.create({"title": "Draft", "creator_id": user.id})
        store.projects.update(project.id, {"title": "Final", "member_ids": [user.id]})

        loaded = store.projects.get(project.id)
        assert loaded.title == "Final"
        assert loaded.member_ids == [user.id]
        assert store.projects.update(4242, {"title": "x"}) is None
        assert store.projects.get(None) is None

    def test_owner_and_company_listings(self, session, factory):
        company = factory.company()
        owner = factory.user(company)
        factory.team(owner)
        factory.team(factory.user())
        store = EntityStore(session)

        assert [t.creator_id for t in store.teams.list_by_owner(owner.id)] == [owner.id]
        assert len(store.teams.list_by_company(company.id)) == 1

    def test_counts(self, session, factory):
        user = factory.user()
        factory.project(user)
        factory.project(user, archived=True)
        store = EntityStore(session)

        assert store.projects.count() == 2
        assert store.projects.count(Project.archived == False) == 1  # noqa: E712
        assert store.projects.count_where(lambda p: p.archived) == 1
        assert store.teams.count(Team.creator_id == user.id) == 0

    def test_company_user_ids(self, session, factory):
        company = factory.company()
        active = factory.user(company)
        factory.user(company, is_active=False)
        store = EntityStore(session)

        assert len(store.company_user_ids(company.id)) == 2
        assert store.company_user_ids(company.id, active_only=True) == [active.id]


class TestIntersects:
    def test_intersects(self):
        assert intersects([1, 2], [2, 3])
        assert not intersects([1], [2])
        assert not intersects(None, [1])
        assert not intersects([], [1])


class TestTimestamps:
    def test_stored_timestamps_compare_with_utcnow(self, session, factory):
        before = utcnow()
        user = factory.user()

        session.expire(user)

        assert user.created_at.tzinfo is None
        assert before <= user.created_at <= utcnow()
