# services/permissions.py
"""
Permission resolution for companies, teams, projects, boards, objectives,
tasks and users.

Every ``can_access_*`` check walks the same ladder and stops at the first
rule that matches:

    hyper-admin > creator > direct assignment > membership row
        > tenant isolation gate > parent resource > team membership

Missing actors or resources resolve to ``False``. Database errors are not
caught here; they reach the caller unchanged.
"""
import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy import String, cast, false, or_
from sqlmodel import Session, select

from models.models import (
    ActivityLog,
    Board,
    BoardMember,
    Objective,
    ObjectiveMember,
    Project,
    Task,
    Team,
    TeamMember,
    User,
)
from services.repository import EntityStore, intersects

logger = logging.getLogger(__name__)

FEED_LIMIT = 100
HYPER_ADMIN_FEED_LIMIT = 200


def json_list_mentions(column, ids: Iterable[int]):
    """
    Coarse SQL pre-filter for a JSON list of ids.

    Matches the id as a substring of the serialized list, so ``1`` also hits
    ``[12]``. Callers confirm membership on the loaded rows.
    """
    ids = sorted(set(ids))
    if not ids:
        return false()
    serialized = cast(column, String)
    return or_(*[serialized.like(f"%{i}%") for i in ids])


class PermissionService:
    def __init__(self, session: Session):
        self.session = session
        self.store = EntityStore(session)

    # ============================================================
    # ✅ Helpers
    # ============================================================
    def _actor(self, user_id: Optional[int]) -> Optional[User]:
        return self.store.users.get(user_id)

    def is_hyper_admin(self, user_id: Optional[int]) -> bool:
        user = self._actor(user_id)
        return bool(user and user.is_hyper_admin)

    @staticmethod
    def _outside_tenant(actor: User, company_id: Optional[int]) -> bool:
        """True when the resource is tenant-scoped to a company the actor is not in."""
        return company_id is not None and actor.company_id != company_id

    def _is_team_member(self, user_id: int, team_id: int) -> bool:
        return (
            self.store.team_members.first_where(
                TeamMember.team_id == team_id, TeamMember.user_id == user_id
            )
            is not None
        )

    # ============================================================
    # ✅ Company
    # ============================================================
    def can_access_company(self, user_id: int, company_id: int) -> bool:
        actor = self._actor(user_id)
        if actor is None or self.store.companies.get(company_id) is None:
            return False
        if actor.is_hyper_admin:
            return True
        return actor.company_id is not None and actor.company_id == company_id

    # ============================================================
    # ✅ Team
    # ============================================================
    def can_access_team(self, user_id: int, team_id: Optional[int]) -> bool:
        team = self.store.teams.get(team_id)
        actor = self._actor(user_id)
        if team is None or actor is None:
            return False
        if actor.is_hyper_admin:
            return True
        if team.creator_id == user_id:
            return True
        if self._is_team_member(user_id, team.id):
            return True
        logger.debug(f"Team access denied: user={user_id} team={team_id}")
        return False

    # ============================================================
    # ✅ Project
    # ============================================================
    def can_access_project(self, user_id: int, project_id: Optional[int]) -> bool:
        project = self.store.projects.get(project_id)
        actor = self._actor(user_id)
        if project is None or actor is None:
            return False
        if actor.is_hyper_admin:
            return True
        if project.creator_id == user_id:
            return True
        if user_id in (project.member_ids or []):
            return True
        if self._outside_tenant(actor, project.company_id):
            logger.debug(f"Project {project_id} outside tenant of user {user_id}")
            return False
        if intersects(project.team_ids, self.store.team_ids_for_user(user_id)):
            return True
        logger.debug(f"Project access denied: user={user_id} project={project_id}")
        return False

    # ============================================================
    # ✅ Board
    # ============================================================
    def can_access_board(self, user_id: int, board_id: Optional[int]) -> bool:
        board = self.store.boards.get(board_id)
        actor = self._actor(user_id)
        if board is None or actor is None:
            return False
        if actor.is_hyper_admin:
            return True
        if board.creator_id == user_id:
            return True
        if user_id in (board.assigned_user_ids or []):
            return True
        membership = self.store.board_members.first_where(
            BoardMember.board_id == board.id, BoardMember.user_id == user_id
        )
        if membership is not None:
            return True
        if self._outside_tenant(actor, board.company_id):
            logger.debug(f"Board {board_id} outside tenant of user {user_id}")
            return False
        if board.project_id is not None and self.can_access_project(user_id, board.project_id):
            return True
        if intersects(board.team_ids, self.store.team_ids_for_user(user_id)):
            return True
        logger.debug(f"Board access denied: user={user_id} board={board_id}")
        return False

    # ============================================================
    # ✅ Objective (OKR)
    # ============================================================
    def can_access_objective(self, user_id: int, objective_id: Optional[int]) -> bool:
        objective = self.store.objectives.get(objective_id)
        actor = self._actor(user_id)
        if objective is None or actor is None:
            return False
        if actor.is_hyper_admin:
            return True
        if objective.creator_id == user_id:
            return True
        if user_id in (objective.user_ids or []):
            return True
        membership = self.store.objective_members.first_where(
            ObjectiveMember.objective_id == objective.id, ObjectiveMember.user_id == user_id
        )
        if membership is not None:
            return True
        if self._outside_tenant(actor, objective.company_id):
            logger.debug(f"Objective {objective_id} outside tenant of user {user_id}")
            return False
        if objective.team_id is not None and self.can_access_team(user_id, objective.team_id):
            return True
        if objective.project_id is not None and self.can_access_project(user_id, objective.project_id):
            return True
        logger.debug(f"Objective access denied: user={user_id} objective={objective_id}")
        return False

    # ============================================================
    # ✅ Task
    # ============================================================
    def can_access_task(self, user_id: int, task_id: Optional[int]) -> bool:
        task = self.store.tasks.get(task_id)
        actor = self._actor(user_id)
        if task is None or actor is None:
            return False
        if actor.is_hyper_admin:
            return True
        if user_id in (task.assigned_user_ids or []):
            return True
        if task.assigned_team_id is not None and self._is_team_member(user_id, task.assigned_team_id):
            board = self.store.boards.get(task.board_id)
            if board is None or not self._outside_tenant(actor, board.company_id):
                return True
        return self.can_access_board(user_id, task.board_id)

    # ============================================================
    # ✅ User
    # ============================================================
    def can_access_user(self, user_id: int, target_user_id: int) -> bool:
        target = self.store.users.get(target_user_id)
        if target is None:
            return False
        if user_id == target_user_id:
            return True
        actor = self._actor(user_id)
        if actor is None:
            return False
        if actor.is_hyper_admin:
            return True
        return actor.company_id is not None and actor.company_id == target.company_id

    # ============================================================
    # ✅ Filters (order preserving)
    # ============================================================
    def filter_projects(self, user_id: int, projects: Iterable[Project]) -> List[Project]:
        return [p for p in projects if self.can_access_project(user_id, p.id)]

    def filter_boards(self, user_id: int, boards: Iterable[Board]) -> List[Board]:
        return [b for b in boards if self.can_access_board(user_id, b.id)]

    def filter_teams(self, user_id: int, teams: Iterable[Team]) -> List[Team]:
        return [t for t in teams if self.can_access_team(user_id, t.id)]

    def filter_objectives(self, user_id: int, objectives: Iterable[Objective]) -> List[Objective]:
        return [o for o in objectives if self.can_access_objective(user_id, o.id)]

    def filter_tasks(self, user_id: int, tasks: Iterable[Task]) -> List[Task]:
        return [t for t in tasks if self.can_access_task(user_id, t.id)]

    def filter_users(self, user_id: int, users: Iterable[User]) -> List[User]:
        """Self plus everyone in the same company; hyper-admins see everyone."""
        users = list(users)
        actor = self._actor(user_id)
        if actor is None:
            return []
        if actor.is_hyper_admin:
            return users
        if actor.company_id is None:
            return [u for u in users if u.id == user_id]
        return [u for u in users if u.id == user_id or u.company_id == actor.company_id]

    def filter_team_members(self, user_id: int, members: Iterable[TeamMember]) -> List[TeamMember]:
        members = list(members)
        actor = self._actor(user_id)
        if actor is None:
            return []
        if actor.is_hyper_admin:
            return members
        if actor.company_id is None:
            return [m for m in members if m.user_id == user_id]
        company_team_ids = {team.id for team in self.store.teams.list_by_company(actor.company_id)}
        return [m for m in members if m.team_id in company_team_ids]

    # ============================================================
    # ✅ Activity feed
    # ============================================================
    def _attached_rows(self, model, actor: User, *conditions) -> list:
        """Rows matching any condition, limited to the actor's tenant when they have one."""
        statement = select(model).where(or_(*conditions))
        if actor.company_id is not None:
            statement = statement.where(or_(model.company_id == actor.company_id, model.company_id.is_(None)))
        return self.session.exec(statement).all()

    def _feed_scope(self, actor: User) -> dict:
        """Ids of everything the actor is loosely attached to."""
        user_id = actor.id
        team_ids: Set[int] = set(self.store.team_ids_for_user(user_id))
        team_ids.update(team.id for team in self.store.teams.list_by_owner(user_id))

        projects = self._attached_rows(
            Project,
            actor,
            Project.creator_id == user_id,
            json_list_mentions(Project.member_ids, [user_id]),
            json_list_mentions(Project.team_ids, team_ids),
        )
        project_ids = {
            p.id
            for p in projects
            if p.creator_id == user_id
            or user_id in (p.member_ids or [])
            or intersects(p.team_ids, team_ids)
        }

        boards = self._attached_rows(
            Board,
            actor,
            Board.creator_id == user_id,
            json_list_mentions(Board.assigned_user_ids, [user_id]),
            json_list_mentions(Board.team_ids, team_ids),
        )
        board_ids = {
            b.id
            for b in boards
            if b.creator_id == user_id
            or user_id in (b.assigned_user_ids or [])
            or intersects(b.team_ids, team_ids)
        }
        board_ids.update(
            self.session.exec(select(BoardMember.board_id).where(BoardMember.user_id == user_id)).all()
        )

        objectives = self._attached_rows(
            Objective,
            actor,
            Objective.creator_id == user_id,
            json_list_mentions(Objective.user_ids, [user_id]),
        )
        objective_ids = {o.id for o in objectives if o.creator_id == user_id or user_id in (o.user_ids or [])}
        objective_ids.update(
            self.session.exec(
                select(ObjectiveMember.objective_id).where(ObjectiveMember.user_id == user_id)
            ).all()
        )

        tasks = self.session.exec(select(Task).where(json_list_mentions(Task.assigned_user_ids, [user_id]))).all()
        task_ids = {t.id for t in tasks if user_id in (t.assigned_user_ids or [])}

        return {
            "team_ids": team_ids,
            "project_ids": project_ids,
            "board_ids": board_ids,
            "objective_ids": objective_ids,
            "task_ids": task_ids,
        }

    def get_visible_activity_logs(self, user_id: int) -> List[ActivityLog]:
        """
        Activity entries the user is attached to, newest first.

        This is an OR over the user's memberships rather than a per-entry
        permission check, scoped to the user's company when they have one.
        """
        actor = self._actor(user_id)
        if actor is None:
            return []

        if actor.is_hyper_admin:
            return list(
                self.session.exec(
                    select(ActivityLog)
                    .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
                    .limit(HYPER_ADMIN_FEED_LIMIT)
                ).all()
            )

        scope = self._feed_scope(actor)
        conditions = [
            ActivityLog.user_id == user_id,
            ActivityLog.target_user_id == user_id,
        ]
        for column, ids in (
            (ActivityLog.board_id, scope["board_ids"]),
            (ActivityLog.project_id, scope["project_ids"]),
            (ActivityLog.team_id, scope["team_ids"]),
            (ActivityLog.objective_id, scope["objective_ids"]),
            (ActivityLog.task_id, scope["task_ids"]),
        ):
            if ids:
                conditions.append(column.in_(ids))

        statement = select(ActivityLog).where(or_(*conditions))
        if actor.company_id is not None:
            company_users = select(User.id).where(User.company_id == actor.company_id)
            statement = statement.where(ActivityLog.user_id.in_(company_users))

        statement = statement.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(FEED_LIMIT)
        return list(self.session.exec(statement).all())
