# services/repository.py
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from models.models import (
    Board,
    BoardMember,
    Company,
    CompanyPaymentInfo,
    Objective,
    ObjectiveMember,
    Project,
    Task,
    Team,
    TeamMember,
    User,
)

ModelT = TypeVar("ModelT", bound=SQLModel)


class Repository(Generic[ModelT]):
    """
    Thin CRUD access for one table.

    The service layer only talks to these semantic operations, never to
    ad hoc SQL, so swapping the store means swapping this class.
    """

    def __init__(self, session: Session, model: Type[ModelT]):
        self.session = session
        self.model = model

    def get(self, entity_id: Optional[int]) -> Optional[ModelT]:
        if entity_id is None:
            return None
        return self.session.get(self.model, entity_id)

    def list_by_owner(self, user_id: int) -> List[ModelT]:
        owner_column = getattr(self.model, "creator_id", None)
        if owner_column is None:
            owner_column = getattr(self.model, "user_id")
        return list(self.session.exec(select(self.model).where(owner_column == user_id)).all())

    def list_by_company(self, company_id: int) -> List[ModelT]:
        return list(
            self.session.exec(select(self.model).where(self.model.company_id == company_id)).all()
        )

    def list_where(self, *clauses: Any) -> List[ModelT]:
        return list(self.session.exec(select(self.model).where(*clauses)).all())

    def first_where(self, *clauses: Any) -> Optional[ModelT]:
        return self.session.exec(select(self.model).where(*clauses)).first()

    def create(self, data: Dict[str, Any], commit: bool = True) -> ModelT:
        entity = self.model(**data)
        self.session.add(entity)
        if commit:
            self.session.commit()
            self.session.refresh(entity)
        else:
            self.session.flush()
        return entity

    def update(self, entity_id: int, patch: Dict[str, Any], commit: bool = True) -> Optional[ModelT]:
        entity = self.get(entity_id)
        if entity is None:
            return None
        for key, value in patch.items():
            setattr(entity, key, value)
        self.session.add(entity)
        if commit:
            self.session.commit()
            self.session.refresh(entity)
        return entity

    def count(self, *clauses: Any) -> int:
        """Row count, optionally narrowed by SQL clauses."""
        statement = select(func.count()).select_from(self.model)
        if clauses:
            statement = statement.where(*clauses)
        return int(self.session.exec(statement).one())

    def count_where(self, predicate: Callable[[ModelT], bool], *clauses: Any) -> int:
        """
        Count rows matching a Python predicate.

        Used where the condition lives inside a JSON list column and cannot
        be expressed portably across SQLite and PostgreSQL.
        """
        return sum(1 for row in self.list_where(*clauses) if predicate(row))


class EntityStore:
    """Bundle of repositories sharing one session."""

    def __init__(self, session: Session):
        self.session = session
        self.users = Repository(session, User)
        self.companies = Repository(session, Company)
        self.payment_info = Repository(session, CompanyPaymentInfo)
        self.teams = Repository(session, Team)
        self.team_members = Repository(session, TeamMember)
        self.projects = Repository(session, Project)
        self.boards = Repository(session, Board)
        self.board_members = Repository(session, BoardMember)
        self.objectives = Repository(session, Objective)
        self.objective_members = Repository(session, ObjectiveMember)
        self.tasks = Repository(session, Task)

    def company_user_ids(self, company_id: int, active_only: bool = False) -> List[int]:
        clauses = [User.company_id == company_id]
        if active_only:
            clauses.append(User.is_active == True)  # noqa: E712
        return [user.id for user in self.users.list_where(*clauses)]

    def team_ids_for_user(self, user_id: int) -> List[int]:
        return [row.team_id for row in self.team_members.list_where(TeamMember.user_id == user_id)]


def intersects(left: Optional[Iterable[int]], right: Iterable[int]) -> bool:
    if not left:
        return False
    right_set = set(right)
    return any(item in right_set for item in left)
