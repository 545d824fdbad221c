from .activity_schema import (
    ActivityPayload, ActivityRead, activity_payload_adapter,
    ProjectCreatedPayload, BoardCreatedPayload, TeamCreatedPayload, ObjectiveCreatedPayload,
    TaskCreatedPayload, TaskAssignedPayload, MemberAddedPayload, SubscriptionChangedPayload,
)
from .board_schema import BoardCreate, BoardRead, BoardMemberCreate, BoardMemberRead
from .company_schema import CompanyRead, CompanyPaymentInfoRead, CompanyWithPayment, PauseRequest
from .objective_schema import ObjectiveCreate, ObjectiveRead
from .project_schema import ProjectCreate, ProjectRead
from .subscription_schema import (
    PlanRead, SubscriptionRead, CurrentSubscriptionRead,
    SubscriptionSwitchRequest, SubscriptionSwitchResponse, SubscriptionUpdateResponse,
    AdminTierUpdate, ProviderConfirmation, AuditLogRead, FeatureCheckRead,
)
from .task_schema import TaskCreate, TaskRead
from .team_schema import TeamCreate, TeamRead, TeamMemberCreate, TeamMemberRead
from .user_schema import UserRead

__all__ = [
    # Activity
    "ActivityPayload", "ActivityRead", "activity_payload_adapter",
    "ProjectCreatedPayload", "BoardCreatedPayload", "TeamCreatedPayload", "ObjectiveCreatedPayload",
    "TaskCreatedPayload", "TaskAssignedPayload", "MemberAddedPayload", "SubscriptionChangedPayload",

    # Board
    "BoardCreate", "BoardRead", "BoardMemberCreate", "BoardMemberRead",

    # Company
    "CompanyRead", "CompanyPaymentInfoRead", "CompanyWithPayment", "PauseRequest",

    # Objective
    "ObjectiveCreate", "ObjectiveRead",

    # Project
    "ProjectCreate", "ProjectRead",

    # Subscription
    "PlanRead", "SubscriptionRead", "CurrentSubscriptionRead",
    "SubscriptionSwitchRequest", "SubscriptionSwitchResponse", "SubscriptionUpdateResponse",
    "AdminTierUpdate", "ProviderConfirmation", "AuditLogRead", "FeatureCheckRead",

    # Task
    "TaskCreate", "TaskRead",

    # Team
    "TeamCreate", "TeamRead", "TeamMemberCreate", "TeamMemberRead",

    # User
    "UserRead",
]
