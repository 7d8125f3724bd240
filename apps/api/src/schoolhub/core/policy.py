"""
Per-Action Policy Table

Every operation exposed over HTTP is an Action. ACTION_POLICIES states, for
each of them, which roles may call it and the rate limit that applies. The
table is checked for completeness at startup, so an endpoint can never be
registered without an explicit policy.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from schoolhub.modules.users.models import UserRole


class Action(str, Enum):
    """Operations exposed by the API, as "<resource>.<action>"."""

    AUTH_SETUP_SUPERADMIN = "auth.setup_superadmin"
    AUTH_LOGIN = "auth.login"
    AUTH_LOGOUT = "auth.logout"
    AUTH_REFRESH = "auth.refresh"
    AUTH_ME = "auth.me"

    SCHOOLS_CREATE = "schools.create"
    SCHOOLS_LIST = "schools.list"
    SCHOOLS_GET = "schools.get"
    SCHOOLS_UPDATE = "schools.update"
    SCHOOLS_DELETE = "schools.delete"
    SCHOOLS_CREATE_ADMIN = "schools.create_admin"

    CLASSROOMS_CREATE = "classrooms.create"
    CLASSROOMS_LIST = "classrooms.list"
    CLASSROOMS_GET = "classrooms.get"
    CLASSROOMS_UPDATE = "classrooms.update"
    CLASSROOMS_DELETE = "classrooms.delete"

    STUDENTS_CREATE = "students.create"
    STUDENTS_LIST = "students.list"
    STUDENTS_GET = "students.get"
    STUDENTS_UPDATE = "students.update"
    STUDENTS_DELETE = "students.delete"

    TRANSFER_REQUESTS_CREATE = "transfer_requests.create"
    TRANSFER_REQUESTS_LIST = "transfer_requests.list"
    TRANSFER_REQUESTS_GET = "transfer_requests.get"
    TRANSFER_REQUESTS_APPROVE = "transfer_requests.approve"
    TRANSFER_REQUESTS_REJECT = "transfer_requests.reject"

    @property
    def resource(self) -> str:
        return self.value.split(".", 1)[0]

    @property
    def operation(self) -> str:
        return self.value.split(".", 1)[1]


@dataclass(frozen=True)
class RateLimitRule:
    """At most max_requests calls per window_seconds for one identity."""

    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class ActionPolicy:
    """
    Access policy of one action.

    Attributes:
        allowed_roles: Roles admitted, None for public actions
        rate_limit: Rate limit rule, None to bypass the limiter
    """

    allowed_roles: frozenset[UserRole] | None
    rate_limit: RateLimitRule | None = None


class PolicyConfigurationError(RuntimeError):
    """Raised at startup when the policy table does not match the actions."""


PUBLIC = None
SUPERADMIN_ONLY = frozenset({UserRole.SUPERADMIN})
ANY_ADMIN = frozenset({UserRole.SUPERADMIN, UserRole.SCHOOL_ADMIN})


ACTION_POLICIES: dict[Action, ActionPolicy] = {
    # Authentication (anonymous callers are limited by IP)
    Action.AUTH_SETUP_SUPERADMIN: ActionPolicy(PUBLIC, RateLimitRule(5, 60)),
    Action.AUTH_LOGIN: ActionPolicy(PUBLIC, RateLimitRule(10, 60)),
    Action.AUTH_LOGOUT: ActionPolicy(PUBLIC, RateLimitRule(30, 60)),
    Action.AUTH_REFRESH: ActionPolicy(PUBLIC, RateLimitRule(30, 60)),
    Action.AUTH_ME: ActionPolicy(ANY_ADMIN),
    # Schools
    Action.SCHOOLS_CREATE: ActionPolicy(SUPERADMIN_ONLY, RateLimitRule(10, 60)),
    Action.SCHOOLS_LIST: ActionPolicy(SUPERADMIN_ONLY),
    Action.SCHOOLS_GET: ActionPolicy(SUPERADMIN_ONLY),
    Action.SCHOOLS_UPDATE: ActionPolicy(SUPERADMIN_ONLY, RateLimitRule(30, 60)),
    Action.SCHOOLS_DELETE: ActionPolicy(SUPERADMIN_ONLY, RateLimitRule(10, 60)),
    Action.SCHOOLS_CREATE_ADMIN: ActionPolicy(SUPERADMIN_ONLY, RateLimitRule(10, 60)),
    # Classrooms
    Action.CLASSROOMS_CREATE: ActionPolicy(ANY_ADMIN, RateLimitRule(30, 60)),
    Action.CLASSROOMS_LIST: ActionPolicy(ANY_ADMIN),
    Action.CLASSROOMS_GET: ActionPolicy(ANY_ADMIN),
    Action.CLASSROOMS_UPDATE: ActionPolicy(ANY_ADMIN, RateLimitRule(30, 60)),
    Action.CLASSROOMS_DELETE: ActionPolicy(ANY_ADMIN, RateLimitRule(10, 60)),
    # Students
    Action.STUDENTS_CREATE: ActionPolicy(ANY_ADMIN, RateLimitRule(30, 60)),
    Action.STUDENTS_LIST: ActionPolicy(ANY_ADMIN),
    Action.STUDENTS_GET: ActionPolicy(ANY_ADMIN),
    Action.STUDENTS_UPDATE: ActionPolicy(ANY_ADMIN, RateLimitRule(30, 60)),
    Action.STUDENTS_DELETE: ActionPolicy(ANY_ADMIN, RateLimitRule(10, 60)),
    # Transfer requests
    Action.TRANSFER_REQUESTS_CREATE: ActionPolicy(ANY_ADMIN, RateLimitRule(20, 60)),
    Action.TRANSFER_REQUESTS_LIST: ActionPolicy(ANY_ADMIN),
    Action.TRANSFER_REQUESTS_GET: ActionPolicy(ANY_ADMIN),
    Action.TRANSFER_REQUESTS_APPROVE: ActionPolicy(ANY_ADMIN, RateLimitRule(10, 60)),
    Action.TRANSFER_REQUESTS_REJECT: ActionPolicy(ANY_ADMIN, RateLimitRule(10, 60)),
}


def validate_policy_table(
    policies: Mapping[Action, ActionPolicy],
    actions: Iterable[Action] = Action,
) -> None:
    """
    Check that every registered action has exactly one policy.

    Raises:
        PolicyConfigurationError: Listing missing and unknown actions
    """
    registered = set(actions)
    configured = set(policies)

    missing = registered - configured
    unknown = configured - registered

    if missing or unknown:
        raise PolicyConfigurationError(
            "Policy table does not match registered actions. "
            f"Missing: {sorted(a.value for a in missing)}; "
            f"unknown: {sorted(str(getattr(a, 'value', a)) for a in unknown)}"
        )

    for action, policy in policies.items():
        rule = policy.rate_limit
        if rule is not None and (rule.max_requests < 1 or rule.window_seconds < 1):
            raise PolicyConfigurationError(f"Invalid rate limit for {action.value}: {rule}")
