"""Access decision rules for console routes.

``decide`` is the single authority every protected view consults. It performs
no I/O and is defined for every (profile, requirement) combination.
"""

from registrar.schemas.access import Decision, RouteRequirement
from registrar.schemas.profile import Profile, ProfileStatus, Role

LOGIN_PATH = "/login"
PENDING_APPROVAL_PATH = "/pending-approval"
UNAUTHORIZED_PATH = "/unauthorized"

_ROLES_BY_REQUIREMENT: dict[RouteRequirement, frozenset[Role]] = {
    RouteRequirement.NONE: frozenset(Role),
    RouteRequirement.AUTHENTICATED: frozenset(Role),
    RouteRequirement.REQUIRE_STAFF: frozenset({Role.STAFF, Role.ADMIN}),
    RouteRequirement.REQUIRE_ADMIN: frozenset({Role.ADMIN}),
}

_REDIRECT_TARGETS: dict[Decision, str | None] = {
    Decision.ALLOW: None,
    Decision.REDIRECT_TO_LOGIN: LOGIN_PATH,
    Decision.REDIRECT_TO_PENDING: PENDING_APPROVAL_PATH,
    Decision.REDIRECT_TO_UNAUTHORIZED: UNAUTHORIZED_PATH,
}

ROUTE_REQUIREMENTS: dict[str, RouteRequirement] = {
    LOGIN_PATH: RouteRequirement.NONE,
    "/signup": RouteRequirement.NONE,
    PENDING_APPROVAL_PATH: RouteRequirement.NONE,
    UNAUTHORIZED_PATH: RouteRequirement.NONE,
    "/dashboard": RouteRequirement.AUTHENTICATED,
    "/approvals": RouteRequirement.REQUIRE_ADMIN,
    "/branches": RouteRequirement.REQUIRE_ADMIN,
    "/staff": RouteRequirement.REQUIRE_STAFF,
    "/students": RouteRequirement.REQUIRE_STAFF,
    "/classrooms": RouteRequirement.REQUIRE_STAFF,
    "/libraries/books": RouteRequirement.REQUIRE_STAFF,
    "/reports": RouteRequirement.REQUIRE_STAFF,
}


def decide(profile: Profile | None, requirement: RouteRequirement) -> Decision:
    """Map the current profile and a route requirement to an allow/redirect outcome."""
    if requirement is RouteRequirement.NONE:
        return Decision.ALLOW
    if profile is None:
        return Decision.REDIRECT_TO_LOGIN
    if profile.status is ProfileStatus.PENDING:
        return Decision.REDIRECT_TO_PENDING
    if profile.status is not ProfileStatus.ACTIVE:
        return Decision.REDIRECT_TO_UNAUTHORIZED
    if profile.role in _ROLES_BY_REQUIREMENT[requirement]:
        return Decision.ALLOW
    return Decision.REDIRECT_TO_UNAUTHORIZED


def redirect_target(decision: Decision) -> str | None:
    return _REDIRECT_TARGETS[decision]


def requirement_for_path(path: str) -> RouteRequirement:
    """Resolve a console path to its requirement by longest segment-prefix match.

    Unknown paths default to ``authenticated``.
    """
    normalized = "/" + path.strip().strip("/")
    segments = normalized.split("/")
    while len(segments) > 1:
        candidate = "/".join(segments)
        if candidate in ROUTE_REQUIREMENTS:
            return ROUTE_REQUIREMENTS[candidate]
        segments.pop()
    return RouteRequirement.AUTHENTICATED
