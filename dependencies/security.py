from dataclasses import dataclass
from typing import Optional, Annotated
from fastapi import Header, HTTPException
from sqlalchemy.orm import Session
from config.settings import settings
from models.placements import Placement
from utils.errors import ForbiddenError, NotFoundError
import hmac

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]
ActorRoleHeader = Annotated[Optional[str], Header(alias="X-Actor-Role")]
MentorIdHeader = Annotated[Optional[int], Header(alias="X-Mentor-Id")]

ROLES = ("admin", "mentor", "student")


def require_service_token(authorization: AuthHeader = None):
    # no token configured -> check disabled (dev / tests)
    if not settings.INTERNAL_TOKEN:
        return {"client": "anonymous"}

    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # "Bearer <token>"
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail="Invalid Authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if scheme.lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Invalid auth scheme",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # timing safe comparison
    if not hmac.compare_digest(token.strip(), settings.INTERNAL_TOKEN):
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"client": "gateway"}


@dataclass(frozen=True)
class AccessDecision:
    """Role/ownership already resolved by the authentication gateway."""
    role: str
    mentor_id: Optional[int] = None


def get_access_decision(
    x_actor_role: ActorRoleHeader = None,
    x_mentor_id: MentorIdHeader = None,
) -> AccessDecision:
    role = (x_actor_role or "admin").strip().lower()
    if role not in ROLES:
        raise ForbiddenError(f"Unknown actor role '{role}'")
    if role == "mentor" and x_mentor_id is None:
        raise ForbiddenError("Mentor requests must carry X-Mentor-Id")
    return AccessDecision(role=role, mentor_id=x_mentor_id)


def require_staff(decision: AccessDecision) -> None:
    if decision.role not in ("admin", "mentor"):
        raise ForbiddenError("Only admins and mentors may manage final reports")


def enforce_placement_scope(db: Session, decision: AccessDecision, placement_id: int) -> Placement:
    """Admins see every placement, mentors only their own mentees."""
    require_staff(decision)
    placement = db.get(Placement, placement_id)
    if placement is None:
        raise NotFoundError(f"Placement {placement_id} not found")
    if decision.role == "mentor" and placement.mentor_id != decision.mentor_id:
        raise ForbiddenError(f"Placement {placement_id} is not supervised by mentor {decision.mentor_id}")
    return placement
