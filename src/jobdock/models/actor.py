"""The authenticated caller as seen by the authorization guard."""

from pydantic import BaseModel, ConfigDict

from jobdock.models.enums import SubscriptionTier, UserRole


def resolve_capability(role: UserRole, value: bool | None, default: bool = False) -> bool:
    """Owners and admins always hold every capability.

    For employees an unset (NULL) flag falls back to ``default``.
    """
    if role in (UserRole.OWNER, UserRole.ADMIN):
        return True
    if value is None:
        return default
    return value


class Actor(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    tenant_id: str
    role: UserRole
    can_create_jobs: bool = False
    can_schedule_appointments: bool = False
    can_see_other_jobs: bool = False
    subscription_tier: SubscriptionTier = SubscriptionTier.SINGLE

    @property
    def is_manager(self) -> bool:
        return self.role in (UserRole.OWNER, UserRole.ADMIN)

    @classmethod
    def from_rows(cls, user, tenant) -> "Actor":
        """Build an actor from a UserRow and its TenantRow."""
        role = UserRole(user.role)
        return cls(
            user_id=user.user_id,
            tenant_id=user.tenant_id,
            role=role,
            can_create_jobs=resolve_capability(role, user.can_create_jobs, default=True),
            can_schedule_appointments=resolve_capability(role, user.can_schedule_appointments, default=True),
            can_see_other_jobs=resolve_capability(role, user.can_see_other_jobs),
            subscription_tier=SubscriptionTier(tenant.subscription_tier),
        )
