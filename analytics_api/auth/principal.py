"""The authenticated identity shared by users and admins."""

from pydantic import BaseModel

ADMIN_ROLE = 'admin'


class Principal(BaseModel):
    id: str
    username: str | None = None
    email: str | None = None
    roles: list[str] = []
    role: str | None = None
    subject_type: str = 'user'

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE or ADMIN_ROLE in self.roles

    @classmethod
    def for_user(cls, user) -> 'Principal':
        roles = list(user.roles or [])
        return cls(
            id=str(user.id),
            username=user.username,
            email=user.email,
            roles=roles,
            role=ADMIN_ROLE if ADMIN_ROLE in roles else None,
            subject_type='user',
        )

    @classmethod
    def for_admin(cls, admin) -> 'Principal':
        return cls(
            id=str(admin.id),
            username=admin.username,
            email=admin.email,
            roles=[ADMIN_ROLE],
            role=ADMIN_ROLE,
            subject_type='admin',
        )
