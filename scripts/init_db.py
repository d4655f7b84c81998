import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ocl.models import Permission, Role, User  # noqa: E402
from app.ocl.rbac import PERMISSION_NAMES, ROLE_PERMISSIONS  # noqa: E402
from scripts._db_utils import script_db_url, script_session  # noqa: E402


def seed_roles(s) -> dict[str, Role]:
    """Create/refresh permissions and roles from the RBAC table. Idempotent."""
    perms: dict[str, Permission] = {}
    for key, name in PERMISSION_NAMES.items():
        p = s.query(Permission).filter(Permission.key == key).one_or_none()
        if not p:
            p = Permission(key=key, name=name)
            s.add(p)
        perms[key] = p

    roles: dict[str, Role] = {}
    for role_key, (role_name, perm_keys) in ROLE_PERMISSIONS.items():
        role = s.query(Role).filter(Role.key == role_key).one_or_none()
        if not role:
            role = Role(key=role_key, name=role_name)
            s.add(role)
        for pk in perm_keys:
            if perms[pk] not in role.permissions:
                role.permissions.append(perms[pk])
        roles[role_key] = role
    return roles


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@ocl.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = script_db_url(database_url)

    with script_session(db_url) as s:
        roles = seed_roles(s)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                name="Administrator",
                password_hash=generate_password_hash(admin_password),
                is_active=True,
            )
            s.add(user)
        if roles["admin"] not in user.roles:
            user.roles.append(roles["admin"])

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
