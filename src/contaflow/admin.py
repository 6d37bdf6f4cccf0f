"""Administrative commands.

Granting full permissions is an explicit, audited operation reachable only
through the `contaflow grant-admin` CLI command. Every grant records who
performed it in the activity log.
"""

from __future__ import annotations

import logging
from typing import Any

from pymongo.database import Database

from contaflow.activity_log import log_activity
from contaflow.db import USERS

log = logging.getLogger(__name__)

MODULES = (
    "dashboard",
    "empresas",
    "societario",
    "processos",
    "obrigacoes",
    "fiscal",
    "documentos",
    "financeiro",
    "usuarios",
)

ACTIONS = ("read", "create", "update", "delete")


def admin_permissions() -> dict[str, dict[str, bool]]:
    """Full CRUD access on every module."""
    return {module: {action: True for action in ACTIONS} for module in MODULES}


def grant_admin(db: Database[dict[str, Any]], user_id: str, actor: str) -> bool:
    """Give `user_id` full permissions and audit the grant as `actor`.

    Permissions for modules not listed in `MODULES` are left untouched.

    Args:
        db: Database handle.
        user_id: Id of the user document to update (created if missing).
        actor: Who runs the command; recorded in the activity log.

    Returns:
        True if the user document already existed.

    Raises:
        ValueError: if `user_id` or `actor` is blank.
        PyMongoError: if the permission update fails.
    """
    user_id = user_id.strip()
    actor = actor.strip()
    if not user_id:
        raise ValueError("user_id is required")
    if not actor:
        raise ValueError("actor is required (who is granting the permissions?)")

    update = {
        f"permissions.{module}": access
        for module, access in admin_permissions().items()
    }
    result = db[USERS].update_one({"_id": user_id}, {"$set": update}, upsert=True)
    existed = result.upserted_id is None

    log.info("Granted admin permissions to user %s (by %s)", user_id, actor)
    log_activity(
        db,
        user_id=actor,
        user_name=actor,
        description=f"concedeu permissões de administrador ao usuário {user_id}",
        related_entity=("user", user_id),
    )
    return existed
