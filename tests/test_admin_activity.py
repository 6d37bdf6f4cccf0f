from __future__ import annotations

import pytest

from contaflow.activity_log import log_activity, recent_activities
from contaflow.admin import MODULES, admin_permissions, grant_admin
from contaflow.db import ACTIVITIES, USERS
from tests.conftest import BrokenDb


def test_log_activity_appends_entry(db) -> None:
    activity_id = log_activity(db, "u1", "criou a empresa Zeta", related_entity=("company", "111"))

    doc = db[ACTIVITIES].find_one({"id": activity_id})
    assert doc["userId"] == "u1"
    assert doc["userName"] == "Usuário Anônimo"
    assert doc["relatedEntityType"] == "company"
    assert doc["relatedEntityId"] == "111"
    assert doc["timestamp"] is not None


def test_log_activity_write_failure_returns_none(caplog) -> None:
    assert log_activity(BrokenDb(), "u1", "qualquer coisa") is None
    assert "Error logging activity" in caplog.text


def test_recent_activities_newest_first(db) -> None:
    for i in range(7):
        log_activity(db, "u1", f"acao {i}")
    latest = recent_activities(db, limit=5)
    assert len(latest) == 5
    assert [a["timestamp"] for a in latest] == sorted((a["timestamp"] for a in latest), reverse=True)
    assert "_id" not in latest[0]


def test_grant_admin_sets_every_module_and_audits(db) -> None:
    db[USERS].insert_one({"_id": "u1", "name": "Bia", "permissions": {"relatorios": {"read": True}}})

    existed = grant_admin(db, "u1", "carla")

    assert existed is True
    user = db[USERS].find_one({"_id": "u1"})
    assert user["name"] == "Bia"
    assert user["permissions"]["relatorios"] == {"read": True}
    for module in MODULES:
        assert user["permissions"][module] == admin_permissions()[module]

    audit = db[ACTIVITIES].find_one({"relatedEntityId": "u1"})
    assert audit["userId"] == "carla"
    assert "administrador" in audit["description"]


def test_grant_admin_creates_missing_user(db) -> None:
    assert grant_admin(db, "new", "carla") is False
    assert db[USERS].find_one({"_id": "new"})["permissions"]["usuarios"]["delete"] is True


@pytest.mark.parametrize("user_id, actor", [("", "carla"), ("u1", "  ")])
def test_grant_admin_rejects_blank_ids(db, user_id: str, actor: str) -> None:
    with pytest.raises(ValueError):
        grant_admin(db, user_id, actor)
    assert db[ACTIVITIES].count_documents({}) == 0
