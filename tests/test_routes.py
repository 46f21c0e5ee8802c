"""
HTTP tests through the FastAPI app with the built-in controllers.
"""
import json
from base64 import b64encode
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from itsdangerous import TimestampSigner

from myradio.core import config
from myradio.core.database.engine import get_db
from myradio.features.controllers.registry import default_registry
from myradio.features.dispatch.dispatcher import RequestDispatcher
from myradio.features.dispatch.routes import get_dispatcher
from myradio.features.permissions.resolver import PermissionRuleResolver, RuleResult
from myradio.features.users.dependencies import get_principal_store, get_session_member_id
from myradio.main import app

from helpers import SERVICE_ID, add_member, add_rule, add_type


SHOWERRORS = 1
VIEWOTHERMEMBERS = 2
EDITANYPROFILE = 3
IMPERSONATE = 4
BLOCKIMPERSONATE = 5
IMPERSONATE_BLOCKED_USERS = 6
LOCK = 7
EDITPERMISSIONS = 8

ADA = 1
ADMIN = 2
BLOCKED = 3


@pytest_asyncio.fixture
async def seeded(db):
    for type_id, symbol in [
        (SHOWERRORS, "AUTH_SHOWERRORS"),
        (VIEWOTHERMEMBERS, "AUTH_VIEWOTHERMEMBERS"),
        (EDITANYPROFILE, "AUTH_EDITANYPROFILE"),
        (IMPERSONATE, "AUTH_IMPERSONATE"),
        (BLOCKIMPERSONATE, "AUTH_BLOCKIMPERSONATE"),
        (IMPERSONATE_BLOCKED_USERS, "AUTH_IMPERSONATE_BLOCKED_USERS"),
        (LOCK, "AUTH_LOCK"),
        (EDITPERMISSIONS, "AUTH_EDITPERMISSIONS"),
    ]:
        await add_type(db, type_id, symbol)

    await add_rule(db, "MyRadio", "default", None)
    await add_rule(db, "Profile", "view", None)
    await add_rule(db, "Core", None, EDITPERMISSIONS)

    await add_member(db, ADA, fname="Ada", sname="Lovelace", email="ada@example.com")
    await add_member(
        db, ADMIN, fname="Station", sname="Manager",
        type_ids=[SHOWERRORS, VIEWOTHERMEMBERS, IMPERSONATE, EDITPERMISSIONS],
    )
    await add_member(db, BLOCKED, fname="Very", sname="Important", type_ids=[BLOCKIMPERSONATE])


@pytest.fixture
def session():
    """The signed-in member; None for anonymous requests."""
    return {"memberid": None}


def signed_session(data: dict) -> str:
    """A session cookie value as SessionMiddleware would have set it."""
    payload = b64encode(json.dumps(data).encode("utf-8"))
    return TimestampSigner(str(config.SESSION_SECRET)).sign(payload).decode("utf-8")


@pytest_asyncio.fixture
async def client(db, seeded, session, principal_store, monkeypatch):
    monkeypatch.setattr(config, "DISPLAY_ERRORS", False)
    dispatcher = RequestDispatcher(
        default_registry,
        service_id=SERVICE_ID,
        default_module="MyRadio",
        default_action="default",
        principal_store=principal_store,
    )

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_member_id] = lambda: session["memberid"]
    app.dependency_overrides[get_principal_store] = lambda: principal_store
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_anonymous_profile_view(client):
    response = await client.get("/Profile/view", params={"memberid": ADA})

    assert response.status_code == 200
    body = response.json()
    assert body["user"] == {
        "memberid": ADA,
        "fname": "Ada",
        "sname": "Lovelace",
        "college": None,
        "officerships": [],
    }
    assert body["actions"] == {"edit": False, "impersonate": False, "lock": False}


async def test_officer_contact_details_are_public(client, session):
    session["memberid"] = ADA

    body = (await client.get("/Profile/view", params={"memberid": ADMIN})).json()

    user = body["user"]
    assert [entry["officer_name"] for entry in user["officerships"]] == [f"Officer for {ADMIN}"]
    assert user["officerships"][0]["till_date"] is None
    assert "email" in user and "phone" in user
    assert "account_locked" not in user


async def test_past_officer_contact_details_are_hidden(client, session, db):
    await add_member(db, 4, fname="Old", sname="Timer", officer=True, till_date=datetime(2001, 1, 1))
    session["memberid"] = ADA

    user = (await client.get("/Profile/view", params={"memberid": 4})).json()["user"]

    assert len(user["officerships"]) == 1
    assert "email" not in user
    assert "phone" not in user


async def test_profile_view_with_extra_permissions(client, session):
    session["memberid"] = ADMIN

    response = await client.get("/Profile/view", params={"memberid": ADA})

    body = response.json()
    assert body["user"]["email"] == "ada@example.com"
    assert body["actions"]["impersonate"] is True
    assert body["actions"]["edit"] is False


async def test_own_profile_is_editable(client, session):
    session["memberid"] = ADA

    body = (await client.get("/Profile/view")).json()

    assert body["user"]["memberid"] == ADA
    assert body["actions"]["edit"] is True


async def test_blocked_member_cannot_be_impersonated(client, session):
    session["memberid"] = ADMIN

    body = (await client.get("/Profile/view", params={"memberid": BLOCKED})).json()

    assert body["actions"]["impersonate"] is False


async def test_forbidden(client, session):
    session["memberid"] = ADA

    response = await client.get("/Core/listServices")

    assert response.status_code == 403
    assert response.json() == {
        "error": "FORBIDDEN",
        "message": "You do not have permission to access this page",
    }


async def test_module_wide_permission_opens_core(client, session):
    session["memberid"] = ADMIN

    response = await client.get("/Core/listPermissions")

    assert response.status_code == 200
    rules = response.json()["rules"]
    assert {"module": "Core", "action": "ALL ACTIONS", "permission": "Auth Editpermissions"}.items() <= rules[0].items()


async def test_not_found(client):
    response = await client.get("/Nope/thing")

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


async def test_single_segment_without_binding(client):
    response = await client.get("/view")

    assert response.status_code == 404


async def test_traversal_attempt(client):
    response = await client.get("/", params={"module": "Pro\\file", "action": "view"})

    assert response.status_code == 404
    assert response.json()["error"] == "TRAVERSAL_ATTEMPT"


async def test_misconfigured_action_hides_message(client, session):
    session["memberid"] = ADA

    response = await client.get("/Profile/impersonate", params={"memberid": BLOCKED})

    assert response.status_code == 500
    assert response.json() == {"error": "MISCONFIGURED_ACTION", "message": "An internal error occurred"}


async def test_misconfigured_action_shown_to_error_viewers(client, session):
    session["memberid"] = ADMIN

    response = await client.get("/Profile/impersonate", params={"memberid": ADA})

    assert response.status_code == 500
    assert response.json()["message"] == "There are no permissions defined for the Profile/impersonate action!"


async def test_menu_lists_openable_controllers(client, session):
    session["memberid"] = ADA

    response = await client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["member"] == "Ada Lovelace"
    assert [(item["module"], item["action"]) for item in body["items"]] == [
        ("MyRadio", "default"),
        ("Profile", "view"),
    ]


async def test_menu_for_core_editor(client, session):
    session["memberid"] = ADMIN

    items = (await client.get("/MyRadio/default")).json()["items"]

    assert ("Core", "addActionPermission") in [(item["module"], item["action"]) for item in items]


async def test_impersonate(client, session, db):
    await add_rule(db, "Profile", "impersonate", IMPERSONATE)
    session["memberid"] = ADMIN

    response = await client.get("/Profile/impersonate", params={"memberid": ADA})
    assert response.status_code == 200
    assert response.json() == {"impersonating": ADA, "name": "Ada Lovelace"}

    response = await client.get("/Profile/impersonate", params={"memberid": BLOCKED})
    assert response.status_code == 403


async def test_impersonation_carries_to_later_requests(client, db):
    await add_rule(db, "Profile", "impersonate", IMPERSONATE)
    del app.dependency_overrides[get_session_member_id]
    client.cookies.set("session", signed_session({"memberid": ADMIN}))

    response = await client.get("/Profile/impersonate", params={"memberid": ADA})
    assert response.status_code == 200
    cookie = response.cookies["session"]

    client.cookies.clear()
    client.cookies.set("session", cookie)
    body = (await client.get("/Profile/view")).json()

    assert body["user"]["memberid"] == ADA
    assert body["actions"]["edit"] is True
    assert body["actions"]["impersonate"] is False


async def test_add_action_permission(client, session, db):
    session["memberid"] = ADMIN

    response = await client.post(
        "/Core/addActionPermission",
        json={"module": "Scheduler", "action": "findshowbytitle", "type_id": LOCK},
    )

    assert response.status_code == 200
    assert response.json()["actpermissionid"]
    rules = await PermissionRuleResolver(SERVICE_ID).rules_for(db, "Scheduler", "findshowbytitle")
    assert rules == {RuleResult(LOCK)}


@pytest.mark.parametrize(
    "payload",
    [
        {"module": "Sched/uler", "action": "find", "type_id": LOCK},
        {"module": "Scheduler"},
        {"module": "Scheduler", "action": "find", "type_id": 999},
    ],
)
async def test_add_action_permission_rejects_bad_rules(client, session, payload):
    session["memberid"] = ADMIN

    response = await client.post("/Core/addActionPermission", json=payload)

    assert response.status_code == 400


async def test_malformed_body_is_forbidden_for_anonymous(client):
    response = await client.post(
        "/Core/addActionPermission",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"


async def test_malformed_body_is_bad_request_once_authorized(client, session):
    session["memberid"] = ADMIN

    response = await client.post(
        "/Core/addActionPermission",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Request body is not valid JSON"}
