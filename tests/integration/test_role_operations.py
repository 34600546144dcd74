"""End-to-end tests of role mutation, query and evaluation against MemoryStore."""

import asyncio

import pytest

from scopedroles.db.memory import MemoryStore
from scopedroles.evaluator import permissions_for_principal, user_has_permission
from scopedroles.models import GLOBAL_SCOPE
from scopedroles.mutator import (
    add_permissions,
    remove_permissions,
    remove_scopes,
    set_permissions,
)
from scopedroles.query import find_principals_with_permissions

ALL_PERMISSIONS = ["admin", "editor", "user"]


@pytest.fixture
def store():
    return MemoryStore(
        [
            {"_id": "eve", "username": "eve", "roles": []},
            {"_id": "bob", "username": "bob", "roles": []},
            {"_id": "joe", "username": "joe", "roles": []},
        ]
    )


async def assert_permissions(store, user_id, expected, scope=None):
    """Assert the user holds exactly ``expected`` among ALL_PERMISSIONS."""
    principal = await store.get_principal(user_id)
    for permission in ALL_PERMISSIONS:
        held = user_has_permission(principal, permission, scope)
        if permission in expected:
            assert held, f"{user_id} expected to have '{permission}' but does not"
        else:
            assert not held, f"{user_id} had un-expected permission: {permission}"


async def scope_permissions(store, user_id, scope):
    principal = await store.get_principal(user_id)
    return permissions_for_principal(principal, scope, exclude_global=True)


class TestAddPermissions:
    """Test add_permissions semantics."""

    @pytest.mark.asyncio
    async def test_add_to_new_scope(self, store):
        await add_permissions(store.update_many, ["eve", "bob"], ["admin", "user"], "g1")

        await assert_permissions(store, "eve", ["admin", "user"], "g1")
        await assert_permissions(store, "bob", ["admin", "user"], "g1")
        await assert_permissions(store, "joe", [], "g1")

    @pytest.mark.asyncio
    async def test_idempotent(self, store):
        await add_permissions(store.update_many, "eve", ["admin", "user"], "g1")
        once = await store.get_principal("eve")
        await add_permissions(store.update_many, "eve", ["admin", "user"], "g1")
        twice = await store.get_principal("eve")

        assert once == twice
        assert len(twice["roles"]) == 1

    @pytest.mark.asyncio
    async def test_union_law(self, store):
        await add_permissions(store.update_many, "eve", ["A", "B"], "S")
        await add_permissions(store.update_many, "eve", ["B", "C"], "S")

        assert await scope_permissions(store, "eve", "S") == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_mixed_existing_and_new_scope(self, store):
        await add_permissions(store.update_many, "eve", "admin", "g1")
        await add_permissions(store.update_many, ["eve", "bob"], "user", "g1")

        assert await scope_permissions(store, "eve", "g1") == ["admin", "user"]
        assert await scope_permissions(store, "bob", "g1") == ["user"]

    @pytest.mark.asyncio
    async def test_unknown_ids_are_skipped(self, store):
        await add_permissions(store.update_many, ["ghost", "eve"], "admin", "g1")
        await add_permissions(store.update_many, "ghost", "admin", "g1")

        await assert_permissions(store, "eve", ["admin"], "g1")
        assert await store.get_principal("ghost") is None

    @pytest.mark.asyncio
    async def test_principal_without_roles_field(self, store):
        await store.insert_one({"_id": "ann"})
        await add_permissions(store.update_many, "ann", "admin", "g1")
        await assert_permissions(store, "ann", ["admin"], "g1")

    @pytest.mark.asyncio
    async def test_scope_with_metacharacters(self, store):
        scope = "$org.team[0].$set"
        await add_permissions(store.update_many, "eve", "admin", scope)
        await add_permissions(store.update_many, "eve", "user", scope)

        principal = await store.get_principal("eve")
        assert principal["roles"] == [{"scope": scope, "permissions": ["admin", "user"]}]


class TestSetPermissions:
    """Test set_permissions semantics."""

    @pytest.mark.asyncio
    async def test_replace_law(self, store):
        await set_permissions(store.update_many, "eve", ["A", "B"], "S")
        await set_permissions(store.update_many, "eve", ["C"], "S")

        assert await scope_permissions(store, "eve", "S") == ["C"]

    @pytest.mark.asyncio
    async def test_creates_missing_scope(self, store):
        await add_permissions(store.update_many, "eve", "admin", "g1")
        await set_permissions(store.update_many, ["eve", "bob"], ["editor"], "g1")

        await assert_permissions(store, "eve", ["editor"], "g1")
        await assert_permissions(store, "bob", ["editor"], "g1")
        principal = await store.get_principal("eve")
        assert len(principal["roles"]) == 1


class TestRemovePermissions:
    """Test remove_permissions semantics."""

    @pytest.mark.asyncio
    async def test_removes_only_from_scope(self, store):
        await add_permissions(store.update_many, "eve", ["admin", "user"], "g1")
        await add_permissions(store.update_many, "eve", ["admin", "editor"], "g2")

        await remove_permissions(store.update_many, "eve", "admin", "g1")

        await assert_permissions(store, "eve", ["user"], "g1")
        await assert_permissions(store, "eve", ["admin", "editor"], "g2")

    @pytest.mark.asyncio
    async def test_idempotent(self, store):
        await add_permissions(store.update_many, "eve", ["admin", "user"], "g1")
        await remove_permissions(store.update_many, "eve", ["admin", "owner"], "g1")
        once = await store.get_principal("eve")
        await remove_permissions(store.update_many, "eve", ["admin", "owner"], "g1")

        assert await store.get_principal("eve") == once

    @pytest.mark.asyncio
    async def test_emptied_grant_is_kept(self, store):
        await add_permissions(store.update_many, "eve", ["admin", "user"], "g1")
        await remove_permissions(store.update_many, "eve", ["admin", "user"], "g1")

        principal = await store.get_principal("eve")
        assert principal["roles"] == [{"scope": "g1", "permissions": []}]
        await assert_permissions(store, "eve", [], "g1")

    @pytest.mark.asyncio
    async def test_missing_scope_is_noop(self, store):
        await add_permissions(store.update_many, "eve", "admin", "g1")
        before = await store.get_principal("eve")

        await remove_permissions(store.update_many, "eve", "admin", "g2")

        assert await store.get_principal("eve") == before


class TestRemoveScopes:
    """Test remove_scopes semantics."""

    @pytest.mark.asyncio
    async def test_removes_grants(self, store):
        await add_permissions(store.update_many, "eve", ["admin"], "g1")
        await add_permissions(store.update_many, "eve", ["user"], "g2")
        await add_permissions(store.update_many, "eve", ["editor"], "g3")

        await remove_scopes(store.update_many, "eve", ["g1", "g3"])

        principal = await store.get_principal("eve")
        assert [grant["scope"] for grant in principal["roles"]] == ["g2"]

    @pytest.mark.asyncio
    async def test_scope_lifecycle(self, store):
        """Test absent -> created -> populated -> emptied -> absent."""
        await add_permissions(store.update_many, "eve", "admin", "g1")
        await add_permissions(store.update_many, "eve", "user", "g1")
        await remove_permissions(store.update_many, "eve", ["admin", "user"], "g1")
        emptied = await store.get_principal("eve")
        assert emptied["roles"] == [{"scope": "g1", "permissions": []}]

        await remove_scopes(store.update_many, "eve", "g1")
        absent = await store.get_principal("eve")
        assert absent["roles"] == []

        assert permissions_for_principal(emptied, "g1") == []
        assert permissions_for_principal(absent, "g1") == []


class TestScopeIsolation:
    """Test that operations on one scope never touch another."""

    @pytest.mark.asyncio
    async def test_isolation(self, store):
        await add_permissions(store.update_many, "eve", ["admin", "user"], "S2")
        untouched = (await store.get_principal("eve"))["roles"][0]

        await add_permissions(store.update_many, "eve", "editor", "S1")
        await set_permissions(store.update_many, "eve", "user", "S1")
        await remove_permissions(store.update_many, "eve", "user", "S1")
        await remove_scopes(store.update_many, "eve", "S1")

        principal = await store.get_principal("eve")
        assert principal["roles"] == [untouched]


class TestGlobalScope:
    """Test global scope composition."""

    @pytest.mark.asyncio
    async def test_global_union(self, store):
        await add_permissions(store.update_many, "eve", "admin", "S")
        await add_permissions(store.update_many, "eve", "editor", GLOBAL_SCOPE)
        principal = await store.get_principal("eve")

        assert user_has_permission(principal, "admin", "S") is True
        assert user_has_permission(principal, "editor", "S") is True
        assert user_has_permission(principal, "user", "S") is False

    @pytest.mark.asyncio
    async def test_global_admin_everywhere(self, store):
        await add_permissions(store.update_many, "u1", "admin", GLOBAL_SCOPE)
        await store.insert_one({"_id": "u1", "roles": []})
        await add_permissions(store.update_many, "u1", "admin", GLOBAL_SCOPE)
        principal = await store.get_principal("u1")

        assert user_has_permission(principal, "admin", "anything") is True
        assert user_has_permission(principal, "admin") is True

    @pytest.mark.asyncio
    async def test_query_ignores_global(self, store):
        await add_permissions(store.update_many, "eve", "admin", GLOBAL_SCOPE)

        assert await find_principals_with_permissions(store.find, "g1", "admin") == []
        assert await find_principals_with_permissions(
            store.find, GLOBAL_SCOPE, "admin"
        ) == ["eve"]


class TestFindPrincipals:
    """Test find_principals_with_permissions."""

    @pytest.mark.asyncio
    async def test_all_of_semantics(self, store):
        await add_permissions(store.update_many, "eve", ["admin", "user"], "g1")
        await add_permissions(store.update_many, "bob", ["admin"], "g1")
        await add_permissions(store.update_many, "joe", ["admin", "user"], "g2")

        assert await find_principals_with_permissions(store.find, "g1", "admin") == [
            "eve",
            "bob",
        ]
        assert await find_principals_with_permissions(
            store.find, "g1", ["admin", "user"]
        ) == ["eve"]
        assert await find_principals_with_permissions(store.find, "g3", "admin") == []


class TestEndToEnd:
    """End-to-end scenarios."""

    @pytest.mark.asyncio
    async def test_add_check_remove(self, store):
        await store.insert_one({"_id": "u1", "roles": []})
        await add_permissions(store.update_many, "u1", ["admin", "user"], "g1")
        principal = await store.get_principal("u1")
        assert user_has_permission(principal, "admin", "g1") is True
        assert user_has_permission(principal, "editor", "g1") is False

        await remove_scopes(store.update_many, "u1", ["g1"])
        principal = await store.get_principal("u1")
        assert permissions_for_principal(principal, "g1") == []

    @pytest.mark.asyncio
    async def test_concurrent_adds_to_existing_scope(self, store):
        await add_permissions(store.update_many, "eve", "admin", "g1")

        await asyncio.gather(
            add_permissions(store.update_many, "eve", ["user"], "g1"),
            add_permissions(store.update_many, "eve", ["editor"], "g1"),
        )

        principal = await store.get_principal("eve")
        assert len(principal["roles"]) == 1
        assert sorted(principal["roles"][0]["permissions"]) == [
            "admin",
            "editor",
            "user",
        ]
