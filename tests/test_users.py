from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from cutrix.application import UserService
from cutrix.core.schema import UserCreateRequest, UserProfileUpdate
from cutrix.domain import Actor, NotFound, PermissionDenied, Role, Success, ValidationFailed
from cutrix.infrastructure import InMemoryProductionStore


@pytest.fixture()
def store():
    store = InMemoryProductionStore()
    store.create_user(name="root", password="pw", role=Role.ADMIN)
    return store


@pytest.fixture()
def service(store):
    return UserService(store)


ADMIN = Actor(user_id=1, role=Role.ADMIN)


def _create(service, actor, name, role):
    return service.create_user(actor, UserCreateRequest(name=name, password="secret", role=role))


def test_admin_creates_the_single_manager(service):
    created = _create(service, ADMIN, "lin", "manager")
    assert isinstance(created, Success)
    assert created.data["user"]["role"] is Role.MANAGER

    second = _create(service, ADMIN, "wu", "manager")
    assert isinstance(second, PermissionDenied)
    assert "manager already exists" in second.reason


def test_nobody_creates_an_admin(service):
    outcome = _create(service, ADMIN, "root2", "admin")
    assert isinstance(outcome, PermissionDenied)
    assert "administrator" in outcome.reason


def test_manager_creates_staff_but_not_managers(service):
    _create(service, ADMIN, "lin", "manager")
    manager = Actor(user_id=2, role=Role.MANAGER)
    assert _create(service, manager, "zhao", "worker").ok
    assert _create(service, manager, "qian", "pattern_maker").ok
    refused = _create(service, manager, "sun", "manager")
    assert refused.reason == "only an administrator may create a manager"


def test_unknown_role_and_duplicate_name(service):
    assert isinstance(_create(service, ADMIN, "zhao", "foreman"), ValidationFailed)
    assert _create(service, ADMIN, "zhao", "worker").ok
    assert isinstance(_create(service, ADMIN, "zhao", "worker"), ValidationFailed)


def test_singletons_cannot_change_themselves(service, store):
    assert isinstance(service.assign_role(ADMIN, 1, "worker"), PermissionDenied)
    assert isinstance(service.set_active(ADMIN, 1, False), PermissionDenied)
    assert isinstance(service.delete_user(ADMIN, 1), PermissionDenied)
    assert store.get_user(1).role is Role.ADMIN
    assert store.get_user(1).is_active


def test_manager_cannot_touch_the_admin(service, store):
    _create(service, ADMIN, "lin", "manager")
    manager = Actor(user_id=2, role=Role.MANAGER)

    assert isinstance(service.update_profile(manager, 1, UserProfileUpdate(note="hi")), PermissionDenied)
    assert isinstance(service.set_active(manager, 1, False), PermissionDenied)
    assert isinstance(service.reset_password(manager, 1, "new"), PermissionDenied)
    assert isinstance(service.delete_user(manager, 1), PermissionDenied)
    assert store.check_password(1, "pw")


def test_role_changes_respect_the_census(service, store):
    _create(service, ADMIN, "zhao", "worker")
    assert service.assign_role(ADMIN, 2, "manager").ok
    assert store.get_user(2).role is Role.MANAGER

    _create(service, ADMIN, "qian", "worker")
    refused = service.assign_role(ADMIN, 3, "manager")
    assert isinstance(refused, PermissionDenied)

    # re-assigning the current role is not a second manager
    assert service.assign_role(ADMIN, 2, "manager").ok


def test_admin_manages_other_users(service, store):
    _create(service, ADMIN, "zhao", "worker")

    assert service.update_profile(ADMIN, 2, UserProfileUpdate(user_group="cutting")).ok
    assert store.get_user(2).user_group == "cutting"
    assert service.set_active(ADMIN, 2, False).ok
    assert not store.get_user(2).is_active
    assert service.reset_password(ADMIN, 2, "fresh").ok
    assert store.check_password(2, "fresh")
    assert service.delete_user(ADMIN, 2).ok
    assert isinstance(service.delete_user(ADMIN, 2), NotFound)


def test_worker_cannot_administer_users(service):
    worker = Actor(user_id=5, role=Role.WORKER)
    assert isinstance(service.list_users(worker), PermissionDenied)
    assert isinstance(_create(service, worker, "x", "worker"), PermissionDenied)
