"""
Unit tests for the identity directory and its assignment rules.
"""

import pytest

from finvault.directory import DeletePolicy, IdentityDirectory
from finvault.errors import DuplicateIdentityError, IdentityInUseError, InvalidAssignmentError
from finvault.models import Identity, Role
from finvault.seed import default_identities


def make_directory(policy=DeletePolicy.REJECT):
    return IdentityDirectory(default_identities(), on_delete=policy)


def test_list_keeps_insertion_order():
    directory = make_directory()
    assert [u.id for u in directory.list()] == ["a", "b", "c", "d", "e", "f_acc", "i_acc"]


def test_seed_order_independent_of_reference_order():
    seed = [
        Identity("f", "Frank", "f@x.com", Role.CUSTOMER, assigned_to="d"),
        Identity("d", "David", "d@x.com", Role.ASSOCIATE),
    ]
    directory = IdentityDirectory(seed)
    assert [u.id for u in directory.list()] == ["f", "d"]


def test_find():
    directory = make_directory()
    assert directory.find("d").name == "David (Assoc)"
    assert directory.find("nope") is None


def test_add_and_duplicate():
    directory = make_directory()
    directory.add(Identity("z", "Zed", "z@x.com", Role.ADMIN))
    assert directory.list()[-1].id == "z"
    with pytest.raises(DuplicateIdentityError, match="already exists"):
        directory.add(Identity("z", "Zed 2", "z2@x.com", Role.ADMIN))


def test_add_rejects_assignment_to_non_associate():
    directory = make_directory()
    with pytest.raises(InvalidAssignmentError, match="not an existing associate"):
        directory.add(Identity("g", "Grace", "g@x.com", Role.CUSTOMER, assigned_to="b"))
    with pytest.raises(InvalidAssignmentError):
        directory.add(Identity("g", "Grace", "g@x.com", Role.CUSTOMER, assigned_to="ghost"))
    assert directory.find("g") is None


def test_add_rejects_assignment_on_staff():
    directory = make_directory()
    with pytest.raises(InvalidAssignmentError, match="Only customers"):
        directory.add(Identity("x", "X", "x@x.com", Role.ADMIN, assigned_to="d"))


def test_update_partial_fields():
    directory = make_directory()
    updated = directory.update("f_acc", email="frank@new.com", assigned_to="e")
    assert updated.email == "frank@new.com"
    assert updated.name == "Frank Family"
    assert directory.find("f_acc").assigned_to == "e"


def test_update_unknown_is_noop():
    directory = make_directory()
    assert directory.update("ghost", name="Nobody") is None
    assert len(directory) == 7


def test_update_validates_assignment():
    directory = make_directory()
    with pytest.raises(InvalidAssignmentError):
        directory.update("f_acc", assigned_to="a")
    assert directory.find("f_acc").assigned_to == "d"


def test_update_cannot_change_id():
    directory = make_directory()
    with pytest.raises(ValueError, match="stable"):
        directory.update("b", id="bb")


def test_promoting_customer_drops_assignment():
    directory = make_directory()
    updated = directory.update("f_acc", role=Role.ADMIN)
    assert updated.assigned_to is None


def test_delete_unknown_is_noop():
    directory = make_directory()
    assert directory.delete("ghost") is False
    assert len(directory) == 7


def test_delete_customer():
    directory = make_directory()
    assert directory.delete("f_acc") is True
    assert "f_acc" not in directory
    assert directory.customers_of("d") == []


def test_delete_referenced_associate_rejected():
    directory = make_directory(DeletePolicy.REJECT)
    with pytest.raises(IdentityInUseError, match="assigned"):
        directory.delete("d")
    assert "d" in directory


def test_delete_referenced_associate_nullifies():
    directory = make_directory(DeletePolicy.NULLIFY)
    assert directory.delete("d") is True
    assert "d" not in directory
    assert directory.find("f_acc").assigned_to is None
    assert directory.find("i_acc").assigned_to == "e"


def test_demoting_referenced_associate_rejected():
    directory = make_directory(DeletePolicy.REJECT)
    with pytest.raises(IdentityInUseError):
        directory.update("d", role=Role.CUSTOMER)
    assert directory.find("d").role is Role.ASSOCIATE


def test_policy_from_string():
    directory = IdentityDirectory(default_identities(), on_delete="nullify")
    assert directory.on_delete is DeletePolicy.NULLIFY
