"""Shared fixtures for treemerge tests."""

import pytest

from treemerge.core import FamilyGraph, Person, Gender, Partnership


def make_person(pid, first, last, gender="male", **kwargs):
    """Create a person with the given names and optional fields."""
    return Person(id=pid, first_name=first, last_name=last, gender=Gender(gender), **kwargs)


def link_family(graph, uid, person1_id, person2_id, child_ids=()):
    """Create a partnership with children and all back-references."""
    graph.add_partnership(Partnership(
        id=uid, person1_id=person1_id, person2_id=person2_id, child_ids=list(child_ids)))
    for pid in (person1_id, person2_id):
        graph.persons[pid].partnerships.append(uid)
        for cid in child_ids:
            graph.persons[pid].child_ids.append(cid)
            graph.persons[cid].parent_ids.append(pid)


def build_graph(*persons):
    graph = FamilyGraph()
    for person in persons:
        graph.add_person(person)
    return graph


@pytest.fixture
def person_factory():
    return make_person


@pytest.fixture
def family_factory():
    return link_family


@pytest.fixture
def graph_factory():
    return build_graph


@pytest.fixture
def twin_graphs():
    """Identical single-person records in both graphs."""
    existing = build_graph(make_person("e1", "Jan", "Novák", birth_date="1950-03-01"))
    incoming = build_graph(make_person("i1", "Jan", "Novák", birth_date="1950-03-01"))
    return existing, incoming


@pytest.fixture
def family_graphs():
    """A married couple with a child in both graphs.

    The incoming wife carries a different surname and no dates, so she
    only matches through her husband.
    """
    existing = build_graph(
        make_person("a", "Petr", "Dvořák", birth_date="1950-05-10"),
        make_person("b", "Marie", "Dvořáková", "female", birth_date="1952"),
        make_person("c", "Tomáš", "Dvořák", birth_date="1975-02-03"),
    )
    link_family(existing, "u1", "a", "b", ["c"])

    incoming = build_graph(
        make_person("a2", "Petr", "Dvořák", birth_date="1950"),
        make_person("b2", "Marie", "Bílá", "female"),
        make_person("c2", "Tomáš", "Dvořák", birth_date="1975-02-03"),
    )
    link_family(incoming, "u2", "a2", "b2", ["c2"])

    return existing, incoming
