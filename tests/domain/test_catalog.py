from __future__ import annotations

import asyncio

import pytest

from leadbridge.domain.catalog import list_company_types, list_services
from leadbridge.domain.errors import NotFoundError
from tests.support.fake_store import FakeStore


def test_list_services_filters_inactive_and_canonicalizes() -> None:
    store = FakeStore(doctypes={"Restaurant Service"})
    store.seed(
        "Restaurant Service",
        {"name": "svc-1", "service_name": "Premium", "image": "/files/p.png"},
        {"name": "svc-2", "title": "Delivery", "disabled": 1},
        {"name": "svc-3", "description": "Catering", "is_active": "1"},
    )

    services = asyncio.run(list_services(store))

    assert [entry.as_payload() for entry in services] == [
        {"id": "svc-1", "name": "Premium", "description": None, "image": "/files/p.png"},
        {"id": "svc-3", "name": "Catering", "description": "Catering", "image": None},
    ]
    assert store.count("fetch", "Services") == 1


def test_list_services_without_catalog_reports_names_tried() -> None:
    store = FakeStore(doctypes=set())

    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(list_services(store))

    assert excinfo.value.tried[:2] == ("Services", "Service")
    assert len(excinfo.value.trail) == len(excinfo.value.tried)


def test_list_company_types_uses_its_own_candidates() -> None:
    store = FakeStore(doctypes={"CompanyType"})
    store.seed(
        "CompanyType",
        {"name": "GmbH", "company_type": "GmbH"},
        {"name": "UG", "type_name": "UG (haftungsbeschraenkt)", "enabled": 0},
    )

    types = asyncio.run(list_company_types(store))

    assert [entry.id for entry in types] == ["GmbH"]
    assert [call.resource_type for call in store.calls] == ["Company Type", "CompanyType"]


def test_empty_catalog_is_an_empty_listing() -> None:
    store = FakeStore(doctypes={"Services"})

    assert asyncio.run(list_services(store)) == []
