from __future__ import annotations

import asyncio
import json

import pytest

from leadbridge.domain.errors import NotFoundError, RemoteError, ValidationError
from leadbridge.domain.model import (
    BusinessEntry,
    CompanyInfo,
    ContactPerson,
    Documents,
    PaymentInfo,
    PostalAddress,
    Upload,
    WizardSubmission,
)
from leadbridge.domain.onboarding import OnboardingService, build_lead_fields
from leadbridge.domain.selection import SelectionEncoding
from tests.support.fake_store import FakeStore


def _store() -> FakeStore:
    store = FakeStore()
    store.seed("Services", {"name": "svc-1", "service_name": "Premium"})
    return store


def _company(city: str = "Berlin", country: str = "Deutschland") -> CompanyInfo:
    return CompanyInfo(
        company_name="Acme GmbH",
        address=PostalAddress(street="Main 1", city=city, zip_code="10115", country=country),
        tax_id_number=" 12/345/67890 ",
    )


def test_first_submission_creates_lead_with_defaults_and_billing_address() -> None:
    store = _store()
    service = OnboardingService(store, store)

    result = asyncio.run(service.submit(WizardSubmission(email="a@x.com", company=_company())))

    assert result.created is True
    (lead,) = store.all("Lead")
    assert lead["country"] == "Germany"
    assert lead["lead_name"] == "Acme GmbH"
    assert lead["status"] == "Open"
    assert lead["lead_type"] == "Client"
    assert lead["custom_custom_tax_id_number"] == "12/345/67890"
    (address,) = store.all("Address")
    assert address["country"] == "Germany"
    payload = result.as_payload()
    assert payload["success"] is True
    assert payload["message"] == "Lead created successfully"


def test_resubmission_updates_lead_and_address_in_place() -> None:
    store = _store()
    service = OnboardingService(store, store)

    first = asyncio.run(service.submit(WizardSubmission(email="a@x.com", company=_company())))
    second = asyncio.run(
        service.submit(WizardSubmission(email="a@x.com", company=_company(city="Munich")))
    )

    assert second.created is False
    assert second.upsert.key == first.upsert.key
    assert second.as_payload()["message"] == "Lead updated successfully"
    (lead,) = store.all("Lead")
    (address,) = store.all("Address")
    assert lead["city"] == "Munich"
    assert address["city"] == "Munich"
    assert address["county"] == "Munich"


def test_omitted_sections_leave_stored_values_untouched() -> None:
    store = _store()
    service = OnboardingService(store, store)
    asyncio.run(
        service.submit(
            WizardSubmission(
                email="a@x.com",
                company=_company(),
                payment=PaymentInfo(iban="DE00", bic="BIC1"),
            )
        )
    )

    asyncio.run(service.submit(WizardSubmission(email="a@x.com", services=("svc-1",))))

    (lead,) = store.all("Lead")
    assert lead["city"] == "Berlin"
    assert lead["custom_iban"] == "DE00"
    assert lead["custom_selected_services"] == "Premium"


def test_services_are_stored_by_name_with_unknown_ids_kept() -> None:
    store = _store()

    result = asyncio.run(
        OnboardingService(store).submit(
            WizardSubmission(email="a@x.com", services=("svc-1", "svc-9"))
        )
    )

    assert result.service_names == ("Premium", "svc-9")
    (lead,) = store.all("Lead")
    assert lead["custom_selected_services"] == "Premium, svc-9"
    assert lead["custom_service_selections"] == [
        {"service": "svc-1", "service_name": "Premium"},
        {"service": "svc-9", "service_name": "svc-9"},
    ]


def test_json_selection_encoding_is_configurable() -> None:
    store = _store()
    service = OnboardingService(store, selection_encoding=SelectionEncoding.JSON)

    asyncio.run(service.submit(WizardSubmission(email="a@x.com", services=("svc-1",))))

    assert store.all("Lead")[0]["custom_selected_services"] == '["Premium"]'


def test_rejected_selection_rows_still_store_the_names() -> None:
    store = _store()
    store.rejected_fields["Lead"] = {"custom_service_selections"}

    result = asyncio.run(
        OnboardingService(store).submit(
            WizardSubmission(email="a@x.com", services=("svc-1", "svc-9"))
        )
    )

    assert result.upsert.degraded == ("custom_service_selections",)
    assert result.as_payload()["degraded"] == ["custom_service_selections"]
    (lead,) = store.all("Lead")
    assert lead["custom_selected_services"] == "Premium, svc-9"


def test_missing_email_is_rejected_before_any_remote_call() -> None:
    store = _store()
    store.calls.clear()

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(OnboardingService(store).submit(WizardSubmission(email=" ")))

    assert excinfo.value.field == "email"
    assert store.calls == []


def test_registrant_profile_fills_company_name_and_phone() -> None:
    store = _store()
    store.seed(
        "Custom User Register",
        {"user": "a@x.com", "company_name": "Profile Co", "telephone": "+49 30 1"},
    )

    asyncio.run(OnboardingService(store).submit(WizardSubmission(email="a@x.com")))

    (lead,) = store.all("Lead")
    assert lead["company_name"] == "Profile Co"
    assert lead["lead_name"] == "Profile Co"
    assert lead["phone"] == "+49 30 1"
    assert lead["mobile_no"] == "+49 30 1"


def test_unavailable_profile_does_not_block_submission() -> None:
    store = _store()
    store.failures[("fetch", "Custom User Register")] = RemoteError("forbidden", status=403)

    result = asyncio.run(OnboardingService(store).submit(WizardSubmission(email="a@x.com")))

    assert result.created is True
    assert store.all("Lead")[0]["lead_name"] == "a@x.com"


def test_uploads_are_stored_and_appended_to_their_document_list() -> None:
    store = _store()
    submission = WizardSubmission(
        email="a@x.com",
        documents=Documents(files={"idFiles": ["/private/files/old.pdf"]}, is_completed=True),
    )
    uploads = (
        Upload(category="idFiles", filename="passport.pdf", content=b"%PDF"),
        Upload(category="hrExtractFiles", filename="hr.pdf", content=b"%PDF"),
    )

    asyncio.run(OnboardingService(store, store).submit(submission, uploads))

    assert [name for name, _ in store.uploads] == ["passport.pdf", "hr.pdf"]
    (lead,) = store.all("Lead")
    assert json.loads(str(lead["custom_id_files"])) == [
        "/private/files/old.pdf",
        "/private/files/passport.pdf",
    ]
    assert json.loads(str(lead["custom_hr_extract_files"])) == ["/private/files/hr.pdf"]
    assert lead["custom_registration_status"] == "Completed"


def test_upload_to_unknown_category_is_rejected() -> None:
    store = _store()
    upload = Upload(category="selfies", filename="me.png", content=b"")

    with pytest.raises(ValidationError):
        asyncio.run(
            OnboardingService(store, store).submit(WizardSubmission(email="a@x.com"), (upload,))
        )

    assert store.all("Lead") == []


def test_uploads_need_a_file_store() -> None:
    upload = Upload(category="idFiles", filename="id.pdf", content=b"")

    with pytest.raises(ValidationError):
        asyncio.run(
            OnboardingService(_store()).submit(WizardSubmission(email="a@x.com"), (upload,))
        )


def test_build_lead_fields_skips_unset_values() -> None:
    submission = WizardSubmission(
        email="a@x.com",
        company=CompanyInfo(address=PostalAddress(city="Berlin")),
        payment=PaymentInfo(account_holder="Acme"),
        documents=Documents(type_of_company="GmbH"),
    )

    assert build_lead_fields(submission) == {
        "city": "Berlin",
        "custom_account_holder": "Acme",
        "custom_type_of_company": "GmbH",
    }


def _submit_full(store: FakeStore) -> None:
    business = BusinessEntry(
        business_name="Shop A",
        address=PostalAddress(street="A-Street 1", city="Cologne", zip_code="50667"),
        owner=ContactPerson(first_name="Ada", email="ada@x.com"),
        raw={"businessName": "Shop A", "street": "stale", "city": "stale"},
    )
    submission = WizardSubmission(
        email="a@x.com",
        company=_company(),
        businesses=(business,),
        documents=Documents(files={"idFiles": ["/private/files/id.pdf"]}),
        services=("svc-1",),
    )
    asyncio.run(OnboardingService(store).submit(submission))


def test_load_reassembles_the_wizard_state() -> None:
    store = _store()
    _submit_full(store)

    state = asyncio.run(OnboardingService(store).load("a@x.com"))

    assert state is not None
    payload = state.as_payload()
    assert payload["companyInfo"]["city"] == "Berlin"  # type: ignore[index]
    assert payload["companyInfo"]["taxIdNumber"] == "12/345/67890"  # type: ignore[index]
    assert payload["idFiles"] == ["/private/files/id.pdf"]
    assert payload["documents"]["idFiles"] == ["/private/files/id.pdf"]  # type: ignore[index]
    assert payload["services"] == ["svc-1"]
    assert payload["serviceNames"] == ["Premium"]
    (business,) = state.businesses
    assert business == {
        "businessName": "Shop A",
        "street": "A-Street 1",
        "city": "Cologne",
        "zipCode": "50667",
    }


def test_load_prefers_the_billing_address_over_lead_fields() -> None:
    store = _store()
    _submit_full(store)
    (address,) = [a for a in store.all("Address") if a["address_type"] == "Billing"]
    record = store.records["Address"][str(address["name"])]
    record.update({"city": "", "county": "Potsdam", "address_line2": "Hinterhaus"})

    state = asyncio.run(OnboardingService(store).load("a@x.com"))

    assert state is not None
    assert state.record["address_line2"] == "Hinterhaus"
    # an empty billing city keeps the lead's own value
    assert state.record["city"] == "Berlin"


def test_load_falls_back_to_county_when_no_city_is_stored() -> None:
    store = _store()
    (key,) = store.seed("Lead", {"email_id": "a@x.com"})
    store.seed(
        "Address",
        {
            "address_type": "Billing",
            "county": "Potsdam",
            "links": [{"link_doctype": "Lead", "link_name": key}],
        },
    )

    state = asyncio.run(OnboardingService(store).load("a@x.com"))

    assert state is not None
    assert state.record["city"] == "Potsdam"


def test_load_reads_legacy_selection_strings() -> None:
    store = _store()
    store.seed(
        "Lead",
        {"email_id": "a@x.com", "custom_selected_services": '["Premium", "Unknown"]'},
        {"email_id": "b@x.com", "custom_selected_services": "svc-1"},
    )
    service = OnboardingService(store)

    legacy = asyncio.run(service.load("a@x.com"))
    plain = asyncio.run(service.load("b@x.com"))

    assert legacy is not None
    assert plain is not None
    assert legacy.services == ["svc-1", "Unknown"]
    assert legacy.service_names == ["Premium", "Unknown"]
    assert plain.services == ["svc-1"]


def test_load_reads_tax_and_bic_field_variants() -> None:
    store = _store()
    store.seed(
        "Lead",
        {"email_id": "a@x.com", "custom_tax_id_number": "T-1", "custom_custom_bic": "B-1"},
    )

    state = asyncio.run(OnboardingService(store).load("a@x.com"))

    assert state is not None
    payload = state.as_payload()
    assert payload["companyInfo"]["taxIdNumber"] == "T-1"  # type: ignore[index]
    assert payload["paymentInfo"]["bic"] == "B-1"  # type: ignore[index]


def test_load_tolerates_broken_file_lists() -> None:
    store = _store()
    store.seed("Lead", {"email_id": "a@x.com", "custom_id_files": "{not json"})

    state = asyncio.run(OnboardingService(store).load("a@x.com"))

    assert state is not None
    assert state.files["idFiles"] == []


def test_load_of_unknown_email_returns_none() -> None:
    assert asyncio.run(OnboardingService(_store()).load("nobody@x.com")) is None


def test_load_follows_the_string_when_selection_rows_are_stale() -> None:
    store = _store()
    store.seed("Services", {"name": "svc-2", "service_name": "Basic"})
    service = OnboardingService(store)
    asyncio.run(service.submit(WizardSubmission(email="a@x.com", services=("svc-1",))))
    store.rejected_fields["Lead"] = {"custom_service_selections"}

    asyncio.run(service.submit(WizardSubmission(email="a@x.com", services=("svc-2",))))
    state = asyncio.run(service.load("a@x.com"))

    assert state is not None
    # rows from the first submission are still on the record
    assert store.all("Lead")[0]["custom_service_selections"] == [
        {"service": "svc-1", "service_name": "Premium"}
    ]
    assert state.services == ["svc-2"]
    assert state.service_names == ["Basic"]


def test_load_trusts_rows_that_match_the_string() -> None:
    store = _store()
    store.seed(
        "Lead",
        {
            "email_id": "a@x.com",
            "custom_selected_services": "premium",
            "custom_service_selections": [{"service": "svc-1", "service_name": "Premium"}],
        },
    )
    store.calls.clear()

    state = asyncio.run(OnboardingService(store).load("a@x.com"))

    assert state is not None
    assert state.services == ["svc-1"]
    # one lookup for the names; the string needs no resolving
    assert store.count("fetch", "Services") == 1


def test_uploads_are_attached_to_an_existing_lead() -> None:
    store = _store()
    service = OnboardingService(store, store)
    first = asyncio.run(
        service.submit(
            WizardSubmission(email="a@x.com"),
            (Upload(category="idFiles", filename="front.pdf", content=b"%PDF"),),
        )
    )

    asyncio.run(
        service.submit(
            WizardSubmission(email="a@x.com"),
            (Upload(category="idFiles", filename="back.pdf", content=b"%PDF"),),
        )
    )

    assert "/private/files/front.pdf" not in store.attachments
    assert store.attachments["/private/files/back.pdf"] == ("Lead", first.upsert.key)


def test_fetch_file_reduces_absolute_urls_to_store_paths() -> None:
    store = _store()
    asyncio.run(store.upload_file("logo.png", b"\x89PNG", content_type="image/png"))

    stored = asyncio.run(
        OnboardingService(store, store).fetch_file("https://erp.example.com/private/files/logo.png")
    )

    assert stored.content == b"\x89PNG"
    assert stored.content_type == "image/png"


def test_fetch_file_of_missing_file_is_not_found() -> None:
    store = _store()

    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(OnboardingService(store, store).fetch_file("/private/files/gone.png"))

    assert excinfo.value.tried == ("/private/files/gone.png",)


@pytest.mark.parametrize("url", [None, "", "   "])
def test_fetch_file_requires_a_url(url: str | None) -> None:
    store = _store()

    with pytest.raises(ValidationError):
        asyncio.run(OnboardingService(store, store).fetch_file(url))

    assert store.count("download") == 0
