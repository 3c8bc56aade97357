"""HTTP surface consumed by the onboarding wizard front end."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager
from logging import getLogger
from typing import Final, cast
from urllib.parse import quote

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as SchemaValidationError
from starlette.datastructures import UploadFile

from leadbridge.app import build_text_extractor, onboarding_session
from leadbridge.config.errors import ConfigurationError
from leadbridge.domain.errors import ExtractionError, NotFoundError, RemoteError, ValidationError
from leadbridge.domain.extraction import TextExtractor, parse_address, parse_registration_text
from leadbridge.domain.model import Upload, WizardSubmission
from leadbridge.domain.normalization import CatalogEntry
from leadbridge.domain.onboarding import OnboardingService

from .schema import (
    AddressTextRequest,
    EmailRequest,
    LeadSubmissionModel,
    ReferenceRequest,
    RegistrationTextRequest,
)

log = getLogger(__name__)

type ServiceProvider = Callable[[], AbstractAsyncContextManager[OnboardingService]]
type ExtractorProvider = Callable[[], TextExtractor]

# Form fields sent as plain strings rather than JSON documents.
_PLAIN_FORM_FIELDS = frozenset({"email"})

PROXY_IMAGE_PATH: Final = "/api/erp/proxy-image"
IMAGE_CACHE_CONTROL: Final = "public, max-age=86400"
DEFAULT_IMAGE_TYPE: Final = "image/jpeg"


def _form_value(key: str, value: str) -> object:
    if key in _PLAIN_FORM_FIELDS:
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def proxied_image_url(path: str) -> str:
    return f"{PROXY_IMAGE_PATH}?url={quote(path, safe='')}"


def _catalog_payload(entry: CatalogEntry) -> dict[str, object]:
    payload = entry.as_payload()
    if entry.image:
        payload["image"] = proxied_image_url(entry.image)
    return payload


async def read_submission(request: Request) -> tuple[WizardSubmission, list[Upload]]:
    """Parse a JSON or multipart lead submission into domain types."""

    uploads: list[Upload] = []
    content_type = request.headers.get("content-type", "")
    data: object
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        texts: dict[str, list[str]] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                uploads.append(
                    Upload(
                        category=key,
                        filename=value.filename or key,
                        content=await value.read(),
                        content_type=value.content_type,
                    )
                )
            else:
                texts.setdefault(key, []).append(value)
        # Repeated keys become a list.
        data = {
            key: _form_value(key, values[0])
            if len(values) == 1
            else [_form_value(key, text) for text in values]
            for key, values in texts.items()
        }
    else:
        try:
            data = await request.json()
        except ValueError as exc:
            raise ValidationError("Request body must be a JSON object") from exc

    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        submission = LeadSubmissionModel.model_validate(cast(dict[str, object], data)).to_domain()
    except SchemaValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid {location}: {first['msg']}", field=location) from exc
    return submission, uploads


def create_app(
    *,
    service_provider: ServiceProvider | None = None,
    extractor_provider: ExtractorProvider | None = None,
) -> FastAPI:
    provide_service = service_provider or onboarding_session
    provide_extractor = extractor_provider or build_text_extractor

    app = FastAPI(title="leadbridge")

    async def get_service() -> AsyncIterator[OnboardingService]:
        async with provide_service() as service:
            yield service

    def get_extractor() -> TextExtractor:
        return provide_extractor()

    @app.exception_handler(ValidationError)
    async def _validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": str(exc), "field": exc.field},
        )

    @app.exception_handler(NotFoundError)
    async def _not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": str(exc), "tried": list(exc.tried)},
        )

    @app.exception_handler(RemoteError)
    async def _remote_error(request: Request, exc: RemoteError) -> JSONResponse:
        log.error("Remote store failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": exc.display_message, "status": exc.status},
        )

    @app.exception_handler(ExtractionError)
    async def _extraction_error(_request: Request, exc: ExtractionError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"success": False, "error": str(exc)})

    @app.exception_handler(ConfigurationError)
    async def _configuration_error(_request: Request, exc: ConfigurationError) -> JSONResponse:
        log.error("Configuration error: %s", exc)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/leads")
    async def submit_lead(
        request: Request, service: OnboardingService = Depends(get_service)
    ) -> dict[str, object]:
        submission, uploads = await read_submission(request)
        result = await service.submit(submission, uploads)
        return result.as_payload()

    @app.post("/api/leads/lookup")
    async def lookup_lead(
        body: EmailRequest, service: OnboardingService = Depends(get_service)
    ) -> dict[str, object]:
        state = await service.load(body.email)
        if state is None:
            return {"success": False, "lead": None, "message": "No lead found for this user"}
        return {"success": True, "lead": state.as_payload()}

    @app.get("/api/services")
    async def services(service: OnboardingService = Depends(get_service)) -> dict[str, object]:
        entries = await service.list_services()
        return {"success": True, "services": [_catalog_payload(entry) for entry in entries]}

    @app.get(PROXY_IMAGE_PATH)
    async def proxy_image(
        url: str | None = None, service: OnboardingService = Depends(get_service)
    ) -> Response:
        stored = await service.fetch_file(url)
        return Response(
            content=stored.content,
            media_type=stored.content_type or DEFAULT_IMAGE_TYPE,
            headers={"Cache-Control": IMAGE_CACHE_CONTROL},
        )

    @app.get("/api/company-types")
    async def company_types(
        service: OnboardingService = Depends(get_service),
    ) -> dict[str, object]:
        entries = await service.list_company_types()
        return {"success": True, "companyTypes": [entry.as_payload() for entry in entries]}

    @app.post("/api/reference/validate", response_model=None)
    async def validate_reference(
        body: ReferenceRequest, service: OnboardingService = Depends(get_service)
    ) -> dict[str, object] | JSONResponse:
        try:
            record = await service.validate_reference(body.reference)
        except NotFoundError as exc:
            return JSONResponse(
                status_code=404,
                content={
                    "valid": False,
                    "message": str(exc),
                    "searchedValue": (body.reference or "").strip(),
                    "tried": list(exc.tried),
                },
            )
        return {"valid": True, "salesPerson": record}

    @app.post("/api/extract/address")
    async def extract_address(
        body: AddressTextRequest, extractor: TextExtractor = Depends(get_extractor)
    ) -> dict[str, object]:
        address = await parse_address(extractor, body.address_text)
        return {"success": True, "address": address}

    @app.post("/api/extract/registration")
    async def extract_registration(
        body: RegistrationTextRequest, extractor: TextExtractor = Depends(get_extractor)
    ) -> dict[str, object]:
        company = await parse_registration_text(extractor, body.text)
        return {"success": True, "company": company}

    return app


__all__ = ["create_app", "proxied_image_url", "read_submission"]
