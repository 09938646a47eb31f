"""FastAPI wrapper for the anchorex extraction engine."""

from __future__ import annotations

import functools
import importlib.metadata
import json
import logging
import os
import threading
import time
import uuid
from pathlib import Path
from typing import Any, get_args

import anyio.to_thread
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from apps.cli.format_human import count_statuses
from apps.cli.io import build_result_payload
from core.config.loader import load_config
from core.extract.matcher import extract, extract_repeated
from core.extract.models import DEFAULT_FALLBACK, ExtractionResult, FieldStatus
from core.templates.compiler import compile_template
from core.templates.models import FieldKind, Template
from core.templates.registry import TemplateRegistry, build_registry
from core.utils.errors import ConfigError, TemplateNotFoundError, TemplateSyntaxError

app = FastAPI(title="anchorex API", version="0.1.0")
logger = logging.getLogger("anchorex.api")

_DEFAULT_MAX_SOURCE_BYTES = 5 * 1024 * 1024
_REQUEST_ID_HEADER = "X-Anchorex-Request-Id"


class ExtractRequest(BaseModel):
    """Body of ``POST /v1/extract``."""

    model_config = ConfigDict(extra="forbid")

    source: str
    pattern: str | None = None
    template: str | None = None
    repeated: bool = False
    fallback: str | None = None


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


_registry_lock = threading.Lock()
_registry_cache: tuple[str | None, TemplateRegistry] | None = None


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(_REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint describing supported types and registered templates."""

    request_id = _request_id_from_request(request)
    try:
        registry = _get_registry()
    except ApiRequestError as exc:
        return _error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            request_id=request_id,
            detail=exc.detail,
        )

    payload = {
        "field_kinds": [kind.value for kind in FieldKind],
        "statuses": list(get_args(FieldStatus)),
        "templates": {
            entry.name: {
                "pattern": entry.template.to_pattern(),
                "fields": entry.template.field_names,
                "repeated": entry.repeated,
                "description": entry.description,
            }
            for entry in registry.list_all()
        },
        "fallback": registry.fallback,
        "version": _package_version(),
    }
    return JSONResponse(
        status_code=200, headers={_REQUEST_ID_HEADER: request_id}, content=payload
    )


@app.post("/v1/extract", response_model=None)
async def extract_v1(request: Request) -> JSONResponse:
    """Run one extraction and return the JSON result."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "init"

    try:
        failure_stage = "read_body"
        body = await request.body()
        max_source_bytes = _max_source_bytes()
        if len(body) > max_source_bytes:
            raise ApiRequestError(
                status_code=413,
                error_code="SOURCE_TOO_LARGE",
                message="request body exceeds size limit",
                detail={"max_source_bytes": max_source_bytes},
            )

        failure_stage = "validate_inputs"
        extract_request = _parse_extract_request(body)

        _log_event(
            logging.INFO,
            "start",
            request_id,
            template=extract_request.template,
            pattern_provided=extract_request.pattern is not None,
            repeated=extract_request.repeated,
            source_chars=len(extract_request.source),
        )

        failure_stage = "compile"
        if extract_request.pattern is not None:
            compiled = _compile_with_api_error(extract_request.pattern)
            fallback = (
                extract_request.fallback
                if extract_request.fallback is not None
                else _default_fallback(request_id)
            )
            failure_stage = "extract"
            rows = await anyio.to_thread.run_sync(
                functools.partial(
                    _extract_rows,
                    compiled,
                    extract_request.source,
                    repeated=extract_request.repeated,
                    fallback=fallback,
                )
            )
            template_name = None
            canonical = compiled.to_pattern()
            repeated = extract_request.repeated
        else:
            registry = _get_registry()
            template_name = extract_request.template
            try:
                entry = registry.get(template_name or "")
            except TemplateNotFoundError as exc:
                raise ApiRequestError(
                    status_code=404,
                    error_code="TEMPLATE_NOT_FOUND",
                    message=str(exc),
                    detail={"template": template_name, "available": registry.names()},
                ) from exc
            if extract_request.fallback is not None:
                registry = TemplateRegistry({entry.name: entry}, fallback=extract_request.fallback)
            failure_stage = "extract"
            rows = await anyio.to_thread.run_sync(
                registry.run, entry.name, extract_request.source
            )
            canonical = entry.template.to_pattern()
            repeated = entry.repeated

        status_counts = count_statuses(rows)
        payload = build_result_payload(
            rows,
            template_name=template_name,
            pattern=canonical,
            repeated=repeated,
            status_counts=status_counts,
        )
        payload["request_id"] = request_id

        _log_event(
            logging.INFO,
            "done",
            request_id,
            row_count=len(rows),
            statuses=status_counts,
            total_ms=_elapsed_ms(request_started),
        )
        return JSONResponse(
            status_code=200, headers={_REQUEST_ID_HEADER: request_id}, content=payload
        )

    except ApiRequestError as exc:
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code=exc.error_code,
            status_code=exc.status_code,
            failure_stage=failure_stage,
        )
        return _error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            request_id=request_id,
            detail=exc.detail,
        )


def _parse_extract_request(body: bytes) -> ExtractRequest:
    try:
        raw = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request body must be JSON",
        ) from exc

    if not isinstance(raw, dict):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request body must be a JSON object",
        )

    try:
        parsed = ExtractRequest.model_validate(raw)
    except ValidationError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="invalid extract request",
            detail={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc

    if (parsed.pattern is None) == (parsed.template is None):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="exactly one of pattern or template is required",
        )
    if parsed.repeated and parsed.template is not None:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="repeated applies to inline patterns only",
        )
    return parsed


def _compile_with_api_error(pattern: str) -> Template:
    try:
        return compile_template(pattern)
    except TemplateSyntaxError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_TEMPLATE",
            message=str(exc),
            detail={"position": exc.position},
        ) from exc


def _extract_rows(
    template: Template, source: str, *, repeated: bool, fallback: str
) -> list[ExtractionResult]:
    if repeated:
        return list(extract_repeated(template, source, fallback=fallback))
    return [extract(template, source, fallback=fallback)]


def _default_fallback(request_id: str) -> str:
    """Configured fallback; inline patterns still run when the config is broken."""

    try:
        return _get_registry().fallback
    except ApiRequestError as exc:
        _log_event(
            logging.WARNING,
            "config_unavailable",
            request_id,
            error_code=exc.error_code,
            fallback=DEFAULT_FALLBACK,
        )
        return DEFAULT_FALLBACK


def _get_registry() -> TemplateRegistry:
    global _registry_cache

    raw_path = os.getenv("ANCHOREX_CONFIG")
    with _registry_lock:
        if _registry_cache is not None and _registry_cache[0] == raw_path:
            return _registry_cache[1]

        config_path = Path(raw_path) if raw_path else None
        try:
            registry = build_registry(load_config(config_path))
        except (ConfigError, TemplateSyntaxError) as exc:
            raise ApiRequestError(
                status_code=500,
                error_code="CONFIG_INVALID",
                message=str(exc),
            ) from exc

        _registry_cache = (raw_path, registry)
        return registry


def _max_source_bytes() -> int:
    raw = os.getenv("ANCHOREX_MAX_SOURCE_BYTES")
    if raw is None:
        return _DEFAULT_MAX_SOURCE_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_SOURCE_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_SOURCE_BYTES


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return uuid.uuid4().hex


def _package_version() -> str:
    try:
        return importlib.metadata.version("anchorex")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={_REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
