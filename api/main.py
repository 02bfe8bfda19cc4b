"""FastAPI entrypoint exposing the transactions ledger over HTTP."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi import FastAPI, HTTPException, Response
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse

from backend.errors import ValidationError
from backend.factory import build_transaction_service
from backend.services.transaction_service import TransactionService
from shared import config as _config
from shared.models import (
    CategoriesListResult,
    CategoryRegisterRequest,
    FilterOptions,
    PageRequest,
    QueryState,
    QueryStateUpdateRequest,
    Transaction,
    TransactionCreateRequest,
    TransactionFormData,
    TransactionUpdateRequest,
    VisibleRows,
)


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_transaction_service() -> TransactionService:
    return build_transaction_service()


app = FastAPI(title="Spendy Ledger API")

ALLOW_ORIGINS = _config.cors_allow_origins()


@app.middleware("http")
async def log_http_requests(request: Request, call_next):
    """Log incoming requests, HTTP status codes and unexpected errors."""

    logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "http_request_failed method=%s path=%s",
            request.method,
            request.url.path,
        )
        raise

    logger.info(
        "http_response_sent method=%s path=%s status_code=%s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("cors_allow_origins=%s", ALLOW_ORIGINS)


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    """Return business-rule violations as 422 responses."""

    logger.info(
        "validation_error method=%s path=%s field=%s message=%s",
        request.method,
        request.url.path,
        exc.field,
        str(exc),
    )
    return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field})


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for unhandled exceptions."""

    logger.exception(
        "unhandled_exception method=%s path=%s exception_type=%s message=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.get("/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""

    return {"status": "ok"}


@app.get("/transactions", response_model=VisibleRows)
def list_visible_transactions() -> VisibleRows:
    """Return the current page of transactions for the active query state."""

    return get_transaction_service().visible_rows


@app.post("/transactions", response_model=Transaction, status_code=201)
def create_transaction(payload: TransactionCreateRequest) -> Transaction:
    form_data = TransactionFormData.model_validate(payload.model_dump(exclude={"id"}))
    return get_transaction_service().create_transaction(form_data, payload.id)


@app.put("/transactions", response_model=VisibleRows)
def replace_transactions(payload: list[Transaction]) -> VisibleRows:
    service = get_transaction_service()
    service.replace_transactions(payload)
    return service.visible_rows


@app.get("/transactions/{transaction_id}", response_model=Transaction)
def get_transaction(transaction_id: str) -> Transaction:
    transaction = get_transaction_service().get_transaction(transaction_id)
    if transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


@app.patch("/transactions/{transaction_id}", response_model=Transaction)
def update_transaction(transaction_id: str, payload: TransactionUpdateRequest) -> Transaction:
    transaction = get_transaction_service().update_transaction(transaction_id, payload)
    if transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


@app.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: str) -> Response:
    if not get_transaction_service().delete_transaction(transaction_id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    return Response(status_code=204)


@app.get("/query", response_model=QueryState)
def get_query_state() -> QueryState:
    return get_transaction_service().query_state


@app.patch("/query", response_model=QueryState)
def update_query_state(payload: QueryStateUpdateRequest) -> QueryState:
    return get_transaction_service().update_query(payload)


@app.post("/query/page", response_model=QueryState)
def set_page(payload: PageRequest) -> QueryState:
    return get_transaction_service().set_page(payload.page)


@app.post("/query/clear-filters", response_model=QueryState)
def clear_filters() -> QueryState:
    return get_transaction_service().clear_filters()


@app.post("/query/clear-sort", response_model=QueryState)
def clear_sort() -> QueryState:
    return get_transaction_service().clear_sort()


@app.get("/categories", response_model=CategoriesListResult)
def list_categories() -> CategoriesListResult:
    return CategoriesListResult(items=get_transaction_service().list_categories())


@app.post("/categories", response_model=CategoriesListResult)
def register_category(payload: CategoryRegisterRequest) -> CategoriesListResult:
    service = get_transaction_service()
    service.register_category(payload.name)
    return CategoriesListResult(items=service.list_categories())


@app.get("/filter-options", response_model=FilterOptions)
def get_filter_options() -> FilterOptions:
    return get_transaction_service().filter_options()


@app.post("/debug/reset")
def debug_reset() -> dict[str, Any]:
    """Drop every transaction and restore the default query state (debug only)."""

    if not _config.debug_endpoints_enabled():
        raise HTTPException(status_code=404, detail="Not found")

    service = get_transaction_service()
    service.reset()
    return jsonable_encoder({"ok": True, "query": service.query_state})
