from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ...config import DEFAULT_COVERAGE_DAYS, DEFAULT_SAFETY_STOCK
from ...domain.models import ReplenishmentPolicy
from ...domain.stock import STATUS_LOW, STATUS_OK, STATUS_OUT, count_statuses, snapshot_status
from ...logging import get_logger
from ...paths import find_project_root
from ..errors import PersistError, StoreUnavailable
from ..service import ReplenishmentService
from ..store import CatalogStore


LOG = get_logger("replenish-frontend")

STOCK_FILTERS = (STATUS_OK, STATUS_LOW, STATUS_OUT)


async def _read_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Request body must be JSON") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return payload


def _require_int(payload: Dict[str, Any], key: str, *, default: Optional[int] = None) -> int:
    value = payload.get(key, default)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise HTTPException(status_code=400, detail=f"'{key}' must be an integer")
    return value


def create_app(
    root_dir: Optional[str] = None,
    *,
    db_path: Optional[str] = None,
    store: Optional[CatalogStore] = None,
    default_policy: Optional[ReplenishmentPolicy] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create a Starlette app exposing stock levels and the replenishment session."""

    if store is None:
        store = CatalogStore.open(find_project_root(root_dir), db_path=db_path)
    service = ReplenishmentService(store)
    defaults = default_policy or ReplenishmentPolicy(
        coverage_days=DEFAULT_COVERAGE_DAYS, safety_stock=DEFAULT_SAFETY_STOCK
    )

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "db_path": store.db.db_path})

    async def summary(_: Request) -> JSONResponse:
        return JSONResponse(await store.summary())

    async def stock(request: Request) -> JSONResponse:
        status_filter = request.query_params.get("status") or None
        if status_filter is not None and status_filter not in STOCK_FILTERS:
            raise HTTPException(status_code=400, detail=f"Unsupported status filter: {status_filter}")
        search = (request.query_params.get("search") or "").strip().lower()
        category = request.query_params.get("category") or None
        snapshots = await service.snapshots()
        items = []
        for snap in snapshots:
            status = snapshot_status(snap)
            if status_filter and status != status_filter:
                continue
            if category and snap.category != category:
                continue
            if search and search not in snap.product_name.lower() and search not in (snap.sku or "").lower():
                continue
            item = dict(vars(snap))
            item["status"] = status
            items.append(item)
        categories = sorted({snap.category for snap in snapshots if snap.category})
        return JSONResponse(
            {"items": items, "counts": count_statuses(snapshots), "categories": categories}
        )

    async def calculate(request: Request) -> JSONResponse:
        payload = await _read_body(request)
        policy = ReplenishmentPolicy(
            coverage_days=_require_int(payload, "coverage_days", default=defaults.coverage_days),
            safety_stock=_require_int(payload, "safety_stock", default=defaults.safety_stock),
        )
        await service.calculate(policy)
        return JSONResponse(service.editor.to_dict())

    async def session(_: Request) -> JSONResponse:
        return JSONResponse(service.editor.to_dict())

    async def reset_session(_: Request) -> JSONResponse:
        service.reset()
        return JSONResponse(service.editor.to_dict())

    async def set_quantity(request: Request) -> JSONResponse:
        product_id = request.path_params["product_id"]
        qty = _require_int(await _read_body(request), "qty")
        try:
            service.editor.set_quantity(product_id, qty)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Order line not found") from exc
        return JSONResponse(service.editor.to_dict())

    async def toggle(request: Request) -> JSONResponse:
        product_id = request.path_params["product_id"]
        try:
            service.editor.toggle_included(product_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Order line not found") from exc
        return JSONResponse(service.editor.to_dict())

    async def select_all(request: Request) -> JSONResponse:
        payload = await _read_body(request)
        included = payload.get("included")
        if not isinstance(included, bool):
            raise HTTPException(status_code=400, detail="'included' must be a boolean")
        service.editor.select_all(included)
        return JSONResponse(service.editor.to_dict())

    async def save(_: Request) -> JSONResponse:
        if not service.editor.selected_lines():
            raise HTTPException(status_code=400, detail="No selected lines to save")
        result = await service.save()
        return JSONResponse(result.to_dict(), status_code=201)

    async def replenishments(request: Request) -> JSONResponse:
        status = request.query_params.get("status") or None
        try:
            items = await store.list_replenishments(status)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse({"items": items})

    async def replenishment_detail(request: Request) -> JSONResponse:
        order_id = int(request.path_params["order_id"])
        payload = await store.replenishment_detail(order_id)
        if payload is None:
            raise HTTPException(status_code=404, detail="Replenishment order not found")
        return JSONResponse(payload)

    async def persist_failed(_: Request, exc: PersistError) -> JSONResponse:
        return JSONResponse(exc.to_dict(), status_code=502)

    async def store_unavailable(_: Request, exc: StoreUnavailable) -> JSONResponse:
        LOG.error(f"Catalog store unavailable: {exc}")
        return JSONResponse({"detail": "Catalog store unavailable", "error": str(exc)}, status_code=503)

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/summary", summary, methods=["GET"]),
        Route("/api/stock", stock, methods=["GET"]),
        Route("/api/orders/calculate", calculate, methods=["POST"]),
        Route("/api/orders/session", session, methods=["GET"]),
        Route("/api/orders/session", reset_session, methods=["DELETE"]),
        Route("/api/orders/session/lines/{product_id:str}/quantity", set_quantity, methods=["POST"]),
        Route("/api/orders/session/lines/{product_id:str}/toggle", toggle, methods=["POST"]),
        Route("/api/orders/session/select", select_all, methods=["POST"]),
        Route("/api/orders/session/save", save, methods=["POST"]),
        Route("/api/replenishments", replenishments, methods=["GET"]),
        Route("/api/replenishments/{order_id:int}", replenishment_detail, methods=["GET"]),
    ]

    app = Starlette(
        debug=False,
        routes=routes,
        exception_handlers={
            PersistError: persist_failed,
            StoreUnavailable: store_unavailable,
        },
    )

    origins = allow_origins or ["http://localhost:5173", "http://127.0.0.1:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    LOG.info("Replenishment API ready")
    return app


__all__ = ["create_app"]
