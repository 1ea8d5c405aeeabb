import argparse
import uuid
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from warehouse.config import PORT, RATE_LIMIT, logger
from warehouse.commands import execute_warehouse_command
from warehouse.models import (
    ArrivalRequest,
    ChatMessageRequest,
    ConfirmationRequest,
    OrderRequest,
    WarehouseCommandRequest,
)
from warehouse.state_store import get_store


limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title="Warehouse Orchestrator Service",
    description="Order intake, auction scheduling and agent state for the vegetable warehouse simulation.",
    version="0.1.0",
    openapi_tags=[
        {"name": "Warehouse", "description": "Orders, chat, confirmations and agent arrivals"},
        {"name": "Health", "description": "Liveness"},
    ],
)
app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, message: str, request_id: str = "", details: Optional[Dict] = None) -> JSONResponse:
    rid = request_id or str(uuid.uuid4())
    body = {
        "error": {
            "code": str(status_code),
            "message": message,
            "request_id": rid,
            "details": details or {},
        },
        "detail": message,
    }
    return JSONResponse(status_code=status_code, content=body)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    rid = getattr(request.state, "request_id", str(uuid.uuid4()))
    resp = _error_response(429, "Rate limit exceeded. Try again later.", rid, {"detail": str(getattr(exc, "detail", ""))})
    resp.headers["Retry-After"] = "60"
    return resp
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(exc.status_code, detail, request_id)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


def _run(request: Request, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call into the store, turning validation errors into 400s."""
    try:
        return fn(*args, **kwargs)
    except ValueError as exc:
        logger.warning(
            "Rejected warehouse request: %s", exc,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/healthz", tags=["Health"])
def healthz() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/v1/warehouse/state", summary="Get inventory, agents, queue, chat and logs", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def get_warehouse_state(request: Request) -> Dict[str, Any]:
    """Return the current warehouse snapshot for visualization."""
    return get_store().get_state()


@app.post("/v1/warehouse/orders", summary="Queue items directly", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def place_order(request: Request, body: OrderRequest) -> Dict[str, Any]:
    store = get_store()
    order = _run(request, store.place_order, body.items)
    return {"order": order, "queue_length": store.get_state()["queue_length"]}


@app.post("/v1/warehouse/chat", summary="Send a free-text order or confirmation", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def chat(request: Request, body: ChatMessageRequest) -> Dict[str, Any]:
    text = body.message.strip()
    if not text:
        raise HTTPException(status_code=400, detail="message must not be empty")
    store = get_store()
    reply = _run(request, store.send_user_message, text)
    state = store.get_state()
    return {
        "user": text,
        "reply": reply,
        "pending_confirmation": state["pending_confirmation"],
        "queue_length": state["queue_length"],
    }


@app.post("/v1/warehouse/confirmation", summary="Resolve a pending stock shortage", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def confirm(request: Request, body: ConfirmationRequest) -> Dict[str, Any]:
    store = get_store()
    reply = _run(request, store.resolve_pending_order, body.decision)
    if reply is None:
        raise HTTPException(status_code=409, detail="Nothing is awaiting confirmation.")
    return {"reply": reply, "queue_length": store.get_state()["queue_length"]}


@app.post("/v1/warehouse/arrivals", summary="Report that an agent reached its target", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def arrived(request: Request, body: ArrivalRequest) -> Dict[str, Any]:
    agent = _run(request, get_store().arrived_at_target, body.agent_id)
    return {"agent": agent}


@app.post("/v1/warehouse/agents/{agent_id}/home", summary="Send an idle agent home", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def send_home(request: Request, agent_id: str) -> Dict[str, Any]:
    store = get_store()
    try:
        agent = store.send_home(agent_id)
    except ValueError as exc:
        status = 404 if "not found" in str(exc) else 409
        raise HTTPException(status_code=status, detail=str(exc)) from exc
    return {"agent": agent}


@app.post("/v1/warehouse/reset", summary="Reset inventory, agents, orders, chat and logs", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def reset(request: Request) -> Dict[str, Any]:
    return get_store().reset_system()


@app.post("/v1/warehouse/inventory/init", summary="Regenerate inventory and agents", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def init_inventory(request: Request) -> Dict[str, Any]:
    return get_store().init_inventory()


@app.post("/v1/warehouse/command", summary="Send a deterministic warehouse command", tags=["Warehouse"])
@limiter.limit(RATE_LIMIT)
def warehouse_command(request: Request, cmd: WarehouseCommandRequest) -> Dict[str, Any]:
    """Single entry point used by operator tooling; `settle` stands in for the renderer."""
    return _run(
        request,
        execute_warehouse_command,
        cmd.action,
        agent_id=cmd.agent_id,
        items=cmd.items,
        text=cmd.text,
        decision=cmd.decision,
        max_steps=cmd.max_steps,
        store=get_store(),
    )


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the warehouse orchestrator service.")
    parser.add_argument("--port", type=int, default=PORT, help="Port to run the server on.")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to run the server on.")
    args = parser.parse_args()
    uvicorn.run(app, host=args.host, port=args.port)
