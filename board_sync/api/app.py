"""
Board Sync harness API — FastAPI endpoints.

Drives a headless SyncClient (recording visual sink, grid hit tester) over HTTP for:
- Snapshot and action-result injection
- Tick control
- Pointer input and drag cancellation
- Purchases
- Registry, ledger, session, intent and visual inspection
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from board_sync.authority.channel import IntentOutbox
from board_sync.client.session import SyncClient
from board_sync.models.config import SyncConfig
from board_sync.models.snapshot import ActionResult, BoardSnapshot
from board_sync.registry.store import DuplicateVisualError
from board_sync.visuals.sink import RecordingVisualSink


# --- Request/Response Models ---

class PointerRequest(BaseModel):
    x: float
    y: float


class TickRequest(BaseModel):
    button_held: Optional[bool] = None
    count: int = 1


class PurchaseRequest(BaseModel):
    shop_index: int
    template_id: str


class CancelRequest(BaseModel):
    reason: str = "cancelled via api"


# --- Application Factory ---

def create_app(config: Optional[SyncConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Board Sync Harness",
        description="Optimistic board synchronization — headless client harness",
        version="0.1.0",
    )

    cfg = config or SyncConfig()
    sink = RecordingVisualSink()
    outbox = IntentOutbox()
    client = SyncClient(sink=sink, channel=outbox, config=cfg)

    # Store components on app state for access in endpoints
    app.state.sink = sink
    app.state.outbox = outbox
    app.state.client = client

    @app.exception_handler(DuplicateVisualError)
    def duplicate_visual(request: Request, exc: DuplicateVisualError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    # === INBOUND ===

    @app.post("/snapshots")
    def receive_snapshot(snapshot: BoardSnapshot):
        """Buffer an authoritative snapshot until the next tick."""
        client.receive_snapshot(snapshot)
        return {"status": "buffered", "pending": client.pending_snapshots}

    @app.post("/action-results")
    def receive_action_result(result: ActionResult):
        client.receive_action_result(result)
        return {"status": "logged"}

    # === TICK ===

    @app.post("/tick")
    def tick(req: TickRequest = TickRequest()):
        """Advance one or more frames."""
        if req.count < 1:
            raise HTTPException(422, "count must be at least 1")
        reports = []
        for _ in range(req.count):
            reports.extend(client.tick(button_held=req.button_held))
        return {
            "tick": client.tick_count,
            "reports": [r.model_dump(mode="json") for r in reports],
        }

    # === POINTER ===

    @app.post("/pointer/down")
    def pointer_down(req: PointerRequest):
        return client.pointer_down((req.x, req.y)).model_dump(mode="json")

    @app.post("/pointer/move")
    def pointer_move(req: PointerRequest):
        return client.pointer_move((req.x, req.y)).model_dump(mode="json")

    @app.post("/pointer/up")
    def pointer_up(req: PointerRequest):
        return client.pointer_up((req.x, req.y)).model_dump(mode="json")

    @app.post("/session/cancel")
    def cancel_session(req: CancelRequest = CancelRequest()):
        return client.cancel_drag(req.reason).model_dump(mode="json")

    @app.get("/session")
    def get_session():
        """The in-flight drag session, if any."""
        session = client.controller.session
        return {
            "phase": client.controller.drag_phase.value,
            "session": session.model_dump(mode="json") if session else None,
            "selected": client.controller.selected,
            "game_phase": client.phase.value,
        }

    # === PURCHASES ===

    @app.post("/purchase")
    def purchase(req: PurchaseRequest):
        prediction = client.purchase(req.shop_index, req.template_id)
        return prediction.model_dump(mode="json")

    # === INSPECTION ===

    @app.get("/registry")
    def get_registry():
        return client.registry.dump()

    @app.get("/registry/{entity_id}")
    def get_registry_entry(entity_id: str):
        entry = client.registry.get(entity_id)
        if entry is None:
            raise HTTPException(404, "Entity not found")
        return entry.model_dump(mode="json")

    @app.get("/ledger")
    def get_ledger():
        return client.ledger.snapshot().model_dump(mode="json")

    @app.get("/intents")
    def get_intents():
        return [i.model_dump(mode="json") for i in outbox.sent]

    @app.get("/visuals")
    def get_visuals():
        return {
            "visuals": [v.model_dump(mode="json") for v in sink.visuals.values()],
            "highlighted": [s.model_dump(mode="json") for s in sink.highlighted],
        }

    @app.get("/outcomes")
    def get_outcomes(limit: int = 20):
        return [o.model_dump(mode="json") for o in list(client.outcomes)[-limit:]]

    @app.get("/config")
    def get_config():
        return cfg.model_dump(mode="json")

    return app
