import logging
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Path
from pydantic import BaseModel

from memocurve.application.config import ReviewConfig, resolve_config
from memocurve.consts import VERSION
from memocurve.domain.constants import STAGE_COUNT
from memocurve.domain.errors import CardNotFoundError
from memocurve.domain.models import Card
from memocurve.domain.ports import CardRepository, QuestionGenerator

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("memocurve.server")


class ServerState:
    """The card store, question source and the single review session of this process."""

    def __init__(self):
        self.store: CardRepository | None = None
        self.generator: QuestionGenerator | None = None
        self.session = None
        self.inflight: set[tuple[str, str]] = set()

    def configure(self, store: CardRepository, generator: QuestionGenerator | None = None):
        self.store = store
        self.generator = generator
        self.session = None
        self.inflight = set()

    def reset(self):
        self.store = None
        self.generator = None
        self.session = None
        self.inflight = set()


state = ServerState()


def get_store() -> CardRepository:
    if state.store is None:
        from memocurve.application.factory import get_card_store, get_question_generator

        config = resolve_config()
        state.configure(get_card_store(config), get_question_generator(config))
    return state.store


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"memocurve server v{VERSION} starting up...")
    yield
    # Shutdown
    if state.session is not None:
        state.session.close()
    logger.info("memocurve server shutting down...")


app = FastAPI(
    title="memocurve",
    description="HTTP API for the memocurve card collection and review sessions.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


def card_json(card: Card) -> dict[str, Any]:
    from memocurve.infrastructure.card_store import CardRecord

    return CardRecord.from_card(card).model_dump(by_alias=True)


# ---------- Cards ----------


class NewCardRequest(BaseModel):
    content: str
    meaning: str = ""
    example: str = ""


class DeleteRequest(BaseModel):
    ids: list[str]


class ToggleRequest(BaseModel):
    completed: bool


@app.get("/cards")
async def list_cards(search: str = "", store: CardRepository = Depends(get_store)):
    from memocurve.application.card_service import CardService

    cards = sorted(CardService(store).search(search), key=lambda c: c.next_due)
    return [card_json(c) for c in cards]


@app.post("/cards", status_code=201)
async def add_card(req: NewCardRequest, store: CardRepository = Depends(get_store)):
    from memocurve.application.card_service import CardService

    try:
        card = CardService(store).add_card(req.content, req.meaning, req.example)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return card_json(card)


@app.post("/cards/delete")
async def delete_cards(req: DeleteRequest, store: CardRepository = Depends(get_store)):
    from memocurve.application.card_service import CardService

    return {"deleted": CardService(store).delete_cards(req.ids)}


@app.get("/cards/{card_id}/stages")
async def card_stages(card_id: str, store: CardRepository = Depends(get_store)):
    from memocurve.application.progress_editor import ProgressEditor

    card = store.get(card_id)
    if card is None:
        raise HTTPException(status_code=404, detail=f"Card not found: {card_id}")
    return {
        "card": card_json(card),
        "stages": [_stage_json(r) for r in ProgressEditor(store).stage_rows(card)],
    }


@app.post("/cards/{card_id}/stages/{index}")
async def toggle_stage(
    card_id: str,
    req: ToggleRequest,
    index: int = Path(ge=0, lt=STAGE_COUNT),
    store: CardRepository = Depends(get_store),
):
    """
    Check or uncheck one stage. Out-of-order edits answer 409 and change nothing.
    """
    from memocurve.application.progress_editor import ProgressEditor

    editor = ProgressEditor(store)
    try:
        result = editor.toggle_by_id(card_id, index, req.completed)
    except CardNotFoundError:
        raise HTTPException(status_code=404, detail=f"Card not found: {card_id}") from None
    if not result.ok:
        raise HTTPException(status_code=409, detail=result.message)
    return {
        "card": card_json(result.card),
        "stages": [_stage_json(r) for r in editor.stage_rows(result.card)],
    }


def _stage_json(row) -> dict[str, Any]:
    return {
        "index": row.index,
        "label": row.label,
        "dueAt": row.due_at,
        "status": row.status.value,
        "isNext": row.is_next,
    }


@app.get("/summary")
async def summary(store: CardRepository = Depends(get_store)):
    from memocurve.application.card_service import CardService

    result = CardService(store).summary()
    return {"total": result.total, "pending": result.pending}


# ---------- Config ----------


@app.get("/config")
async def get_config(store: CardRepository = Depends(get_store)):
    return store.load_config().model_dump(by_alias=True)


@app.put("/config")
async def put_config(config: ReviewConfig, store: CardRepository = Depends(get_store)):
    store.save_config(config)
    if state.session is not None:
        state.session.config = config.model_copy(deep=True)
    logger.info(f"Review config updated: trigger={config.review_duration_trigger}s")
    return config.model_dump(by_alias=True)


# ---------- Review session ----------
# The client owns the clock: it calls /review/tick once per second while the
# card is on screen.


def _require_session():
    if state.session is None or not state.session.active:
        raise HTTPException(status_code=409, detail="No review session in progress.")
    return state.session


async def _enrich(request) -> None:
    try:
        await request
    except Exception as e:
        logger.error(f"Question enrichment failed: {e}")


def _schedule_enrichment(session, background_tasks: BackgroundTasks) -> None:
    request = session.request_enrichment()
    if request is not None:
        background_tasks.add_task(_enrich, request)


@app.post("/review")
async def start_review(
    background_tasks: BackgroundTasks, store: CardRepository = Depends(get_store)
):
    from memocurve.application.review_session import ReviewSession

    if state.session is not None:
        state.session.close()
    session = ReviewSession(
        store, store.load_config(), state.generator, inflight=state.inflight
    )
    session.start()
    state.session = session
    _schedule_enrichment(session, background_tasks)
    return session.snapshot()


@app.get("/review")
async def review_state():
    if state.session is None:
        return {"state": "idle", "total": 0, "card_id": None}
    return state.session.snapshot()


@app.delete("/review")
async def exit_review():
    if state.session is not None:
        state.session.close()
        state.session = None
    return {"state": "idle"}


@app.post("/review/tick")
async def review_tick():
    session = _require_session()
    session.tick()
    return session.snapshot()


@app.post("/review/next")
async def review_next(background_tasks: BackgroundTasks):
    session = _require_session()
    if session.next():
        _schedule_enrichment(session, background_tasks)
    return session.snapshot()


@app.post("/review/prev")
async def review_prev(background_tasks: BackgroundTasks):
    session = _require_session()
    if session.prev():
        _schedule_enrichment(session, background_tasks)
    return session.snapshot()


@app.post("/review/flip")
async def review_flip():
    session = _require_session()
    session.flip()
    return session.snapshot()
