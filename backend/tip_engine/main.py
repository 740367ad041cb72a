from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from .activity import UserActivityStore
from .cooldown import CooldownPolicy
from .decision import DecisionEngine
from .logger import get_logger
from .messages import DEFAULT_DELAYS, DEFAULT_DURATIONS, MessagesProvider
from .schemas import OUTER, DecisionRequest, DecisionResponse, VisitorStateSnapshot, utcnow
from .settings import settings
from .storage import InMemoryKeyValueStore, StorageKeyProvider
from .tip_records import TipRecordStore


app = FastAPI(title="Tip Engine Backend",
              default_response_class=ORJSONResponse)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = get_logger("api")
messages = MessagesProvider()


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/decide", response_model=DecisionResponse)
def decide(req: DecisionRequest):
    # Stores live for this request only
    now = utcnow()
    storage = InMemoryKeyValueStore()
    keys = StorageKeyProvider(prefix=settings.storage_prefix)

    activity = UserActivityStore(storage, keys, clock=lambda: now)
    records = TipRecordStore(storage, keys, clock=lambda: now)

    if req.last_chat_open_at:
        activity.mark_chat_open(at=req.last_chat_open_at)
    if req.last_message_sent_at:
        activity.mark_message_sent(at=req.last_message_sent_at)
    for record in req.shown:
        records.mark_as_shown(record.type, record.category, at=record.timestamp)

    cooldown = CooldownPolicy(messages, records, clock=lambda: now)
    engine = DecisionEngine(messages, records, cooldown)

    state = VisitorStateSnapshot.build(
        activity.get_last_chat_open_time(),
        activity.get_last_message_sent_time(),
        now,
    )
    tip_type = engine.determine(state, context=req.context)
    logger.info(f"Decision for visitor: {tip_type}")

    if not tip_type:
        return DecisionResponse(should_show=False)

    duration = messages.get_field(
        OUTER, tip_type, "duration", DEFAULT_DURATIONS.get(tip_type, 0))
    return DecisionResponse(
        should_show=True,
        tip_type=tip_type,
        message=messages.get_text(OUTER, tip_type),
        delay_ms=messages.get_field(
            OUTER, tip_type, "delay", DEFAULT_DELAYS.get(tip_type, 0)),
        ttl_seconds=duration // 1000,
    )
