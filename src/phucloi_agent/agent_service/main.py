from __future__ import annotations

import os
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException
from sqlalchemy.engine import Engine

from phucloi_agent.common.db import make_engine
from phucloi_agent.common.logging import configure_logging, get_logger
from phucloi_agent.common.settings import Settings, get_settings
from phucloi_agent.query import QueryProcessor, SqlAlchemyStore, StoreUnavailableError

log = get_logger("agent-service")

ENGINE: Engine | None = None


def _auth(settings: Settings, api_key: str | None) -> None:
    if settings.agent_auth_mode == "none":
        return
    if not api_key or api_key != settings.agent_api_key:
        raise HTTPException(status_code=401, detail="unauthorized")


def get_engine_dep(settings: Settings = Depends(get_settings)) -> Engine:
    global ENGINE
    if ENGINE is None:
        ENGINE = make_engine(settings.store_db_dsn, settings.store_statement_timeout_seconds)
    return ENGINE


def get_processor(
    settings: Settings = Depends(get_settings),
    engine: Engine = Depends(get_engine_dep),
) -> QueryProcessor:
    return QueryProcessor.from_settings(SqlAlchemyStore(engine), settings)


def require_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    settings: Settings = Depends(get_settings),
) -> None:
    _auth(settings, x_api_key)


app = FastAPI(title="Phuc Loi AI Query Service", version=os.getenv("APP_VERSION", "0.1.0"))


@app.on_event("startup")
def _startup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    log.info("startup", agent_env=settings.agent_env)


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/agent/v1/ai/query", dependencies=[Depends(require_api_key)])
def ai_query(body: dict[str, Any], processor: QueryProcessor = Depends(get_processor)) -> dict[str, Any]:
    question = body.get("question")
    if not isinstance(question, str) or not question.strip():
        raise HTTPException(status_code=400, detail="question is required")

    try:
        outcome = processor.process_query(question.strip())
    except StoreUnavailableError as e:
        log.warning("ai_query_store_unavailable", error=str(e))
        raise HTTPException(status_code=503, detail="operational store unavailable, please retry") from e

    log.info("ai_query", intent=outcome.intent.value, has_note=bool(outcome.note))
    return outcome.to_dict()
