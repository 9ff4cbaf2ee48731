from collections import deque
from pathlib import Path
import os
from fastapi import APIRouter, Depends, HTTPException
from .schemas import (
    AthResponse,
    ExchangeRequest,
    ExchangeResponse,
    HistoryRecord,
    SnapshotResponse,
    StatusResponse,
)
from ..config import settings
from ..db import get_conn, migrate
from ..errors import ExternalServiceError, NovaError, RunInProgressError, StorageError, ValidationError
from ..pipeline.ath import AthTracker
from ..pipeline.credentials import CredentialStore
from ..pipeline.orchestrator import build_orchestrator, default_clock
from ..pipeline.recorder import SnapshotRecorder
from ..pipeline.runs import get_run_status, last_run
from ..providers.plaid import PlaidClient

router = APIRouter()

def get_db():
    conn = get_conn(settings.db_path)
    try:
        migrate(conn)
        yield conn
    finally:
        conn.close()

def get_plaid() -> PlaidClient:
    return PlaidClient.from_settings()

def get_clock():
    return default_clock

@router.get(
    '/health',
    summary="Health check",
    description="Returns service and DB connectivity plus last run metadata.",
    tags=["Health"],
)
def health(conn=Depends(get_db)):
    try:
        return {'ok': True, 'db': 'ok', 'last_run': last_run(conn)}
    except Exception as e:
        raise HTTPException(503, f'db_error: {e}')

@router.post(
    '/api/link/token',
    summary="Create link token",
    description="Creates a Plaid Link token for linking a new institution.",
    tags=["Link"],
)
def link_token(plaid: PlaidClient = Depends(get_plaid)):
    try:
        return plaid.create_link_token()
    except ExternalServiceError as e:
        raise HTTPException(502, str(e))

@router.post(
    '/api/link/exchange',
    response_model=ExchangeResponse,
    summary="Exchange public token",
    description="Exchanges a Link public token and stores the access token for the institution (re-link overwrites).",
    tags=["Link"],
)
def link_exchange(req: ExchangeRequest, conn=Depends(get_db), plaid: PlaidClient = Depends(get_plaid)):
    try:
        if not req.public_token:
            raise ValidationError('public_token required')
        if not req.institution or not req.institution.strip():
            raise ValidationError('institution required')
        access_token = plaid.exchange_public_token(req.public_token)
        cred = CredentialStore(conn).upsert(req.institution, access_token)
    except ValidationError as e:
        raise HTTPException(400, str(e))
    except ExternalServiceError as e:
        raise HTTPException(502, str(e))
    except StorageError as e:
        raise HTTPException(500, str(e))
    return ExchangeResponse(success=True, institution=cred.institution)

@router.post(
    '/api/refresh',
    response_model=SnapshotResponse,
    summary="Refresh now",
    description="Runs the snapshot pipeline synchronously and returns the recorded snapshot.",
    tags=["Snapshots"],
)
def refresh(conn=Depends(get_db), plaid: PlaidClient = Depends(get_plaid), clock=Depends(get_clock)):
    orchestrator = build_orchestrator(conn, fetcher=plaid, clock=clock)
    try:
        run = orchestrator.run(trigger="manual")
    except RunInProgressError as e:
        raise HTTPException(409, str(e))
    except NovaError as e:
        raise HTTPException(500, str(e))
    snap = run.snapshot
    return SnapshotResponse(
        wells_fargo_checking=float(snap.wells_fargo_checking),
        wells_fargo_credit=float(snap.wells_fargo_credit),
        robinhood=float(snap.robinhood),
        vanguard=float(snap.vanguard),
        net_worth=float(snap.net_worth),
        date=run.record.date.isoformat(),
        is_ath=run.record.is_ath,
        run_id=run.run_id,
        failed_institutions=run.failed_institutions,
    )

@router.get(
    '/api/history',
    response_model=list[HistoryRecord],
    summary="Net worth history",
    description="Returns ledger rows dated within the last N days (default 90), ascending by date.",
    tags=["Snapshots"],
)
def history(days: int | None = None, conn=Depends(get_db), clock=Depends(get_clock)):
    if days is None:
        days = settings.history_default_days
    if days < 1:
        raise HTTPException(400, 'days must be >= 1')
    try:
        records = SnapshotRecorder(conn).history(days, clock())
    except StorageError as e:
        raise HTTPException(500, str(e))
    return [
        HistoryRecord(
            id=r.id,
            date=r.date.isoformat(),
            wells_fargo_checking=float(r.wells_fargo_checking),
            wells_fargo_credit=float(r.wells_fargo_credit),
            robinhood=float(r.robinhood),
            vanguard=float(r.vanguard),
            net_worth=float(r.net_worth),
            is_ath=r.is_ath,
        )
        for r in records
    ]

@router.get(
    '/api/ath',
    response_model=AthResponse,
    summary="All-time high",
    description="Returns the current all-time-high net worth and the date it was reached.",
    tags=["Snapshots"],
)
def ath(conn=Depends(get_db)):
    try:
        state = AthTracker(conn).current_ath()
    except StorageError as e:
        raise HTTPException(500, str(e))
    return AthResponse(value=float(state.value), date=state.date.isoformat() if state.date else None)

@router.get(
    '/api/status/{run_id}',
    response_model=StatusResponse,
    summary="Get run status",
    description="Return status for a given run_id.",
    tags=["Snapshots"],
)
def status(run_id: str, conn=Depends(get_db)):
    st = get_run_status(conn, run_id)
    if not st:
        raise HTTPException(404, 'run not found')
    return st

@router.get(
    '/api/logs',
    summary="Read error logs",
    description="Returns the last N lines from the error log file.",
    tags=["Admin"],
)
def read_logs(lines: int = 200):
    if lines < 1:
        raise HTTPException(400, 'lines must be >= 1')
    if lines > 2000:
        lines = 2000
    log_path = os.getenv("LOG_ERROR_FILE", "./data/logs/error.log")
    path = Path(log_path)
    if not path.exists():
        raise HTTPException(404, 'log file not found')
    tail = deque(maxlen=lines)
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            tail.append(line.rstrip("\n"))
    return {"path": str(path), "lines": list(tail)}
