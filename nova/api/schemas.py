from pydantic import BaseModel
from typing import Optional, Literal

class ExchangeRequest(BaseModel):
    public_token: Optional[str] = None
    institution: Optional[str] = None

class ExchangeResponse(BaseModel):
    success: bool
    institution: str

class SnapshotResponse(BaseModel):
    wells_fargo_checking: float
    wells_fargo_credit: float
    robinhood: float
    vanguard: float
    net_worth: float
    date: str
    is_ath: bool
    run_id: str
    failed_institutions: list[str] = []

class HistoryRecord(BaseModel):
    id: int
    date: str
    wells_fargo_checking: float
    wells_fargo_credit: float
    robinhood: float
    vanguard: float
    net_worth: float
    is_ath: bool

class AthResponse(BaseModel):
    value: float
    date: Optional[str] = None

class StatusResponse(BaseModel):
    run_id: str
    trigger: str
    status: Literal['running','succeeded','failed']
    started_at_utc: str
    finished_at_utc: Optional[str] = None
    error_message: Optional[str] = None
    failed_institutions: list[str] = []
