"""
Calculator session API endpoints.

Each session owns one Calculator driven by key presses. Sessions live in
process memory; the oldest is evicted once max_sessions is reached.
"""

import logging
import uuid
from collections import OrderedDict
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from fincalc.calculator import Calculator, CalculatorError, SolveEvent
from fincalc.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class CalculatorSession:
    """A calculator plus the last solve it reported."""

    calculator: Calculator
    last_solve: Optional[SolveEvent] = None

    def record(self, event: SolveEvent) -> None:
        self.last_solve = event


class SessionStore:
    """In-memory calculator sessions, least recently used evicted first."""

    def __init__(self, max_sessions: int, payments_per_year: int = 1):
        self.max_sessions = max_sessions
        self.payments_per_year = payments_per_year
        self._sessions: "OrderedDict[str, CalculatorSession]" = OrderedDict()

    def create(self) -> str:
        while len(self._sessions) >= self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.warning(f"Session limit reached, evicting calculator session {evicted}")

        session_id = str(uuid.uuid4())
        session = CalculatorSession(Calculator(payments_per_year=self.payments_per_year))
        session.calculator.subscribe(session.record)
        self._sessions[session_id] = session
        logger.info(f"Created calculator session {session_id}")
        return session_id

    def get(self, session_id: str) -> CalculatorSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(session_id)
        self._sessions.move_to_end(session_id)
        return session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


@lru_cache()
def get_session_store() -> SessionStore:
    """Dependency for the process-wide session store."""
    settings = get_settings()
    return SessionStore(settings.max_sessions, settings.default_payments_per_year)


class SessionResponse(BaseModel):
    """Calculator snapshot for a session."""

    session_id: str
    registers: Dict[str, Optional[float]]
    payments_per_year: int
    is_annuity_due: bool
    display: str
    display_text: str
    memory: float
    stored: float
    cash_flows: List[dict]
    shift_active: bool
    register_text: Dict[str, str]
    last_solve: Optional[dict] = None
    error: Optional[str] = None


class KeyInput(BaseModel):
    """Key ids pressed in order, e.g. ["digit_3", "digit_6", "digit_0", "n"]."""

    keys: List[str] = Field(..., min_length=1)


def _response(session_id: str, session: CalculatorSession, error: Optional[str] = None) -> SessionResponse:
    snapshot = asdict(session.calculator.snapshot())
    last_solve = asdict(session.last_solve) if session.last_solve else None
    return SessionResponse(session_id=session_id, last_solve=last_solve, error=error, **snapshot)


def _lookup(store: SessionStore, session_id: str) -> CalculatorSession:
    try:
        return store.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(store: SessionStore = Depends(get_session_store)):
    """Start a new calculator session."""
    session_id = store.create()
    return _response(session_id, store.get(session_id))


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Get the current calculator snapshot."""
    return _response(session_id, _lookup(store, session_id))


@router.post("/sessions/{session_id}/keys", response_model=SessionResponse)
async def press_keys(
    session_id: str, inputs: KeyInput, store: SessionStore = Depends(get_session_store)
):
    """
    Press keys in order. Processing stops at the first key that puts the
    calculator in the Error state; the error is reported in the response.
    """
    session = _lookup(store, session_id)
    for key in inputs.keys:
        try:
            session.calculator.press_key(key)
        except CalculatorError as e:
            return _response(session_id, session, error=str(e))
    return _response(session_id, session)


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Delete a calculator session."""
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"deleted": True}
