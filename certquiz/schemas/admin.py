"""
Pydantic schemas for admin endpoints
"""
from pydantic import BaseModel


class SystemStats(BaseModel):
    """Session counts across all users"""
    total_sessions: int
    active_sessions: int


class ExpireSessionResponse(BaseModel):
    session_id: str
    state: str
    version: int
