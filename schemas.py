import math

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Literal

# ------------------- Users -------------------
class UserCreate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

class UserOut(BaseModel):
    """Public user fields. Never carries the password hash."""
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    last_logout: Optional[datetime] = None

    class Config:
        from_attributes = True

class LoginRequest(BaseModel):
    identifier: Optional[str] = None
    password: Optional[str] = None

class LogoutRequest(BaseModel):
    id: Optional[int] = None

# ------------------- Scans -------------------
class ReuseIdea(BaseModel):
    idea: str
    image: Optional[str] = None

class ScanResult(BaseModel):
    """Shape the model is asked to return for a product photo."""
    greenScore: int = Field(ge=0, le=100)
    energyUse: str
    recyclability: Literal["High", "Medium", "Low"]
    ethics: Literal["Good", "Moderate", "Poor"]
    ecosystemImpact: Literal["Minimal", "Moderate", "Severe"]
    summary: str
    reuseIdeas: List[ReuseIdea] = []

    @field_validator("greenScore", mode="before")
    @classmethod
    def round_score(cls, value):
        if isinstance(value, float) and math.isfinite(value):
            return round(value)
        return value

    @field_validator("reuseIdeas", mode="before")
    @classmethod
    def wrap_plain_ideas(cls, value):
        if not isinstance(value, list):
            return value
        return [{"idea": item} if isinstance(item, str) else item for item in value]

class ChatRequest(BaseModel):
    userMessage: Optional[str] = None
