# models.py
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["user", "model"]


class Turn(BaseModel):
    role: Role
    text: str

    def to_content(self) -> Dict[str, Any]:
        """Gemini content shape: {"role": ..., "parts": [{"text": ...}]}."""
        return {"role": self.role, "parts": [{"text": self.text}]}

    @classmethod
    def from_content(cls, content: Dict[str, Any]) -> "Turn":
        parts = content["parts"]
        return cls(role=content["role"], text=parts[0]["text"])


class ChatRequest(BaseModel):
    message: str = Field(..., description="User message")


class ChatResponse(BaseModel):
    text: str
    model: Optional[str] = None


class HistorySummary(BaseModel):
    messages: int
    turns: List[Turn] = Field(default_factory=list)


class TranscriptEntry(BaseModel):
    kind: Literal["outgoing", "incoming", "error"]
    text: str


class ModelStatus(BaseModel):
    model: str
    reachable: bool
