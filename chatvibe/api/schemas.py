from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

Visibility = Literal["active", "inactive", "background"]
Tone = Literal["neutral", "direct", "supportive"]
Category = Literal["personal", "business", "qualities"]

class CountryRequest(BaseModel):
    code: str

class PhoneRequest(BaseModel):
    phone: Optional[str] = None
    countryCode: Optional[str] = None

class CodeInputRequest(BaseModel):
    index: int = Field(ge=0, le=4)
    text: str = ""

class CodeIndexRequest(BaseModel):
    index: int = Field(ge=0, le=4)

class PasswordRequest(BaseModel):
    password: str = ""

class LifecycleRequest(BaseModel):
    state: Visibility

class DrawerTypeRequest(BaseModel):
    category: Category

class AnalyzeStartRequest(BaseModel):
    kind: str = Field(min_length=1)
    tone: Optional[Tone] = "neutral"
    language: Optional[str] = None

class AuthSnapshot(BaseModel):
    session: Dict[str, Any]
    form: Dict[str, Any]

class ChatView(BaseModel):
    id: int
    title: str
    type: str
    avatarUrl: Optional[str] = None
    personal: bool = False

class UiEvents(BaseModel):
    events: List[Dict[str, Any]] = Field(default_factory=list)
