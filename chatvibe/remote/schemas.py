from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class AuthStatusResponse(BaseModel):
    authorized: bool = False

class SendCodeResponse(BaseModel):
    message: Optional[str] = None

class SignInResponse(BaseModel):
    needPassword: Optional[bool] = None
    success: Optional[bool] = None
    error: Optional[str] = None

class PasswordResponse(BaseModel):
    success: Optional[bool] = None
    error: Optional[str] = None

class LogoutResponse(BaseModel):
    success: Optional[bool] = None

class Chat(BaseModel):
    id: int
    title: str
    type: str = ""
    avatar_url: Optional[str] = None

class Block(BaseModel):
    model_config = ConfigDict(extra="allow")

    header: Optional[str] = None
    type: Optional[str] = None
    text: Optional[str] = None

class AnalysisResult(BaseModel):
    """Normalized analyze response: exactly one of `analysis` / `blocks` is set."""
    analysis: Optional[str] = None
    blocks: Optional[List[Block]] = None

class AnalyzeRequest(BaseModel):
    type: str
    tone: Optional[str] = None
    language: Optional[str] = None
