from typing import Any

from pydantic import BaseModel


class ResultOut(BaseModel):
    ok: bool = True
    data: Any = None
    message: str = ""


class ReasonIn(BaseModel):
    reason: str | None = None
