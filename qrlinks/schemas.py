from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

Email = Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=3, max_length=255)]


class LinkBase(BaseModel):
    original_url: str = Field(..., min_length=1, max_length=2048)
    expires_at: datetime | None = None

class LinkCreate(LinkBase):
    pass

class LinkUpdate(LinkBase):
    pass

class LinkOut(BaseModel):
    link_id: int
    original_url: str
    shortened_code: str
    complete_shortened_url: str
    qr_code_path: str
    created_at: datetime
    expires_at: datetime | None = None
    clicks: int
    user_id: int

    model_config = ConfigDict(from_attributes=True)

class LinkDetail(LinkOut):
    qr_code_base64: str

class UserCreate(BaseModel):
    email: Email
    password: str = Field(..., min_length=6)

class UserUpdate(BaseModel):
    email: Email | None = None
    password: str | None = Field(None, min_length=6)

class UserOut(BaseModel):
    user_id: int
    email: str
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

class Credentials(BaseModel):
    email: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str
