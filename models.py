from typing import Optional

from pydantic import BaseModel


class Paste(BaseModel):
    id: str
    content: str
    syntax: str
    allow_edit: bool
    pw_salt: Optional[bytes] = None
    pw_hash: Optional[bytes] = None
    created_at: int
    expires_at: Optional[int] = None

    @property
    def protected(self) -> bool:
        return bool(self.pw_hash)

    def expired(self, now: int) -> bool:
        return self.expires_at is not None and self.expires_at < now


class PasteCreated(BaseModel):
    id: str


class PasteOut(BaseModel):
    id: str
    content: str
    syntax: str
    allow_edit: bool
    # unix seconds, 0 when the paste never expires
    expires_at: int

    @classmethod
    def from_paste(cls, p: Paste) -> "PasteOut":
        return cls(
            id=p.id,
            content=p.content,
            syntax=p.syntax,
            allow_edit=p.allow_edit,
            expires_at=p.expires_at or 0,
        )


class PasteSummary(BaseModel):
    id: str
    created: int
    expires: int
    allow_edit: bool
