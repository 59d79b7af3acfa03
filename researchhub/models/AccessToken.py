from sqlmodel import SQLModel

class AccessClaim(SQLModel):
    user_id: int # User ID
    email: str
    session_id: int | None = None # Session row created at login
    issued_at: int | None = None # Issued at time
    expires_at: int # Expiration time
