"""Session credential schema definitions.

A credential is a signed bearer token. It is never stored; its validity is
re-derived on every use by comparing the embedded session version with the
account's current one.
"""

from pydantic import BaseModel, Field

from schemas.user import RoleName


class Credential(BaseModel):
    token: str = Field(description="Signed session token.")
    user_id: str
    session_version: int = Field(
        description="Snapshot of the account's session version at issue time."
    )
    issued_at: str
    expires_at: str


class Identity(BaseModel):
    """The caller behind a verified credential, used for authorization."""

    user_id: str
    email: str
    role: RoleName
    is_super_admin: bool = False
