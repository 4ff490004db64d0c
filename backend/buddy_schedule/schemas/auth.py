from pydantic import BaseModel


class CredentialsRequest(BaseModel):
    """Registration / login request"""
    email: str
    password: str


class TokenResponse(BaseModel):
    """Issued bearer token"""
    access_token: str
    token_type: str = "bearer"
