# app/schemas/auth.py
"""
Pydantic schemas for authentication endpoints.
Defines request/response models for registration, login and user information.
"""
from pydantic import BaseModel

class LoginRequest(BaseModel):
    """
    Request model for user login endpoint.
    Contains credentials for authentication.
    """
    username: str  # User login name
    password: str  # User password (plain text, will be hashed server-side)

class RegisterIn(BaseModel):
    username: str
    email: str | None = None
    fullName: str | None = None
    password: str

class UserOut(BaseModel):
    """
    User information model returned in authentication responses.
    Contains basic user details without sensitive information.
    """
    id: int  # User identifier
    username: str  # User login name
    fullName: str | None = None
    role: str = "user"  # User role (default: "user", can be "admin")
