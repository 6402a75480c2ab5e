# app/api/v1/routers/auth.py
from fastapi import APIRouter, HTTPException, Response, status, Depends
from app.core.security import verify_password, create_access_token, hash_password
from app.core.identity import CallerIdentity
from app.api.v1.deps import get_current_identity
from app.models.user import User
from app.schemas.auth import LoginRequest, RegisterIn

router = APIRouter(prefix="/auth", tags=["auth"])

def _user_to_dict(u: User) -> dict:
    return {"id": u.id, "username": u.username, "email": u.email, "fullName": u.full_name, "role": u.role}

@router.post("/register")
async def register(body: RegisterIn):
    """
    Register a new member account.

    Returns:
        dict: {"success": True, "data": user} or {"success": False, "error": {...}}

    Error codes:
        - BAD_REQUEST: Missing username or password
        - USERNAME_EXISTS: Username already taken
        - EMAIL_EXISTS: Email already registered
    """
    # Basic validation, avoid pydantic error becoming 500
    if not body.username or not body.password:
        return {"success": False, "error": {"code": "BAD_REQUEST", "message": "username/password required"}}
    # Check duplicates
    if await User.get_or_none(username=body.username):
        return {"success": False, "error": {"code": "USERNAME_EXISTS", "message": "Username already exists"}}
    if body.email and await User.get_or_none(email=body.email):
        return {"success": False, "error": {"code": "EMAIL_EXISTS", "message": "Email already registered"}}
    u = await User.create(
        username=body.username,
        email=(body.email or None),
        full_name=(body.fullName or None),
        password_hash=hash_password(body.password),
        role="user",
    )
    return {"success": True, "data": _user_to_dict(u)}

@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Authenticate user and issue an access token.

    The token is returned in the body and also set as an HttpOnly cookie;
    WebSocket clients pass it as the ?token= query parameter.

    Raises:
        HTTPException (401): If credentials are invalid
    """
    user = await User.get_or_none(username=payload.username)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail={"code": "AUTH_INVALID_CREDENTIALS", "message": "Incorrect username or password"})
    token = create_access_token(user.id, user.role, user.username)
    response.set_cookie("accessToken", token, httponly=True, secure=False, samesite="lax")
    return {"success": True, "data": {"user": _user_to_dict(user), "accessToken": token}}

@router.get("/me")
async def me(caller: CallerIdentity = Depends(get_current_identity)):
    """Return the current caller's user record."""
    user = await User.get(id=caller.user_id)
    return {"success": True, "data": _user_to_dict(user)}

@router.post("/logout")
async def logout(response: Response):
    """
    Clear the access token cookie. The JWT itself stays valid until it expires.
    """
    response.delete_cookie("accessToken")
    return {"success": True}
