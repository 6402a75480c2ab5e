# app/api/v1/deps.py
from fastapi import Header, Request
from app.core.identity import CallerIdentity, verify_credential
from app.services.messaging import MessagingGateway

def extract_token(authorization: str | None, cookies) -> str | None:
    """
    Pull the bearer credential from the Authorization header, falling back
    to the HttpOnly "accessToken" cookie.
    """
    token = None
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2) Secondly HttpOnly Cookie: accessToken
    if not token:
        token = cookies.get("accessToken")
    return token

async def get_current_identity(
    request: Request,
    authorization: str | None = Header(default=None),
) -> CallerIdentity:
    """
    FastAPI dependency resolving the caller's identity.

    Returns:
        CallerIdentity built from the freshly loaded user row

    Raises:
        AuthError (401): AUTH_REQUIRED / AUTH_INVALID_TOKEN / AUTH_USER_NOT_FOUND

    Usage:
        @router.get("/protected")
        async def protected_route(caller: CallerIdentity = Depends(get_current_identity)):
            return {"user_id": caller.user_id}
    """
    return await verify_credential(extract_token(authorization, request.cookies))

def get_gateway(request: Request) -> MessagingGateway:
    """The process-wide MessagingGateway constructed in app.main."""
    return request.app.state.gateway
