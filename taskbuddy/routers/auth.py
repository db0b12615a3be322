import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, HOME_PATH
from ..dependencies import get_identity_provider, get_profile_service
from ..exceptions import IdentityError
from ..identity import IdentityProvider
from ..schemas.auth import SessionUser
from ..security import (
    TOKEN_COOKIE,
    create_access_token,
    get_current_user,
    get_optional_user,
    get_token_from_request,
    token_expiry,
)
from ..services.profile import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter()

AUTH_ERROR_PATH = "/auth/auth-code-error"


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def _safe_next(next_path: str) -> str:
    # Only same-origin relative paths
    if not next_path.startswith("/") or next_path.startswith("//"):
        return HOME_PATH
    return next_path


@router.get("/login")
def login(
    request: Request,
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Redirect to the identity provider's sign-in page."""
    callback = str(request.url_for("auth_callback"))
    return RedirectResponse(provider.authorize_url(callback), status_code=302)


@router.get("/callback", name="auth_callback")
def callback(
    request: Request,
    code: str = "",
    next_path: str = Query(HOME_PATH, alias="next"),
    provider: IdentityProvider = Depends(get_identity_provider),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Exchange the authorization code, upsert the profile and start a session."""
    if not code:
        return RedirectResponse(AUTH_ERROR_PATH, status_code=302)

    try:
        identity = provider.exchange_code(code)
    except IdentityError:
        logger.exception("OAuth code exchange failed")
        return RedirectResponse(AUTH_ERROR_PATH, status_code=302)

    profiles.ensure_on_sign_in(identity.id, identity.full_name)

    token = create_access_token(data={"sub": identity.id, "email": identity.email})
    response = RedirectResponse(_safe_next(next_path), status_code=302)
    _set_session_cookie(response, token)
    return response


@router.post("/signout")
async def signout(response: Response):
    """Sign out and clear session cookie."""
    response.delete_cookie(key=TOKEN_COOKIE)
    return {"success": True}


@router.get("/session")
async def get_session(request: Request):
    """Get current session from JWT."""
    user = get_optional_user(request)
    if user is None:
        return {"session": None, "user": None}

    token = get_token_from_request(request)
    expires = token_expiry(token)
    return {
        "session": {
            "expiresAt": expires.isoformat() if expires else None,
            "userId": user.id,
        },
        "user": user.model_dump(),
    }


@router.get("/me", response_model=SessionUser)
def read_users_me(current_user: SessionUser = Depends(get_current_user)):
    """Get current user information."""
    return current_user
