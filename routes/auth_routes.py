# auth_routes.py
from datetime import timedelta
from typing import Callable, Optional

import jwt as pyjwt
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth

import config
from models.enums import UserRole
from models.user import SessionRequest, SessionResponse, User
from services.errors import PermissionDenied
from services.firebase_client import get_store, verify_firebase_token
from services.store import USERS, DocumentStore
from services.users import UserService
from utils.logging import get_logger
from utils.time import utcnow

router = APIRouter(tags=["Authentication"])
security = HTTPBearer()
logger = get_logger(__name__)


# -------------------- JWT -------------------- #
def create_jwt(uid: str, role: UserRole) -> str:
    payload = {
        "sub": uid,
        "role": UserRole(role).value,
        "exp": utcnow() + timedelta(minutes=config.JWT_EXPIRATION_MINUTES),
    }
    return pyjwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_jwt(token: str) -> Optional[dict]:
    try:
        return pyjwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except pyjwt.PyJWTError:
        return None


def get_token_verifier() -> Callable[[str], dict]:
    return verify_firebase_token


# -------------------- Dependencies for the authenticated user -------------------- #
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_store),
) -> dict:
    payload = decode_jwt(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")

    user = store.get(USERS, payload["sub"])
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user.get("role") != UserRole.ADMIN.value:
        raise PermissionDenied("Administrators only")
    return current_user


# -------------------- Session exchange -------------------- #
@router.post("/session", response_model=SessionResponse)
def create_session(
    payload: SessionRequest,
    store: DocumentStore = Depends(get_store),
    verify_token: Callable[[str], dict] = Depends(get_token_verifier),
):
    """
    Exchanges a Firebase ID token for a service session.
    The user document is created on first login; the role is decided then and never again.
    """
    try:
        claims = verify_token(payload.id_token)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.CertificateFetchError) as exc:
        logger.info("Rejected ID token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid ID token")

    user = UserService(store).ensure_user(
        uid=claims["uid"],
        email=claims.get("email"),
        display_name=payload.display_name or claims.get("name"),
        photo_url=claims.get("picture"),
    )

    return SessionResponse(
        access_token=create_jwt(user["uid"], user["role"]),
        user=User.model_validate(user),
    )
