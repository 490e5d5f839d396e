from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.database import get_session
from app.dependencies import get_auth_service
from app.schemas.user import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserRead,
)
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Register a new account.

    - Default role is "user".
    - role="admin" additionally requires the server's admin registration key.
    """
    user = service.register(session, payload)
    return RegisterResponse(
        message="User registered successfully",
        data=UserRead.model_validate(user, from_attributes=True),
    )


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Log in with email + password and receive a bearer token (valid 7 days).
    """
    user, token = service.login(session, payload)
    return LoginResponse(
        token=token,
        user=UserRead.model_validate(user, from_attributes=True),
    )
