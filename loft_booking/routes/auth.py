from fastapi import APIRouter, Depends, HTTPException

from loft_booking.clients.auth import AuthenticatedSession, AuthProvider
from loft_booking.dependencies.services import (
    get_auth_provider,
    get_connection,
    get_session_registry,
)
from loft_booking.schemas.booking import (
    AuthResponse,
    ImpersonateRequest,
    LoginRequest,
    RegisterRequest,
)
from loft_booking.services.exceptions import AuthError
from loft_booking.services.registry import Connection, SessionRegistry

router = APIRouter()


def _connected(auth: AuthenticatedSession, registry: SessionRegistry) -> AuthResponse:
    connection = registry.connect(auth)
    return AuthResponse(
        token=connection.token, host=connection.host, username=connection.username
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    req: LoginRequest,
    provider: AuthProvider = Depends(get_auth_provider),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        auth = await provider.authenticate(req.username, req.password)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return _connected(auth, registry)


@router.post("/impersonate", response_model=AuthResponse)
async def impersonate(
    req: ImpersonateRequest,
    provider: AuthProvider = Depends(get_auth_provider),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        auth = await provider.impersonate(req.identity, field_name=req.field_name)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return _connected(auth, registry)


@router.post("/register", response_model=AuthResponse)
async def register(
    req: RegisterRequest,
    provider: AuthProvider = Depends(get_auth_provider),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        auth = await provider.register(
            full_name=req.full_name,
            email=req.email,
            password=req.password,
            username=req.username,
            phone=req.phone,
        )
    except AuthError as exc:
        status_code = 400 if exc.status_code == 400 else 401
        raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    return _connected(auth, registry)


@router.post("/logout")
async def logout(
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    await registry.disconnect(connection.token)
    return {"ok": True}
