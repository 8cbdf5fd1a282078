from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reprice.api.dependencies.auth import get_current_user
from reprice.api.dependencies.database import get_db
from reprice.models.dto.user import AuthResponse, LoginRequest, SignupRequest, UserResponse
from reprice.models.orm.user import User
from reprice.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await auth_service.signup(db, body)
    return AuthResponse(user=UserResponse.model_validate(result.user), token=result.token)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await auth_service.login(db, body)
    return AuthResponse(user=UserResponse.model_validate(result.user), token=result.token)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.post("/logout")
async def logout(user: User = Depends(get_current_user)):
    # Tokens are stateless; the client drops its copy.
    return {"success": True}
