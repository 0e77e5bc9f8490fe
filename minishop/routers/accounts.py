from fastapi import APIRouter, Depends

from minishop.dependencies import get_token_issuer, get_user_repository
from minishop.repositories import UserRepository
from minishop.schemas import AccountResponse, LoginRequest, RegisterRequest, TokenResponse
from minishop.security import TokenIssuer
from minishop.services import account_service

router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])


@router.post("/register", status_code=201, response_model=AccountResponse)
async def register(data: RegisterRequest, users: UserRepository = Depends(get_user_repository)):
    return await account_service.register(users, data)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    users: UserRepository = Depends(get_user_repository),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    return await account_service.login(users, issuer, data)
