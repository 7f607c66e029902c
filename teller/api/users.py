"""
Registration and login endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import BankingSystem, create_access_token, get_banking_system
from .schemas import CredentialsRequest, TokenResponse
from ..config import TellerConfig, get_config


router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: CredentialsRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Register a new user"""
    receipt = system.credentials.register(request.username, request.password)
    response = {
        "username": receipt.username,
        "persisted": receipt.persisted,
        "message": "Registration successful! You can now login."
    }
    if receipt.warning:
        response["warning"] = receipt.warning
    return response


@router.post("/login", response_model=TokenResponse)
async def login(
    request: CredentialsRequest,
    system: BankingSystem = Depends(get_banking_system),
    config: TellerConfig = Depends(get_config)
):
    """Authenticate and return a bearer token"""
    username = system.credentials.authenticate(request.username, request.password)
    return TokenResponse(
        access_token=create_access_token(username, config),
        username=username,
        message=f"Login successful! Welcome {username}"
    )
