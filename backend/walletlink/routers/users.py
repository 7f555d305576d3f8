"""User endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..addresses import normalize_address
from ..domain_errors import ValidationError
from ..schemas import UserCreate, UserCreatedResponse, UserResponse
from ..store import RecordStore, get_record_store
from ..use_cases.user_records import create_user_use_case, get_user_use_case

router = APIRouter(prefix="/user", tags=["users"])


@router.get("", response_model=UserResponse)
def get_user(
    address: Optional[str] = Query(default=None),
    store: RecordStore = Depends(get_record_store),
):
    """Get user profile by wallet address."""
    if not address:
        raise ValidationError(message="Address parameter is required")
    user = get_user_use_case(store=store, address=normalize_address(address))
    return UserResponse.model_validate(user)


@router.post("", response_model=UserCreatedResponse, status_code=201)
def create_user(
    payload: UserCreate,
    store: RecordStore = Depends(get_record_store),
):
    """Create a profile for a newly connected wallet."""
    user = create_user_use_case(store=store, address=normalize_address(payload.address))
    return UserCreatedResponse(
        message="User created successfully",
        user=UserResponse.model_validate(user),
    )
