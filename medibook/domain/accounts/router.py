"""Account router - registration, sessions and the caller's profile"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...auth import get_access_token, get_current_user
from ...database import get_db
from ...identity import IdentityClient, get_identity_client
from ...models import Profile
from ..doctors.schemas import DoctorCreate
from ..doctors.service import DoctorService
from .schemas import (
    LoginRequest,
    ProfileResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
)
from .service import AccountService

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_account_service(
    db: Session = Depends(get_db),
    identity: IdentityClient = Depends(get_identity_client),
) -> AccountService:
    """Dependency injection for AccountService"""
    return AccountService(db, identity)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, service: AccountService = Depends(get_account_service)):
    """Create the identity and its profile; the identity is rolled back if the profile fails"""
    profile = await service.register(data)
    return RegisterResponse(
        message="User registered successfully. Please check your email to confirm.",
        user={"id": profile.id, "email": profile.email, "role": profile.role},
    )


@router.post("/register-doctor", status_code=status.HTTP_201_CREATED)
async def register_doctor(
    data: DoctorCreate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create the doctor record (specialization, fee) for an existing doctor identity"""
    service = DoctorService(db)
    doctor = service.register_doctor(data, current_user)
    return {"success": True, "data": service.get_doctor(doctor.id)}


@router.post("/login", response_model=SessionResponse)
async def login(data: LoginRequest, service: AccountService = Depends(get_account_service)):
    return await service.login(data.email, data.password)


@router.post("/refresh", response_model=SessionResponse)
async def refresh(data: RefreshRequest, service: AccountService = Depends(get_account_service)):
    return await service.refresh(data.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: str = Depends(get_access_token),
    service: AccountService = Depends(get_account_service),
):
    await service.logout(token)


@router.get("/me", response_model=ProfileResponse)
async def me(current_user: Profile = Depends(get_current_user)):
    """The caller's profile, including the server-side role"""
    return current_user
