"""
Account service - registration and sessions.

Registration spans two systems: the identity provider and our database.
The identity is created first; the profile (and doctor record) are then
written in one transaction, and if that transaction fails the identity is
deleted again so no half-registered account is left behind.
"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import ConflictError, UpstreamError, ValidationError, is_unique_violation
from ...identity import IdentityClient
from ...models import ROLE_DOCTOR, ROLE_PATIENT, Doctor, Profile
from .schemas import RegisterRequest

logger = logging.getLogger(__name__)

SELF_REGISTER_ROLES = (ROLE_PATIENT, ROLE_DOCTOR)


class AccountService:
    def __init__(self, db: Session, identity: IdentityClient):
        self.db = db
        self.identity = identity

    async def register(self, data: RegisterRequest) -> Profile:
        role = (data.role or ROLE_PATIENT).strip().lower()
        if role not in SELF_REGISTER_ROLES:
            raise ValidationError("Role must be 'patient' or 'doctor'", "role")

        logger.info(f"📝 Registering {data.email} as {role}")
        identity_user = await self.identity.create_user(
            data.email, data.password, {"full_name": data.fullName, "role": role}
        )
        user_id = identity_user.get("id")
        if not user_id:
            logger.error(f"❌ Identity provider returned no user id for {data.email}")
            raise UpstreamError("Registration failed. Please try again.")

        profile = Profile(
            id=user_id, email=data.email, full_name=data.fullName, role=role, phone=data.phone
        )
        try:
            self.db.add(profile)
            if role == ROLE_DOCTOR and data.specialization:
                self.db.add(
                    Doctor(
                        id=user_id,
                        specialization=data.specialization.strip(),
                        experience_years=data.experienceYears or 0,
                        consultation_fee=data.consultationFee or 0.0,
                        license_number=data.licenseNumber,
                        rating=5.0,
                        is_active=True,
                    )
                )
            self.db.commit()
            self.db.refresh(profile)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Profile creation failed for {data.email}: {e}")
            await self._delete_identity(user_id)
            if is_unique_violation(e):
                raise ConflictError("This email is already registered") from e
            raise UpstreamError("Registration failed. Please try again.") from e

        logger.info(f"✅ Registered {profile.email} ({profile.role})")
        return profile

    async def _delete_identity(self, user_id: str) -> None:
        """Compensate a failed registration by removing the identity just created"""
        try:
            await self.identity.delete_user(user_id)
        except HTTPException as e:
            # The caller still gets the original failure; this needs manual cleanup
            logger.critical(f"🚨 Orphaned identity {user_id}: compensation failed: {e.detail}")

    async def login(self, email: str, password: str) -> dict:
        return await self.identity.sign_in_with_password(email.strip().lower(), password)

    async def refresh(self, refresh_token: str) -> dict:
        return await self.identity.refresh_session(refresh_token)

    async def logout(self, access_token: str) -> None:
        await self.identity.sign_out(access_token)
