"""Doctor router - public directory and availability endpoints"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import AvailabilityResponse, DoctorResponse
from .service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])


def get_doctor_service(db: Session = Depends(get_db)) -> DoctorService:
    """Dependency injection for DoctorService"""
    return DoctorService(db)


@router.get("", response_model=list[DoctorResponse])
async def list_doctors(
    specialization: Optional[str] = Query(None),
    service: DoctorService = Depends(get_doctor_service),
):
    """Active doctors, optionally filtered by specialization"""
    return service.list_doctors(specialization)


@router.get("/specializations", response_model=list[str])
async def list_specializations(service: DoctorService = Depends(get_doctor_service)):
    return service.list_specializations()


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(doctor_id: str, service: DoctorService = Depends(get_doctor_service)):
    return service.get_doctor(doctor_id)


@router.get("/{doctor_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    doctor_id: str,
    on_date: date = Query(..., alias="date"),
    service: DoctorService = Depends(get_doctor_service),
):
    """Free slots for a doctor on a given date"""
    slots = service.available_slots(doctor_id, on_date)
    return AvailabilityResponse(
        doctor_id=doctor_id,
        date=on_date,
        slots=[{"time": t, "available": True} for t in slots],
    )
