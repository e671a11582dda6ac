"""Admin schemas"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AdminStats(BaseModel):
    totalUsers: int
    totalDoctors: int
    totalPatients: int
    totalAppointments: int
    pendingAppointments: int
    confirmedAppointments: int
    conflicts: int


class ConflictLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: str
    attempted_at: datetime
    conflicting_appointments: dict[str, Any]
