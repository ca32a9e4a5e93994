from __future__ import annotations

from datetime import date
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .models import MarathonStatus, ParticipationStatus, Role


class CamelModel(BaseModel):
    # the frontend speaks camelCase
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def dump(model_cls: type[CamelModel], obj: Any) -> dict:
    return model_cls.model_validate(obj).model_dump(by_alias=True, mode="json")


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    body: dict = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


# ---------------------------
# Requests
# ---------------------------

class SignUp(CamelModel):
    full_name: str = ""
    email: str = ""
    password: str = ""
    nationality: Optional[str] = None
    sex: Optional[str] = None
    birth_year: Optional[int] = None
    passport_no: Optional[str] = None
    mobile: Optional[str] = None
    current_address: Optional[str] = None

class Login(CamelModel):
    email: str = ""
    password: str = ""

class ProfileUpdate(CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    nationality: Optional[str] = None
    sex: Optional[str] = None
    birth_year: Optional[int] = None
    passport_no: Optional[str] = None
    mobile: Optional[str] = None
    current_address: Optional[str] = None
    best_record: Optional[str] = None

class MarathonCreate(CamelModel):
    race_name: str = ""
    race_date: str = ""  # YYYY-MM-DD

class MarathonUpdate(CamelModel):
    race_name: Optional[str] = None
    race_date: Optional[str] = None
    status: Optional[str] = None

class RegistrationCreate(CamelModel):
    marathon_id: int
    hotel: Optional[str] = None

class AcceptIn(CamelModel):
    entry_number: Optional[Union[int, str]] = None

class ResultIn(CamelModel):
    time_record: Optional[str] = None
    standings: Optional[Union[int, str]] = None


# ---------------------------
# Responses
# ---------------------------

class UserOut(CamelModel):
    id: int
    full_name: str
    email: str
    role: Role
    nationality: Optional[str] = None
    sex: Optional[str] = None
    birth_year: Optional[int] = None
    passport_no: Optional[str] = None
    mobile: Optional[str] = None
    current_address: Optional[str] = None
    best_record: Optional[str] = None

class MarathonOut(CamelModel):
    id: int
    race_name: str
    race_date: date
    status: MarathonStatus

class ParticipationOut(CamelModel):
    marathon_id: int
    user_id: int
    entry_number: int
    entry_number_display: str
    status: ParticipationStatus
    hotel: Optional[str] = None
    time_record: Optional[str] = None
    standings: Optional[int] = None

class ParticipationRowOut(ParticipationOut):
    id: str
    race_name: Optional[str] = None
    race_date: Optional[date] = None
    marathon_status: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
