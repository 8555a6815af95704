"""
Формы сущностей: "In" (то, что принимаем на вставку, без серверных полей)
и "Out" (то, что лежит в БД и уходит клиенту). На проводе camelCase.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date as dt_date, datetime, time
from typing import Any, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

AttendanceStatus = Literal["present", "absent", "excused"]
CounselingType = Literal["academic", "career", "personal", "mental-health"]
AppointmentStatus = Literal["scheduled", "completed", "cancelled"]

M = TypeVar("M", bound=BaseModel)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------- structured errors ----------
@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class SchemaError(ValueError):
    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))

    def to_json(self) -> list[dict[str, str]]:
        return [{"field": e.field, "message": e.message} for e in self.errors]


def _field_errors(ve: ValidationError) -> list[FieldError]:
    out = []
    for e in ve.errors():
        loc = ".".join(str(p) for p in e.get("loc", ())) or "body"
        out.append(FieldError(field=loc, message=e.get("msg", "invalid value")))
    return out


def parse(model: Type[M], payload: Any, **overrides: Any) -> M:
    """Валидирует непроверенный объект в типизированную модель.

    overrides: серверные значения (например, user_id из сессии); они всегда
    перекрывают то, что прислал клиент, под любым из имён поля.
    """
    if overrides:
        if payload is not None and not isinstance(payload, dict):
            raise SchemaError([FieldError("body", "Input should be an object")])
        data = dict(payload or {})
        for name, value in overrides.items():
            alias = to_camel(name)
            data.pop(name, None)
            data[alias] = value
        payload = data
    try:
        return model.model_validate(payload)
    except ValidationError as ve:
        raise SchemaError(_field_errors(ve)) from ve


def _strip_required(v: str) -> str:
    if v is None or not str(v).strip():
        raise ValueError("must not be blank")
    return str(v).strip()


# ---------- Users ----------
class UserIn(CamelModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=255)
    full_name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: str = Field("student", max_length=32)

    @field_validator("username", "full_name", "email", mode="before")
    @classmethod
    def _trim(cls, v: str):
        return _strip_required(v)


class LoginIn(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class PublicUser(CamelModel):
    id: int
    username: str
    full_name: str
    email: str
    role: str


class UserRow(PublicUser):
    password: str

    def public(self) -> PublicUser:
        return PublicUser(**self.model_dump(exclude={"password"}))


# ---------- Classes / schedules ----------
class ClassIn(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    professor: str = Field(min_length=1, max_length=255)
    location: str = Field(min_length=1, max_length=255)
    color: str = Field("#7C4DFF", pattern=r"^#[0-9A-Fa-f]{6}$")


class ClassOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    professor: str
    location: str
    color: str


class ScheduleIn(CamelModel):
    class_id: int
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def check_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class ScheduleOut(CamelModel):
    id: int
    class_id: int
    day_of_week: int
    start_time: time
    end_time: time


class ClassWithSchedule(ClassOut):
    schedule: ScheduleOut


# ---------- Attendance ----------
class AttendanceIn(CamelModel):
    user_id: int
    class_id: int
    schedule_id: int
    date: dt_date
    status: AttendanceStatus


class AttendanceOut(CamelModel):
    id: int
    user_id: int
    class_id: int
    schedule_id: int
    date: dt_date
    status: str
    updated_at: datetime


class AttendanceSummary(CamelModel):
    overall: float
    present: float
    absent: float
    total: int


# ---------- Resources ----------
class ResourceIn(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=32)
    url: str = Field(min_length=1, max_length=1024)
    category: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    file_size: Optional[str] = Field(None, max_length=32)


class ResourceOut(CamelModel):
    id: int
    title: str
    type: str
    url: str
    category: str
    description: Optional[str] = None
    file_size: Optional[str] = None
    added_at: datetime


# ---------- Events ----------
class EventIn(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    date: dt_date
    start_time: time
    end_time: Optional[time] = None
    location: str = Field(min_length=1, max_length=255)
    image_url: Optional[str] = None
    is_featured: bool = False


class EventOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    date: dt_date
    start_time: time
    end_time: Optional[time] = None
    location: str
    image_url: Optional[str] = None
    is_featured: bool
    created_at: datetime


class EventWithTags(EventOut):
    tags: list[str] = Field(default_factory=list)


class EventTagIn(CamelModel):
    event_id: int
    tag: str = Field(min_length=1, max_length=64)


class EventRegistrationIn(CamelModel):
    event_id: int = Field(gt=0)
    user_id: int


class EventRegistrationOut(CamelModel):
    id: int
    event_id: int
    user_id: int
    registered_at: datetime


# ---------- Counseling ----------
class CounselorIn(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    specialty: str = Field(min_length=1, max_length=255)
    bio: Optional[str] = None


class CounselorOut(CamelModel):
    id: int
    name: str
    specialty: str
    bio: Optional[str] = None


class CounselingAppointmentIn(CamelModel):
    user_id: int
    counselor_id: Optional[int] = None
    appointment_date: dt_date
    appointment_time: time
    type: CounselingType
    notes: Optional[str] = None
    status: AppointmentStatus = "scheduled"

    @field_validator("counselor_id", mode="before")
    @classmethod
    def _any_available(cls, v):
        # "" из формы = любой свободный
        if v == "":
            return None
        return v


class CounselingAppointmentOut(CamelModel):
    id: int
    user_id: int
    counselor_id: Optional[int] = None
    appointment_date: dt_date
    appointment_time: time
    type: str
    notes: Optional[str] = None
    status: str
    created_at: datetime


# ---------- Chat ----------
class ChatMessageIn(CamelModel):
    user_id: int
    content: str = Field(min_length=1, max_length=4000)
    is_user_message: bool

    @field_validator("content")
    @classmethod
    def _non_empty(cls, v: str):
        return _strip_required(v)


class ChatMessageOut(CamelModel):
    id: int
    user_id: int
    content: str
    is_user_message: bool
    created_at: datetime


class ChatExchange(CamelModel):
    user_message: ChatMessageOut
    ai_response: ChatMessageOut
