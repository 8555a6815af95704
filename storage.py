# storage.py
"""
Единственная точка доступа к БД. Все остальные слои читают/пишут только через
``storage``; наружу отдаются типизированные схемы из ``schemas``, а не ORM-объекты.

Ошибки SQLAlchemy откатывают сессию и поднимаются как ``StorageError``
(нарушение ограничений: ``ConstraintViolation``). Повторов нет.
"""
from __future__ import annotations
import logging
from datetime import date
from functools import wraps
from typing import Optional

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import (
    User, Class, Schedule, Attendance, Resource, Event, EventTag,
    EventRegistration, Counselor, CounselingAppointment, ChatMessage, utcnow,
)
from schemas import (
    UserIn, UserRow,
    ClassOut, ScheduleOut, ClassWithSchedule,
    AttendanceIn, AttendanceOut, AttendanceSummary,
    ResourceOut,
    EventOut, EventWithTags, EventRegistrationIn, EventRegistrationOut,
    CounselorOut, CounselingAppointmentIn, CounselingAppointmentOut,
    ChatMessageIn, ChatMessageOut,
)

log = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Сбой хранилища (соединение, SQL и т.п.)."""


class ConstraintViolation(StorageError):
    """Нарушено ограничение БД (уникальность, внешний ключ)."""


def _guarded(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except IntegrityError as ex:
            db.session.rollback()
            raise ConstraintViolation(str(getattr(ex, "orig", None) or ex)) from ex
        except SQLAlchemyError as ex:
            db.session.rollback()
            log.exception("storage failure in %s", fn.__name__)
            raise StorageError(f"{fn.__name__} failed") from ex
    return wrapper


def _dialect_insert(model):
    """INSERT с поддержкой ON CONFLICT, если диалект это умеет."""
    name = db.engine.dialect.name
    if name == "postgresql":
        return postgresql.insert(model)
    if name == "sqlite":
        return sqlite.insert(model)
    return None


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _percent(part: int, total: int) -> float:
    return (part / total) * 100 if total > 0 else 0


class Storage:
    # ---------- Users ----------
    @_guarded
    def get_user(self, user_id: int) -> Optional[UserRow]:
        u = db.session.get(User, user_id)
        return UserRow.model_validate(u) if u else None

    @_guarded
    def get_user_by_username(self, username: str) -> Optional[UserRow]:
        u = db.session.execute(select(User).where(User.username == username)).scalar_one_or_none()
        return UserRow.model_validate(u) if u else None

    @_guarded
    def get_user_by_email(self, email: str) -> Optional[UserRow]:
        u = db.session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        return UserRow.model_validate(u) if u else None

    @_guarded
    def create_user(self, data: UserIn) -> UserRow:
        """data.password должен быть уже захеширован."""
        u = User(**data.model_dump())
        db.session.add(u)
        db.session.commit()
        return UserRow.model_validate(u)

    # ---------- Classes ----------
    @_guarded
    def get_all_classes(self) -> list[ClassOut]:
        rows = db.session.execute(select(Class).order_by(Class.id.asc())).scalars().all()
        return [ClassOut.model_validate(c) for c in rows]

    @_guarded
    def get_class_by_id(self, class_id: int) -> Optional[ClassOut]:
        c = db.session.get(Class, class_id)
        return ClassOut.model_validate(c) if c else None

    @_guarded
    def get_classes_by_day(self, day_of_week: int) -> list[ClassWithSchedule]:
        """Занятия дня: classes ⋈ schedules по class_id, по возрастанию start_time."""
        stmt = (
            select(Class, Schedule)
            .join(Schedule, Schedule.class_id == Class.id)
            .where(Schedule.day_of_week == day_of_week)
            .order_by(Schedule.start_time.asc(), Schedule.id.asc())
        )
        out = []
        for c, s in db.session.execute(stmt).all():
            out.append(ClassWithSchedule(
                **ClassOut.model_validate(c).model_dump(),
                schedule=ScheduleOut.model_validate(s),
            ))
        return out

    # ---------- Schedules ----------
    @_guarded
    def get_all_schedules(self) -> list[ScheduleOut]:
        rows = db.session.execute(select(Schedule).order_by(Schedule.id.asc())).scalars().all()
        return [ScheduleOut.model_validate(s) for s in rows]

    @_guarded
    def get_schedule_by_id(self, schedule_id: int) -> Optional[ScheduleOut]:
        s = db.session.get(Schedule, schedule_id)
        return ScheduleOut.model_validate(s) if s else None

    # ---------- Attendance ----------
    @_guarded
    def get_attendance_summary(self, user_id: int) -> AttendanceSummary:
        stmt = select(
            func.count(Attendance.id),
            func.sum(case((Attendance.status == "present", 1), else_=0)),
            func.sum(case((Attendance.status == "absent", 1), else_=0)),
        ).where(Attendance.user_id == user_id)
        total, present, absent = db.session.execute(stmt).one()
        total, present, absent = int(total or 0), int(present or 0), int(absent or 0)
        # overall считается так же, как present (см. DESIGN.md)
        return AttendanceSummary(
            overall=_percent(present, total),
            present=_percent(present, total),
            absent=_percent(absent, total),
            total=total,
        )

    @_guarded
    def get_attendance_by_date(self, user_id: int, day: date) -> list[AttendanceOut]:
        stmt = (
            select(Attendance)
            .where(Attendance.user_id == user_id, Attendance.date == day)
            .order_by(Attendance.id.asc())
        )
        return [AttendanceOut.model_validate(a) for a in db.session.execute(stmt).scalars().all()]

    @_guarded
    def create_attendance(self, data: AttendanceIn) -> AttendanceOut:
        """Upsert по (user_id, class_id, schedule_id, date) одной атомарной записью."""
        now = utcnow()
        key = dict(user_id=data.user_id, class_id=data.class_id, schedule_id=data.schedule_id, date=data.date)
        ins = _dialect_insert(Attendance)
        if ins is not None:
            stmt = ins.values(**key, status=data.status, updated_at=now).on_conflict_do_update(
                index_elements=list(key),
                set_={"status": data.status, "updated_at": now},
            )
            db.session.execute(stmt)
        else:
            try:
                with db.session.begin_nested():
                    db.session.add(Attendance(**key, status=data.status, updated_at=now))
            except IntegrityError:
                db.session.execute(
                    update(Attendance).filter_by(**key).values(status=data.status, updated_at=now)
                )
        db.session.commit()
        row = db.session.execute(select(Attendance).filter_by(**key)).scalar_one()
        return AttendanceOut.model_validate(row)

    # ---------- Resources ----------
    @_guarded
    def get_resources(self, category: Optional[str] = None, search: Optional[str] = None) -> list[ResourceOut]:
        stmt = select(Resource)
        if category:
            stmt = stmt.where(Resource.category == category)
        if search:
            pattern = _like_pattern(search)
            stmt = stmt.where(or_(
                Resource.title.like(pattern, escape="\\"),
                Resource.description.like(pattern, escape="\\"),
            ))
        stmt = stmt.order_by(Resource.added_at.desc(), Resource.id.desc())
        return [ResourceOut.model_validate(r) for r in db.session.execute(stmt).scalars().all()]

    @_guarded
    def get_resource_categories(self) -> list[str]:
        stmt = select(Resource.category).distinct().order_by(Resource.category.asc())
        return list(db.session.execute(stmt).scalars().all())

    # ---------- Events ----------
    def _tags_for(self, event_ids: list[int]) -> dict[int, list[str]]:
        tags: dict[int, list[str]] = {eid: [] for eid in event_ids}
        if not event_ids:
            return tags
        stmt = select(EventTag).where(EventTag.event_id.in_(event_ids)).order_by(EventTag.id.asc())
        for t in db.session.execute(stmt).scalars().all():
            tags[t.event_id].append(t.tag)
        return tags

    def _with_tags(self, event: Event, tags: list[str]) -> EventWithTags:
        return EventWithTags(**EventOut.model_validate(event).model_dump(), tags=tags)

    @_guarded
    def get_all_events(self) -> list[EventWithTags]:
        stmt = select(Event).order_by(Event.date.asc(), Event.start_time.asc(), Event.id.asc())
        events = db.session.execute(stmt).scalars().all()
        tags = self._tags_for([e.id for e in events])
        return [self._with_tags(e, tags[e.id]) for e in events]

    @_guarded
    def get_featured_event(self) -> Optional[EventWithTags]:
        stmt = select(Event).where(Event.is_featured.is_(True)).order_by(Event.id.asc()).limit(1)
        ev = db.session.execute(stmt).scalar_one_or_none()
        if ev is None:
            return None
        return self._with_tags(ev, self._tags_for([ev.id])[ev.id])

    @_guarded
    def register_for_event(self, data: EventRegistrationIn) -> EventRegistrationOut:
        """Идемпотентно: повторная регистрация возвращает существующую строку без изменений."""
        key = dict(event_id=data.event_id, user_id=data.user_id)
        ins = _dialect_insert(EventRegistration)
        if ins is not None:
            stmt = ins.values(**key, registered_at=utcnow()).on_conflict_do_nothing(index_elements=list(key))
            db.session.execute(stmt)
        else:
            try:
                with db.session.begin_nested():
                    db.session.add(EventRegistration(**key, registered_at=utcnow()))
            except IntegrityError:
                pass  # уже зарегистрирован
        db.session.commit()
        row = db.session.execute(select(EventRegistration).filter_by(**key)).scalar_one()
        return EventRegistrationOut.model_validate(row)

    # ---------- Counseling ----------
    @_guarded
    def get_all_counselors(self) -> list[CounselorOut]:
        rows = db.session.execute(select(Counselor).order_by(Counselor.id.asc())).scalars().all()
        return [CounselorOut.model_validate(c) for c in rows]

    @_guarded
    def create_counseling_appointment(self, data: CounselingAppointmentIn) -> CounselingAppointmentOut:
        # пересечения по слоту не проверяются (см. DESIGN.md)
        appt = CounselingAppointment(**data.model_dump())
        db.session.add(appt)
        db.session.commit()
        return CounselingAppointmentOut.model_validate(appt)

    # ---------- Chat ----------
    @_guarded
    def get_chat_messages_by_user(self, user_id: int, limit: Optional[int] = None) -> list[ChatMessageOut]:
        if limit is None:
            stmt = (
                select(ChatMessage)
                .where(ChatMessage.user_id == user_id)
                .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            )
            return [ChatMessageOut.model_validate(m) for m in db.session.execute(stmt).scalars().all()]
        # последние limit сообщений, но в хронологическом порядке
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(limit)
        )
        rows = db.session.execute(stmt).scalars().all()
        return [ChatMessageOut.model_validate(m) for m in reversed(rows)]

    @_guarded
    def create_chat_message(self, data: ChatMessageIn) -> ChatMessageOut:
        msg = ChatMessage(**data.model_dump())
        db.session.add(msg)
        db.session.commit()
        return ChatMessageOut.model_validate(msg)


storage = Storage()
