"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset       # дропнуть и пересоздать таблицы + демо-данные + pulkit/password123
  python seed.py --demo-only   # только каталог (занятия, ресурсы, события, консультанты), без пользователя
  python seed.py               # мягкое наполнение недостающих данных (idempotent)
"""
from datetime import date, time, timedelta
import argparse
import logging

from sqlalchemy import select
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import Class, Schedule, Resource, Event, EventTag, Counselor, User
from schemas import (
    ClassIn, ScheduleIn, ResourceIn, EventIn, EventTagIn, CounselorIn, UserIn,
)

log = logging.getLogger("campus.seed")

DEMO_USER = {
    "username": "pulkit",
    "password": "password123",
    "full_name": "Pulkit",
    "email": "pulkit@campus.edu",
    "role": "student",
}

# (class, [(day_of_week, start, end), ...]); 0 = воскресенье
DEMO_CLASSES = [
    (dict(name="Data Structures", professor="Dr. Anita Rao", location="CS Block 204", color="#7C4DFF",
          description="Lists, trees, graphs and their complexity."),
     [(1, time(9, 0), time(10, 30)), (3, time(9, 0), time(10, 30))]),
    (dict(name="Linear Algebra", professor="Prof. Mehta", location="Math Hall 101", color="#00BFA5"),
     [(1, time(11, 0), time(12, 0)), (4, time(11, 0), time(12, 0))]),
    (dict(name="Operating Systems", professor="Dr. Karan Singh", location="CS Block 110", color="#FF6D00"),
     [(2, time(10, 0), time(11, 30)), (5, time(14, 0), time(15, 30))]),
    (dict(name="Technical Writing", professor="Ms. Leena Das", location="Humanities 12", color="#2962FF"),
     [(2, time(14, 0), time(15, 0)), (6, time(10, 0), time(11, 0))]),
]

DEMO_RESOURCES = [
    dict(title="Introduction to Algorithms (notes)", type="pdf", category="Computer Science",
         url="https://example.edu/resources/algorithms.pdf", file_size="2.4 MB",
         description="Lecture notes covering sorting, searching and graph algorithms."),
    dict(title="Data Visualization Basics", type="video", category="Data Science",
         url="https://example.edu/resources/data-viz", description="A short course on charts and dashboards."),
    dict(title="Linear Algebra Cheat Sheet", type="pdf", category="Mathematics",
         url="https://example.edu/resources/linalg.pdf", file_size="480 KB"),
    dict(title="How to Write a Lab Report", type="article", category="Writing",
         url="https://example.edu/resources/lab-report", description="Structure, tone and common mistakes."),
]

DEMO_COUNSELORS = [
    dict(name="Dr. Priya Sharma", specialty="Academic Counseling",
         bio="Helps with course planning, study habits and exam stress."),
    dict(name="Mr. Rahul Verma", specialty="Career Guidance",
         bio="Internships, resumes and interview preparation."),
    dict(name="Dr. Neha Kapoor", specialty="Mental Health",
         bio="Confidential support for anxiety, stress and wellbeing."),
]


def _demo_events(today: date):
    return [
        (dict(title="Tech Fest 2025", date=today + timedelta(days=7), start_time=time(10, 0),
              end_time=time(18, 0), location="Main Auditorium", is_featured=True,
              description="Hackathons, robotics and guest talks from industry."),
         ["Technology", "Competition"]),
        (dict(title="Career Fair", date=today + timedelta(days=14), start_time=time(11, 0),
              end_time=time(16, 0), location="Sports Complex",
              description="Meet recruiters from 40+ companies."),
         ["Career", "Networking"]),
        (dict(title="Open Mic Night", date=today + timedelta(days=3), start_time=time(19, 0),
              location="Student Center"),
         ["Music", "Culture"]),
    ]


def get_or_create(model, defaults=None, **by):
    """Идемпотентное создание по естественным полям."""
    inst = db.session.execute(select(model).filter_by(**by)).scalars().first()
    if inst:
        return inst, False
    inst = model(**{**(defaults or {}), **by})
    db.session.add(inst)
    db.session.flush()
    return inst, True


# ---- сиды каталога ----
def seed_classes():
    created = 0
    for payload, slots in DEMO_CLASSES:
        data = ClassIn.model_validate(payload).model_dump()
        cls, new = get_or_create(Class, defaults=data, name=data["name"])
        created += new
        for day, start, end in slots:
            sched = ScheduleIn(class_id=cls.id, day_of_week=day, start_time=start, end_time=end)
            _, new = get_or_create(Schedule, **sched.model_dump())
            created += new
    return created


def seed_resources():
    created = 0
    for payload in DEMO_RESOURCES:
        data = ResourceIn.model_validate(payload).model_dump()
        _, new = get_or_create(Resource, defaults=data, title=data["title"])
        created += new
    return created


def seed_events(today: date):
    created = 0
    for payload, tags in _demo_events(today):
        data = EventIn.model_validate(payload).model_dump()
        ev, new = get_or_create(Event, defaults=data, title=data["title"])
        created += new
        for tag in tags:
            t = EventTagIn(event_id=ev.id, tag=tag)
            _, new = get_or_create(EventTag, **t.model_dump())
            created += new
    return created


def seed_counselors():
    created = 0
    for payload in DEMO_COUNSELORS:
        data = CounselorIn.model_validate(payload).model_dump()
        _, new = get_or_create(Counselor, defaults=data, name=data["name"])
        created += new
    return created


def seed_catalog(today: date | None = None) -> int:
    created = seed_classes() + seed_resources() + seed_events(today or date.today()) + seed_counselors()
    db.session.commit()
    return created


# ---- демо-студент ----
def ensure_demo_user() -> bool:
    data = UserIn.model_validate(DEMO_USER)
    exists = db.session.execute(
        select(User).where((User.username == data.username) | (User.email == data.email))
    ).scalars().first()
    if exists:
        return False
    db.session.add(User(**data.model_copy(update={"password": generate_password_hash(data.password)}).model_dump()))
    db.session.commit()
    return True


# ---- main ----
def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + full demo seed")
    parser.add_argument("--demo-only", action="store_true", help="catalog only, no demo user")
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        if args.reset:
            db.drop_all()
        db.create_all()
        created = seed_catalog()
        user_created = False if args.demo_only else ensure_demo_user()
        log.info("seed complete: %d rows", created, extra={"event": "seed"})
        print(f"[seed] {'reset+' if args.reset else ''}seed complete: {created} rows, "
              f"demo user {'created' if user_created else 'skipped'}")


if __name__ == "__main__":
    main()
