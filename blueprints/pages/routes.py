# blueprints/pages/routes.py
from __future__ import annotations

from flask import Blueprint, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from blueprints.core.clock import campus_now, day_index

bp = Blueprint("pages", __name__, template_folder="../../templates")

# порядок кнопок в расписании: Пн..Вс, значения как в schedules.day_of_week
TIMETABLE_DAYS = [
    ("Mon", 1), ("Tue", 2), ("Wed", 3), ("Thu", 4), ("Fri", 5), ("Sat", 6), ("Sun", 0),
]


def _page(template: str, **ctx):
    now = campus_now()
    return render_template(
        template,
        now=now,
        today=now.date(),
        today_index=day_index(now.date()),
        **ctx,
    )


@bp.get("/")
@login_required
def dashboard():
    return _page("pages/dashboard.html")


@bp.get("/timetable")
@login_required
def timetable():
    today = day_index(campus_now().date())
    # в воскресенье по умолчанию показываем понедельник
    selected = request.args.get("day", type=int)
    if selected is None or not 0 <= selected <= 6:
        selected = today if today != 0 else 1
    return _page("pages/timetable.html", days=TIMETABLE_DAYS, selected_day=selected)


@bp.get("/resources")
@login_required
def resources():
    return _page("pages/resources.html")


@bp.get("/events")
@login_required
def events():
    return _page("pages/events.html")


@bp.get("/counseling")
@login_required
def counseling():
    return _page("pages/counseling.html")


@bp.get("/chat")
@login_required
def chat():
    return _page("pages/chat.html")


@bp.get("/auth")
def auth():
    if current_user.is_authenticated:
        return redirect(url_for("pages.dashboard"))
    nxt = request.args.get("next") or ""
    # только локальные пути
    if not nxt.startswith("/") or nxt.startswith("//"):
        nxt = url_for("pages.dashboard")
    return _page("auth/login.html", next_url=nxt)
