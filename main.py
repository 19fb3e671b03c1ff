# UNI-TEL - Academic tracker
# Copyright (C) 2026 (linuxdev)
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


from contextlib import asynccontextmanager
import os

from fastapi import FastAPI, Request, Depends
from fastapi.staticfiles import StaticFiles
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
import bleach

import grade_calc
from cache_layer import AcademicStore, get_store
from database import init_db
from errors import AcademicError
from logger import get_logger
from router_auth import router as auth_router, get_current_user_id
from router_views import router as views_router

logger = get_logger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("UNI-TEL started")
    yield


app = FastAPI(title="UNI-TEL", lifespan=lifespan)

# Mount static files
app.mount("/static", StaticFiles(directory=os.path.join(BASE_DIR, "static")), name="static")

templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))

app.include_router(auth_router, prefix="")
app.include_router(views_router)


def is_api(request: Request) -> bool:
    return request.url.path.startswith("/api")


def alert_page(request: Request, message: str, status_code: int):
    return templates.TemplateResponse(
        request, "alert.html", {"error": bleach.clean(message)}, status_code=status_code
    )


@app.get("/", response_class=HTMLResponse)
async def home(request: Request, store: AcademicStore = Depends(get_store)):
    user_id = get_current_user_id(request)
    if not user_id:
        return alert_page(request, "Please sign in to see your dashboard", 401)

    summary = await store.academic_summary(user_id)
    semesters = await store.semesters.list(user_id)
    attendance = await store.attendance.list(user_id)

    attendance_rows = []
    for record in attendance:
        status = grade_calc.get_attendance_status(record.percentage)
        attendance_rows.append({
            "subject_name": record.subject_name,
            "attended_classes": record.attended_classes,
            "total_classes": record.total_classes,
            "percentage": round(record.percentage, 2),
            "status": status.status,
            "color_class": status.color_class,
        })

    return templates.TemplateResponse(request, "dashboard.html", {
        "summary": summary,
        "cgpa": grade_calc.round_gpa(summary.cgpa),
        "average_sgpa": grade_calc.round_gpa(summary.average_sgpa),
        "semesters": [
            {"number": s.number, "sgpa": grade_calc.round_gpa(s.sgpa), "total_credits": s.total_credits}
            for s in semesters
        ],
        "attendance": attendance_rows,
    })


@app.middleware("http")
async def error_handler(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as exc:
        logger.exception("Unhandled error on %s", request.url.path)
        if is_api(request):
            return JSONResponse({"error": str(exc), "details": []}, status_code=500)
        return alert_page(request, str(exc), 500)


@app.exception_handler(AcademicError)
async def academic_error_handler(request: Request, exc: AcademicError):
    if is_api(request):
        return JSONResponse({"error": exc.message, "details": exc.details}, status_code=exc.status_code)
    return alert_page(request, exc.message, exc.status_code)


# Handle HTTP exceptions (like 404)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if is_api(request):
        return JSONResponse({"error": str(exc.detail), "details": []}, status_code=exc.status_code)
    return alert_page(request, f"HTTP Error {exc.status_code}: {exc.detail}", exc.status_code)


# Handle request validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    if is_api(request):
        return JSONResponse({"error": "Validation error", "details": details}, status_code=422)
    return alert_page(request, "Validation Error: " + "; ".join(details), 400)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8002)
