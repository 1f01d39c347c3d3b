from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academy.api.v1.attendance.router import router as attendance_router
from academy.api.v1.billing.router import router as billing_router
from academy.api.v1.classes.router import router as classes_router
from academy.api.v1.classes.router import sessions_router
from academy.api.v1.scheduling.router import router as scheduling_router
from academy.api.v1.subscriptions.router import router as subscriptions_router
from academy.api.v1.subscriptions.router import student_router as student_subscriptions_router
from academy.core.config import settings
from academy.core.logging import setup_logging


def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title="Academy Scheduling & Billing")

    # CORS: allow the portal frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(scheduling_router)
    app.include_router(classes_router)
    app.include_router(sessions_router)
    app.include_router(attendance_router)
    app.include_router(subscriptions_router)
    app.include_router(student_subscriptions_router)
    app.include_router(billing_router)

    return app


app = create_app()
