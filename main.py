import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGINS, LOG_LEVEL, PORT, SUPER_ADMIN_EMAIL, SUPER_ADMIN_PASSWORD
from database import engine, Base, SessionLocal, utcnow
from exceptions import ServiceError
from models import UserRole
from routers import authentication, badges, challenges, gyms, invitations, type_exercises, users
from services import sessions as session_service
from services import users as user_service

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# ========== НАСТРОЙКА ПРИЛОЖЕНИЯ ==========
app = FastAPI(
    title="FitChallenge API",
    description="API для фитнес-челленджей, бейджей и приглашений друзей",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(authentication.router)
app.include_router(users.router)
app.include_router(gyms.router)
app.include_router(type_exercises.router)
app.include_router(badges.router)
app.include_router(challenges.router)
app.include_router(invitations.router)


# ========== ОБРАБОТКА ОШИБОК ==========
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ========== СИСТЕМНЫЕ РОУТЫ ==========
def create_super_admin() -> None:
    with SessionLocal() as session:
        if user_service.find_super_admin(session):
            return
        if user_service.get_user_by_email(session, SUPER_ADMIN_EMAIL):
            logger.warning("Cannot create super admin: %s is already registered", SUPER_ADMIN_EMAIL)
            return

        user_service.create_user(
            session,
            email=SUPER_ADMIN_EMAIL,
            password=SUPER_ADMIN_PASSWORD,
            first_name="Super",
            last_name="Admin",
            role=UserRole.SUPER_ADMIN,
        )
        logger.info("Super admin created: %s", SUPER_ADMIN_EMAIL)


@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        session_service.clean_expired_sessions(session)

    create_super_admin()


@app.get("/health")
async def health():
    return {
        "status": "OK",
        "timestamp": utcnow().isoformat(),
        "service": "FitChallenge API",
    }


@app.get("/api/docs-info")
async def docs_info():
    return {
        "swagger": "/api/docs",
        "redoc": "/api/redoc",
        "openapi": "/openapi.json"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=PORT, reload=True)
