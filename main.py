import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlmodel import Session

from core.config import settings
from core.database import create_db_and_tables, engine
from routes.activity import router as activity_router
from routes.admin import router as admin_router
from routes.boards import router as boards_router
from routes.companies import router as companies_router
from routes.limits import router as limits_router
from routes.objectives import router as objectives_router
from routes.projects import router as project_router
from routes.subscriptions import router as subscriptions_router
from routes.tasks import router as tasks_router
from routes.teams import router as teams_router
from routes.users import router as users_router
from services.plans import PlanCatalog

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# =========================================
# 🏁 Lifespan (DB initialization + plan seed)
# =========================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    with Session(engine) as session:
        PlanCatalog(session).seed_default_plans()
    logger.info("✅ Database ready, plan catalog installed.")
    yield
    logger.info("✅ Application shutting down.")


# =========================================
#  ✅ FastAPI App
# =========================================
app = FastAPI(lifespan=lifespan, title="Boardflow Backend")

allowed_origins = [
    settings.FRONTEND_URL,
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================================
# 📦 Routers
# =========================================
app.include_router(project_router, prefix="/projects", tags=["Projects"])
app.include_router(boards_router, prefix="/boards", tags=["Boards"])
app.include_router(teams_router, prefix="/teams", tags=["Teams"])
app.include_router(objectives_router, prefix="/objectives", tags=["Objectives"])
app.include_router(tasks_router, prefix="/tasks", tags=["Tasks"])
app.include_router(users_router, prefix="/users", tags=["Users"])
app.include_router(companies_router, prefix="/companies", tags=["Companies"])
app.include_router(limits_router, prefix="/limits", tags=["Limits"])
app.include_router(subscriptions_router, prefix="/subscriptions", tags=["Subscriptions"])
app.include_router(admin_router, prefix="/admin", tags=["Admin"])
app.include_router(activity_router, prefix="/activity", tags=["Activity"])


# =========================================
# 🩺 Health Check
# =========================================
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "Backend is running"}


@app.get("/")
def read_root():
    return {"message": "Welcome to Boardflow Backend!"}
