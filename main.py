from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel
import models.shift  # Ensure these models are known by SQLModel for table creation
import models.employee
from db.session import engine
from contextlib import asynccontextmanager
from api.shift_routes import router as shift_router
from api.employee_routes import router as employee_router
from api.realtime_routes import router as realtime_router
from core.realtime import connection_manager
import logging
import os
from dotenv import load_dotenv

# This file is the control center of the whole application

# Load environment variables from .env file, if it exists
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

# Default values can be provided if the env var is not set
DEV_DOMAIN = os.getenv("DEV_DOMAIN", "http://localhost:5173")
PRODUCTION_DOMAIN = os.getenv("PRODUCTION_DOMAIN")

# Construct the list of allowed origins, always including both dev and production
allowed_origins_list = [
    DEV_DOMAIN,
    PRODUCTION_DOMAIN,
    "http://localhost:3000",  # Additional fallback for React dev
    "http://127.0.0.1:5173",  # Additional fallback for Vite dev
]

# Remove any None values and duplicates
allowed_origins_list = list(set([origin for origin in allowed_origins_list if origin]))

logger.info("CORS: Allowing origins: %s", allowed_origins_list)


# When We Start, Create the DB Tables if they don't exist
@asynccontextmanager
async def lifespan(app: FastAPI):

    SQLModel.metadata.create_all(engine)
    logger.info(
        "Realtime publishing: %s",
        "client relay" if connection_manager.client_relay else "server after commit",
    )

    yield


# Starts Fast API Up; Init
app = FastAPI(title="Shift Scheduler", lifespan=lifespan)

# Allow requests from your dev server & production
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list, # Use the constructed list
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(shift_router, prefix="/shifts", tags=["Shifts", "Swap Requests"])
app.include_router(employee_router, prefix="/employees", tags=["Employees", "Availability"])
app.include_router(realtime_router, tags=["Realtime"])


@app.get("/health", tags=["Health"])
async def health():
    return {
        "status": "ok",
        "realtime_connections": connection_manager.connection_count,
    }
