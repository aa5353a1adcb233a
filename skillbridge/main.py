# skillbridge/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skillbridge import __version__, models  # noqa: F401 - register tables on Base.metadata
from skillbridge.api import connections, matches, reviews, rewards, skills, users
from skillbridge.api.deps import skillbridge_error_handler
from skillbridge.config import settings
from skillbridge.database import Base, engine
from skillbridge.errors import SkillBridgeError
from skillbridge.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(title="SkillBridge API", version=__version__)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(SkillBridgeError, skillbridge_error_handler)

# API routers
app.include_router(users.router)        # /users/*
app.include_router(skills.router)       # /skills/*
app.include_router(matches.router)      # /matches/*
app.include_router(connections.router)  # /connections/*
app.include_router(reviews.router)      # /reviews/*
app.include_router(rewards.router)      # /rewards/*

logger.info("SkillBridge API started (env=%s)", settings.APP_ENV)


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "message": "SkillBridge API is running",
        "version": __version__,
    }
