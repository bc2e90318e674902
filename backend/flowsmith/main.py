from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from .api.routes import api_router
from .db.redis import RedisClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan: startup and shutdown events.
    """
    # Startup
    print("🚀 Starting Flowsmith application...")
    print("✅ Application startup complete")

    yield

    # Shutdown
    print("🛑 Shutting down Flowsmith application...")
    if RedisClient._instance is not None:
        await RedisClient._instance.close()
    print("✅ Application shutdown complete")

app = FastAPI(
    title="Flowsmith",
    description="Flowsmith turns a natural-language description of an automation into an n8n workflow, grounding the model on node definitions found by semantic search and streaming progress as it goes.",
    lifespan=lifespan
)

# Add CORS middleware
# Use regex to allow all Vercel domains and localhost
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],  # Empty list - use regex instead
    # Allow Vercel preview deployments and localhost
    allow_origin_regex=r"^https:\/\/.*\.vercel\.app$|^http:\/\/localhost:\d+$|^http:\/\/127\.0\.0\.1:\d+$",
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.include_router(api_router)
