from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import env
from api.packages.router import router as packages_router
from database import get_database_manager
from models.user import User
from repositories.user import UserRepository

app = FastAPI(
    title="Package Registry API",
    description="Trustworthy npm package registry",
    version="1.0.0",
)

# Include routers
app.include_router(packages_router)

# Initialize database manager
db_manager = get_database_manager()

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400), as the registry API documents."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.on_event("startup")
async def startup_event():
    """Connect to MongoDB and seed the default uploader."""
    try:
        db_manager.connect()
        db_manager.client.admin.command("ping")
        print("MongoDB connection successful")

        user = await UserRepository(db_manager.database).ensure_user(
            User(id=env.DEFAULT_USER_ID, name=env.DEFAULT_USER_NAME, is_admin=True)
        )
        print(f"Default user ready: {user.name} ({user.id})")

    except Exception as e:
        print(f"Startup failed: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Close database connection on shutdown."""
    db_manager.disconnect()
    print("MongoDB connection closed")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to the Package Registry API",
        "version": "1.0.0",
        "description": "Upload, rate and query npm packages",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    try:
        db_manager.client.admin.command("ping")
        db_status = "connected"
    except Exception:
        db_status = "disconnected"

    return {"status": "healthy", "database": db_status, "timestamp": datetime.utcnow()}
