# petcare/main.py
import logging

from fastapi import FastAPI
from petcare.database import Base, engine
from petcare.endpoints.symptoms import router as symptoms_router
from petcare.models import triage  # noqa: F401  registers SymptomCheck with Base

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="PetCare Symptom Triage API", version="1.0.0")


@app.on_event("startup")
def startup_event():
    # Create database tables
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("✅ Database tables ready")
    except Exception as e:
        logger.error(f"⚠️ Failed to create database tables: {e}")


# Include HTTP routers
app.include_router(symptoms_router)


@app.get("/")
def root():
    return {"message": "API is running"}
