import logging
import os
from pathlib import Path

from fastapi import FastAPI, Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, Session
from tenacity import retry, stop_after_attempt, wait_fixed

from counter_service import store
from counter_service.models import Base
from counter_service.schemas import CounterOut, CounterUpdateIn

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv('DATABASE_URL')
if not DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is not set")

# Configuration de la base de données
# SQLite : la connexion est partagée entre les threads du pool de FastAPI
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Création des tables avec un retry, la base peut encore être en train de démarrer
@retry(stop=stop_after_attempt(5), wait=wait_fixed(2), reraise=True)
def create_tables_with_retry(engine):
    inspector = inspect(engine)
    if not inspector.has_table("counters"):
        logger.info("Creating tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Tables created.")
    else:
        logger.info("Tables already exist.")


try:
    create_tables_with_retry(engine)
except Exception:
    logger.exception("Failed to create tables")
    raise

app = FastAPI(title="Counter")

# Les templates sont installés avec le package
TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


# Dépendance pour obtenir la session de la base de données
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.get("/api/counter", response_model=CounterOut)
def read_counter(db: Session = Depends(get_db)):
    return store.get_counter(db)


@app.post("/api/counter", response_model=CounterOut)
def change_counter(body: CounterUpdateIn, db: Session = Depends(get_db)):
    return store.update_counter(db, body.operation)


@app.get("/")
def read_root(request: Request, db: Session = Depends(get_db)):
    # En cas d'échec, la page s'affiche quand même, boutons désactivés
    try:
        counter = CounterOut.model_validate(store.get_counter(db))
    except Exception:
        return templates.TemplateResponse(request, "index.html", {
            "counter": None,
            "error": "Failed to load counter",
        }, status_code=503)
    return templates.TemplateResponse(request, "index.html", {
        "counter": counter,
        "error": None,
    })
