from functools import lru_cache

import firebase_admin
from firebase_admin import auth, credentials, firestore

import config
from services.firestore_store import FirestoreStore
from services.store import DocumentStore, InMemoryStore
from utils.logging import get_logger

logger = get_logger(__name__)


# Initialise the default Firebase app once per process
def get_firebase_app():
    if not firebase_admin._apps:
        try:
            cred = credentials.Certificate(config.FIREBASE_CREDENTIALS)
            firebase_admin.initialize_app(cred)
            logger.info("Connected to Firebase project %s", config.FIREBASE_CREDENTIALS.get("project_id"))
        except Exception:
            logger.exception("Could not connect to Firebase")
            raise
    return firebase_admin.get_app()


# Process-wide document store used by the routers
@lru_cache(maxsize=1)
def get_store() -> DocumentStore:
    if config.STORE_BACKEND == "memory":
        logger.warning("Using the in-memory store; data is lost on restart")
        return InMemoryStore(max_attempts=config.STORE_MAX_ATTEMPTS)

    get_firebase_app()
    return FirestoreStore(firestore.client(), max_attempts=config.STORE_MAX_ATTEMPTS)


# Verify a Firebase ID token and return its claims (uid, email, name, picture)
def verify_firebase_token(id_token: str) -> dict:
    get_firebase_app()
    return auth.verify_id_token(id_token)
