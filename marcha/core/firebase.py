import json
import base64
import logging
from firebase_admin import credentials, initialize_app, get_app, firestore

from marcha.core.config import Settings

logger = logging.getLogger("marcha")


def _load_credentials(settings: Settings):
    if settings.MARCHA_FIREBASE_KEY:
        try:
            decoded_json = base64.b64decode(settings.MARCHA_FIREBASE_KEY).decode("utf-8")
            service_account_info = json.loads(decoded_json)
            logger.info("🔑 Loaded Firebase credentials from MARCHA_FIREBASE_KEY")
        except (ValueError, UnicodeDecodeError) as e:
            raise RuntimeError(f"❌ Failed to decode or parse MARCHA_FIREBASE_KEY: {e}") from e

        if not service_account_info.get("project_id"):
            raise ValueError("❌ 'project_id' missing in Firebase service account JSON")
        return credentials.Certificate(service_account_info)

    if settings.GOOGLE_APPLICATION_CREDENTIALS:
        logger.info(f"🔑 Loading Firebase credentials from {settings.GOOGLE_APPLICATION_CREDENTIALS}")
        return credentials.Certificate(settings.GOOGLE_APPLICATION_CREDENTIALS)

    logger.info("🔑 Falling back to application default credentials")
    return credentials.ApplicationDefault()


def init_firebase(settings: Settings):
    """
    Initialize the Firebase Admin SDK once per process and return a Firestore client.
    The caller owns the client; nothing is cached at module level.
    """
    try:
        app = get_app()
        logger.info("✅ Firebase Admin SDK already initialized")
    except ValueError:
        app = initialize_app(_load_credentials(settings))
        logger.info(f"🔥 Firebase Admin SDK initialized | Project: {app.project_id}")

    db = firestore.client(app)
    logger.info("✅ Firestore client ready")
    return db
