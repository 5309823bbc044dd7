import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, messaging

logger = logging.getLogger("grouptrip.fcm")

# Initialize Firebase Admin (only once)
_initialized = False
_attempted = False

def initialize_firebase_admin():
    """Initialize the Firebase Admin SDK from a service account file or the environment."""
    global _initialized, _attempted
    if _initialized or _attempted:
        return
    _attempted = True
    try:
        cred_path = os.getenv(
            "FIREBASE_CREDENTIALS_PATH",
            os.path.join(os.path.dirname(__file__), "..", "serviceAccountKey.json")
        )

        if os.path.exists(cred_path):
            cred = credentials.Certificate(cred_path)
            firebase_admin.initialize_app(cred)
            _initialized = True
            logger.info("Firebase Admin initialized with %s", cred_path)
        elif os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
            firebase_admin.initialize_app()
            _initialized = True
            logger.info("Firebase Admin initialized from GOOGLE_APPLICATION_CREDENTIALS")
        else:
            logger.info("No Firebase credentials found; push notifications disabled")
    except Exception:
        logger.exception("Error initializing Firebase Admin")
        _initialized = False

def send_notification_to_multiple(
    fcm_tokens: list[str],
    title: str,
    body: str,
    data: Optional[dict] = None
) -> dict:
    """Send one push notification to several devices. Never raises."""
    fcm_tokens = [t for t in (fcm_tokens or []) if t]
    if not fcm_tokens:
        return {"success": 0, "failure": 0}

    initialize_firebase_admin()
    if not _initialized:
        return {"success": 0, "failure": len(fcm_tokens)}

    try:
        message = messaging.MulticastMessage(
            notification=messaging.Notification(
                title=title,
                body=body,
            ),
            data={k: str(v) for k, v in (data or {}).items()},
            tokens=fcm_tokens,
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        badge=1,
                        sound="default",
                    ),
                ),
            ),
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(
                    sound="default",
                    channel_id="high_importance_channel",
                ),
            ),
        )

        response = messaging.send_each_for_multicast(message)
        return {
            "success": response.success_count,
            "failure": response.failure_count,
        }
    except Exception:
        logger.exception("Error sending push to %d device(s)", len(fcm_tokens))
        return {"success": 0, "failure": len(fcm_tokens)}
