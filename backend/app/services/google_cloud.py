import google.auth.transport.requests
from google.oauth2 import service_account

from app.core.config import settings
from app.core.config_video import GOOGLE_CLOUD_PROJECT_ID, GOOGLE_CLOUD_LOCATION

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def get_access_token() -> str:
    """Generate OAuth2 access token via service account."""
    credentials = service_account.Credentials.from_service_account_file(
        settings.GOOGLE_CREDENTIALS_PATH, scopes=SCOPES
    )
    req = google.auth.transport.requests.Request()
    credentials.refresh(req)
    return credentials.token


def vertex_model_url(model_id: str, method: str) -> str:
    return (
        f"https://{GOOGLE_CLOUD_LOCATION}-aiplatform.googleapis.com/v1/"
        f"projects/{GOOGLE_CLOUD_PROJECT_ID}/locations/{GOOGLE_CLOUD_LOCATION}"
        f"/publishers/google/models/{model_id}:{method}"
    )


def auth_headers() -> dict:
    return {
        "Authorization": f"Bearer {get_access_token()}",
        "Content-Type": "application/json",
    }
