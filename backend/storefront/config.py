"""
storefront/config.py - Application configuration and lazy Firebase initialization.

This module defines a Pydantic BaseSettings class to load configuration from environment,
and exposes `get_db()` which initializes the Firebase Admin SDK on first use and returns
the Firestore client. All other modules import `settings` from here.
"""
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Commerce backend (system of record for carts and orders)
    commerce_api_url: str = "https://api.europe-west1.gcp.commercetools.com"
    commerce_auth_url: str = "https://auth.europe-west1.gcp.commercetools.com"
    commerce_session_url: str = "https://session.europe-west1.gcp.commercetools.com"
    commerce_project_key: str = ""
    commerce_client_id: str = ""
    commerce_client_secret: str = ""
    commerce_scopes: str = ""
    commerce_timeout: float = 10.0
    commerce_checkout_application_key: str = ""

    # Storefront defaults used when a cart has to be created
    default_currency: str = "USD"
    default_country: str = "US"
    default_locale: str = "en-US"

    # Session binding
    session_cookie_name: str = "storefront-session"
    session_header_name: str = "X-Session-Id"
    session_collection: str = "sessions"
    firebase_collection_prefix: str = ""

    # Firebase (session storage + ID token verification)
    firebase_cred_file: str = "firebase_service_account.json"
    firebase_project_id: Optional[str] = None
    firebase_private_key_id: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_client_id: Optional[str] = None
    firebase_auth_uri: Optional[str] = None
    firebase_token_uri: Optional[str] = None
    firebase_auth_provider_x509_cert_url: Optional[str] = None
    firebase_client_x509_cert_url: Optional[str] = None

    # Order confirmation e-mail
    smtp_host: str = "localhost"
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None
    smtp_use_starttls: bool = False  # true for 587
    smtp_timeout: float = 15.0
    order_email_sender_name: Optional[str] = None

    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: str = "*"  # Comma-separated list or '*' for all

    def prefixed(self, name: str) -> str:
        prefix = (self.firebase_collection_prefix or "").strip()
        return f"{prefix}{name}" if prefix else name


# Load settings from environment (.env file, etc.)
settings = Settings()

_db = None


def _credentials() -> credentials.Certificate:
    # Discrete environment variables (Cloud Run) win over the service account file
    if all([
        settings.firebase_private_key_id,
        settings.firebase_private_key,
        settings.firebase_client_email,
        settings.firebase_client_id,
        settings.firebase_auth_uri,
        settings.firebase_token_uri,
        settings.firebase_auth_provider_x509_cert_url,
        settings.firebase_client_x509_cert_url,
    ]):
        return credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            "private_key": settings.firebase_private_key,
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "auth_uri": settings.firebase_auth_uri,
            "token_uri": settings.firebase_token_uri,
            "auth_provider_x509_cert_url": settings.firebase_auth_provider_x509_cert_url,
            "client_x509_cert_url": settings.firebase_client_x509_cert_url,
        })
    return credentials.Certificate(settings.firebase_cred_file)


def init_firebase() -> firebase_admin.App:
    """Initialize the default Firebase app once and return it."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        return firebase_admin.initialize_app(_credentials(), options)


def get_db():
    """Firestore client, created on first use."""
    global _db
    if _db is None:
        init_firebase()
        _db = firestore.client()
    return _db
