"""
Firestore-backed record stores using the Firebase Admin SDK.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from portal_backend.config import Settings
from portal_backend.errors import BackendError, ConfigurationError, NotFound

logger = logging.getLogger(__name__)

NOT_INITIALIZED_MESSAGE = (
    "Firebase Admin SDK not initialized. Please configure FIREBASE_ADMIN_SA "
    "or FIREBASE_SERVICE_ACCOUNT_PATH"
)

REQUIRED_SERVICE_ACCOUNT_KEYS = ("project_id", "private_key", "client_email")


def parse_service_account(raw: str) -> dict:
    """
    Parse an inline service-account JSON string.

    Environment files tend to mangle the value, so surrounding quotes,
    escaped quotes and double-encoded JSON strings are all accepted.
    """
    text = (raw or "").strip()
    if not text:
        raise ValueError("FIREBASE_ADMIN_SA is empty")
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        text = text[1:-1]

    account = None
    first_error: Optional[Exception] = None
    for candidate in (text, text.replace('\\"', '"').replace("\\'", "'")):
        try:
            decoded = json.loads(candidate)
            if isinstance(decoded, str):
                decoded = json.loads(decoded)
        except json.JSONDecodeError as exc:
            first_error = first_error or exc
            continue
        if isinstance(decoded, dict):
            account = decoded
            break
    if account is None:
        raise ValueError(f"Invalid JSON in FIREBASE_ADMIN_SA: {first_error}")

    for key in REQUIRED_SERVICE_ACCOUNT_KEYS:
        if not account.get(key):
            raise ValueError(f"Service account JSON missing {key}")
    account["private_key"] = account["private_key"].replace("\\n", "\n")
    return account


class FirestoreConnection:
    """
    Lazily-initialized Firebase Admin app and Firestore client.

    Initialization is attempted once. If no usable credentials are found the
    connection stays unavailable and every caller gets a ConfigurationError.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._attempted = False
        self._client = None

    def _load_credentials(self) -> Optional[credentials.Certificate]:
        settings = self.settings
        if not settings.serverless and settings.firebase_service_account_path:
            try:
                cert = credentials.Certificate(settings.firebase_service_account_path)
                logger.info(
                    "Firebase Admin credentials loaded from %s",
                    settings.firebase_service_account_path,
                )
                return cert
            except (IOError, ValueError) as exc:
                logger.error(
                    "Failed to load service account file, falling back to "
                    "FIREBASE_ADMIN_SA: %s",
                    exc,
                )
        if settings.firebase_admin_sa:
            try:
                cert = credentials.Certificate(
                    parse_service_account(settings.firebase_admin_sa)
                )
                logger.info("Firebase Admin credentials loaded from FIREBASE_ADMIN_SA")
                return cert
            except ValueError as exc:
                logger.error("Failed to initialize from FIREBASE_ADMIN_SA: %s", exc)
        return None

    def _initialize(self):
        try:
            app = firebase_admin.get_app()
        except ValueError:
            cert = self._load_credentials()
            if cert is None:
                logger.error(
                    "Firebase Admin SDK not initialized (FIREBASE_ADMIN_SA set: %s, "
                    "FIREBASE_SERVICE_ACCOUNT_PATH set: %s)",
                    bool(self.settings.firebase_admin_sa),
                    bool(self.settings.firebase_service_account_path),
                )
                return None
            options = {}
            if self.settings.firebase_storage_bucket:
                options["storageBucket"] = self.settings.firebase_storage_bucket
            app = firebase_admin.initialize_app(cert, options or None)
        return firestore.client(app)

    def client(self):
        if not self._attempted:
            self._attempted = True
            self._client = self._initialize()
        if self._client is None:
            raise ConfigurationError(NOT_INITIALIZED_MESSAGE)
        return self._client


class FirestoreRecordStore:
    backend_name = "Firestore"
    # Firestore's field path for the document id.
    native_id_field = "__name__"
    # Document deletes succeed whether or not the document exists.
    reports_missing_on_delete = False

    def __init__(self, connection: FirestoreConnection, location: str):
        self.connection = connection
        self.location = location

    @property
    def collection(self):
        return self.connection.client().collection(self.location)

    def _record(self, snapshot) -> dict:
        return {**(snapshot.to_dict() or {}), self.native_id_field: snapshot.id}

    def _missing(self, operation: str, record_id: str) -> NotFound:
        target = f"{self.location}/{record_id}"
        logger.warning("%s %s %s: record not found", self.backend_name, operation, target)
        return NotFound(f"{self.backend_name} {operation} {target}: record not found")

    def _failed(self, operation: str, target: str, exc: Exception) -> BackendError:
        logger.error("Firestore %s %s failed: %s", operation, target, exc)
        return BackendError(getattr(exc, "message", None) or str(exc))

    def find_by_id(self, record_id: str) -> Optional[dict]:
        collection = self.collection
        try:
            snapshot = collection.document(record_id).get()
        except exceptions.GoogleAPIError as exc:
            raise self._failed("find", f"{self.location}/{record_id}", exc) from exc
        if not snapshot.exists:
            return None
        return self._record(snapshot)

    def list(self, filters: Optional[dict] = None) -> list[dict]:
        query = self.collection
        for field_name, value in (filters or {}).items():
            query = query.where(filter=FieldFilter(field_name, "==", value))
        try:
            return [self._record(snapshot) for snapshot in query.stream()]
        except exceptions.GoogleAPIError as exc:
            raise self._failed("list", self.location, exc) from exc

    def create(self, fields: dict, record_id: Optional[str] = None) -> dict:
        collection = self.collection
        data = {**fields, "createdAt": SERVER_TIMESTAMP, "updatedAt": SERVER_TIMESTAMP}
        try:
            if record_id:
                doc_ref = collection.document(record_id)
                doc_ref.set(data)
            else:
                _, doc_ref = collection.add(data)
            snapshot = doc_ref.get()
        except exceptions.GoogleAPIError as exc:
            raise self._failed("create", self.location, exc) from exc
        logger.info("Firestore created %s/%s", self.location, doc_ref.id)
        return self._record(snapshot)

    def update_by_id(self, record_id: str, fields: dict) -> None:
        doc_ref = self.collection.document(record_id)
        try:
            doc_ref.update({**fields, "updatedAt": SERVER_TIMESTAMP})
        except exceptions.NotFound as exc:
            raise self._missing("update", record_id) from exc
        except exceptions.GoogleAPIError as exc:
            raise self._failed("update", f"{self.location}/{record_id}", exc) from exc
        logger.info("Firestore updated %s/%s", self.location, record_id)

    def delete_by_id(self, record_id: str) -> None:
        doc_ref = self.collection.document(record_id)
        try:
            doc_ref.delete()
        except exceptions.GoogleAPIError as exc:
            raise self._failed("delete", f"{self.location}/{record_id}", exc) from exc
        logger.info("Firestore deleted %s/%s", self.location, record_id)
