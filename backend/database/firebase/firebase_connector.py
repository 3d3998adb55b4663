"""
Base Firebase connector for Firestore-backed storage.
"""

import json
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore import Client as FirestoreClient

from shared.config import get_optional_env_var

logger = logging.getLogger(__name__)


def init_firestore_client(credentials_json: Optional[str] = None) -> FirestoreClient:
    """
    Initialize the Firebase Admin SDK once and return its Firestore client.

    Credentials come from the given service-account JSON, then from the
    FIREBASE_ADMIN_KEY environment variable, and otherwise from Application
    Default Credentials.
    """
    if not firebase_admin._apps:
        credentials_json = credentials_json or get_optional_env_var("FIREBASE_ADMIN_KEY")
        if credentials_json:
            cred = credentials.Certificate(json.loads(credentials_json))
            firebase_admin.initialize_app(cred)
            logger.info("Firebase Admin SDK initialized with service account credentials")
        else:
            firebase_admin.initialize_app()
            logger.info("Firebase Admin SDK initialized with application default credentials")
    return firestore.client()


class FirebaseConnector:
    """
    Base class for Firestore-backed connectors.

    Holds a shared Firestore client reference. Firebase Admin SDK
    must be initialized before constructing instances.
    """

    def __init__(self, firestore_client: FirestoreClient, collection: str):
        self.db = firestore_client
        self.collection = collection

    def _collection_ref(self):
        return self.db.collection(self.collection)

    def _document_ref(self, document_key: str):
        return self._collection_ref().document(document_key)
