import os
import shutil
import subprocess
from typing import Optional
from unittest.mock import AsyncMock, Mock

from google.auth import default
from google.cloud import firestore
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials

from ..utils.config import GOOGLE_CLOUD_PROJECT_ID, LOCAL_ENV
from ..utils.logger import logger


class FirestoreClient:
    is_initialized = None

    def __init__(self):
        self.sync_client: Optional[firestore.Client] = None

        if os.getenv("TESTING", "false").lower() == "true":
            logger.info("🧪 Test environment detected - using mock Firestore client")
            self.client = self._create_mock_client()
            return

        try:
            credentials = self._resolve_credentials()
            self.client = firestore.AsyncClient(project=GOOGLE_CLOUD_PROJECT_ID, credentials=credentials)
            # on_snapshot listeners are only available on the synchronous client
            self.sync_client = firestore.Client(project=GOOGLE_CLOUD_PROJECT_ID, credentials=credentials)
        except Exception as e:
            logger.error(f"❌ FIRESTORE CLIENT Failed to authenticate: {e}")
            raise

    def _resolve_credentials(self):
        if LOCAL_ENV:
            gcloud_cmd = shutil.which("gcloud")
            if not gcloud_cmd:
                raise FileNotFoundError("❌ gcloud command not found. Ensure Google Cloud SDK is installed and added to PATH.")

            access_token = subprocess.check_output([gcloud_cmd, "auth", "print-access-token"]).decode("utf-8").strip()
            return Credentials(access_token)

        try:
            credentials, _ = default()
            logger.info("✅ Using Application Default Credentials (ADC).")
            return credentials
        except Exception as adc_error:
            logger.warning(f"⚠️ ADC not available: {adc_error}")

        service_account_files = []
        google_creds_file = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        if google_creds_file and os.path.exists(google_creds_file):
            service_account_files.append(google_creds_file)
        service_account_files.extend(["firebase_cred.json", "serviceAccountKey.json"])

        for sa_file in service_account_files:
            if not os.path.exists(sa_file):
                continue
            try:
                credentials = service_account.Credentials.from_service_account_file(
                    sa_file, scopes=["https://www.googleapis.com/auth/cloud-platform"]
                )
                logger.info(f"✅ Using service account file: {sa_file}")
                return credentials
            except Exception as sa_error:
                logger.warning(f"⚠️ Failed to load {sa_file}: {sa_error}")

        raise RuntimeError(
            "❌ No valid authentication method found. "
            "Please ensure either ADC is set up or a valid service account file is available."
        )

    def _create_mock_client(self):
        """Create a mock Firestore client for testing."""

        def mock_collection(collection_name):
            mock_collection_instance = Mock()
            mock_collection_instance.id = collection_name

            def mock_document(doc_id):
                mock_doc = Mock()
                mock_doc.id = doc_id
                mock_doc.get = AsyncMock(return_value=Mock(exists=False))
                mock_doc.set = AsyncMock()
                mock_doc.update = AsyncMock()
                mock_doc.delete = AsyncMock()
                mock_doc.reference = mock_doc
                return mock_doc

            mock_collection_instance.document = Mock(side_effect=mock_document)

            mock_query = Mock()
            mock_query.get = AsyncMock(return_value=[])
            mock_collection_instance.limit = Mock(return_value=mock_query)
            mock_collection_instance.where = Mock(return_value=mock_query)
            mock_collection_instance.get = AsyncMock(return_value=[])

            return mock_collection_instance

        mock_client = Mock()
        mock_client.collection = Mock(side_effect=mock_collection)
        return mock_client

    @classmethod
    def shared(cls):
        if cls.is_initialized is None:
            cls.is_initialized = FirestoreClient()
        return cls.is_initialized.client

    @classmethod
    def shared_sync(cls) -> Optional[firestore.Client]:
        if cls.is_initialized is None:
            cls.is_initialized = FirestoreClient()
        return cls.is_initialized.sync_client
