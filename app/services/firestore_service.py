"""
Firestore Service Layer

This module provides the client handle every manager uses to talk to Firestore.
It wraps the Firebase Admin SDK and converts documents into the Pydantic models
defined in app.models.

The handle is constructed explicitly and owned by the application entry point,
which calls init() on startup and close() on shutdown. Multi-document mutations
go through run_transaction(), which takes the full read set up front and a plan
that turns the read snapshots into writes, so reads always precede writes.
"""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from traceback import format_exc
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

import firebase_admin
from firebase_admin import App, firestore, initialize_app
from google.cloud.firestore import Client, DocumentReference, transactional
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from app.models.firestore import COLLECTION_MODELS

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Type variable for generic model operations
T = TypeVar("T", bound=BaseModel)

# Firestore rejects batches with more operations than this
MAX_BATCH_SIZE = 500

DocumentKey = Tuple[str, str]
Snapshots = Dict[DocumentKey, Optional[Dict[str, Any]]]


def utcnow() -> datetime:
    """Return the current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class WriteKind(str, Enum):
    """Kinds of write a transaction plan or batch can contain."""

    CREATE = "create"  # fails if the document exists
    SET = "set"
    MERGE = "merge"
    UPDATE = "update"  # fails if the document is missing
    DELETE = "delete"


class DocumentWrite(BaseModel):
    """A single write against one document."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: WriteKind
    collection_name: str
    document_id: str
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> DocumentKey:
        return (self.collection_name, self.document_id)


TransactionPlan = Callable[[Snapshots], List[DocumentWrite]]
Unsubscribe = Callable[[], None]


class FirestoreService:
    """
    Service class for Firestore operations with type safety and Pydantic integration.
    """

    def __init__(self, database_name: str = "(default)"):
        """
        Initialize the Firestore service.

        Args:
            database_name: Name of the Firestore database to connect to
        """
        self.database_name = database_name
        self._app: Optional[App] = None
        self._owns_app = False
        self._client: Optional[Client] = None

    def init(self) -> None:
        """Initialize the Firebase app and Firestore client."""
        _ = self.client
        logger.info(f"Firestore service initialized for database {self.database_name}")

    def close(self) -> None:
        """Release the Firestore client and the Firebase app if this service created it."""
        # delete_app tears down the Firestore clients the app created
        self._client = None
        if self._app is not None and self._owns_app:
            firebase_admin.delete_app(self._app)
        self._app = None
        self._owns_app = False
        logger.info("Firestore service closed")

    @property
    def app(self) -> App:
        """Get or create the Firebase Admin app."""
        if self._app is None:
            try:
                self._app = initialize_app()
                self._owns_app = True
            except ValueError:
                # App already exists, get it
                self._app = firebase_admin.get_app()
        return self._app

    @property
    def client(self) -> Client:
        """Get or create the Firestore client."""
        if self._client is None:
            database_id = None if self.database_name == "(default)" else self.database_name
            self._client = firestore.client(self.app, database_id=database_id)
        return self._client

    def get_collection_ref(self, collection_name: str):
        """Get a reference to a Firestore collection."""
        return self.client.collection(collection_name)

    def get_document_ref(
        self, collection_name: str, document_id: str
    ) -> DocumentReference:
        """Get a reference to a specific document."""
        return self.client.collection(collection_name).document(document_id)

    def new_document_id(self) -> str:
        """Generate an identifier for a document that does not exist yet."""
        return str(uuid.uuid4())

    # Generic CRUD operations
    async def create_document(
        self,
        collection_name: str,
        document_data: Dict[str, Any],
        document_id: Optional[str] = None,
    ) -> str:
        """
        Create a new document in the specified collection.

        Args:
            collection_name: Name of the collection
            document_data: Data to store in the document
            document_id: Optional document ID, will generate UUID if not provided

        Returns:
            The document ID of the created document
        """
        try:
            if document_id is None:
                document_id = self.new_document_id()

            doc_ref = self.get_document_ref(collection_name, document_id)
            doc_ref.set(document_data)

            logger.info(f"Created document {document_id} in {collection_name}")
            return document_id

        except Exception as e:
            logger.error(f"Failed to create document in {collection_name}: {str(e)}")
            raise

    async def set_document(
        self,
        collection_name: str,
        document_id: str,
        document_data: Dict[str, Any],
        merge: bool = False,
    ) -> bool:
        """Overwrite a document, or merge into it when merge is True."""
        try:
            doc_ref = self.get_document_ref(collection_name, document_id)
            doc_ref.set(document_data, merge=merge)

            logger.info(f"Set document {document_id} in {collection_name} (merge={merge})")
            return True

        except Exception as e:
            logger.error(
                f"Failed to set document {document_id} in {collection_name}: {str(e)}"
            )
            raise

    async def get_document(
        self,
        collection_name: str,
        document_id: str,
        model_class: Optional[Type[T]] = None,
    ) -> Optional[T]:
        """
        Get a document by ID.

        Args:
            collection_name: Name of the collection
            document_id: ID of the document to retrieve
            model_class: Optional Pydantic model class to validate the data

        Returns:
            Document data as Pydantic model instance or None if not found
        """
        try:
            doc_ref = self.get_document_ref(collection_name, document_id)
            doc = doc_ref.get()

            if not doc.exists:
                return None

            data = doc.to_dict()
            data["id"] = doc.id  # Add document ID to data

            return self._to_model(collection_name, data, model_class)

        except Exception as e:
            logger.error(
                f"Failed to get document {document_id} from {collection_name}: {str(e)}"
            )
            raise

    async def update_document(
        self, collection_name: str, document_id: str, update_data: Dict[str, Any]
    ) -> bool:
        """
        Update a document. Keys may be dotted field paths.

        Args:
            collection_name: Name of the collection
            document_id: ID of the document to update
            update_data: Data to update

        Returns:
            True if successful
        """
        try:
            doc_ref = self.get_document_ref(collection_name, document_id)
            doc_ref.update(update_data)

            logger.info(f"Updated document {document_id} in {collection_name}")
            return True

        except Exception as e:
            logger.error(
                f"Failed to update document {document_id} in {collection_name}: {str(e)}"
            )
            raise

    async def delete_document(self, collection_name: str, document_id: str) -> bool:
        """
        Delete a document.

        Args:
            collection_name: Name of the collection
            document_id: ID of the document to delete

        Returns:
            True if successful
        """
        try:
            doc_ref = self.get_document_ref(collection_name, document_id)
            doc_ref.delete()

            logger.info(f"Deleted document {document_id} from {collection_name}")
            return True

        except Exception as e:
            logger.error(
                f"Failed to delete document {document_id} from {collection_name}: {str(e)}"
            )
            raise

    async def query_collection(
        self,
        collection_name: str,
        filters: Optional[List[tuple]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        model_class: Optional[Type[T]] = None,
    ) -> List[T]:
        """
        Query a collection with filters, ordering, and pagination.

        Args:
            collection_name: Name of the collection to query
            filters: List of filter tuples (field, operator, value)
            order_by: Field to order by
            limit: Maximum number of results
            offset: Number of results to skip
            model_class: Optional Pydantic model class

        Returns:
            List of documents as model instances
        """
        try:
            query = self._build_query(collection_name, filters, order_by, limit, offset)

            results = []
            for doc in query.stream():
                data = doc.to_dict()
                data["id"] = doc.id
                results.append(self._to_model(collection_name, data, model_class))

            return results

        except Exception as e:
            logger.error(f"Failed to query collection {collection_name}: {str(e)}")
            raise

    async def count_documents(
        self, collection_name: str, filters: Optional[List[tuple]] = None
    ) -> int:
        """
        Count documents in a collection with optional filters.

        Args:
            collection_name: Name of the collection
            filters: Optional list of filter tuples

        Returns:
            Number of matching documents
        """
        try:
            query = self._build_query(collection_name, filters)
            return len(list(query.stream()))

        except Exception as e:
            logger.error(f"Failed to count documents in {collection_name}: {str(e)}")
            raise

    # Transaction support
    async def run_transaction(
        self, reads: List[DocumentKey], plan: TransactionPlan
    ) -> List[DocumentWrite]:
        """
        Run a read-then-write transaction.

        Every key in reads is fetched inside the transaction before plan is
        called. The plan receives a mapping of key to document data (None when
        the document does not exist) and returns the writes to apply. Raising
        from the plan aborts the transaction without applying anything.
        Conflicts are retried by the SDK, so plan may run more than once.

        Args:
            reads: Documents to read, as (collection_name, document_id) pairs
            plan: Function turning the read snapshots into writes

        Returns:
            The writes that were committed
        """

        @transactional
        def _execute(transaction) -> List[DocumentWrite]:
            snapshots: Snapshots = {}
            for collection_name, document_id in reads:
                doc = self.get_document_ref(collection_name, document_id).get(
                    transaction=transaction
                )
                snapshots[(collection_name, document_id)] = (
                    doc.to_dict() if doc.exists else None
                )

            writes = plan(snapshots)
            for write in writes:
                self._apply_write(transaction, write)
            return writes

        try:
            writes = _execute(self.client.transaction())
            logger.info(f"Committed transaction with {len(writes)} writes")
            return writes
        except Exception as e:
            logger.error(f"Transaction failed: {str(e)}\n{format_exc()}")
            raise

    # Batch operations
    async def commit_batch(self, writes: List[DocumentWrite]) -> int:
        """
        Commit writes in batches of at most MAX_BATCH_SIZE operations.

        Returns:
            Number of writes committed
        """
        committed = 0
        try:
            for start in range(0, len(writes), MAX_BATCH_SIZE):
                chunk = writes[start : start + MAX_BATCH_SIZE]
                batch = self.client.batch()
                for write in chunk:
                    self._apply_write(batch, write)
                batch.commit()
                committed += len(chunk)

            logger.info(f"Committed {committed} batched writes")
            return committed

        except Exception as e:
            logger.error(
                f"Batch commit failed after {committed} writes: {str(e)}\n{format_exc()}"
            )
            raise

    # Live queries
    def subscribe(
        self,
        collection_name: str,
        callback: Callable[[List[Any]], None],
        filters: Optional[List[tuple]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        model_class: Optional[Type[T]] = None,
    ) -> Unsubscribe:
        """
        Subscribe to a live query.

        The callback receives the full, converted result list every time the
        query's results change. It runs on an SDK background thread.

        Returns:
            A function that cancels the subscription
        """
        query = self._build_query(collection_name, filters, order_by, limit)

        def _on_snapshot(docs, changes, read_time):
            try:
                results = []
                for doc in docs:
                    data = doc.to_dict()
                    data["id"] = doc.id
                    results.append(self._to_model(collection_name, data, model_class))
                callback(results)
            except Exception as e:
                logger.error(
                    f"Snapshot handling failed for {collection_name}: {str(e)}\n{format_exc()}"
                )

        watch = query.on_snapshot(_on_snapshot)
        logger.info(f"Subscribed to {collection_name} with filters {filters}")

        def unsubscribe() -> None:
            watch.unsubscribe()
            logger.info(f"Unsubscribed from {collection_name}")

        return unsubscribe

    # Helpers
    def _build_query(
        self,
        collection_name: str,
        filters: Optional[List[tuple]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ):
        query = self.get_collection_ref(collection_name)

        # Apply filters
        if filters:
            for field, operator, value in filters:
                query = query.where(field, operator, value)

        # Apply ordering
        if order_by:
            query = query.order_by(order_by)

        # Apply pagination
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)

        return query

    def _apply_write(self, writer, write: DocumentWrite) -> None:
        """Apply a write to a transaction or batch; both share the same API."""
        doc_ref = self.get_document_ref(write.collection_name, write.document_id)

        if write.kind == WriteKind.CREATE:
            writer.create(doc_ref, write.data)
        elif write.kind == WriteKind.SET:
            writer.set(doc_ref, write.data)
        elif write.kind == WriteKind.MERGE:
            writer.set(doc_ref, write.data, merge=True)
        elif write.kind == WriteKind.UPDATE:
            writer.update(doc_ref, write.data)
        elif write.kind == WriteKind.DELETE:
            writer.delete(doc_ref)
        else:
            raise ValueError(f"Unsupported write kind: {write.kind}")

    def _to_model(
        self,
        collection_name: str,
        data: Dict[str, Any],
        model_class: Optional[Any] = None,
    ) -> Any:
        # Use provided model class or infer from collection
        model_class = model_class or COLLECTION_MODELS.get(collection_name)
        if model_class is None:
            return data
        if isinstance(model_class, type) and issubclass(model_class, BaseModel):
            return model_class.model_validate(data)
        return TypeAdapter(model_class).validate_python(data)
