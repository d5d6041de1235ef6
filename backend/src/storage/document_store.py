"""
SQLite document store.

Implements the corpus and interaction-log contracts the search engine reads
through, plus the writes the repository application performs (saving papers,
recording views, bookmarks and audit events).
"""

import sqlite3
import json
import threading
from typing import Any, Dict, List, Optional
from datetime import datetime, UTC
import logging

from ..search.expression import Expression
from ..search.filters import SearchFilters
from ..search.models import Category, Document, InteractionKind, InteractionRecord
from ..search.protocols import SortOrder

logger = logging.getLogger('storage')

VIEW_ACTION = "RESEARCH_VIEWED"
SEARCH_ACTION = "ADVANCED_SEARCH"

ORDER_BY = {
    SortOrder.RECENT: "d.created_at DESC, d.id DESC",
    SortOrder.POPULAR: "d.view_count DESC, d.id ASC",
}

DOCUMENT_COLUMNS = """
    d.id, d.title, d.abstract, d.authors_json, d.keywords_json,
    d.subject_area, d.category, d.year_completed, d.view_count,
    d.status, d.created_at
"""


def _now() -> str:
    return datetime.now(UTC).isoformat()


class DocumentStore:
    """Manages research papers and user interactions in SQLite."""

    def __init__(self, db_connection: sqlite3.Connection):
        """
        Initialize document store.

        Args:
            db_connection: SQLite database connection (row_factory=sqlite3.Row)
        """
        self.db = db_connection
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # Corpus access
    # ------------------------------------------------------------------

    def find(
        self,
        expression: Optional[Expression],
        limit: Optional[int] = None,
        order: SortOrder = SortOrder.RECENT
    ) -> List[Document]:
        """
        Find documents matching an expression.

        Args:
            expression: Expression tree, None matches everything
            limit: Maximum documents, None for no limit
            order: Result ordering

        Returns:
            List of documents
        """
        where_clause, params = SearchFilters.build_where_clause(expression)

        query = f"""
            SELECT {DOCUMENT_COLUMNS}
            FROM documents d
            WHERE {where_clause}
            ORDER BY {ORDER_BY[order]}
        """
        if limit is not None:
            query += " LIMIT ?"
            params.append(int(limit))

        with self.lock:
            cursor = self.db.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()

        documents = [self._row_to_document(row) for row in rows]
        logger.debug(f"Corpus lookup returned {len(documents)} documents")
        return documents

    def get_document(self, document_id: int) -> Optional[Document]:
        """Get a single document by id."""
        with self.lock:
            cursor = self.db.cursor()
            cursor.execute(
                f"SELECT {DOCUMENT_COLUMNS} FROM documents d WHERE d.id = ?",
                (document_id,)
            )
            row = cursor.fetchone()

        return self._row_to_document(row) if row else None

    def get_documents(self, document_ids: List[int]) -> List[Document]:
        """
        Get documents by id, in the order the ids were given.

        Unknown ids are skipped.
        """
        if not document_ids:
            return []

        placeholders = ','.join('?' * len(document_ids))
        with self.lock:
            cursor = self.db.cursor()
            cursor.execute(
                f"SELECT {DOCUMENT_COLUMNS} FROM documents d WHERE d.id IN ({placeholders})",
                list(document_ids)
            )
            rows = cursor.fetchall()

        by_id = {row['id']: self._row_to_document(row) for row in rows}
        return [by_id[i] for i in document_ids if i in by_id]

    # ------------------------------------------------------------------
    # Interaction log
    # ------------------------------------------------------------------

    def get_interactions(self, user_id: str, view_window: int) -> List[InteractionRecord]:
        """
        Get a user's bookmarks and most recent views.

        Args:
            user_id: User identifier
            view_window: Maximum number of view events, most recent first

        Returns:
            Bookmark records followed by view records
        """
        with self.lock:
            cursor = self.db.cursor()

            cursor.execute("""
                SELECT document_id, created_at
                FROM bookmarks
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
            """, (user_id,))
            bookmark_rows = cursor.fetchall()

            cursor.execute("""
                SELECT resource_id, timestamp
                FROM audit_logs
                WHERE user_id = ? AND action = ? AND resource_id IS NOT NULL
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
            """, (user_id, VIEW_ACTION, int(view_window)))
            view_rows = cursor.fetchall()

        records = [
            InteractionRecord(user_id, row['document_id'], InteractionKind.BOOKMARKED, row['created_at'])
            for row in bookmark_rows
        ]
        records.extend(
            InteractionRecord(user_id, row['resource_id'], InteractionKind.VIEWED, row['timestamp'])
            for row in view_rows
        )
        return records

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_document(self, document: Dict[str, Any]) -> Optional[int]:
        """
        Save a single document to the database.

        Args:
            document: Dictionary with title, abstract, authors, keywords,
                subject_area, category, year_completed, view_count, status,
                created_at

        Returns:
            Document ID if saved, None on error
        """
        try:
            category = document.get('category', Category.COMPLETED.value)
            Category(category)

            with self.lock:
                cursor = self.db.cursor()
                cursor.execute("""
                    INSERT INTO documents (
                        title, abstract, authors_json, keywords_json, subject_area,
                        category, year_completed, view_count, status, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    document['title'],
                    document.get('abstract', ''),
                    json.dumps(list(document.get('authors') or [])),
                    json.dumps(list(document.get('keywords') or [])),
                    document.get('subject_area'),
                    category,
                    document.get('year_completed'),
                    int(document.get('view_count', 0)),
                    document.get('status', 'pending'),
                    document.get('created_at') or _now()
                ))
                document_id = cursor.lastrowid
                self.db.commit()

            logger.info(f"Saved document: {document['title'][:50]} (ID: {document_id})")
            return document_id

        except (KeyError, ValueError) as e:
            logger.warning(f"Invalid document {document.get('title', 'unknown')!r}: {e}")
            return None
        except sqlite3.Error as e:
            logger.error(f"Error saving document {document.get('title', 'unknown')!r}: {e}")
            self.db.rollback()
            return None

    def save_documents_batch(self, documents: List[Dict[str, Any]]) -> Dict[str, int]:
        """
        Save multiple documents.

        Returns:
            Dictionary with saved and failed counts
        """
        stats = {'saved': 0, 'failed': 0}

        for document in documents:
            if self.save_document(document) is not None:
                stats['saved'] += 1
            else:
                stats['failed'] += 1

        logger.info(f"Batch save complete: {stats['saved']} saved, {stats['failed']} failed")
        return stats

    def record_view(self, user_id: str, document_id: int) -> bool:
        """
        Increment a document's view count and log the view.

        Both writes share one transaction: when either fails, neither is kept
        and the sqlite3.Error propagates.

        Returns:
            True if the document exists
        """
        with self.lock:
            cursor = self.db.cursor()
            try:
                cursor.execute(
                    "UPDATE documents SET view_count = view_count + 1 WHERE id = ?",
                    (document_id,)
                )
                if cursor.rowcount == 0:
                    self.db.rollback()
                    return False
                self._insert_audit_event(cursor, user_id, VIEW_ACTION, 'Research', document_id, None)
                self.db.commit()
            except sqlite3.Error:
                self.db.rollback()
                raise

        return True

    def add_bookmark(self, user_id: str, document_id: int) -> bool:
        """
        Bookmark a document for a user.

        Returns:
            True if a new bookmark was created
        """
        with self.lock:
            cursor = self.db.cursor()
            cursor.execute("SELECT 1 FROM documents WHERE id = ?", (document_id,))
            if cursor.fetchone() is None:
                return False

            cursor.execute("""
                INSERT OR IGNORE INTO bookmarks (user_id, document_id, created_at)
                VALUES (?, ?, ?)
            """, (user_id, document_id, _now()))
            created = cursor.rowcount > 0
            self.db.commit()

        return created

    def record_audit_event(
        self,
        user_id: Optional[str],
        action: str,
        resource: Optional[str] = None,
        resource_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Append an event to the audit log."""
        with self.lock:
            cursor = self.db.cursor()
            try:
                self._insert_audit_event(cursor, user_id, action, resource, resource_id, details)
                self.db.commit()
            except sqlite3.Error:
                self.db.rollback()
                raise

    @staticmethod
    def _insert_audit_event(cursor, user_id, action, resource, resource_id, details):
        cursor.execute("""
            INSERT INTO audit_logs (user_id, action, resource, resource_id, details_json, timestamp)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            user_id,
            action,
            resource,
            resource_id,
            json.dumps(details) if details is not None else None,
            _now()
        ))

    def get_audit_events(self, action: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        """Get the most recent audit events, optionally for one action."""
        query = "SELECT * FROM audit_logs"
        params: List[Any] = []
        if action:
            query += " WHERE action = ?"
            params.append(action)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)

        with self.lock:
            cursor = self.db.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()

        events = []
        for row in rows:
            event = dict(row)
            event['details'] = json.loads(event.pop('details_json') or 'null')
            events.append(event)
        return events

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Get document and interaction counts."""
        with self.lock:
            cursor = self.db.cursor()

            cursor.execute("SELECT COUNT(*), COALESCE(SUM(view_count), 0) FROM documents")
            total, total_views = cursor.fetchone()

            cursor.execute("SELECT status, COUNT(*) AS n FROM documents GROUP BY status")
            by_status = {row['status']: row['n'] for row in cursor.fetchall()}

            cursor.execute("""
                SELECT category, COUNT(*) AS n FROM documents
                WHERE status = 'approved' GROUP BY category
            """)
            by_category = {row['category']: row['n'] for row in cursor.fetchall()}

            cursor.execute("SELECT COUNT(*) FROM bookmarks")
            bookmarks = cursor.fetchone()[0]

        return {
            'total_documents': total,
            'approved_documents': by_status.get('approved', 0),
            'documents_by_status': by_status,
            'approved_by_category': by_category,
            'total_views': total_views,
            'total_bookmarks': bookmarks,
        }

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Document:
        return Document(
            id=row['id'],
            title=row['title'],
            abstract=row['abstract'] or '',
            authors=json.loads(row['authors_json'] or '[]'),
            keywords=json.loads(row['keywords_json'] or '[]'),
            subject_area=row['subject_area'],
            category=row['category'],
            year_completed=row['year_completed'],
            view_count=row['view_count'],
            status=row['status'],
            created_at=row['created_at'],
        )
