"""
Bookkeeping for collaboratively edited documents

The CRDT merge and sync protocol belong to pycrdt / pycrdt-websocket; this
registry only tracks which users are connected to which document, who has
collaborated on it, and drops documents a while after the last user leaves.
"""
import asyncio
import logging
import random
import re
import time
from typing import Any, Dict, Optional, Set

from pycrdt import Doc
from sqlalchemy.exc import SQLAlchemyError

from database import utcnow
from models import Post

logger = logging.getLogger(__name__)

USER_COLORS = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7",
    "#DDA0DD", "#98D8C8", "#F7DC6F", "#BB8FCE", "#85C1E9"
]

_POST_DOCUMENT = re.compile(r"^post-(\d+)$")


def generate_user_color() -> str:
    return random.choice(USER_COLORS)


class DocumentEntry:
    """A shared document, its live connections and its collaborator history"""

    def __init__(self, doc: Optional[Doc] = None):
        self.doc = doc if doc is not None else Doc()
        self.connections: Set[str] = set()
        self.last_modified = utcnow()
        self.metadata: Dict[str, Any] = {"title": "", "author": "", "collaborators": []}
        self.cleanup_handle: Optional[asyncio.TimerHandle] = None

    def cancel_cleanup(self):
        if self.cleanup_handle is not None:
            self.cleanup_handle.cancel()
            self.cleanup_handle = None


class DocumentRegistry:
    def __init__(self, cleanup_delay: float = 300, session_factory=None):
        self.cleanup_delay = cleanup_delay
        self.session_factory = session_factory
        self.documents: Dict[str, DocumentEntry] = {}
        self.started_at = time.monotonic()

    def get_document(self, doc_id: str, doc: Optional[Doc] = None) -> DocumentEntry:
        """Get or create the entry; `doc` attaches the room's live Doc"""
        entry = self.documents.get(doc_id)
        if entry is None:
            entry = DocumentEntry(doc)
            self.documents[doc_id] = entry
            logger.info(f"Created new document: {doc_id}")
        elif doc is not None:
            entry.doc = doc
        return entry

    def add_user(self, doc_id: str, user_id: str, info: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        info = info or {}
        entry = self.get_document(doc_id)
        entry.cancel_cleanup()
        entry.connections.add(user_id)

        collaborators = entry.metadata["collaborators"]
        if not any(c["id"] == user_id for c in collaborators):
            collaborators.append({
                "id": user_id,
                "name": info.get("name") or "Anonymous",
                "color": info.get("color") or generate_user_color(),
                "joined_at": utcnow().isoformat()
            })

        logger.info(f"User {user_id} joined document {doc_id}")
        return self.broadcast_user_list(doc_id)

    def remove_user(self, doc_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Drop the connection; an empty document is removed after the cleanup delay"""
        entry = self.documents.get(doc_id)
        if entry is None:
            return None

        entry.connections.discard(user_id)
        logger.info(f"User {user_id} left document {doc_id}")
        message = self.broadcast_user_list(doc_id)

        if not entry.connections:
            entry.cancel_cleanup()
            loop = asyncio.get_running_loop()
            entry.cleanup_handle = loop.call_later(self.cleanup_delay, self._cleanup, doc_id)

        return message

    def _cleanup(self, doc_id: str):
        entry = self.documents.get(doc_id)
        if entry is None:
            return
        entry.cleanup_handle = None
        if not entry.connections:
            del self.documents[doc_id]
            logger.info(f"Cleaned up empty document: {doc_id}")

    def broadcast_user_list(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Build the user-list message for a document. Presence itself travels
        over the CRDT awareness channel, so the message is only logged.
        """
        entry = self.documents.get(doc_id)
        if entry is None:
            return None

        users = [c for c in entry.metadata["collaborators"] if c["id"] in entry.connections]
        message = {"type": "user-list", "users": users}
        logger.info(f"Broadcasting user list for {doc_id}: {len(users)} users")
        return message

    def save_document(self, doc_id: str, content: str) -> bool:
        """Touch the document; `post-<id>` documents also write content back to the post"""
        entry = self.documents.get(doc_id)
        if entry is not None:
            entry.last_modified = utcnow()

        match = _POST_DOCUMENT.match(doc_id)
        if not match or self.session_factory is None:
            return entry is not None

        logger.info(f"Saving document {doc_id} to database")
        db = self.session_factory()
        try:
            post = db.query(Post).filter(Post.id == int(match.group(1))).first()
            if post is None:
                logger.warning(f"No post found for document {doc_id}")
                return False
            post.content = content
            db.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error saving document {doc_id}: {str(e)}")
            db.rollback()
            return False
        finally:
            db.close()

    def get_document_stats(self, doc_id: str) -> Optional[Dict[str, Any]]:
        entry = self.documents.get(doc_id)
        if entry is None:
            return None

        return {
            "active_users": len(entry.connections),
            "total_collaborators": len(entry.metadata["collaborators"]),
            "last_modified": entry.last_modified.isoformat(),
            "title": entry.metadata["title"]
        }

    def get_server_stats(self) -> Dict[str, Any]:
        return {
            "total_documents": len(self.documents),
            "total_connections": sum(len(entry.connections) for entry in self.documents.values()),
            "uptime": round(time.monotonic() - self.started_at, 2)
        }
