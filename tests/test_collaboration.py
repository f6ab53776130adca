"""Tests for the collaboration document registry and relay endpoints."""

import asyncio
import time

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from pycrdt import Doc, YMessageType, create_sync_message
from starlette.websockets import WebSocketDisconnect

from collaboration.registry import USER_COLORS, DocumentRegistry
from collaboration.server import app as collab_app, registry as relay_registry, resolve_identity
from conftest import make_post
from database import SessionLocal
from utils.auth import create_access_token


class TestDocumentRegistry:
    def test_add_user_tracks_connections_and_collaborators(self):
        registry = DocumentRegistry()

        message = registry.add_user("doc-1", "u1", {"name": "Ada"})
        registry.add_user("doc-1", "u2")

        assert message["type"] == "user-list"
        entry = registry.documents["doc-1"]
        assert entry.connections == {"u1", "u2"}

        first, second = entry.metadata["collaborators"]
        assert first["name"] == "Ada"
        assert second["name"] == "Anonymous"
        assert first["color"] in USER_COLORS

    def test_rejoining_keeps_one_collaborator_record(self):
        registry = DocumentRegistry()
        registry.add_user("doc-1", "u1", {"name": "Ada", "color": "#000000"})
        registry.add_user("doc-1", "u1", {"name": "Ada"})

        collaborators = registry.documents["doc-1"].metadata["collaborators"]
        assert len(collaborators) == 1
        assert collaborators[0]["color"] == "#000000"

    def test_user_list_only_has_connected_users(self):
        async def scenario():
            registry = DocumentRegistry(cleanup_delay=60)
            registry.add_user("doc-1", "u1")
            registry.add_user("doc-1", "u2")
            message = registry.remove_user("doc-1", "u1")
            registry.documents["doc-1"].cancel_cleanup()
            return message

        message = asyncio.run(scenario())
        assert [u["id"] for u in message["users"]] == ["u2"]

    def test_empty_document_is_cleaned_up_after_delay(self):
        async def scenario():
            registry = DocumentRegistry(cleanup_delay=0.01)
            registry.add_user("doc-1", "u1")
            registry.remove_user("doc-1", "u1")
            assert "doc-1" in registry.documents
            await asyncio.sleep(0.05)
            return registry

        registry = asyncio.run(scenario())
        assert "doc-1" not in registry.documents

    def test_rejoin_cancels_cleanup(self):
        async def scenario():
            registry = DocumentRegistry(cleanup_delay=0.01)
            registry.add_user("doc-1", "u1")
            registry.remove_user("doc-1", "u1")
            registry.add_user("doc-1", "u1")
            await asyncio.sleep(0.05)
            return registry

        registry = asyncio.run(scenario())
        assert registry.documents["doc-1"].connections == {"u1"}

    def test_remove_from_unknown_document(self):
        assert DocumentRegistry().remove_user("missing", "u1") is None

    def test_stats(self):
        registry = DocumentRegistry()
        registry.add_user("doc-1", "u1")
        registry.add_user("doc-2", "u2")
        registry.add_user("doc-2", "u3")

        assert registry.get_document_stats("doc-2")["active_users"] == 2
        assert registry.get_document_stats("missing") is None

        stats = registry.get_server_stats()
        assert stats["total_documents"] == 2
        assert stats["total_connections"] == 3
        assert stats["uptime"] >= 0


class TestSaveDocument:
    def test_post_document_writes_content(self, db, user):
        post = make_post(db, user, content="Old body")
        registry = DocumentRegistry(session_factory=SessionLocal)
        registry.get_document(f"post-{post.id}")

        assert registry.save_document(f"post-{post.id}", "New body") is True

        db.expire_all()
        assert post.content == "New body"

    def test_missing_post(self, db):
        registry = DocumentRegistry(session_factory=SessionLocal)
        assert registry.save_document("post-999", "text") is False

    def test_plain_document_only_touches_timestamp(self):
        registry = DocumentRegistry(session_factory=SessionLocal)
        entry = registry.get_document("notes")
        before = entry.last_modified

        assert registry.save_document("notes", "text") is True
        assert entry.last_modified >= before
        assert registry.save_document("unknown", "text") is False


class TestIdentity:
    def test_token_identity(self, db, user):
        token = create_access_token({"sub": user.username})
        identity = resolve_identity({"token": token, "color": "#FF6B6B"})
        assert identity == {"id": "writer", "name": "writer", "color": "#FF6B6B"}

    def test_invalid_token(self):
        with pytest.raises(HTTPException):
            resolve_identity({"token": "not-a-jwt"})

    def test_query_identity_and_anonymous(self):
        assert resolve_identity({"user": "u7", "name": "Grace"})["id"] == "u7"
        assert resolve_identity({})["id"].startswith("anon-")


class TestRelayEndpoints:
    def test_stats_endpoint(self):
        client = TestClient(collab_app)
        response = client.get("/stats")
        assert response.status_code == 200
        assert set(response.json()) == {"total_documents", "total_connections", "uptime"}

    def test_invalid_token_is_rejected(self):
        client = TestClient(collab_app)
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect("/post-1?token=bad-token"):
                pass
        assert excinfo.value.code == 4401

    def test_connection_syncs_and_tracks_users(self):
        def wait_until_disconnected(doc_id):
            for _ in range(100):
                if relay_registry.get_document_stats(doc_id)["active_users"] == 0:
                    return
                time.sleep(0.01)

        with TestClient(collab_app) as client:
            with client.websocket_connect("/post-9?user=u1&name=Ann") as websocket:
                websocket.send_bytes(create_sync_message(Doc()))
                reply = websocket.receive_bytes()

                assert reply[0] == YMessageType.SYNC
                assert relay_registry.get_document_stats("post-9")["active_users"] == 1
                assert relay_registry.get_server_stats()["total_connections"] == 1

                collaborator = relay_registry.documents["post-9"].metadata["collaborators"][0]
                assert collaborator["id"] == "u1"
                assert collaborator["name"] == "Ann"

            wait_until_disconnected("post-9")
            assert relay_registry.get_server_stats()["total_connections"] == 0

            with client.websocket_connect("/?user=u2") as websocket:
                websocket.send_bytes(create_sync_message(Doc()))
                assert websocket.receive_bytes()[0] == YMessageType.SYNC
                assert relay_registry.get_document_stats("default-doc")["active_users"] == 1

            wait_until_disconnected("default-doc")
            assert relay_registry.get_document_stats("default-doc")["active_users"] == 0
