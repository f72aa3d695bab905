"""
Unit tests for the catalog HTTP service.
"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from shared.config import get_config
from shared.errors import DataAccessError
from shared.test_helpers import FakeClock, InMemoryCatalogRepository
from service_catalog.app.caching.store import CacheStore
from service_catalog.app.main import CatalogService
from service_catalog.app.persistence import PostgresCatalogRepository


class TestCatalogService:
    """Test cases for CatalogService."""

    @pytest.fixture
    def repository(self):
        return InMemoryCatalogRepository()

    @pytest.fixture
    def store(self):
        return CacheStore(clock=FakeClock())

    @pytest.fixture
    def service(self, repository, store):
        return CatalogService(repository=repository, store=store)

    @pytest.fixture
    def client(self, service):
        return TestClient(service.app)

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "catalog"
        assert "caching" in data["capabilities"]

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "catalog"
        assert data["status"] == "ok"
        assert data["dependencies"] == {}

    def test_health_reports_postgres(self, service, client):
        service.repository.health_check = AsyncMock(return_value=False)

        response = client.get("/health")

        assert response.json()["dependencies"] == {"postgres": "error"}

    def test_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"

    def test_service_initialization(self, service, store):
        assert service.service_name == "catalog"
        assert service.port == 8020
        assert service.cache is store
        assert service.catalog.reads.ttl_seconds == 1800

    def test_empty_injected_store_is_used(self, repository):
        store = CacheStore(clock=FakeClock())
        assert len(store) == 0

        service = CatalogService(repository=repository, store=store)
        TestClient(service.app).get("/users")

        assert service.cache is store
        assert service.catalog.store is store
        assert store.get("allUsers")[1]

    def test_default_repository_is_postgres(self):
        service = CatalogService()
        assert isinstance(service.repository, PostgresCatalogRepository)

    def test_ttl_from_config(self, repository):
        config = get_config("catalog", 8020, cache_ttl_seconds=600)
        service = CatalogService(repository=repository, config=config)
        assert service.catalog.reads.ttl_seconds == 600

    def test_list_users_is_cached(self, client, repository, store):
        first = client.get("/users")
        second = client.get("/users")

        assert first.status_code == 200
        assert first.json() == second.json()
        assert first.json()["users_count"] == 2
        assert repository.calls["list_users"] == 1
        assert store.get("allUsers")[1]

    def test_get_user_not_found(self, client):
        response = client.get("/users/404")

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "NOT_FOUND"
        assert data["message"] == "user 404 not found"

    def test_data_access_error_is_500(self, client, repository):
        repository.fail_with["list_authors"] = DataAccessError("list_authors", "timeout")

        response = client.get("/authors")

        assert response.status_code == 500
        assert response.json()["code"] == "DATA_ACCESS_ERROR"

    def test_create_user_clears_list(self, client, store):
        client.get("/users")

        response = client.post("/users", json={
            "username": "writer",
            "password_hash": "$2b$04$abc",
            "email": "writer@example.com",
        })

        assert response.status_code == 201
        assert response.json() == {"id": 8}
        assert store.get("allUsers") == (None, False)

    def test_create_user_validation(self, client):
        response = client.post("/users", json={"username": "x"})
        assert response.status_code == 422

    def test_update_and_delete_user(self, client, store):
        client.get("/users/1")

        assert client.put("/users/1", json={"phone": "555-0199"}).status_code == 200
        assert store.get("userID1") == (None, False)
        assert client.get("/users/1").json()["phone"] == "555-0199"

        assert client.delete("/users/1").status_code == 200
        assert client.get("/users/1").status_code == 404

    def test_books_endpoints(self, client, store):
        assert client.get("/books").json()["books_count"] == 3
        assert client.get("/books/3").json()["title"] == "Solaris"

        created = client.post("/books", json={
            "title": "His Master's Voice", "author_id": 2, "genre_id": 1, "isbn": "978-0810117310",
        })
        assert created.status_code == 201
        assert store.get("allBooks") == (None, False)
        assert client.get("/books").json()["books_count"] == 4

    def test_books_filter_query(self, client, store):
        response = client.get("/books", params={"filter": "author_id", "id": 2})

        assert [b["id"] for b in response.json()["items"]] == [3]
        assert store.get("getBooksByAuthorId")[1]

    def test_books_sorted_query_not_cached(self, client, store):
        response = client.get("/books", params={"sort_by": "title"})

        assert response.status_code == 200
        assert len(store) == 0

    def test_books_invalid_sort(self, client):
        assert client.get("/books", params={"sort_by": "isbn"}).status_code == 422

    def test_update_and_delete_book(self, client, store):
        client.get("/books/2")
        client.get("/authors/1/books")

        assert client.put("/books/2", json={"title": "Earthsea"}).status_code == 200
        assert store.get("bookID2") == (None, False)
        assert store.get("getBooksByAuthorId") == (None, False)

        response = client.delete("/books/2")
        assert response.json() == {"success": True, "filename": "earthsea.pdf"}

    def test_attach_book_file(self, client, store):
        client.get("/books/1")

        response = client.put("/books/1/file", json={"filename": "dispossessed.pdf"})

        assert response.status_code == 200
        assert response.json()["replaced"] is None
        assert store.get("bookID1") == (None, False)
        assert client.get("/books/1").json()["filename"] == "dispossessed.pdf"

    def test_author_endpoints(self, client, store):
        assert client.get("/authors").json()["authors_count"] == 2
        assert client.get("/authors/2").json()["name"] == "Stanislaw Lem"
        assert client.get("/authors/1/books").json()["books_count"] == 2

        new_id = client.post("/authors", json={"name": "Iain M. Banks"}).json()["id"]
        assert store.get("allAuthors") == (None, False)

        assert client.put(f"/authors/{new_id}", json={"name": "Iain Banks"}).status_code == 200
        assert client.get(f"/authors/{new_id}").json()["name"] == "Iain Banks"
        assert client.delete(f"/authors/{new_id}").status_code == 200

    def test_genre_endpoints(self, client, store):
        assert client.get("/genres").json()["genres_count"] == 2
        assert client.get("/genres/2").json()["name"] == "Fantasy"
        assert client.get("/genres/2/books").json()["books_count"] == 1

        new_id = client.post("/genres", json={"name": "Horror"}).json()["id"]
        assert store.get("allGenres") == (None, False)

        client.get(f"/genres/{new_id}")
        assert client.put(f"/genres/{new_id}", json={"name": "Gothic"}).status_code == 200
        assert store.get(f"genreID{new_id}") == (None, False)
        assert client.delete(f"/genres/{new_id}").status_code == 200

    def test_cache_stats(self, client):
        client.get("/genres")

        response = client.get("/cache/stats")

        assert response.json() == {"entries": 1, "ttl_seconds": 1800}

    def test_metrics_endpoint(self, client):
        client.get("/genres")
        client.get("/genres")

        response = client.get("/metrics")

        assert response.status_code == 200
        body = response.text
        assert 'cache_hits_total{key_kind="collection"} 1.0' in body
        assert 'cache_misses_total{key_kind="collection"} 1.0' in body

    @patch("service_catalog.app.main.CatalogService._check_dependencies")
    def test_health_failure(self, mock_check_deps, client):
        mock_check_deps.side_effect = RuntimeError("database down")

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "error"

    def test_unhandled_error_is_recorded(self, service):
        @service.app.get("/boom")
        async def boom():
            raise RuntimeError("boom")

        client = TestClient(service.app, raise_server_exceptions=False)

        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
        assert service.metrics.registry.get_sample_value(
            "http_requests_total",
            {"method": "GET", "endpoint": "/boom", "status_code": "500"},
        ) == 1.0
