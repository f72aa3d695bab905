"""
Catalog service for the bookstore.
"""

from typing import Dict, Optional

from fastapi import Query

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .caching import CacheStore
from .catalog import CatalogManager
from .models import (
    Author,
    AuthorCreate,
    AuthorList,
    AuthorUpdate,
    Book,
    BookCreate,
    BookFileUpload,
    BookFilter,
    BookList,
    BookSort,
    BookUpdate,
    Created,
    Genre,
    GenreCreate,
    GenreList,
    GenreUpdate,
    User,
    UserCreate,
    UserList,
    UserUpdate,
)
from .persistence import CatalogRepository, PostgresCatalogRepository


class CatalogService(BaseService):
    """Catalog service implementation."""

    def __init__(
        self,
        repository: Optional[CatalogRepository] = None,
        store: Optional[CacheStore] = None,
        config: Optional[ServiceConfig] = None,
    ):
        super().__init__("catalog", 8020, config=config)

        self.repository = repository if repository is not None else PostgresCatalogRepository(
            self.config.postgres_dsn,
            min_size=self.config.postgres_min_pool,
            max_size=self.config.postgres_max_pool,
        )
        self.cache = store if store is not None else CacheStore()
        self.catalog = CatalogManager(
            self.repository,
            self.cache,
            ttl_seconds=self.config.cache_ttl_seconds,
            metrics=self.metrics if self.config.metrics_enabled else None,
        )

        self._setup_catalog_routes()

    def _setup_catalog_routes(self):
        """Set up catalog routes."""
        catalog = self.catalog

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "catalog",
                "message": "Bookstore - Catalog Service",
                "version": "1.0.0",
                "capabilities": ["users", "books", "authors", "genres", "caching"]
            }

        # Users

        @self.app.get("/users", response_model=UserList)
        async def list_users():
            return await catalog.list_users()

        @self.app.get("/users/{user_id}", response_model=User)
        async def get_user(user_id: int):
            return await catalog.get_user(user_id)

        @self.app.post("/users", response_model=Created, status_code=201)
        async def create_user(request: UserCreate):
            return Created(id=await catalog.create_user(request))

        @self.app.put("/users/{user_id}")
        async def update_user(user_id: int, request: UserUpdate):
            await catalog.update_user(user_id, request)
            return {"success": True}

        @self.app.delete("/users/{user_id}")
        async def delete_user(user_id: int):
            await catalog.delete_user(user_id)
            return {"success": True}

        # Books

        @self.app.get("/books", response_model=BookList)
        async def list_books(
            filter: Optional[BookFilter] = Query(None, description="Filter field"),
            id: Optional[int] = Query(None, description="Author or genre id for the filter"),
            sort_by: Optional[BookSort] = Query(None, description="Sort order"),
        ):
            return await catalog.list_books(filter, id, sort_by)

        @self.app.get("/books/{book_id}", response_model=Book)
        async def get_book(book_id: int):
            return await catalog.get_book(book_id)

        @self.app.post("/books", response_model=Created, status_code=201)
        async def create_book(request: BookCreate):
            return Created(id=await catalog.create_book(request))

        @self.app.put("/books/{book_id}")
        async def update_book(book_id: int, request: BookUpdate):
            await catalog.update_book(book_id, request)
            return {"success": True}

        @self.app.delete("/books/{book_id}")
        async def delete_book(book_id: int):
            filename = await catalog.delete_book(book_id)
            return {"success": True, "filename": filename}

        @self.app.put("/books/{book_id}/file")
        async def attach_book_file(book_id: int, request: BookFileUpload):
            previous = await catalog.attach_book_file(book_id, request.filename)
            return {"success": True, "filename": request.filename, "replaced": previous}

        # Authors

        @self.app.get("/authors", response_model=AuthorList)
        async def list_authors():
            return await catalog.list_authors()

        @self.app.get("/authors/{author_id}", response_model=Author)
        async def get_author(author_id: int):
            return await catalog.get_author(author_id)

        @self.app.get("/authors/{author_id}/books", response_model=BookList)
        async def books_by_author(author_id: int):
            return await catalog.books_by_author(author_id)

        @self.app.post("/authors", response_model=Created, status_code=201)
        async def create_author(request: AuthorCreate):
            return Created(id=await catalog.create_author(request))

        @self.app.put("/authors/{author_id}")
        async def update_author(author_id: int, request: AuthorUpdate):
            await catalog.update_author(author_id, request)
            return {"success": True}

        @self.app.delete("/authors/{author_id}")
        async def delete_author(author_id: int):
            await catalog.delete_author(author_id)
            return {"success": True}

        # Genres

        @self.app.get("/genres", response_model=GenreList)
        async def list_genres():
            return await catalog.list_genres()

        @self.app.get("/genres/{genre_id}", response_model=Genre)
        async def get_genre(genre_id: int):
            return await catalog.get_genre(genre_id)

        @self.app.get("/genres/{genre_id}/books", response_model=BookList)
        async def books_by_genre(genre_id: int):
            return await catalog.books_by_genre(genre_id)

        @self.app.post("/genres", response_model=Created, status_code=201)
        async def create_genre(request: GenreCreate):
            return Created(id=await catalog.create_genre(request))

        @self.app.put("/genres/{genre_id}")
        async def update_genre(genre_id: int, request: GenreUpdate):
            await catalog.update_genre(genre_id, request)
            return {"success": True}

        @self.app.delete("/genres/{genre_id}")
        async def delete_genre(genre_id: int):
            await catalog.delete_genre(genre_id)
            return {"success": True}

        @self.app.get("/cache/stats")
        async def cache_stats():
            """Cache statistics."""
            return catalog.cache_stats()

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check catalog service dependencies."""
        dependencies = {}
        health_check = getattr(self.repository, "health_check", None)
        if health_check is None:
            return dependencies

        try:
            dependencies["postgres"] = "ok" if await health_check() else "error"
        except Exception as e:
            self.logger.warning("Dependency check failed", dependency="postgres", error=str(e))
            dependencies["postgres"] = "error"

        return dependencies

    async def start(self):
        """Start catalog service components."""
        start = getattr(self.repository, "start", None)
        if start is not None:
            await start()
        self.logger.info("Catalog service started", cache_ttl_seconds=self.config.cache_ttl_seconds)

    async def stop(self):
        """Stop catalog service components."""
        stop = getattr(self.repository, "stop", None)
        if stop is not None:
            await stop()
        self.logger.info("Catalog service stopped")


def create_app():
    """Create catalog service application."""
    service = CatalogService()
    return service.app


if __name__ == "__main__":
    service = CatalogService()
    service.run()
