"""
Catalog service layer.

Reads go through :class:`ReadThroughCache`; writes go to the repository
and, once it has committed, through :class:`InvalidationCoordinator`.
A repository error on a write propagates before any invalidation runs.
"""

from typing import Optional, TYPE_CHECKING

from shared.logging import get_logger
from .caching import (
    BOOKS_BY_AUTHOR_KEY,
    BOOKS_BY_GENRE_KEY,
    DEFAULT_TTL_SECONDS,
    CacheStore,
    EntityType,
    InvalidationCoordinator,
    Mutation,
    ReadThroughCache,
    collection_key,
    entity_key,
)
from .models import (
    Author,
    AuthorCreate,
    AuthorList,
    AuthorUpdate,
    Book,
    BookCreate,
    BookFilter,
    BookIndex,
    BookList,
    BookSort,
    BookUpdate,
    Genre,
    GenreCreate,
    GenreList,
    GenreUpdate,
    User,
    UserCreate,
    UserList,
    UserUpdate,
)
from .persistence import CatalogRepository

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class CatalogManager:
    """Catalog reads and writes with a consistent cache in front of the store."""

    def __init__(
        self,
        repository: CatalogRepository,
        store: CacheStore,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.repository = repository
        self.store = store
        self.reads = ReadThroughCache(store, ttl_seconds, metrics=metrics)
        self.invalidation = InvalidationCoordinator(store, metrics=metrics)
        self.logger = get_logger("catalog.manager")

    # Users

    async def list_users(self) -> UserList:
        async def load() -> UserList:
            return UserList.of(await self.repository.list_users())

        return await self.reads.get_or_load(collection_key(EntityType.USER), UserList, load)

    async def get_user(self, user_id: int) -> User:
        return await self.reads.get_or_load(
            entity_key(EntityType.USER, user_id),
            User,
            lambda: self.repository.get_user(user_id),
        )

    async def create_user(self, request: UserCreate) -> int:
        user_id = await self.repository.create_user(request)
        self.invalidation.invalidate(EntityType.USER, Mutation.CREATE)
        self.logger.info("User created", user_id=user_id)
        return user_id

    async def update_user(self, user_id: int, request: UserUpdate) -> None:
        await self.repository.update_user(user_id, request)
        self.invalidation.invalidate(EntityType.USER, Mutation.UPDATE, user_id)
        self.logger.info("User updated", user_id=user_id)

    async def delete_user(self, user_id: int) -> None:
        await self.repository.delete_user(user_id)
        self.invalidation.invalidate(EntityType.USER, Mutation.DELETE, user_id)
        self.logger.info("User deleted", user_id=user_id)

    # Books

    async def list_books(
        self,
        filter_by: Optional[BookFilter] = None,
        filter_id: Optional[int] = None,
        sort_by: Optional[BookSort] = None,
    ) -> BookList:
        """List books.

        Only the unfiltered, unsorted list is cached. A plain author or
        genre filter is answered from the cross-reference index; any
        sorted query goes straight to the repository.
        """
        if sort_by is None and filter_by is not None and filter_id is not None:
            if BookFilter(filter_by) is BookFilter.AUTHOR_ID:
                return await self.books_by_author(filter_id)
            return await self.books_by_genre(filter_id)

        if filter_by is not None or sort_by is not None:
            return BookList.of(await self.repository.list_books(filter_by, filter_id, sort_by))

        async def load() -> BookList:
            return BookList.of(await self.repository.list_books())

        return await self.reads.get_or_load(collection_key(EntityType.BOOK), BookList, load)

    async def books_by_author(self, author_id: int) -> BookList:
        index = await self._book_index(BOOKS_BY_AUTHOR_KEY, BookFilter.AUTHOR_ID)
        return index.lookup(author_id)

    async def books_by_genre(self, genre_id: int) -> BookList:
        index = await self._book_index(BOOKS_BY_GENRE_KEY, BookFilter.GENRE_ID)
        return index.lookup(genre_id)

    async def _book_index(self, key: str, by: BookFilter) -> BookIndex:
        async def load() -> BookIndex:
            return BookIndex.build(await self.repository.list_books(), by)

        return await self.reads.get_or_load(key, BookIndex, load)

    async def get_book(self, book_id: int) -> Book:
        return await self.reads.get_or_load(
            entity_key(EntityType.BOOK, book_id),
            Book,
            lambda: self.repository.get_book(book_id),
        )

    async def create_book(self, request: BookCreate) -> int:
        book_id = await self.repository.create_book(request)
        self.invalidation.invalidate(EntityType.BOOK, Mutation.CREATE)
        self.logger.info("Book created", book_id=book_id)
        return book_id

    async def update_book(self, book_id: int, request: BookUpdate) -> None:
        await self.repository.update_book(book_id, request)
        self.invalidation.invalidate(EntityType.BOOK, Mutation.UPDATE, book_id)
        self.logger.info("Book updated", book_id=book_id)

    async def delete_book(self, book_id: int) -> Optional[str]:
        """Delete a book; returns the file name object storage should drop."""
        filename = await self.repository.delete_book(book_id)
        self.invalidation.invalidate(EntityType.BOOK, Mutation.DELETE, book_id)
        self.logger.info("Book deleted", book_id=book_id, filename=filename)
        return filename

    async def attach_book_file(self, book_id: int, filename: str) -> Optional[str]:
        """Record ``filename`` as the book's file; returns the replaced name."""
        previous = await self.repository.set_book_filename(book_id, filename)
        self.invalidation.invalidate(EntityType.BOOK, Mutation.FILE_UPLOAD, book_id)
        self.logger.info("Book file attached", book_id=book_id, filename=filename, replaced=previous)
        return previous

    # Authors

    async def list_authors(self) -> AuthorList:
        async def load() -> AuthorList:
            return AuthorList.of(await self.repository.list_authors())

        return await self.reads.get_or_load(collection_key(EntityType.AUTHOR), AuthorList, load)

    async def get_author(self, author_id: int) -> Author:
        return await self.reads.get_or_load(
            entity_key(EntityType.AUTHOR, author_id),
            Author,
            lambda: self.repository.get_author(author_id),
        )

    async def create_author(self, request: AuthorCreate) -> int:
        author_id = await self.repository.create_author(request)
        self.invalidation.invalidate(EntityType.AUTHOR, Mutation.CREATE)
        self.logger.info("Author created", author_id=author_id)
        return author_id

    async def update_author(self, author_id: int, request: AuthorUpdate) -> None:
        await self.repository.update_author(author_id, request)
        self.invalidation.invalidate(EntityType.AUTHOR, Mutation.UPDATE, author_id)
        self.logger.info("Author updated", author_id=author_id)

    async def delete_author(self, author_id: int) -> None:
        await self.repository.delete_author(author_id)
        self.invalidation.invalidate(EntityType.AUTHOR, Mutation.DELETE, author_id)
        self.logger.info("Author deleted", author_id=author_id)

    # Genres

    async def list_genres(self) -> GenreList:
        async def load() -> GenreList:
            return GenreList.of(await self.repository.list_genres())

        return await self.reads.get_or_load(collection_key(EntityType.GENRE), GenreList, load)

    async def get_genre(self, genre_id: int) -> Genre:
        return await self.reads.get_or_load(
            entity_key(EntityType.GENRE, genre_id),
            Genre,
            lambda: self.repository.get_genre(genre_id),
        )

    async def create_genre(self, request: GenreCreate) -> int:
        genre_id = await self.repository.create_genre(request)
        self.invalidation.invalidate(EntityType.GENRE, Mutation.CREATE)
        self.logger.info("Genre created", genre_id=genre_id)
        return genre_id

    async def update_genre(self, genre_id: int, request: GenreUpdate) -> None:
        await self.repository.update_genre(genre_id, request)
        self.invalidation.invalidate(EntityType.GENRE, Mutation.UPDATE, genre_id)
        self.logger.info("Genre updated", genre_id=genre_id)

    async def delete_genre(self, genre_id: int) -> None:
        await self.repository.delete_genre(genre_id)
        self.invalidation.invalidate(EntityType.GENRE, Mutation.DELETE, genre_id)
        self.logger.info("Genre deleted", genre_id=genre_id)

    def cache_stats(self) -> dict:
        """Entry count and TTL for the stats endpoint."""
        return {
            "entries": len(self.store),
            "ttl_seconds": self.reads.ttl_seconds,
        }
