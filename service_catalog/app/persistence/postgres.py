"""
PostgreSQL persistence layer for the catalog service.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

import asyncpg

from shared.errors import DataAccessError, NotFoundError, ValidationError
from shared.logging import get_logger
from ..models import (
    Author,
    AuthorCreate,
    AuthorUpdate,
    Book,
    BookCreate,
    BookFilter,
    BookSort,
    BookUpdate,
    Genre,
    GenreCreate,
    GenreUpdate,
    User,
    UserCreate,
    UserUpdate,
)


_BOOK_SELECT = """
    SELECT b.id, b.title, b.isbn, b.filename, b.description,
           b.created_at, b.updated_at,
           a.id AS author_id, a.name AS author_name,
           g.id AS genre_id, g.name AS genre_name
    FROM books b
    JOIN authors a ON a.id = b.author_id
    JOIN genres g ON g.id = b.genre_id
"""

_BOOK_FILTER_COLUMNS = {
    BookFilter.AUTHOR_ID: "b.author_id",
    BookFilter.GENRE_ID: "b.genre_id",
}

_BOOK_SORT_COLUMNS = {
    BookSort.TITLE: "b.title",
    BookSort.CREATED_AT: "b.created_at",
    BookSort.UPDATED_AT: "b.updated_at",
}


class PostgresCatalogRepository:
    """asyncpg-backed :class:`CatalogRepository`."""

    def __init__(self, dsn: str, *, min_size: int = 2, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.logger = get_logger("catalog.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=30
            )
            await self._create_tables()
            self.logger.info("PostgreSQL persistence started")

        except (asyncpg.PostgresError, OSError) as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise DataAccessError("start", str(e))

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL persistence stopped")

    async def health_check(self) -> bool:
        """Check PostgreSQL health."""
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (asyncpg.PostgresError, OSError):
            return False

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS authors (
                    id SERIAL PRIMARY KEY,
                    name VARCHAR(255) NOT NULL
                );
                CREATE TABLE IF NOT EXISTS genres (
                    id SERIAL PRIMARY KEY,
                    name VARCHAR(255) NOT NULL UNIQUE
                );
                CREATE TABLE IF NOT EXISTS users (
                    id SERIAL PRIMARY KEY,
                    username VARCHAR(64) NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    email VARCHAR(255) NOT NULL,
                    phone VARCHAR(32),
                    role VARCHAR(16) NOT NULL DEFAULT 'user'
                );
                CREATE TABLE IF NOT EXISTS books (
                    id SERIAL PRIMARY KEY,
                    title VARCHAR(255) NOT NULL,
                    author_id INTEGER NOT NULL REFERENCES authors(id),
                    genre_id INTEGER NOT NULL REFERENCES genres(id),
                    isbn VARCHAR(32) NOT NULL,
                    filename TEXT,
                    description TEXT,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
                CREATE INDEX IF NOT EXISTS idx_books_author ON books(author_id);
                CREATE INDEX IF NOT EXISTS idx_books_genre ON books(genre_id);
            """)

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a pooled connection, mapping driver errors to DataAccessError."""
        if not self.pool:
            raise DataAccessError(operation, "persistence layer not started")
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except asyncpg.PostgresError as e:
            self.logger.error("Database operation failed", operation=operation, error=str(e))
            raise DataAccessError(operation, str(e))
        except OSError as e:
            self.logger.error("Database connection failed", operation=operation, error=str(e))
            raise DataAccessError(operation, str(e))

    @staticmethod
    def _require(row: Any, entity: str, entity_id: int) -> Any:
        if row is None:
            raise NotFoundError(entity, entity_id)
        return row

    # Users

    async def list_users(self) -> List[User]:
        async with self._connection("list_users") as conn:
            rows = await conn.fetch(
                "SELECT id, username, email, phone, role FROM users ORDER BY id"
            )
        return [User(**dict(row)) for row in rows]

    async def get_user(self, user_id: int) -> User:
        async with self._connection("get_user") as conn:
            row = await conn.fetchrow(
                "SELECT id, username, email, phone, role FROM users WHERE id = $1",
                user_id,
            )
        return User(**dict(self._require(row, "user", user_id)))

    async def create_user(self, request: UserCreate) -> int:
        async with self._connection("create_user") as conn:
            return await conn.fetchval(
                """
                INSERT INTO users (username, password_hash, email, phone)
                VALUES ($1, $2, $3, $4)
                RETURNING id
                """,
                request.username,
                request.password_hash,
                request.email,
                request.phone,
            )

    async def update_user(self, user_id: int, request: UserUpdate) -> None:
        async with self._connection("update_user") as conn:
            row = await conn.fetchrow(
                """
                UPDATE users SET
                    username = COALESCE($2, username),
                    password_hash = COALESCE($3, password_hash),
                    email = COALESCE($4, email),
                    phone = COALESCE($5, phone),
                    role = COALESCE($6, role)
                WHERE id = $1
                RETURNING id
                """,
                user_id,
                request.username,
                request.password_hash,
                request.email,
                request.phone,
                request.role.value if request.role else None,
            )
        self._require(row, "user", user_id)

    async def delete_user(self, user_id: int) -> None:
        async with self._connection("delete_user") as conn:
            row = await conn.fetchrow("DELETE FROM users WHERE id = $1 RETURNING id", user_id)
        self._require(row, "user", user_id)

    # Books

    @staticmethod
    def _book(row: asyncpg.Record) -> Book:
        return Book(
            id=row["id"],
            title=row["title"],
            author=Author(id=row["author_id"], name=row["author_name"]),
            genre=Genre(id=row["genre_id"], name=row["genre_name"]),
            isbn=row["isbn"],
            filename=row["filename"],
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def list_books(
        self,
        filter_by: Optional[BookFilter] = None,
        filter_id: Optional[int] = None,
        sort_by: Optional[BookSort] = None,
    ) -> List[Book]:
        query = _BOOK_SELECT
        args: List[Any] = []

        if filter_by is not None:
            if filter_id is None:
                raise ValidationError(f"filter {filter_by.value} requires an id")
            query += f" WHERE {_BOOK_FILTER_COLUMNS[BookFilter(filter_by)]} = $1"
            args.append(filter_id)

        if sort_by is not None:
            query += f" ORDER BY {_BOOK_SORT_COLUMNS[BookSort(sort_by)]}"
        else:
            query += " ORDER BY b.id"

        async with self._connection("list_books") as conn:
            rows = await conn.fetch(query, *args)
        return [self._book(row) for row in rows]

    async def get_book(self, book_id: int) -> Book:
        async with self._connection("get_book") as conn:
            row = await conn.fetchrow(_BOOK_SELECT + " WHERE b.id = $1", book_id)
        return self._book(self._require(row, "book", book_id))

    async def create_book(self, request: BookCreate) -> int:
        async with self._connection("create_book") as conn:
            return await conn.fetchval(
                """
                INSERT INTO books (title, author_id, genre_id, isbn, description)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id
                """,
                request.title,
                request.author_id,
                request.genre_id,
                request.isbn,
                request.description,
            )

    async def update_book(self, book_id: int, request: BookUpdate) -> None:
        async with self._connection("update_book") as conn:
            row = await conn.fetchrow(
                """
                UPDATE books SET
                    title = COALESCE($2, title),
                    author_id = COALESCE($3, author_id),
                    genre_id = COALESCE($4, genre_id),
                    isbn = COALESCE($5, isbn),
                    description = COALESCE($6, description),
                    updated_at = NOW()
                WHERE id = $1
                RETURNING id
                """,
                book_id,
                request.title,
                request.author_id,
                request.genre_id,
                request.isbn,
                request.description,
            )
        self._require(row, "book", book_id)

    async def delete_book(self, book_id: int) -> Optional[str]:
        async with self._connection("delete_book") as conn:
            row = await conn.fetchrow(
                "DELETE FROM books WHERE id = $1 RETURNING filename", book_id
            )
        return self._require(row, "book", book_id)["filename"]

    async def set_book_filename(self, book_id: int, filename: str) -> Optional[str]:
        async with self._connection("set_book_filename") as conn:
            async with conn.transaction():
                previous = await conn.fetchrow(
                    "SELECT filename FROM books WHERE id = $1 FOR UPDATE", book_id
                )
                self._require(previous, "book", book_id)
                await conn.execute(
                    "UPDATE books SET filename = $2, updated_at = NOW() WHERE id = $1",
                    book_id,
                    filename,
                )
        return previous["filename"]

    # Authors

    async def list_authors(self) -> List[Author]:
        async with self._connection("list_authors") as conn:
            rows = await conn.fetch("SELECT id, name FROM authors ORDER BY id")
        return [Author(**dict(row)) for row in rows]

    async def get_author(self, author_id: int) -> Author:
        async with self._connection("get_author") as conn:
            row = await conn.fetchrow("SELECT id, name FROM authors WHERE id = $1", author_id)
        return Author(**dict(self._require(row, "author", author_id)))

    async def create_author(self, request: AuthorCreate) -> int:
        async with self._connection("create_author") as conn:
            return await conn.fetchval(
                "INSERT INTO authors (name) VALUES ($1) RETURNING id", request.name
            )

    async def update_author(self, author_id: int, request: AuthorUpdate) -> None:
        async with self._connection("update_author") as conn:
            row = await conn.fetchrow(
                "UPDATE authors SET name = $2 WHERE id = $1 RETURNING id",
                author_id,
                request.name,
            )
        self._require(row, "author", author_id)

    async def delete_author(self, author_id: int) -> None:
        async with self._connection("delete_author") as conn:
            row = await conn.fetchrow("DELETE FROM authors WHERE id = $1 RETURNING id", author_id)
        self._require(row, "author", author_id)

    # Genres

    async def list_genres(self) -> List[Genre]:
        async with self._connection("list_genres") as conn:
            rows = await conn.fetch("SELECT id, name FROM genres ORDER BY id")
        return [Genre(**dict(row)) for row in rows]

    async def get_genre(self, genre_id: int) -> Genre:
        async with self._connection("get_genre") as conn:
            row = await conn.fetchrow("SELECT id, name FROM genres WHERE id = $1", genre_id)
        return Genre(**dict(self._require(row, "genre", genre_id)))

    async def create_genre(self, request: GenreCreate) -> int:
        async with self._connection("create_genre") as conn:
            return await conn.fetchval(
                "INSERT INTO genres (name) VALUES ($1) RETURNING id", request.name
            )

    async def update_genre(self, genre_id: int, request: GenreUpdate) -> None:
        async with self._connection("update_genre") as conn:
            row = await conn.fetchrow(
                "UPDATE genres SET name = $2 WHERE id = $1 RETURNING id",
                genre_id,
                request.name,
            )
        self._require(row, "genre", genre_id)

    async def delete_genre(self, genre_id: int) -> None:
        async with self._connection("delete_genre") as conn:
            row = await conn.fetchrow("DELETE FROM genres WHERE id = $1 RETURNING id", genre_id)
        self._require(row, "genre", genre_id)
