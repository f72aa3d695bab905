"""
Backing store interface for the catalog.

Implementations raise ``NotFoundError`` when a row does not exist and
``DataAccessError`` for any other storage failure.
"""

from typing import List, Optional, Protocol

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


class CatalogRepository(Protocol):
    """Authoritative catalog storage."""

    # Users
    async def list_users(self) -> List[User]: ...

    async def get_user(self, user_id: int) -> User: ...

    async def create_user(self, request: UserCreate) -> int: ...

    async def update_user(self, user_id: int, request: UserUpdate) -> None: ...

    async def delete_user(self, user_id: int) -> None: ...

    # Books
    async def list_books(
        self,
        filter_by: Optional[BookFilter] = None,
        filter_id: Optional[int] = None,
        sort_by: Optional[BookSort] = None,
    ) -> List[Book]: ...

    async def get_book(self, book_id: int) -> Book: ...

    async def create_book(self, request: BookCreate) -> int: ...

    async def update_book(self, book_id: int, request: BookUpdate) -> None: ...

    async def delete_book(self, book_id: int) -> Optional[str]:
        """Delete a book and return the file name it carried, if any."""
        ...

    async def set_book_filename(self, book_id: int, filename: str) -> Optional[str]:
        """Attach ``filename`` to a book and return the previous one."""
        ...

    # Authors
    async def list_authors(self) -> List[Author]: ...

    async def get_author(self, author_id: int) -> Author: ...

    async def create_author(self, request: AuthorCreate) -> int: ...

    async def update_author(self, author_id: int, request: AuthorUpdate) -> None: ...

    async def delete_author(self, author_id: int) -> None: ...

    # Genres
    async def list_genres(self) -> List[Genre]: ...

    async def get_genre(self, genre_id: int) -> Genre: ...

    async def create_genre(self, request: GenreCreate) -> int: ...

    async def update_genre(self, genre_id: int, request: GenreUpdate) -> None: ...

    async def delete_genre(self, genre_id: int) -> None: ...
