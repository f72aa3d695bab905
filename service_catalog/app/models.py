"""
Catalog data models.

Entity snapshots double as the cached representation: the read-through
layer stores ``model_dump_json()`` output and decodes it back with the
model the caller expects.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    """User roles."""
    USER = "user"
    ADMIN = "admin"


class BookFilter(str, Enum):
    """Book list filters."""
    AUTHOR_ID = "author_id"
    GENRE_ID = "genre_id"


class BookSort(str, Enum):
    """Book list sort orders."""
    TITLE = "title"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class Author(BaseModel):
    """Author snapshot."""
    model_config = ConfigDict(extra="forbid")

    id: int
    name: str


class Genre(BaseModel):
    """Genre snapshot."""
    model_config = ConfigDict(extra="forbid")

    id: int
    name: str


class User(BaseModel):
    """User snapshot. Credentials never leave the backing store."""
    model_config = ConfigDict(extra="forbid")

    id: int
    username: str
    email: str
    phone: Optional[str] = None
    role: UserRole = UserRole.USER


class Book(BaseModel):
    """Book snapshot with embedded author, genre and file name."""
    model_config = ConfigDict(extra="forbid")

    id: int
    title: str
    author: Author
    genre: Genre
    isbn: str
    filename: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserList(BaseModel):
    users_count: int
    items: List[User]

    @classmethod
    def of(cls, items: List[User]) -> "UserList":
        return cls(users_count=len(items), items=items)


class BookList(BaseModel):
    books_count: int
    items: List[Book]

    @classmethod
    def of(cls, items: List[Book]) -> "BookList":
        return cls(books_count=len(items), items=items)


class AuthorList(BaseModel):
    authors_count: int
    items: List[Author]

    @classmethod
    def of(cls, items: List[Author]) -> "AuthorList":
        return cls(authors_count=len(items), items=items)


class GenreList(BaseModel):
    genres_count: int
    items: List[Genre]

    @classmethod
    def of(cls, items: List[Genre]) -> "GenreList":
        return cls(genres_count=len(items), items=items)


class BookIndex(BaseModel):
    """Books grouped by a foreign id (author or genre).

    Cached whole under a single cross-reference key; a lookup for one id
    reads its bucket out of the index.
    """
    groups: Dict[int, List[Book]] = Field(default_factory=dict)

    @classmethod
    def build(cls, books: List[Book], by: BookFilter) -> "BookIndex":
        groups: Dict[int, List[Book]] = {}
        for book in books:
            owner = book.author.id if by is BookFilter.AUTHOR_ID else book.genre.id
            groups.setdefault(owner, []).append(book)
        return cls(groups=groups)

    def lookup(self, owner_id: int) -> BookList:
        return BookList.of(list(self.groups.get(owner_id, [])))


# Requests

class UserCreate(BaseModel):
    """Request model for user creation.

    ``password_hash`` is prepared by the authentication layer.
    """
    username: str = Field(..., min_length=1, max_length=64)
    password_hash: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None


class UserUpdate(BaseModel):
    """Request model for user updates."""
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    password_hash: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None


class BookCreate(BaseModel):
    title: str = Field(..., min_length=1)
    author_id: int
    genre_id: int
    isbn: str = Field(..., min_length=1)
    description: Optional[str] = None


class BookUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    author_id: Optional[int] = None
    genre_id: Optional[int] = None
    isbn: Optional[str] = None
    description: Optional[str] = None


class BookFileUpload(BaseModel):
    """Records the object-storage file now attached to a book."""
    filename: str = Field(..., min_length=1)


class AuthorCreate(BaseModel):
    name: str = Field(..., min_length=1)


class AuthorUpdate(BaseModel):
    name: str = Field(..., min_length=1)


class GenreCreate(BaseModel):
    name: str = Field(..., min_length=1)


class GenreUpdate(BaseModel):
    name: str = Field(..., min_length=1)


class Created(BaseModel):
    """Response for create operations."""
    id: int
