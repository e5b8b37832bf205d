"""
SQLAlchemy models for the bookcat database backend.

Every row carries the owning user id; the database backend filters every
statement on it.
"""

from sqlalchemy import (
    Column, String, Text, Boolean, Integer, DateTime, ForeignKey, Index, JSON
)
from sqlalchemy.orm import declarative_base, relationship

from ..models import Book, Catalog, utcnow

Base = declarative_base()


class CatalogRow(Base):
    """A user's catalog."""
    __tablename__ = 'catalogs'

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    icon = Column(String(50))
    color = Column(String(20))  # Palette name or hex code

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    books = relationship('BookRow', back_populates='catalog', cascade='all, delete-orphan',
                         passive_deletes=True)

    __table_args__ = (
        Index('idx_catalog_user_created', 'user_id', 'created_at'),
    )

    def to_record(self) -> Catalog:
        return Catalog(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            description=self.description,
            icon=self.icon,
            color=self.color,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self):
        return f"<CatalogRow(id={self.id}, name='{self.name}')>"


class BookRow(Base):
    """A book in a user's catalog."""
    __tablename__ = 'books'

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    catalog_id = Column(String(36), ForeignKey('catalogs.id', ondelete='CASCADE'),
                        nullable=False, index=True)

    title = Column(String(500), nullable=False)
    author = Column(String(500), nullable=False)
    genre = Column(String(100), index=True)
    holiday_category = Column(String(100))
    cover_image_url = Column(Text)
    isbn = Column(String(20))
    publication_year = Column(Integer)
    description = Column(Text)
    tags = Column(JSON, default=list, nullable=False)

    is_manually_edited = Column(Boolean, default=False, nullable=False)
    is_favorite = Column(Boolean, default=False, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    catalog = relationship('CatalogRow', back_populates='books')

    __table_args__ = (
        Index('idx_book_user_catalog', 'user_id', 'catalog_id'),
    )

    def to_record(self) -> Book:
        return Book(
            id=self.id,
            user_id=self.user_id,
            catalog_id=self.catalog_id,
            title=self.title,
            author=self.author,
            genre=self.genre,
            holiday_category=self.holiday_category,
            cover_image_url=self.cover_image_url,
            isbn=self.isbn,
            publication_year=self.publication_year,
            description=self.description,
            tags=list(self.tags or []),
            is_manually_edited=bool(self.is_manually_edited),
            is_favorite=bool(self.is_favorite),
            is_read=bool(self.is_read),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self):
        return f"<BookRow(id={self.id}, title='{self.title[:50]}')>"
