"""
Web server for bookcat.

Provides a JSON API over the catalog, book, import and export services.
The caller's identity arrives in the optional X-User-Id header: with it,
requests use the database backend; without it, the guest-mode local store.
"""

from typing import Optional, List
from datetime import datetime

from fastapi import FastAPI, HTTPException, UploadFile, File, Query, Header, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import BookcatConfig
from .exceptions import NotFoundError
from .library import Bookshelf
from .models import Book, BookFormData, Catalog, FilterOptions, ImportResult
from .services.filter_service import filter_books, pick_random


# Pydantic models for API
class CatalogResponse(BaseModel):
    id: str
    user_id: Optional[str]
    name: str
    description: Optional[str]
    icon: Optional[str]
    color: Optional[str]
    created_at: datetime
    updated_at: datetime


class CatalogCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None


class CatalogUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None


class BookResponse(BaseModel):
    id: str
    user_id: Optional[str]
    catalog_id: str
    title: str
    author: str
    genre: Optional[str]
    holiday_category: Optional[str]
    cover_image_url: Optional[str]
    isbn: Optional[str]
    publication_year: Optional[int]
    description: Optional[str]
    tags: List[str]
    is_manually_edited: bool
    is_favorite: bool
    is_read: bool
    created_at: datetime
    updated_at: datetime


class BookCreateRequest(BaseModel):
    title: str
    author: str
    genre: Optional[str] = None
    holiday_category: Optional[str] = None
    cover_image_url: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    description: Optional[str] = None
    tags: List[str] = []


class BookUpdateRequest(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    genre: Optional[str] = None
    holiday_category: Optional[str] = None
    cover_image_url: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None


class BookDraft(BaseModel):
    title: str
    author: str
    genre: Optional[str] = None
    holiday_category: Optional[str] = None
    cover_image_url: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    description: Optional[str] = None
    tags: List[str] = []


class ImportPreviewResponse(BaseModel):
    success: bool
    books: List[BookDraft]
    errors: List[str]
    warnings: List[str]
    total_records: int
    valid_records: int


class ImportCommitResponse(BaseModel):
    preview: ImportPreviewResponse
    attempted: int
    imported: int
    failed: int
    errors: List[str]


# Global bookshelf instance
_shelf: Optional[Bookshelf] = None


def get_shelf() -> Bookshelf:
    """Get the current bookshelf instance."""
    if _shelf is None:
        raise HTTPException(status_code=500, detail="Bookshelf not initialized")
    return _shelf


def set_shelf(shelf: Bookshelf):
    """Set the bookshelf instance directly (for testing)."""
    global _shelf
    _shelf = shelf


def create_app(config: Optional[BookcatConfig] = None) -> FastAPI:
    """Create FastAPI application with an initialized bookshelf."""
    set_shelf(Bookshelf.open(config))
    return app


# Create FastAPI app
app = FastAPI(
    title="bookcat",
    description="Personal book catalogs with import and export",
    version="0.1.0"
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def invalid_input_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _catalog_to_response(catalog: Catalog) -> dict:
    return {
        "id": catalog.id,
        "user_id": catalog.user_id,
        "name": catalog.name,
        "description": catalog.description,
        "icon": catalog.icon,
        "color": catalog.color,
        "created_at": catalog.created_at,
        "updated_at": catalog.updated_at,
    }


def _book_to_response(book: Book) -> dict:
    return {
        "id": book.id,
        "user_id": book.user_id,
        "catalog_id": book.catalog_id,
        "title": book.title,
        "author": book.author,
        "genre": book.genre,
        "holiday_category": book.holiday_category,
        "cover_image_url": book.cover_image_url,
        "isbn": book.isbn,
        "publication_year": book.publication_year,
        "description": book.description,
        "tags": list(book.tags),
        "is_manually_edited": book.is_manually_edited,
        "is_favorite": book.is_favorite,
        "is_read": book.is_read,
        "created_at": book.created_at,
        "updated_at": book.updated_at,
    }


def _filters(favorites: Optional[bool], read: Optional[bool], unread: Optional[bool],
             genre: Optional[str], holiday: Optional[str], tags: Optional[List[str]],
             search: Optional[str]) -> FilterOptions:
    return FilterOptions(
        favorites=favorites,
        read=read,
        unread=unread,
        genre=genre,
        holiday_category=holiday,
        tags=tags,
        search=search,
    )


async def _read_upload(file: UploadFile) -> ImportResult:
    shelf = get_shelf()
    data = await file.read()
    return await shelf.importer.import_bytes(data, file.filename or "")


# Catalogs

@app.get("/api/catalogs", response_model=List[CatalogResponse])
async def list_catalogs(x_user_id: Optional[str] = Header(None)):
    """List catalogs; a caller with none gets a default catalog."""
    catalogs = await get_shelf().catalogs.get_catalogs(x_user_id)
    return [_catalog_to_response(c) for c in catalogs]


@app.post("/api/catalogs", response_model=CatalogResponse, status_code=201)
async def create_catalog(request: CatalogCreateRequest,
                         x_user_id: Optional[str] = Header(None)):
    catalog = await get_shelf().catalogs.create_catalog(
        x_user_id, request.name, description=request.description,
        icon=request.icon, color=request.color,
    )
    return _catalog_to_response(catalog)


@app.patch("/api/catalogs/{catalog_id}", response_model=CatalogResponse)
async def update_catalog(catalog_id: str, update: CatalogUpdateRequest,
                         x_user_id: Optional[str] = Header(None)):
    changes = update.model_dump(exclude_unset=True)
    catalog = await get_shelf().catalogs.update_catalog(x_user_id, catalog_id, **changes)
    return _catalog_to_response(catalog)


@app.delete("/api/catalogs/{catalog_id}")
async def delete_catalog(catalog_id: str, x_user_id: Optional[str] = Header(None)):
    """Delete a catalog and its books."""
    await get_shelf().catalogs.delete_catalog(x_user_id, catalog_id)
    return {"message": "Catalog deleted successfully"}


# Books within a catalog

@app.get("/api/catalogs/{catalog_id}/books", response_model=List[BookResponse])
async def list_books(
    catalog_id: str,
    favorites: Optional[bool] = None,
    read: Optional[bool] = None,
    unread: Optional[bool] = None,
    genre: Optional[str] = None,
    holiday: Optional[str] = None,
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = None,
    x_user_id: Optional[str] = Header(None),
):
    """List the books of a catalog, narrowed by the given filters."""
    books = await get_shelf().books.get_books(x_user_id, catalog_id)
    filtered = filter_books(books, _filters(favorites, read, unread, genre, holiday, tags, search))
    return [_book_to_response(b) for b in filtered]


@app.post("/api/catalogs/{catalog_id}/books", response_model=BookResponse, status_code=201)
async def add_book(catalog_id: str, request: BookCreateRequest,
                   auto_enrich: bool = Query(True),
                   x_user_id: Optional[str] = Header(None)):
    data = BookFormData.from_dict(request.model_dump())
    book = await get_shelf().books.add_book(x_user_id, catalog_id, data, auto_enrich=auto_enrich)
    return _book_to_response(book)


@app.get("/api/catalogs/{catalog_id}/books/random", response_model=BookResponse)
async def random_book(
    catalog_id: str,
    favorites: Optional[bool] = None,
    read: Optional[bool] = None,
    unread: Optional[bool] = None,
    genre: Optional[str] = None,
    holiday: Optional[str] = None,
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = None,
    x_user_id: Optional[str] = Header(None),
):
    """Pick a random book from the filtered list."""
    books = await get_shelf().books.get_books(x_user_id, catalog_id)
    filtered = filter_books(books, _filters(favorites, read, unread, genre, holiday, tags, search))
    book = pick_random(filtered)
    if book is None:
        raise HTTPException(status_code=404, detail="No books match the current filters")
    return _book_to_response(book)


@app.get("/api/catalogs/{catalog_id}/suggestion", response_model=BookDraft)
async def suggest_book(catalog_id: str, x_user_id: Optional[str] = Header(None)):
    """Suggest a book that is not in the catalog yet."""
    shelf = get_shelf()
    books = await shelf.books.get_books(x_user_id, catalog_id)
    suggestion = await shelf.books.suggest_book(books)
    if suggestion is None:
        raise HTTPException(status_code=404, detail="No suggestion available")
    return suggestion.to_dict()


# Import / export

@app.post("/api/catalogs/{catalog_id}/import/preview", response_model=ImportPreviewResponse)
async def preview_import(catalog_id: str, file: UploadFile = File(...)):
    """Parse an uploaded CSV/HTML file without storing anything."""
    result = await _read_upload(file)
    return result.to_dict()


@app.post("/api/catalogs/{catalog_id}/import", response_model=ImportCommitResponse)
async def import_books(catalog_id: str, file: UploadFile = File(...),
                       auto_enrich: bool = Query(True),
                       x_user_id: Optional[str] = Header(None)):
    """Parse an uploaded file and add every valid record to the catalog."""
    shelf = get_shelf()
    await shelf.catalogs.get_catalog(x_user_id, catalog_id)

    result = await _read_upload(file)
    summary = await shelf.importer.commit_import(
        shelf.books, x_user_id, catalog_id, result, auto_enrich=auto_enrich,
    )
    return {
        "preview": result.to_dict(),
        "attempted": summary.attempted,
        "imported": summary.imported,
        "failed": summary.failed,
        "errors": summary.errors,
    }


@app.get("/api/catalogs/{catalog_id}/export")
async def export_books(
    catalog_id: str,
    format: str = Query("csv"),
    filename: Optional[str] = None,
    favorites: Optional[bool] = None,
    read: Optional[bool] = None,
    unread: Optional[bool] = None,
    genre: Optional[str] = None,
    holiday: Optional[str] = None,
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = None,
    x_user_id: Optional[str] = Header(None),
):
    """Export the (filtered) books of a catalog as CSV, Excel-HTML or print view."""
    shelf = get_shelf()
    catalog = await shelf.catalogs.get_catalog(x_user_id, catalog_id)
    books = await shelf.books.get_books(x_user_id, catalog_id)
    filtered = filter_books(books, _filters(favorites, read, unread, genre, holiday, tags, search))

    artifact = shelf.exporter.export_books(
        filtered, format, filename=filename or catalog.name, title=catalog.name,
    )
    disposition = "inline" if artifact.inline else "attachment"
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'{disposition}; filename="{artifact.filename}"'},
    )


# Individual books

@app.get("/api/books/{book_id}", response_model=BookResponse)
async def get_book(book_id: str, x_user_id: Optional[str] = Header(None)):
    """Get a specific book by ID."""
    book = await get_shelf().books.get_book_by_id(x_user_id, book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return _book_to_response(book)


@app.patch("/api/books/{book_id}", response_model=BookResponse)
async def update_book(book_id: str, update: BookUpdateRequest,
                      x_user_id: Optional[str] = Header(None)):
    """Update book fields; the book is marked as manually edited."""
    updates = update.model_dump(exclude_unset=True)
    book = await get_shelf().books.update_book(x_user_id, book_id, updates)
    return _book_to_response(book)


@app.delete("/api/books/{book_id}")
async def delete_book(book_id: str, x_user_id: Optional[str] = Header(None)):
    """Delete a book from its catalog."""
    await get_shelf().books.delete_book(x_user_id, book_id)
    return {"message": "Book deleted successfully"}


@app.post("/api/books/{book_id}/favorite", response_model=BookResponse)
async def toggle_favorite(book_id: str, x_user_id: Optional[str] = Header(None)):
    book = await get_shelf().books.toggle_favorite(x_user_id, book_id)
    return _book_to_response(book)


@app.post("/api/books/{book_id}/read", response_model=BookResponse)
async def toggle_read(book_id: str, x_user_id: Optional[str] = Header(None)):
    book = await get_shelf().books.toggle_read(x_user_id, book_id)
    return _book_to_response(book)
