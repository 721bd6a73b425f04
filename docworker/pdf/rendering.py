"""Page counting and first-page thumbnails on top of PyMuPDF."""

import pymupdf

from docworker.pdf.exceptions import PdfRenderError

PDF_CONTENT_TYPE = "application/pdf"

RENDERABLE_TYPES: dict[str, str] = {
    PDF_CONTENT_TYPE: "pdf",
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/tiff": "tiff",
    "image/bmp": "bmp",
    "image/gif": "gif",
}


def is_renderable(content_type: str | None) -> bool:
    return (content_type or "").lower() in RENDERABLE_TYPES


def count_pages(pdf_bytes: bytes) -> int | None:
    """Return the page count, or None when the bytes are not a readable PDF."""
    try:
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
            return int(doc.page_count)
    except Exception:  # noqa: BLE001 - page count is optional metadata
        return None


def render_first_page(body: bytes, content_type: str, width: int) -> bytes:
    """Render page one of ``body`` as a PNG scaled to ``width`` pixels.

    Raises:
        PdfRenderError: if the type is not renderable or rendering fails.
    """
    filetype = RENDERABLE_TYPES.get(content_type.lower())
    if filetype is None:
        raise PdfRenderError(f"Cannot render content type '{content_type}'")
    try:
        with pymupdf.open(stream=body, filetype=filetype) as doc:  # type: ignore[no-untyped-call]
            if doc.page_count == 0:
                raise PdfRenderError("Document has no pages to render")
            page = doc[0]
            zoom = width / page.rect.width
            pixmap = page.get_pixmap(matrix=pymupdf.Matrix(zoom, zoom), alpha=False)
            return bytes(pixmap.tobytes("png"))
    except PdfRenderError:
        raise
    except Exception as exc:
        raise PdfRenderError(f"pymupdf render failed: {exc}") from exc
