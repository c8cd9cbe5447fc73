from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List
import logging
import sqlalchemy.exc

from config.settings import get_settings
from core.database.operations import (
    get_db,
    init_db,
    list_products,
    get_product,
    get_price_history,
    delete_product,
    DuplicateTrackingError,
)
from core.scrapers.extractor import ProductExtractor
from core.scrapers.renderer import build_renderer
from core.tracker.notifier import build_notifier
from core.tracker.service import ExtractionFailedError, track_product, refresh_watchlist

from .models import (
    TrackRequest,
    ExtractedProduct,
    Product,
    PricePoint,
    ProductDetail,
    RefreshUpdate,
    RefreshResponse,
    ErrorResponse,
)

logger = logging.getLogger("api")
settings = get_settings()

app = FastAPI(
    title="Price Tracker API",
    description="REST API for tracking product prices across Taiwanese online shops",
    version=settings.PROJECT_VERSION,
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def create_tables():
    init_db()


def get_extractor() -> ProductExtractor:
    """A fresh extractor per request; each extraction owns its browser session."""
    return ProductExtractor(build_renderer(settings), timeout_ms=settings.RENDER_TIMEOUT_MS)


def get_notifier():
    return build_notifier(settings)


# Extraction drives a blocking browser, so the endpoints below that scrape are
# plain functions and run in FastAPI's thread pool.


@app.get("/", tags=["General"])
async def root():
    """Root endpoint providing API information."""
    return {
        "name": "Price Tracker API",
        "version": settings.PROJECT_VERSION,
        "description": "API for tracking product prices and alerting on price drops",
        "endpoints": {
            "GET /": "This information",
            "GET /products": "List tracked products",
            "POST /products": "Scrape a product URL and start tracking it",
            "GET /products/{product_id}": "Get a product and its price history",
            "DELETE /products/{product_id}": "Stop tracking a product",
            "POST /refresh": "Re-scrape every tracked product",
        },
    }


@app.get("/products", response_model=List[Product], tags=["Products"])
def get_products(db: Session = Depends(get_db)):
    """List tracked products, newest first."""
    try:
        return [Product.model_validate(p) for p in list_products(db)]
    except sqlalchemy.exc.SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch products",
        ) from e


@app.post(
    "/products",
    response_model=ExtractedProduct,
    status_code=status.HTTP_201_CREATED,
    tags=["Products"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Page could not be scraped"},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "Product already tracked"},
    },
)
def add_product(
    request: TrackRequest,
    db: Session = Depends(get_db),
    extractor: ProductExtractor = Depends(get_extractor),
):
    """Scrape a product page and add it to the watchlist."""
    try:
        product = track_product(db, extractor, request.url, request.target_price)
    except DuplicateTrackingError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Product already tracked",
        ) from e
    except ExtractionFailedError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to scrape product. Please verify the URL.",
        ) from e
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.error("Database error adding %s: %s", request.url, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add product",
        ) from e

    return ExtractedProduct(
        id=product.id,
        url=product.url,
        title=product.title,
        price=product.current_price,
        image_url=product.image_url,
        platform=product.platform,
    )


NOT_FOUND_RESPONSE = {
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Product not found"},
}


@app.get(
    "/products/{product_id}",
    response_model=ProductDetail,
    tags=["Products"],
    responses=NOT_FOUND_RESPONSE,
)
def get_product_detail(product_id: int, db: Session = Depends(get_db)):
    """Get a tracked product together with its price history, newest first."""
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    history = get_price_history(db, product_id)
    detail = ProductDetail.model_validate(product)
    detail.history = [PricePoint.model_validate(h) for h in history]
    return detail


@app.delete("/products/{product_id}", tags=["Products"], responses=NOT_FOUND_RESPONSE)
def remove_product(product_id: int, db: Session = Depends(get_db)):
    """Stop tracking a product and drop its history."""
    if not delete_product(db, product_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return {"success": True}


@app.post("/refresh", response_model=RefreshResponse, tags=["Refresh"])
def refresh_prices(
    db: Session = Depends(get_db),
    extractor: ProductExtractor = Depends(get_extractor),
    notifier=Depends(get_notifier),
):
    """Re-scrape every tracked product and report the outcome for each."""
    try:
        outcomes = refresh_watchlist(
            db, extractor, notifier=notifier, delay_seconds=settings.REFRESH_DELAY_SECONDS
        )
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.error("Refresh failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to refresh prices",
        ) from e

    return RefreshResponse(
        success=True,
        updates=[
            RefreshUpdate(id=o.item_id, status=o.status.value, title=o.title, price=o.price)
            for o in outcomes
        ],
    )


# Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(_request, exc):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def general_exception_handler(_request, exc):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"Unexpected error: {str(exc)}"},
    )


# Run with: uvicorn api.main:app --reload
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
